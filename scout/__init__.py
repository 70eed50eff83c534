"""
Scout: company contact resolution.

Given company identities pulled from the company store, find the official
website and a ranked, validated contact email for each one.
"""
