"""
Contact engine package.

Responsible for:
- Resolving a company's official website (search + AI disambiguation).
- Finding contact emails through a cascade: directory lookup, bounded site
  scrape, AI extraction over the scraped text.
- Picking the single best address and writing it back to the company store.
"""
