from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_BAD_DOMAINS = {
    "domain.com",
    "example.com",
    "example.org",
    "example.net",
    "test.com",
    "email.com",
    "votredomaine.fr",
    "votre-site.fr",
    "invalid",
    "localhost",
    "local",
}

_BAD_LOCALPARTS = {
    "user",
    "test",
    "example",
    "exemple",
    "asdf",
    "qwerty",
    "null",
    "none",
    "votre.email",
    "votrenom",
    "nom.prenom",
    "prenom.nom",
    "noreply",
    "no-reply",
    "donotreply",
    "do-not-reply",
}

_BAD_TLDS = {"example", "invalid", "localhost", "local", "test"}


def _split_email(email: str) -> Tuple[str, str]:
    local, domain = email.split("@", 1)
    return local.strip().lower(), domain.strip().lower().strip(".")


def _looks_placeholder(email: str) -> bool:
    if "@" not in email:
        return True

    local, domain = _split_email(email)

    if not local or not domain:
        return True

    if local in _BAD_LOCALPARTS:
        return True

    if domain in _BAD_DOMAINS:
        return True

    if "." not in domain:
        return True

    tld = domain.rsplit(".", 1)[-1]
    if tld in _BAD_TLDS:
        return True

    return False


@dataclass
class EmailVerificationResult:
    status: str  # valid | invalid | risky
    score: Optional[float]
    source: str


class EmailVerifier:
    """
    Cheap deliverability check used before picking a contact address.

    Placeholder / template addresses are rejected outright; otherwise the
    domain must publish MX records. DNS timeouts are "risky", not "invalid",
    so a flaky resolver never drops a real address. MX answers are cached
    per domain for the lifetime of the verifier (one batch).
    """

    def __init__(
        self,
        source: str = "dns-mx",
        timeout_seconds: float = 3.0,
        lifetime_seconds: float = 5.0,
        resolver: Optional[dns.resolver.Resolver] = None,
    ) -> None:
        self.source = source or "dns-mx"
        self.resolver = resolver or dns.resolver.Resolver()
        self.resolver.timeout = timeout_seconds
        self.resolver.lifetime = lifetime_seconds
        self._mx_cache: Dict[str, EmailVerificationResult] = {}

    def verify(self, email: str) -> EmailVerificationResult:
        email = (email or "").strip()

        if not email or len(email) > 254:
            return EmailVerificationResult("invalid", 0.0, self.source)

        if _looks_placeholder(email):
            return EmailVerificationResult("invalid", 0.0, self.source)

        if not _EMAIL_RE.match(email):
            return EmailVerificationResult("invalid", 0.0, self.source)

        domain = email.split("@", 1)[1].lower().strip(".")
        cached = self._mx_cache.get(domain)
        if cached is not None:
            return cached

        result = self._check_mx(domain)
        self._mx_cache[domain] = result
        return result

    def _check_mx(self, domain: str) -> EmailVerificationResult:
        try:
            answers = self.resolver.resolve(domain, "MX")
            if not list(answers):
                return EmailVerificationResult("invalid", 0.0, self.source)
            return EmailVerificationResult("valid", 1.0, self.source)

        except dns.resolver.NXDOMAIN:
            return EmailVerificationResult("invalid", 0.0, self.source)
        except dns.resolver.NoAnswer:
            return EmailVerificationResult("invalid", 0.0, self.source)
        except dns.exception.Timeout:
            return EmailVerificationResult("risky", None, self.source)
        except Exception as e:
            logger.warning("MX lookup failed for %s: %s", domain, e)
            return EmailVerificationResult("risky", None, self.source)
