from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# ---------------------------------------------------------
# Tags
# ---------------------------------------------------------
CONFIDENCE_NONE = "none"
CONFIDENCE_LOW = "low"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_HIGH = "high"

SOURCE_DIRECTORY = "directory"
SOURCE_SCRAPE = "scrape"
SOURCE_AI = "ai-fallback"
SOURCE_NONE = "none"

# Confidence is driven only by the stage that produced the emails.
STAGE_CONFIDENCE = {
    SOURCE_DIRECTORY: CONFIDENCE_HIGH,
    SOURCE_SCRAPE: CONFIDENCE_MEDIUM,
    SOURCE_AI: CONFIDENCE_LOW,
    SOURCE_NONE: CONFIDENCE_NONE,
}

# Pipeline states (see pipeline.ContactPipeline)
STATE_PENDING = "PENDING"
STATE_WEBSITE_RESOLVED = "WEBSITE_RESOLVED"
STATE_WEBSITE_UNRESOLVED = "WEBSITE_UNRESOLVED"
STATE_DIRECTORY_LOOKUP = "DIRECTORY_LOOKUP"
STATE_SCRAPE_FALLBACK = "SCRAPE_FALLBACK"
STATE_AI_FALLBACK = "AI_FALLBACK"
STATE_DONE = "DONE"

ALTERNATIVE_CONTACT_FORM = "form available"
ERROR_NO_WEBSITE = "no official website found"


# ---------------------------------------------------------
# Inputs
# ---------------------------------------------------------
@dataclass(frozen=True)
class CompanyIdentity:
    """Read-only view of a company row, as the pipeline sees it."""
    id: str
    name: str
    registry_id: str
    city: Optional[str] = None
    activity_code: Optional[str] = None
    activity_label: Optional[str] = None
    notes: Optional[str] = None
    website_url: Optional[str] = None


@dataclass(frozen=True)
class WebsiteCandidate:
    url: str
    title: str = ""
    snippet: str = ""


@dataclass(frozen=True)
class EmailCandidate:
    address: str
    source: str
    organizational_role: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "source": self.source,
            "organizationalRole": self.organizational_role,
        }


def dedupe_candidates(candidates) -> Tuple[EmailCandidate, ...]:
    """Case-insensitive dedupe, first occurrence wins, order kept."""
    seen = set()
    out: List[EmailCandidate] = []
    for c in candidates:
        key = (c.address or "").strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(c)
    return tuple(out)


# ---------------------------------------------------------
# Component results
# ---------------------------------------------------------
@dataclass
class PageResult:
    url: str
    emails: List[str] = field(default_factory=list)
    text: str = ""
    has_contact_form: bool = False
    ok: bool = False
    status_code: Optional[int] = None


@dataclass
class DirectoryEntry:
    address: str
    department: Optional[str] = None
    confidence: int = 0
    type: Optional[str] = None


@dataclass
class DirectoryResult:
    emails: List[str] = field(default_factory=list)
    confidence: str = CONFIDENCE_NONE
    entries: List[DirectoryEntry] = field(default_factory=list)


@dataclass
class ScrapeResult:
    emails: List[str] = field(default_factory=list)
    page_text: str = ""
    career_page_url: Optional[str] = None
    has_contact_form: bool = False
    pages_visited: List[str] = field(default_factory=list)


@dataclass
class ScrapeOutcome:
    emails: List[str] = field(default_factory=list)
    career_page_url: Optional[str] = None
    alternative_contact: Optional[str] = None
    has_contact_form: bool = False
    used_ai: bool = False


@dataclass
class AiExtraction:
    emails: List[str] = field(default_factory=list)
    career_page_url: Optional[str] = None


@dataclass(frozen=True)
class Parsed:
    """
    Tagged result for parsing free-form model output.

    Parsed.ok(value) carries the decoded payload; Parsed.malformed(reason)
    carries why it was rejected. Callers branch on `is_ok` and fall back to
    a safe default, nothing raises.
    """
    value: Any = None
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any) -> "Parsed":
        return cls(value=value, error=None)

    @classmethod
    def malformed(cls, reason: str = "malformed") -> "Parsed":
        return cls(value=None, error=reason or "malformed")


@dataclass
class StageOutcome:
    """
    Shared shape returned by every cascade stage.

    `terminal` ends the cascade even without emails (e.g. a contact form
    was found, or there is nothing left to hand to the next stage).
    """
    emails: Tuple[EmailCandidate, ...] = ()
    confidence: str = CONFIDENCE_NONE
    source: str = SOURCE_NONE
    terminal: bool = False
    career_page_url: Optional[str] = None
    alternative_contact: Optional[str] = None
    has_contact_form: Optional[bool] = None


# ---------------------------------------------------------
# Outputs
# ---------------------------------------------------------
@dataclass(frozen=True)
class ResolutionResult:
    company_id: str
    company_name: str
    website: Optional[str] = None
    emails: Tuple[EmailCandidate, ...] = ()
    selected_email: Optional[str] = None
    confidence: str = CONFIDENCE_NONE
    source: str = SOURCE_NONE
    career_page_url: Optional[str] = None
    alternative_contact: Optional[str] = None
    has_contact_form: Optional[bool] = None
    error: Optional[str] = None
    trail: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.emails)

    @property
    def addresses(self) -> List[str]:
        return [e.address for e in self.emails]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companyId": self.company_id,
            "companyName": self.company_name,
            "website": self.website,
            "emails": [e.to_dict() for e in self.emails],
            "selectedEmail": self.selected_email,
            "confidence": self.confidence,
            "source": self.source,
            "careerPageUrl": self.career_page_url,
            "alternativeContact": self.alternative_contact,
            "error": self.error,
        }


@dataclass
class BatchSummary:
    processed: int = 0
    found: int = 0
    not_found: int = 0
    has_more: bool = False

    def to_dict(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "found": self.found,
            "notFound": self.not_found,
        }


@dataclass
class BatchResult:
    results: List[ResolutionResult] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
