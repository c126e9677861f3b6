"""Citation validation: URL/DOI format plus an academic/medical domain allow-list.

Pure and total. Malformed input yields an invalid result, never an exception.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlsplit

DOI_PREFIX = "doi:"
DOI_RESOLVER_DOMAIN = "doi.org"

APPROVED_DOMAINS: tuple[str, ...] = (
    "pubmed.ncbi.nlm.nih.gov",
    "ncbi.nlm.nih.gov",
    "nih.gov",
    "thelancet.com",
    "jamanetwork.com",
    "nejm.org",
    "bmj.com",
    "nature.com",
    "sciencedirect.com",
    "springer.com",
    "link.springer.com",
    "wiley.com",
    "onlinelibrary.wiley.com",
    "plos.org",
    "journals.plos.org",
    "doi.org",
)

EXPECTED_FORMATS = (
    "Citation must be a valid URL (starting with http:// or https://) "
    "or DOI (starting with doi:)"
)


@dataclass(frozen=True)
class CitationValidationResult:
    is_valid: bool
    format: Literal["url", "doi"] | None = None
    domain: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "format": self.format,
            "domain": self.domain,
            "reason": self.reason,
        }


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def is_approved_domain(host: str) -> bool:
    """Exact or dotted-suffix match against the allow-list, ignoring a leading www."""
    candidate = _strip_www(host.lower().rstrip("."))
    for approved in APPROVED_DOMAINS:
        approved = _strip_www(approved)
        if candidate == approved or candidate.endswith("." + approved):
            return True
    return False


def extract_domain(url: str) -> str | None:
    """Return the lower-cased hostname of an absolute http(s) URL, else None."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not host:
        return None
    return host.lower()


def validate_citation(citation: str | None) -> CitationValidationResult:
    """Classify a submitted reference as an accepted citation or not."""
    if not citation or not citation.strip():
        return CitationValidationResult(is_valid=False, reason="empty")

    trimmed = citation.strip()

    # DOIs resolve externally, so the domain allow-list does not apply
    if trimmed.lower().startswith(DOI_PREFIX):
        return CitationValidationResult(
            is_valid=True, format="doi", domain=DOI_RESOLVER_DOMAIN
        )

    domain = extract_domain(trimmed)
    if domain is None:
        return CitationValidationResult(is_valid=False, reason=EXPECTED_FORMATS)

    if not is_approved_domain(domain):
        return CitationValidationResult(
            is_valid=False,
            format="url",
            domain=domain,
            reason=f'Domain "{domain}" is not in the approved list of academic/medical sources',
        )

    return CitationValidationResult(is_valid=True, format="url", domain=domain)


def is_citation_valid(citation: str | None) -> bool:
    return validate_citation(citation).is_valid


def get_approved_domains() -> list[str]:
    """Allow-list copy for display."""
    return list(APPROVED_DOMAINS)
