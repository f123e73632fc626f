"""Deterministic site facts from crawled text: owner, contacts, hours, services.

Every extractor is a best-effort regex heuristic with no error path; a fact
that is not found is None or an empty list. Matching order is observable
(first matches win the caps), so pattern tables keep their order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sitechat.db.models import Page, SiteFacts

MAX_CONTACTS = 3
MAX_HOURS_CHARS = 120
MAX_SERVICES = 12

_PHONE_RE = re.compile(r"\b\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")
_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_ADDRESS_RE = re.compile(r"\b\d{2,5} [A-Za-z0-9 .,#-]+,? [A-Za-z .]+,? [A-Z]{2} \d{5}(?:-\d{4})?\b")
_HOURS_RE = re.compile(r"hours[^\n]{0,40}:(.*)", re.IGNORECASE)

# Owner patterns run case-insensitively; the candidate name is then checked
# case-sensitively by _is_plausible_name().
_ROLE = r"(owner(?:\s*/\s*operator|\s*operator)?|founder|operator|ceo)"
_NAME = r"([A-Z][a-z]+ [A-Z][a-z]+)"
_NAME_THEN_ROLE_RE = re.compile(rf"\b{_NAME}\b\s*(?:-|,|\|)?\s*\b{_ROLE}\b", re.IGNORECASE)
_ROLE_THEN_NAME_RE = re.compile(rf"\b{_ROLE}\b\s*(?:-|,|\|)?\s*\b{_NAME}\b", re.IGNORECASE)
_TITLE_CASE_NAME_RE = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+")

_PROFILE_PAGE_RE = re.compile(r"/(about|about-us|team|contact)(/|$)", re.IGNORECASE)
_BLOG_PAGE_RE = re.compile(r"/blog(/|$)", re.IGNORECASE)
_PROFILE_PAGE_BONUS = 10
_BLOG_PAGE_PENALTY = -5
_MATCH_BONUS = 8

_BAD_NAME_WORDS = frozenset(
    [
        "who", "what", "when", "where", "why", "how", "wants", "your", "customer",
        "news", "launch", "website", "business", "services", "company", "about",
    ]
)

# Canonical service labels, in output order.
_SERVICE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("Web development", re.compile(r"web (development|dev)\b", re.IGNORECASE)),
    ("Web design", re.compile(r"(web|website) design\b", re.IGNORECASE)),
    ("Website maintenance", re.compile(r"website maintenance|site maintenance", re.IGNORECASE)),
    ("Web hosting", re.compile(r"(web|website|turnkey) hosting", re.IGNORECASE)),
    ("Web application development", re.compile(r"web application", re.IGNORECASE)),
    ("Search engine optimization (SEO)", re.compile(r"\bseo\b|search engine optimization", re.IGNORECASE)),
    ("Google Workspace", re.compile(r"google workspace", re.IGNORECASE)),
    ("Google Business Profile", re.compile(r"google (my|business) (profile)?", re.IGNORECASE)),
    ("Social media marketing", re.compile(r"social media (marketing)?", re.IGNORECASE)),
    ("Consulting", re.compile(r"\bconsult(ing)?\b|marketing consulting", re.IGNORECASE)),
    ("Ecommerce websites", re.compile(r"e-?commerce|ecommerce", re.IGNORECASE)),
    ("Real estate websites", re.compile(r"real estate websites?", re.IGNORECASE)),
    ("Photography", re.compile(r"photography", re.IGNORECASE)),
]


@dataclass
class OwnerCandidate:
    name: str
    title: str
    score: int


def extract_facts(pages: list[Page]) -> SiteFacts:
    """Scan every page of a site and return its SiteFacts."""
    text = site_text(pages)
    owner = find_owner(pages)
    return SiteFacts(
        owner_name=owner.name if owner else None,
        owner_title=owner.title if owner else None,
        phones=find_phones(text),
        emails=find_emails(text),
        addresses=find_addresses(text),
        hours=find_hours(text),
        services=find_services(text),
    )


def site_text(pages: list[Page]) -> str:
    """Concatenate title and content of every page."""
    return "\n\n".join(f"{p.title}\n{p.content}" for p in pages)


def _unique_matches(pattern: re.Pattern[str], text: str, limit: int) -> list[str]:
    matches = dict.fromkeys(m.group(0) for m in pattern.finditer(text))
    return list(matches)[:limit]


def find_phones(text: str) -> list[str]:
    return _unique_matches(_PHONE_RE, text, MAX_CONTACTS)


def find_emails(text: str) -> list[str]:
    return _unique_matches(_EMAIL_RE, text, MAX_CONTACTS)


def find_addresses(text: str) -> list[str]:
    """US-style street addresses ("123 Main St, Springfield, IL 62704")."""
    return _unique_matches(_ADDRESS_RE, text, MAX_CONTACTS)


def find_hours(text: str) -> str | None:
    """Text after the first ``hours ...:`` label on a line, capped."""
    match = _HOURS_RE.search(text)
    if not match:
        return None
    return match.group(1).strip()[:MAX_HOURS_CHARS] or None


def find_services(text: str) -> list[str]:
    """Canonical service labels mentioned anywhere in *text*, in table order."""
    found: list[str] = []
    for label, pattern in _SERVICE_PATTERNS:
        if label not in found and pattern.search(text):
            found.append(label)
    return found[:MAX_SERVICES]


def _is_plausible_name(name: str) -> bool:
    parts = name.split()
    if len(parts) != 2:
        return False
    if any(p.lower() in _BAD_NAME_WORDS for p in parts):
        return False
    return _TITLE_CASE_NAME_RE.fullmatch(name) is not None


def _page_score(url: str) -> int:
    if _PROFILE_PAGE_RE.search(url):
        return _PROFILE_PAGE_BONUS
    if _BLOG_PAGE_RE.search(url):
        return _BLOG_PAGE_PENALTY
    return 0


def owner_candidates(pages: list[Page]) -> list[OwnerCandidate]:
    """All plausible (name, role) pairs, in page order.

    Within a page, "Name - Role" matches come before "Role - Name" matches.
    """
    candidates: list[OwnerCandidate] = []
    for page in pages:
        hay = f"{page.title} {page.content}"
        score = _page_score(page.url) + _MATCH_BONUS
        for m in _NAME_THEN_ROLE_RE.finditer(hay):
            name = m.group(1).strip()
            if _is_plausible_name(name):
                candidates.append(OwnerCandidate(name, m.group(2).strip().lower(), score))
        for m in _ROLE_THEN_NAME_RE.finditer(hay):
            name = m.group(2).strip()
            if _is_plausible_name(name):
                candidates.append(OwnerCandidate(name, m.group(1).strip().lower(), score))
    return candidates


def find_owner(pages: list[Page]) -> OwnerCandidate | None:
    """Highest-scoring owner candidate; the earliest one wins ties."""
    candidates = owner_candidates(pages)
    if not candidates:
        return None
    return sorted(candidates, key=lambda c: c.score, reverse=True)[0]
