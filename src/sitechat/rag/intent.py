"""Question intent detection and per-intent answer instructions."""

from __future__ import annotations

import re
from typing import Literal

Intent = Literal[
    "greeting",
    "owner",
    "services",
    "about",
    "value",
    "name",
    "mission",
    "address",
    "location",
    "hours",
    "phone",
    "email",
    "pricing",
    "other",
]

# First match wins; entries are checked in this order.
_INTENT_PATTERNS: list[tuple[Intent, re.Pattern[str]]] = [
    ("greeting", re.compile(r"\b(hi|hello|hey|good (morning|afternoon|evening))\b", re.IGNORECASE)),
    ("owner", re.compile(r"(owner|owner/?operator|founder|ceo|operator|who (runs|owns))", re.IGNORECASE)),
    ("services", re.compile(r"\b(services?|what do you do|offer|provide|main services)\b", re.IGNORECASE)),
    (
        "services",
        re.compile(
            r"(build|create|make)\s+(a|an|new)\s+(site|website)"
            r"|\bnew\s+(site|website)\b"
            r"|\bredesign(ing)?\s+(my|our)?\s*(site|website)",
            re.IGNORECASE,
        ),
    ),
    (
        "about",
        re.compile(
            r"\b(about|tell me more|more details|more info|elaborate|expand|continue"
            r"|learn more|know more|more about|describe more)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "value",
        re.compile(
            r"((why\s+(would\s+i\s+)?)?(choose|pick|go with|select)\s+(you|your|[a-z0-9 .-]+)"
            r"|\bwhy us\b|why\s+.*\s+(you|your)|\b(benefits|advantages|pros)\b"
            r"|\b(vs\.?|versus|better than others|compared to others|instead of others"
            r"|over others|over competitors)\b)",
            re.IGNORECASE,
        ),
    ),
    (
        "name",
        re.compile(
            r"(what('?| i)s\s+(the\s+)?(business|company|site|website)\s+name"
            r"|name\s+of\s+(your|the)\s+(business|company|site|website)"
            r"|what('?| i)s\s+your\s+company\s+called)",
            re.IGNORECASE,
        ),
    ),
    (
        "mission",
        re.compile(
            r"(mission|vision|purpose|goal(s)?|what (do|are) you (aim|trying) to (do|achieve))",
            re.IGNORECASE,
        ),
    ),
    ("address", re.compile(r"\b(address|street|suite)\b", re.IGNORECASE)),
    ("location", re.compile(r"\b(location|located|where (is|are) you)\b", re.IGNORECASE)),
    ("hours", re.compile(r"\b(hours|open|opening|closing|schedule)\b", re.IGNORECASE)),
    ("phone", re.compile(r"\b(phone|call|contact number|telephone)\b", re.IGNORECASE)),
    ("email", re.compile(r"\b(email|e-mail|contact email|mail)\b", re.IGNORECASE)),
    ("pricing", re.compile(r"\b(price|pricing|cost|plans?)\b", re.IGNORECASE)),
]

_INSTRUCTIONS: dict[str, str] = {
    "owner": (
        "If a person is identified as owner/founder/CEO/operator, answer in one sentence: "
        "'We are led by <Name>, our <title>.'"
    ),
    "services": (
        "List the main services in a short, readable list (comma-separated or bullets). "
        "Avoid long paragraphs."
    ),
    "value": (
        "Briefly explain why to choose us: 3-5 concise points based only on the site's content "
        "(e.g., expertise, responsiveness, locality, guarantees, stack). Avoid marketing fluff "
        "and keep each point to one short sentence."
    ),
    "mission": (
        "Summarize our mission/goals in 1-2 short sentences using only the site's content "
        "(about, services, value). Avoid generic filler."
    ),
    "address": (
        "If a full street address exists, return it on one line. If not, return city and state "
        "(e.g., 'We are in City, State')."
    ),
    "location": "Return city and state (and street address if available) in one line.",
    "phone": "Return phone numbers separated by commas.",
    "email": "Return email addresses separated by commas.",
    "hours": "Return business hours on one line if available.",
    "pricing": (
        "If pricing or plans exist, summarize briefly; otherwise invite the user to contact "
        "for a quote."
    ),
    "about": "Provide a 1-2 sentence overview of what we do and who we serve.",
}


def detect_intent(message: str) -> Intent:
    """Classify *message* into one of the fixed intents ("other" if none match)."""
    for intent, pattern in _INTENT_PATTERNS:
        if pattern.search(message):
            return intent
    return "other"


def extra_instructions(intent: str, site_name: str | None = None) -> str | None:
    """Additional system-prompt instructions for *intent*, or None."""
    if intent == "name":
        if site_name:
            return f'Return exactly this business name on one line: "{site_name}"'
        return "Return the business name on one short line."
    return _INSTRUCTIONS.get(intent)
