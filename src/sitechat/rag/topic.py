"""Message-level topic guard: stopword-filtered term overlap plus hard patterns."""

from __future__ import annotations

import re

DEFAULT_MIN_OVERLAP = 0.06

_STOPWORDS = frozenset(
    """
    the a an and or but if then than that this those these with for from to in
    on at by of as is are was were be been being it its you your yours we our
    ours they their theirs i me my mine he him his she her hers them who what
    when where why how do does did can could should would
    """.split()
)

# Unparenthesised alternations: these entries match any one of
# their words anywhere in the message.
_OFFTOPIC_PATTERNS = [
    re.compile(r"\b(president|prime minister|governor|senator|election|capital of|country flag|state flag)\b", re.IGNORECASE),
    re.compile(r"\b(weather|temperature|forecast|time in|timezone)\b", re.IGNORECASE),
    re.compile(r"\b(stock|price|bitcoin|crypto|exchange rate)\b", re.IGNORECASE),
    re.compile(r"\bnews|headlines|trending|twitter|reddit|wikipedia\b", re.IGNORECASE),
    re.compile(r"\btranslate|definition of|define |what does .* mean\b", re.IGNORECASE),
    re.compile(r"\bsolve |what is \d+ [+\-*/] \d+\b", re.IGNORECASE),
    re.compile(r"\bmovie|lyrics|celebrity|sports score|nba|nfl|soccer\b", re.IGNORECASE),
]

# Phrasings that are about the business even without its name in the text.
_ALWAYS_ON_TOPIC_PATTERNS = [
    re.compile(r"\b(business|company|site|website)\s+name\b", re.IGNORECASE),
    re.compile(r"\b(business|company|site|website)\s+(goals?|mission|vision|purpose)\b", re.IGNORECASE),
    re.compile(
        r"\bwhy\s+(choose|pick|go with|select)\s+(you|your|us|the\s+(business|company|site|website)|[a-z0-9 .-]+)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bwhy\s+us\b", re.IGNORECASE),
    # common misspellings of "business"
    re.compile(r"\bbus+ines+s\b", re.IGNORECASE),
    re.compile(r"\bbus+nes+s\b", re.IGNORECASE),
]

_TRIVIA_PATTERNS = [
    re.compile(r"tell me something .* (don't|dont) know"),
    re.compile(r"lesser[- ]known|little[- ]known|unknown fact|hidden (fact|info)"),
    re.compile(r"fun (fact|info)"),
    re.compile(r"random (fact|info)"),
]

_URL_RE = re.compile(r"https?://\S+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> list[str]:
    cleaned = _NON_ALNUM_RE.sub(" ", _URL_RE.sub(" ", text.lower()))
    return [w for w in cleaned.split() if len(w) > 2 and w not in _STOPWORDS]


def topic_score(message: str, context: str) -> float:
    """Fraction of the message's distinct terms that also occur in *context*."""
    terms = set(tokenize(message))
    if not terms:
        return 0.0
    context_terms = set(tokenize(context))
    hits = sum(1 for t in terms if t in context_terms)
    return hits / len(terms)


def is_on_topic_message(
    message: str,
    context: str,
    strict: bool = True,
    threshold: float = DEFAULT_MIN_OVERLAP,
) -> bool:
    """Decide whether *message* is about the site described by *context*.

    Hard off-topic patterns always reject; business-referring phrasings always
    accept. Otherwise a non-strict guard accepts and a strict one requires a
    term overlap of at least *threshold*.
    """
    if any(p.search(message) for p in _OFFTOPIC_PATTERNS):
        return False
    if any(p.search(message) for p in _ALWAYS_ON_TOPIC_PATTERNS):
        return True
    if not strict:
        return True
    return topic_score(message, context) >= threshold


def is_trivia_request(message: str) -> bool:
    """True for "tell me a fun fact"-style requests the site cannot answer."""
    lowered = message.lower()
    return any(p.search(lowered) for p in _TRIVIA_PATTERNS)
