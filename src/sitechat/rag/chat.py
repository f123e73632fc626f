"""Answering: guards, deterministic replies, and grounded LLM completion.

answer() never crawls. It reads the stored index and facts, short-circuits the
questions that need no model, and otherwise asks the configured model to
answer from the retrieved context only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from sitechat.config import SiteChatConfig
from sitechat.db.models import SiteFacts
from sitechat.db.repository import Repository
from sitechat.rag import llm_client
from sitechat.rag.intent import detect_intent, extra_instructions
from sitechat.rag.retriever import is_on_topic, retrieve_context
from sitechat.rag.topic import is_trivia_request

logger = logging.getLogger(__name__)

MAX_HISTORY_TURNS = 6
MAX_HINT_SERVICES = 8
CONTACT_CTA_LINE = (
    "If you'd like, share your email or phone and what you'd like to discuss, "
    "and I'll make sure the team reaches out."
)

_BANNED_PHRASES = [
    re.compile(r"as an ai[, ]?", re.IGNORECASE),
    re.compile(r"based on (my|the) training data", re.IGNORECASE),
    re.compile(r"i (cannot|can't) browse", re.IGNORECASE),
    re.compile(r"my knowledge (cut[- ]?off|is limited)", re.IGNORECASE),
    re.compile(r"according to (the |our )?(website|site|provided (content|context))", re.IGNORECASE),
]
_MULTISPACE_RE = re.compile(r"\s{2,}")
_WS_RE = re.compile(r"\s+")

_QUESTION_HINTS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bceo\b"), '(Note: the site may use "Owner", "Operator", or "Founder" instead of "CEO")'),
    (re.compile(r"\bfounder\b"), '(Note: the site may use "Owner" or "Operator" instead of "Founder")'),
    (re.compile(r"\blocation\b|\bwhere\b|\baddress\b"), "(Note: check for city, state, or street address)"),
    (re.compile(r"\bphone\b|\bcall\b"), "(Note: look for phone numbers or contact info)"),
    (re.compile(r"\bpric"), '(Note: the site may use "plans", "packages", or "cost")'),
]


class DomainNotIndexedError(RuntimeError):
    """The domain has no stored index; build one before asking questions."""


@dataclass
class Answer:
    """A chat reply.

    Attributes:
        reply: Text shown to the user.
        sources: URLs of the context blocks the model was given.
        source: What produced the reply: "llm", "facts", "refusal" or
            "insufficient".
    """

    reply: str
    sources: list[str] = field(default_factory=list)
    source: str = "llm"


def refusal_message(site_name: str) -> str:
    return (
        f"I can't help with that topic, but I'm happy to talk about {site_name}. "
        "Would you like details on services, pricing, contact, examples, or something "
        "else about the website?"
    )


def insufficient_info_message() -> str:
    return (
        "I don't have enough information from the website to answer that. "
        "Would you like a quick overview or a link to a relevant page?"
    )


def facts_to_hint(facts: SiteFacts) -> str | None:
    """Render stored facts as prompt lines; None when no fact is known."""
    lines: list[str] = []
    if facts.owner_name:
        suffix = f" ({facts.owner_title})" if facts.owner_title else ""
        lines.append(f"Owner: {facts.owner_name}{suffix}")
    if facts.services:
        lines.append(f"Services: {', '.join(facts.services[:MAX_HINT_SERVICES])}")
    if facts.phones:
        lines.append(f"Phone: {', '.join(facts.phones)}")
    if facts.emails:
        lines.append(f"Email: {', '.join(facts.emails)}")
    if facts.addresses:
        lines.append(f"Address: {' | '.join(facts.addresses)}")
    if facts.hours:
        lines.append(f"Hours: {facts.hours}")
    return "\n".join(lines) if lines else None


def load_rules(path: str | None) -> str:
    """Read the optional rules file; a missing or unreadable file yields ""."""
    if not path:
        return ""
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as exc:
        logger.debug("Rules file %s not loaded: %s", path, exc)
        return ""


def build_system_prompt(
    context: str,
    site_name: str,
    extra: str | None = None,
    facts_hint: str | None = None,
    rules: str | None = None,
    contact_cta: bool = True,
) -> str:
    """Assemble the system prompt around the retrieved *context*."""
    sections = [
        f'You are a customer service representative for "{site_name}".\n\n'
        "Goals:\n"
        "- Help the customer with clear, professional, first-person answers.\n"
        "- Use only the RAG CONTEXT and FACTS provided. Do not invent details.\n"
        '- If information is missing, say: "I don\'t have enough information to answer that."\n\n'
        "Style:\n"
        "- First person voice.\n"
        "- Be concise and helpful.\n"
    ]
    if rules:
        sections.append(f"AI RULES (strict):\n{rules}\n")
    if facts_hint:
        sections.append(f"FACTS (prefer these if present):\n{facts_hint}\n")
    sections.append(
        "Topic Guard:\n"
        f"- Answer only questions about {site_name} and the RAG CONTEXT.\n"
        f"- If the question is unrelated, respond with exactly: '{refusal_message(site_name)}'\n"
    )
    if contact_cta:
        sections.append(
            "Contact Policy:\n"
            "- If the user provides an email or phone number, acknowledge once and confirm "
            f"you will pass it to the {site_name} team.\n"
            f"- At the end of every response, append exactly one short line: '{CONTACT_CTA_LINE}'\n"
        )
    if extra:
        sections.append(f"Additional Instructions:\n{extra}\n")
    sections.append(f"RAG CONTEXT:\n{context}")
    return "\n".join(sections)


def expand_question(message: str) -> str:
    """Append retrieval hints for wording the site may use differently."""
    lowered = message.lower()
    hints = [hint for pattern, hint in _QUESTION_HINTS if pattern.search(lowered)]
    return f"{message}\n{' '.join(hints)}" if hints else message


def polish_reply(text: str) -> str:
    """Drop assistant boilerplate ("As an AI, ...") and squeeze whitespace."""
    if not text:
        return text
    for pattern in _BANNED_PHRASES:
        text = pattern.sub("", text)
    return _MULTISPACE_RE.sub(" ", text).strip()


def answer(
    repo: Repository,
    domain: str,
    site_name: str,
    message: str,
    config: SiteChatConfig,
    history: list[dict] | None = None,
) -> Answer:
    """Answer *message* about *domain* from its stored index.

    Raises:
        DomainNotIndexedError: If *domain* has no non-empty index.
        LLM_ERRORS: If the model call fails after retries.
    """
    meta = repo.get_meta(domain)
    if meta is None or not meta.ready:
        raise DomainNotIndexedError(f"{domain} is not indexed yet.")

    if is_trivia_request(message):
        return Answer(reply=insufficient_info_message(), source="insufficient")

    facts = repo.get_facts(domain)
    intent = detect_intent(message)

    if intent == "owner" and facts and facts.owner_name:
        title = _WS_RE.sub(" ", facts.owner_title).strip() if facts.owner_title else "owner"
        return Answer(reply=f"We are led by {facts.owner_name}, our {title}.", source="facts")

    retrieval = config.retrieval
    hits = retrieve_context(
        repo, domain, message, top_k=retrieval.top_k, max_chars=retrieval.max_context_chars
    )

    if intent == "other" and not is_on_topic(
        repo, domain, message, min_score=retrieval.min_topic_score
    ):
        logger.info("Refusing off-topic question for %s", domain)
        return Answer(reply=refusal_message(site_name), source="refusal")

    gen = config.generation
    system = build_system_prompt(
        hits.context,
        site_name,
        extra=extra_instructions(intent, site_name),
        facts_hint=facts_to_hint(facts) if facts else None,
        rules=load_rules(gen.rules_file),
        contact_cta=gen.contact_cta,
    )
    messages = [
        {"role": "system", "content": system},
        *(history or [])[-MAX_HISTORY_TURNS:],
        {"role": "user", "content": expand_question(message)},
    ]
    raw = llm_client.complete(
        gen.model, messages, max_tokens=gen.max_tokens, temperature=gen.temperature
    )
    reply = polish_reply(raw)
    if not reply:
        return Answer(reply=insufficient_info_message(), sources=hits.sources, source="insufficient")
    return Answer(reply=reply, sources=hits.sources, source="llm")
