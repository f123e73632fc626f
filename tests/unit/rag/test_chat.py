"""Tests for the answer layer: guards, deterministic replies, prompt assembly."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from sitechat.config import SiteChatConfig
from sitechat.db.models import PreparedPage, SiteFacts
from sitechat.db.repository import Repository
from sitechat.rag.chat import (
    CONTACT_CTA_LINE,
    Answer,
    DomainNotIndexedError,
    answer,
    build_system_prompt,
    expand_question,
    facts_to_hint,
    insufficient_info_message,
    load_rules,
    polish_reply,
    refusal_message,
)

DOMAIN = "https://acme.test"
SITE = "Acme Plumbing"
_COMPLETION = "sitechat.rag.llm_client.litellm.completion"


def _response(content: str | None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.choices[0].message.content = content
    return mock_response


@pytest.fixture
def indexed(repo: Repository) -> Repository:
    repo.replace_chunks(
        DOMAIN,
        SITE,
        [
            PreparedPage(f"{DOMAIN}/", "Acme Plumbing", ["Acme Plumbing repairs leaks and installs tankless water heaters."]),
            PreparedPage(f"{DOMAIN}/contact", "Contact", ["Call 555-123-4567 for emergency plumbing."]),
        ],
    )
    repo.put_facts(DOMAIN, SiteFacts(owner_name="Jane Smith", owner_title="owner  operator", phones=["555-123-4567"]))
    return repo


@pytest.fixture
def config() -> SiteChatConfig:
    return SiteChatConfig()


# ------------------------------------------------------------------
# answer(): short-circuits
# ------------------------------------------------------------------


def test_answer_requires_index(repo: Repository, config):
    with pytest.raises(DomainNotIndexedError):
        answer(repo, DOMAIN, SITE, "Do you fix leaks?", config)


def test_answer_trivia_skips_model(indexed: Repository, config):
    with patch(_COMPLETION) as completion:
        result = answer(indexed, DOMAIN, SITE, "Tell me a fun fact", config)
    assert result == Answer(reply=insufficient_info_message(), source="insufficient")
    completion.assert_not_called()


def test_answer_owner_from_facts(indexed: Repository, config):
    with patch(_COMPLETION) as completion:
        result = answer(indexed, DOMAIN, SITE, "Who owns Acme?", config)
    assert result.reply == "We are led by Jane Smith, our owner operator."
    assert result.source == "facts"
    completion.assert_not_called()


def test_answer_owner_without_facts_uses_model(repo: Repository, config):
    repo.replace_chunks(DOMAIN, SITE, [PreparedPage(f"{DOMAIN}/", "Home", ["Plumbing since 1998."])])
    with patch(_COMPLETION, return_value=_response("Our founder is not listed.")) as completion:
        result = answer(repo, DOMAIN, SITE, "Who is the founder?", config)
    assert result.source == "llm"
    completion.assert_called_once()


def test_answer_refuses_unrelated_question(indexed: Repository, config):
    with patch(_COMPLETION) as completion:
        result = answer(indexed, DOMAIN, SITE, "Who won the 1998 World Cup?", config)
    assert result.reply == refusal_message(SITE)
    assert result.source == "refusal"
    completion.assert_not_called()


def test_answer_site_terms_pass_topic_check(indexed: Repository, config):
    with patch(_COMPLETION, return_value=_response("We don't publish news, but we do plumbing.")) as completion:
        result = answer(indexed, DOMAIN, SITE, "plumbing news headlines", config)
    assert result.source == "llm"
    completion.assert_called_once()


# ------------------------------------------------------------------
# answer(): model path
# ------------------------------------------------------------------


def test_answer_on_topic_calls_model(indexed: Repository, config):
    reply = "As an AI, yes  we install tankless water heaters."
    with patch(_COMPLETION, return_value=_response(reply)) as completion:
        result = answer(indexed, DOMAIN, SITE, "Do you repair tankless water heaters?", config)

    assert result.reply == "yes we install tankless water heaters."
    assert result.source == "llm"
    assert f"{DOMAIN}/" in result.sources

    kwargs = completion.call_args.kwargs
    assert kwargs["model"] == config.generation.model
    assert kwargs["max_tokens"] == config.generation.max_tokens
    system = kwargs["messages"][0]["content"]
    assert "RAG CONTEXT:\n--- Acme Plumbing" in system
    assert "Owner: Jane Smith (owner  operator)" in system
    assert kwargs["messages"][-1] == {"role": "user", "content": "Do you repair tankless water heaters?"}


def test_answer_empty_completion_is_insufficient(indexed: Repository, config):
    with patch(_COMPLETION, return_value=_response("")):
        result = answer(indexed, DOMAIN, SITE, "Do you repair tankless water heaters?", config)
    assert result.reply == insufficient_info_message()
    assert result.source == "insufficient"


def test_answer_trims_history(indexed: Repository, config):
    history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"} for i in range(10)]
    with patch(_COMPLETION, return_value=_response("Sure.")) as completion:
        answer(indexed, DOMAIN, SITE, "What services do you offer?", config, history=history)
    messages = completion.call_args.kwargs["messages"]
    assert len(messages) == 8
    assert messages[1:7] == history[-6:]


def test_answer_intent_instructions_in_prompt(indexed: Repository, config):
    with patch(_COMPLETION, return_value=_response("555-123-4567")) as completion:
        answer(indexed, DOMAIN, SITE, "What's your phone number?", config)
    system = completion.call_args.kwargs["messages"][0]["content"]
    assert "Additional Instructions:\nReturn phone numbers separated by commas." in system


# ------------------------------------------------------------------
# Prompt helpers
# ------------------------------------------------------------------


def test_system_prompt_sections():
    prompt = build_system_prompt("CTX", SITE, extra="Be brief.", facts_hint="Phone: 1", rules="No prices.")
    assert prompt.startswith(f'You are a customer service representative for "{SITE}".')
    assert "AI RULES (strict):\nNo prices." in prompt
    assert "FACTS (prefer these if present):\nPhone: 1" in prompt
    assert refusal_message(SITE) in prompt
    assert CONTACT_CTA_LINE in prompt
    assert "Additional Instructions:\nBe brief." in prompt
    assert prompt.endswith("RAG CONTEXT:\nCTX")


def test_system_prompt_without_contact_policy():
    prompt = build_system_prompt("CTX", SITE, contact_cta=False)
    assert "Contact Policy" not in prompt
    assert "AI RULES" not in prompt
    assert "FACTS (prefer these if present)" not in prompt


def test_load_rules(tmp_path):
    rules = tmp_path / "rules.txt"
    rules.write_text("  Never quote prices.\n", encoding="utf-8")
    assert load_rules(str(rules)) == "Never quote prices."
    assert load_rules(str(tmp_path / "missing.txt")) == ""
    assert load_rules(None) == ""


def test_rules_file_reaches_prompt(indexed: Repository, config, tmp_path):
    rules = tmp_path / "rules.txt"
    rules.write_text("Never quote prices.", encoding="utf-8")
    config.generation.rules_file = str(rules)
    with patch(_COMPLETION, return_value=_response("ok")) as completion:
        answer(indexed, DOMAIN, SITE, "Do you repair tankless water heaters?", config)
    assert "AI RULES (strict):\nNever quote prices." in completion.call_args.kwargs["messages"][0]["content"]


def test_facts_to_hint():
    facts = SiteFacts(
        owner_name="Jane Smith",
        owner_title="owner",
        services=[f"S{i}" for i in range(10)],
        phones=["555-123-4567"],
        emails=["info@acme.test"],
        addresses=["1 A St", "2 B St"],
        hours="Mon-Fri",
    )
    assert facts_to_hint(facts) == "\n".join(
        [
            "Owner: Jane Smith (owner)",
            "Services: S0, S1, S2, S3, S4, S5, S6, S7",
            "Phone: 555-123-4567",
            "Email: info@acme.test",
            "Address: 1 A St | 2 B St",
            "Hours: Mon-Fri",
        ]
    )


def test_facts_to_hint_empty():
    assert facts_to_hint(SiteFacts()) is None


@pytest.mark.parametrize(
    "message,hint",
    [
        ("Who is your CEO?", "instead of \"CEO\""),
        ("Where are you?", "city, state, or street address"),
        ("Can I call you?", "phone numbers"),
        ("What is the pricing?", '"plans"'),
    ],
)
def test_expand_question_adds_hints(message, hint):
    expanded = expand_question(message)
    assert expanded.startswith(f"{message}\n")
    assert hint in expanded


def test_expand_question_unchanged():
    assert expand_question("Do you fix leaks?") == "Do you fix leaks?"


def test_polish_reply_strips_boilerplate():
    assert polish_reply("As an AI, I think  we fix leaks.") == "I think we fix leaks."
    assert polish_reply("") == ""
