"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import litellm
import pytest

from sitechat.rag.llm_client import LLM_ERRORS, api_key_env, complete, provider_of, validate_api_key


# ------------------------------------------------------------------
# provider / key lookup
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "model,provider",
    [
        ("openai/gpt-4o-mini", "openai"),
        ("Anthropic/claude-3-5-haiku-20241022", "anthropic"),
        ("ollama_chat/llama3.2", "ollama_chat"),
        ("gpt-4o", "openai"),
    ],
)
def test_provider_of(model, provider):
    assert provider_of(model) == provider


def test_api_key_env_local_models_need_none():
    assert api_key_env("ollama_chat/llama3.2") is None
    assert api_key_env("ollama/llama3.2") is None


def test_api_key_env_openai():
    assert api_key_env("openai/gpt-4o") == "OPENAI_API_KEY"


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o")


def test_validate_api_key_anthropic(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="ANTHROPIC_API_KEY"):
        validate_api_key("anthropic/claude-3-5-haiku-20241022")


def test_validate_api_key_ollama_no_key_required(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    validate_api_key("ollama_chat/llama3.2")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError):
        validate_api_key("gpt-4o-mini")


# ------------------------------------------------------------------
# complete()
# ------------------------------------------------------------------


def test_complete_returns_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "We fix leaks."

    with patch("sitechat.rag.llm_client.litellm.completion", return_value=mock_response):
        result = complete("ollama_chat/llama3.2", [{"role": "user", "content": "Hi"}])

    assert result == "We fix leaks."


def test_complete_returns_empty_string_on_none_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = None

    with patch("sitechat.rag.llm_client.litellm.completion", return_value=mock_response):
        result = complete("ollama_chat/llama3.2", [{"role": "user", "content": "Hi"}])

    assert result == ""


def test_complete_passes_params_to_litellm():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "ok"

    with patch("sitechat.rag.llm_client.litellm.completion", return_value=mock_response) as mock_c:
        complete(
            "openai/gpt-4o-mini",
            [{"role": "user", "content": "test"}],
            max_tokens=64,
            temperature=0.5,
            num_retries=1,
        )

    call_kwargs = mock_c.call_args.kwargs
    assert call_kwargs["model"] == "openai/gpt-4o-mini"
    assert call_kwargs["messages"] == [{"role": "user", "content": "test"}]
    assert call_kwargs["max_tokens"] == 64
    assert call_kwargs["temperature"] == 0.5
    assert call_kwargs["num_retries"] == 1


def test_llm_errors_cover_api_error():
    assert litellm.exceptions.APIError in LLM_ERRORS
    assert all(issubclass(e, Exception) for e in LLM_ERRORS)
