"""LiteLLM client wrapper with retry and API key validation.

Answer generation routes through this module. LiteLLM's built-in retry is used
(num_retries, exponential backoff). Local Ollama models need no API key.
"""

from __future__ import annotations

import os

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

# Everything complete() may raise once retries are exhausted.
LLM_ERRORS = (
    litellm.exceptions.APIError,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.AuthenticationError,
    litellm.exceptions.BadRequestError,
    litellm.exceptions.NotFoundError,
    litellm.exceptions.RateLimitError,
    litellm.exceptions.ServiceUnavailableError,
    litellm.exceptions.Timeout,
)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a LiteLLM model string ('openai' if none)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def api_key_env(model: str) -> str | None:
    """Env var holding the API key for *model*'s provider; None if none is needed."""
    return _PROVIDER_ENV.get(provider_of(model))


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    env_var = api_key_env(model)
    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider_of(model)}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 180,
    temperature: float = 0.2,
    num_retries: int = 2,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
        num_retries: Number of retries on transient errors.

    Returns:
        The text content of the first choice ("" if the model returned none).

    Raises:
        LLM_ERRORS: On persistent API failure after retries.
    """
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
    )
    return response.choices[0].message.content or ""
