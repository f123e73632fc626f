"""sitechat configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not here)
  2. Environment variables  (SCRAPER_*, RAG_*, DOMAINNAME, SITE_NAME, ...)
  3. Per-project sitechat.yaml  (current directory by default)
  4. Global ~/.sitechat/config.yaml  (no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".sitechat"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "sitechat.yaml"

DEFAULT_DOMAIN = "https://example.com"
DEFAULT_SITE_NAME = "Example Site"

# Fields that suggest an API key; forbidden in global config.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["site", "crawl", "chunking", "retrieval", "generation", "guard"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file or environment variable holds an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class SiteCfg:
    """The website a deployment answers questions about (sitechat.yaml: site:)."""

    domain: str = DEFAULT_DOMAIN
    name: str = DEFAULT_SITE_NAME


@dataclass
class CrawlCfg:
    """Crawler limits (sitechat.yaml: crawl:).

    Attributes:
        max_pages: Maximum number of URLs visited per crawl; 0 = unbounded.
        concurrency: Pages fetched in parallel per batch.
        timeout_ms: Per-request timeout in milliseconds.
        extra_urls: Additional seed URLs (absolute or site-relative).
    """

    max_pages: int = 0
    concurrency: int = 3
    timeout_ms: int = 12_000
    extra_urls: list[str] = field(default_factory=list)


@dataclass
class ChunkingCfg:
    """Character window settings (sitechat.yaml: chunking:)."""

    chunk_size: int = 1_100
    overlap: int = 180


@dataclass
class RetrievalCfg:
    """Lexical retrieval settings (sitechat.yaml: retrieval:)."""

    top_k: int = 8
    max_context_chars: int = 12_000
    min_topic_score: int = 2


@dataclass
class GenerationCfg:
    """Answer generation settings (sitechat.yaml: generation:).

    Attributes:
        model: LiteLLM model string (provider/model format).
        max_tokens: Maximum tokens per answer.
        temperature: Sampling temperature.
        rules_file: Optional local file whose content is added to the system
            prompt as strict rules.
        contact_cta: Whether answers end with the contact invitation line.
    """

    model: str = "ollama_chat/llama3.2"
    max_tokens: int = 180
    temperature: float = 0.2
    rules_file: str | None = None
    contact_cta: bool = True


@dataclass
class GuardCfg:
    """Message-level topic guard (sitechat.yaml: guard:)."""

    strict: bool = True
    min_overlap: float = 0.06


@dataclass
class SiteChatConfig:
    """Root configuration object, built by load_config() from merged layers."""

    site: SiteCfg = field(default_factory=SiteCfg)
    crawl: CrawlCfg = field(default_factory=CrawlCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    guard: GuardCfg = field(default_factory=GuardCfg)


# ---------------------------------------------------------------------------
# Domain normalisation
# ---------------------------------------------------------------------------


def normalize_domain(raw: str | None) -> str:
    """Return the origin (scheme + host) for *raw*.

    ``example.com``, ``https://example.com/about`` and ``HTTPS://Example.com``
    all become ``https://example.com``. An empty value yields the default domain.

    Raises:
        ConfigError: If *raw* has no hostname.
    """
    value = (raw or "").strip()
    if not value:
        return DEFAULT_DOMAIN
    if not re.match(r"^https?://", value, re.IGNORECASE):
        value = f"https://{value}"
    parts = urlsplit(value)
    if not parts.hostname:
        raise ConfigError(f"Invalid site domain: '{raw}'")
    netloc = parts.hostname
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return f"{parts.scheme.lower()}://{netloc}"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from exc


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{name}' must be a number, got {value!r}") from exc


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _split_urls(raw: str) -> list[str]:
    return [s.strip() for s in re.split(r"[,\n]", raw) if s.strip()]


def _validate_chunking(chunking: ChunkingCfg) -> None:
    if chunking.chunk_size < 1:
        raise ConfigError(f"'chunking.chunk_size' must be >= 1, got {chunking.chunk_size}")
    if not 0 <= chunking.overlap < chunking.chunk_size:
        raise ConfigError(
            f"'chunking.overlap' must be in [0, chunk_size), got {chunking.overlap} "
            f"with chunk_size {chunking.chunk_size} (RAG_CHUNK_OVERLAP / RAG_CHUNK_SIZE)"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> SiteChatConfig:
    """Build a *SiteChatConfig* from a merged raw YAML dict."""
    cfg = SiteChatConfig()

    if "site" in data:
        s = data["site"] or {}
        cfg.site = SiteCfg(
            domain=normalize_domain(s.get("domain", cfg.site.domain)),
            name=str(s.get("name", cfg.site.name)),
        )

    if "crawl" in data:
        c = data["crawl"] or {}
        extra = c.get("extra_urls", [])
        if isinstance(extra, str):
            extra = _split_urls(extra)
        cfg.crawl = CrawlCfg(
            max_pages=_as_int(c.get("max_pages", cfg.crawl.max_pages), "crawl.max_pages"),
            concurrency=_as_int(c.get("concurrency", cfg.crawl.concurrency), "crawl.concurrency"),
            timeout_ms=_as_int(c.get("timeout_ms", cfg.crawl.timeout_ms), "crawl.timeout_ms"),
            extra_urls=[str(u) for u in extra],
        )

    if "chunking" in data:
        ch = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            chunk_size=_as_int(ch.get("chunk_size", cfg.chunking.chunk_size), "chunking.chunk_size"),
            overlap=_as_int(ch.get("overlap", cfg.chunking.overlap), "chunking.overlap"),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(
            top_k=_as_int(r.get("top_k", cfg.retrieval.top_k), "retrieval.top_k"),
            max_context_chars=_as_int(
                r.get("max_context_chars", cfg.retrieval.max_context_chars),
                "retrieval.max_context_chars",
            ),
            min_topic_score=_as_int(
                r.get("min_topic_score", cfg.retrieval.min_topic_score),
                "retrieval.min_topic_score",
            ),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=_as_int(g.get("max_tokens", cfg.generation.max_tokens), "generation.max_tokens"),
            temperature=_as_float(
                g.get("temperature", cfg.generation.temperature), "generation.temperature"
            ),
            rules_file=g.get("rules_file") or cfg.generation.rules_file,
            contact_cta=_as_bool(g.get("contact_cta", cfg.generation.contact_cta)),
        )

    if "guard" in data:
        gd = data["guard"] or {}
        cfg.guard = GuardCfg(
            strict=_as_bool(gd.get("strict", cfg.guard.strict)),
            min_overlap=_as_float(gd.get("min_overlap", cfg.guard.min_overlap), "guard.min_overlap"),
        )

    return cfg


def _apply_env_overrides(cfg: SiteChatConfig) -> SiteChatConfig:
    """Apply environment variable overrides (layer 2)."""
    env = os.environ

    if domain := env.get("DOMAINNAME") or env.get("SITE_DOMAIN"):
        cfg.site.domain = normalize_domain(domain)
    if name := env.get("SITE_NAME"):
        cfg.site.name = name

    if value := env.get("SCRAPER_MAX_PAGES"):
        cfg.crawl.max_pages = _as_int(value, "SCRAPER_MAX_PAGES")
    if value := env.get("SCRAPER_CONCURRENCY"):
        cfg.crawl.concurrency = _as_int(value, "SCRAPER_CONCURRENCY")
    if value := env.get("SCRAPER_TIMEOUT_MS"):
        cfg.crawl.timeout_ms = _as_int(value, "SCRAPER_TIMEOUT_MS")
    if value := env.get("SCRAPER_EXTRA_URLS"):
        cfg.crawl.extra_urls = _split_urls(value)

    if value := env.get("RAG_CHUNK_SIZE"):
        cfg.chunking.chunk_size = _as_int(value, "RAG_CHUNK_SIZE")
    if value := env.get("RAG_CHUNK_OVERLAP"):
        cfg.chunking.overlap = _as_int(value, "RAG_CHUNK_OVERLAP")

    if value := env.get("RAG_TOP_K"):
        cfg.retrieval.top_k = _as_int(value, "RAG_TOP_K")
    if value := env.get("RAG_MAX_CONTEXT_CHARS"):
        cfg.retrieval.max_context_chars = _as_int(value, "RAG_MAX_CONTEXT_CHARS")
    if value := env.get("RAG_MIN_TOPIC_SCORE"):
        cfg.retrieval.min_topic_score = _as_int(value, "RAG_MIN_TOPIC_SCORE")

    if model := env.get("SITECHAT_GENERATION_MODEL"):
        cfg.generation.model = model
    if value := env.get("SITECHAT_MAX_TOKENS"):
        cfg.generation.max_tokens = _as_int(value, "SITECHAT_MAX_TOKENS")
    if value := env.get("AI_RULES_FILE"):
        cfg.generation.rules_file = value
    if value := env.get("CONTACT_POLICY_ENABLE"):
        cfg.generation.contact_cta = _as_bool(value)

    if value := env.get("STRICT_TOPIC_GUARD"):
        cfg.guard.strict = _as_bool(value)
    if value := env.get("TOPIC_MIN_OVERLAP"):
        cfg.guard.min_overlap = _as_float(value, "TOPIC_MIN_OVERLAP")

    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SiteChatConfig:
    """Load and return a merged *SiteChatConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *sitechat.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *SiteChatConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or if a
            numeric setting cannot be parsed or is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)
    _validate_chunking(cfg.chunking)
    return cfg
