"""sitechat rich error messages.

Every error shown to the user says what went wrong and the exact command to
run next.

Usage:
    from sitechat.cli.errors import err_no_db
    console.print(err_no_db("data/cache.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from sitechat.rag.llm_client import api_key_env, provider_of


def err_no_db(db_path: str = "data/cache.db") -> str:
    """No database file at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  sitechat index"
    )


def err_not_indexed(domain: str) -> str:
    """Domain has no stored chunks yet."""
    return (
        f"[red]Error:[/] '{domain}' is not indexed yet.\n"
        f"  Run:  sitechat index --domain {domain}"
    )


def err_crawl_empty(domain: str) -> str:
    """Crawl finished without a single usable page."""
    return (
        f"[red]Error:[/] Indexing failed: no pages were scraped from '{domain}'.\n"
        "  Check that the site is reachable and serves HTML, or add seed pages:\n"
        "    export SCRAPER_EXTRA_URLS=/about,/services"
    )


def err_index_empty(domain: str) -> str:
    """Pages were fetched but none had indexable text."""
    return (
        f"[red]Error:[/] Indexing failed: pages from '{domain}' produced no chunks.\n"
        "  The site may render its content with JavaScript only.\n"
        "  The previous index (if any) was kept.\n"
        "  Check the site in a browser, or add seed pages:\n"
        "    export SCRAPER_EXTRA_URLS=/about,/services"
    )


def err_store_write(detail: str) -> str:
    """Index transaction failed and was rolled back."""
    return (
        f"[red]Error:[/] Could not write the index: {detail}\n"
        "  Check that the database path is writable and not locked by another process."
    )


def err_no_api_key(model: str) -> str:
    """No API key for the provider of *model*."""
    provider = provider_of(model)
    env_var = api_key_env(model) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=...\n"
        "  Or use a local model:  export SITECHAT_GENERATION_MODEL=ollama_chat/llama3.2"
    )


def err_config(detail: str) -> str:
    """Invalid config file or environment value."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix sitechat.yaml or the environment variable named above."
    )


def err_domain_not_found(domain: str) -> str:
    """Domain not present in the database (remove)."""
    return (
        f"[yellow]Domain not found:[/] '{domain}' has no stored index.\n"
        "  Run:  sitechat status  to see all indexed domains."
    )
