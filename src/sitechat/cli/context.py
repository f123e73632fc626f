"""sitechat context: show what retrieval would hand the model for a query."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from sitechat.cli.common import DEFAULT_DB, console, open_db, resolve_site
from sitechat.cli.errors import err_config, err_no_db, err_not_indexed
from sitechat.config import ConfigError, load_config
from sitechat.db.repository import Repository
from sitechat.rag.retriever import is_on_topic, retrieve_context
from sitechat.rag.topic import is_on_topic_message, topic_score


def context_cmd(
    query: Annotated[str, typer.Argument(help="Question to retrieve context for.")],
    domain: Annotated[
        str | None,
        typer.Option("--domain", "-d", help="Indexed site (default: configured domain)."),
    ] = None,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Maximum number of chunks."),
    ] = None,
    max_chars: Annotated[
        int | None,
        typer.Option("--max-chars", min=1, help="Character budget for the context."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the index database."),
    ] = DEFAULT_DB,
) -> None:
    """Print the retrieved context, its sources, and the topic verdicts."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    try:
        cfg = load_config()
        target, _ = resolve_site(cfg, domain, None)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        repo = Repository(conn)
        meta = repo.get_meta(target)
        if meta is None or not meta.ready:
            console.print(err_not_indexed(target))
            raise typer.Exit(1)

        hits = retrieve_context(
            repo,
            target,
            query,
            top_k=top_k or cfg.retrieval.top_k,
            max_chars=max_chars or cfg.retrieval.max_context_chars,
        )
        on_topic = is_on_topic(repo, target, query, min_score=cfg.retrieval.min_topic_score)
    finally:
        conn.close()

    verdict = "[green]on topic[/]" if on_topic else "[yellow]off topic[/]"
    console.print(f"\nBest score: [bold]{hits.best_score}[/]  ({verdict})")
    guard_ok = is_on_topic_message(
        query, hits.context, strict=cfg.guard.strict, threshold=cfg.guard.min_overlap
    )
    guard = "[green]pass[/]" if guard_ok else "[yellow]fail[/]"
    console.print(f"Message guard: {guard}  (overlap {topic_score(query, hits.context):.2f})")
    console.print("Sources:")
    for url in hits.sources:
        console.print(f"  • {url}")
    console.print()
    console.print(hits.context, markup=False, highlight=False)
