"""CLI entrypoint for the evidence layer."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import typer

from evidence_rag.core.config import get_settings
from evidence_rag.core.logging import configure_logging
from evidence_rag.ingest.chunker import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_text
from evidence_rag.models.entities import DocumentInput, Query
from evidence_rag.service import build_service
from evidence_rag.utils.hashing import hash_content, hash_multiple

app = typer.Typer(name="evrag", help="Evidence retrieval layer command-line interface")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Root log level"),
    plain_logs: bool = typer.Option(False, "--plain-logs", help="Human-readable logs instead of JSON"),
) -> None:
    configure_logging(level=log_level.upper(), use_json=not plain_logs)


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _read_text(path: Path) -> str:
    if not path.is_file():
        typer.echo(f"Not a file: {path}", err=True)
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8", errors="replace")


@app.command()
def chunk(
    path: Path = typer.Argument(..., help="Text file to chunk"),
    size: int = typer.Option(DEFAULT_CHUNK_SIZE, "--size", min=1, help="Target chunk size in characters"),
    overlap: int = typer.Option(DEFAULT_CHUNK_OVERLAP, "--overlap", min=0, help="Overlap window in characters"),
) -> None:
    """Print the chunks a file would be split into."""
    chunks = chunk_text(_read_text(path.expanduser()), chunk_size=size, chunk_overlap=overlap)
    _echo_json([asdict(item) for item in chunks])


@app.command("hash")
def hash_(texts: List[str] = typer.Argument(..., help="One or more texts")) -> None:
    """Print the content digest of one text, or the composite digest of several."""
    typer.echo(hash_content(texts[0]) if len(texts) == 1 else hash_multiple(*texts))


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    paths: List[Path] = typer.Option(..., "--path", help="File to ingest before querying (repeatable)"),
    org: str = typer.Option("local", "--org", help="Organization identifier"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository identifier"),
    source_type: str = typer.Option("repo_file", "--source-type", help="Source type recorded for the files"),
    top_k: int = typer.Option(10, "--top-k", min=1, help="Number of results to retrieve"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", min=0, help="Prompt token budget"),
) -> None:
    """Ingest files into a throwaway in-process index and print formatted evidence."""
    # The command exists to exercise the pipelines, so it switches them on for itself.
    settings = get_settings().model_copy(update={"enabled": True, "ingest_enabled": True, "query_enabled": True})
    service = build_service(settings=settings)

    for path in paths:
        resolved = path.expanduser()
        result = service.ingest_document(
            DocumentInput(
                organization_id=org,
                repository_id=repo,
                source_type=source_type,
                source_ref=str(resolved),
                content=_read_text(resolved),
            )
        )
        typer.echo(
            f"{resolved}: {result.chunks_stored} chunks ({result.mode}, embeddings {result.embedding_status})",
            err=True,
        )

    results = service.query_evidence(
        Query(organization_id=org, repository_id=repo, query_text=query, top_k=top_k)
    )
    if not results:
        typer.echo("No evidence found.", err=True)
        raise typer.Exit(code=0)
    typer.echo(service.format_for_prompt(results, max_tokens), nl=False)


if __name__ == "__main__":
    app()
