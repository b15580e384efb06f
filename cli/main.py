"""Site content CLI: entry-point for store maintenance.

Usage:
    python cli/main.py --help

Command groups:
    db         schema creation / version
    bootstrap  import legacy Markdown + JSON content into an empty store
    posts      list / show / delete blog posts
    projects   list / import / export project listings
    meta       preview the metadata extracted from a Markdown file
    serve      run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from sitecms.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import typer

from cli.commands.posts import posts_app
from cli.commands.projects import projects_app
from cli.context import open_store
from sitecms.config import configure_logging, settings
from sitecms.content.bootstrap import bootstrap_if_empty
from sitecms.content.meta import extract_meta
from sitecms.db.migrations import SCHEMA_VERSION, current_version

app = typer.Typer(
    name="sitecms",
    help="Site content backend CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    configure_logging("DEBUG" if verbose else None)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Create or migrate the SQLite store and write it to disk."""
    with open_store() as store:
        store.save()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


@db_app.command("version")
def db_version() -> None:
    """Print the schema version stored in the database."""
    with open_store() as store:
        version = current_version(store.connection)
    typer.echo(f"[db version] schema_version={version} (latest {SCHEMA_VERSION})")


# ---------------------------------------------------------------------------
# Content commands
# ---------------------------------------------------------------------------
app.add_typer(posts_app, name="posts")
app.add_typer(projects_app, name="projects")


@app.command("bootstrap")
def bootstrap() -> None:
    """Import legacy Markdown posts and project JSON into empty tables."""
    with open_store() as store:
        report = bootstrap_if_empty(store, settings)

    typer.echo(
        f"[bootstrap] posts imported={report.imported} updated={report.updated} "
        f"skipped={report.skipped_existing}"
    )
    if report.source_dir is not None:
        typer.echo(f"[bootstrap] posts source: {report.source_dir}")
    langs = ", ".join(report.project_langs) or "none"
    typer.echo(f"[bootstrap] projects imported for: {langs}")


@app.command("meta")
def meta(
    path: Path = typer.Argument(..., help="Markdown file."),
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """Show the metadata a Markdown file would be imported with."""
    try:
        markdown = path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"[meta] Could not read {path}: {e}")
        raise typer.Exit(1)

    slug = path.name.removesuffix(".md").removesuffix(".en")
    m = extract_meta(slug, markdown, lang, path=path)
    typer.echo(f"[meta] Slug     : {m.slug}")
    typer.echo(f"[meta] Title    : {m.title}")
    typer.echo(f"[meta] Excerpt  : {m.excerpt}")
    typer.echo(f"[meta] Tags     : {', '.join(m.tags) or '(none)'}")
    typer.echo(f"[meta] Date     : {m.date or '(none)'}")
    typer.echo(f"[meta] Read time: {m.read_time}")
    typer.echo(f"[meta] Cover    : {m.cover_url or '(none)'}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address."),
    port: int = typer.Option(settings.port, help="Port to listen on."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("sitecms.api.app:app", host=host, port=port, log_level=settings.log_level.lower())


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
