"""Project listing commands."""

import json
from pathlib import Path

import typer

from cli.context import open_store
from sitecms.db.store import safe_lang

projects_app = typer.Typer(help="Manage the per-language project listings.")


@projects_app.command("list")
def projects_list(
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """List the projects stored for a language."""
    with open_store() as store:
        projects = store.get_projects(lang)

    if not projects:
        typer.echo(f"No {safe_lang(lang)} projects found.")
        return
    for p in projects:
        typer.echo(f"  {p.id}  {p.title!r}  ({', '.join(map(str, p.technologies))})")


@projects_app.command("import")
def projects_import(
    path: Path = typer.Argument(..., help="JSON file holding an array of projects."),
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """Replace a language's project set with the contents of a JSON file."""
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.echo(f"❌ Could not read {path}: {e}")
        raise typer.Exit(code=1)

    if not isinstance(parsed, list):
        typer.echo("❌ The file must contain a JSON array of projects.")
        raise typer.Exit(code=1)

    with open_store() as store:
        stored = store.replace_projects(lang, parsed)
    typer.echo(f"✅ Stored {len(stored)} {safe_lang(lang)} project(s).")


@projects_app.command("export")
def projects_export(
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """Print a language's project set as JSON."""
    with open_store() as store:
        projects = store.get_projects(lang)
    typer.echo(json.dumps([p.to_dict() for p in projects], ensure_ascii=False, indent=2))
