"""Blog post commands."""

import typer

from cli.context import open_store
from sitecms.db.store import safe_lang

posts_app = typer.Typer(help="Inspect and delete blog posts in the content store.")


@posts_app.command("list")
def posts_list(
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """List posts for a language, most recently updated first."""
    with open_store() as store:
        metas = store.list_post_metas(lang)

    if not metas:
        typer.echo(f"No {safe_lang(lang)} posts found.")
        return
    for m in metas:
        tags = f"  [{', '.join(map(str, m.tags))}]" if m.tags else ""
        typer.echo(f"  {m.slug}  {m.title!r}  {m.read_time}{tags}")


@posts_app.command("show")
def posts_show(
    slug: str = typer.Argument(..., help="Post slug."),
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """Print one post's metadata and Markdown body."""
    with open_store() as store:
        post = store.get_post(slug, lang)

    if post is None:
        typer.echo(f"❌ Post not found: {slug} ({safe_lang(lang)})")
        raise typer.Exit(code=1)

    typer.echo(f"Title    : {post.title}")
    typer.echo(f"Excerpt  : {post.excerpt}")
    typer.echo(f"Tags     : {', '.join(map(str, post.tags)) or '(none)'}")
    typer.echo(f"Date     : {post.date or '(none)'}")
    typer.echo(f"Read time: {post.read_time}")
    if post.cover_url:
        typer.echo(f"Cover    : {post.cover_url}")
    typer.echo("")
    typer.echo(post.content)


@posts_app.command("delete")
def posts_delete(
    slug: str = typer.Argument(..., help="Post slug."),
    lang: str = typer.Option("ru", "--lang", help="Language: ru | en."),
) -> None:
    """Delete one language variant of a post."""
    with open_store() as store:
        deleted = store.delete_post(slug, lang)

    if not deleted:
        typer.echo(f"❌ Post not found: {slug} ({safe_lang(lang)})")
        raise typer.Exit(code=1)
    typer.echo(f"✅ Deleted post: {slug} ({safe_lang(lang)})")
