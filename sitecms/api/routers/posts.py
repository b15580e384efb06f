"""Blog post endpoints.

Routes
------
GET    /api/posts           Post metadata for both languages
GET    /api/posts/{slug}    One post (?lang=ru|en); legacy files are imported on a miss
POST   /api/posts           Create or overwrite a post            (API key)
PUT    /api/posts/{slug}    Update a post, deriving missing fields (API key)
DELETE /api/posts/{slug}    Delete one language variant            (API key)

Every write also mirrors the Markdown into the ``blog`` section directories so
the static page generator keeps working.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from sitecms.api.auth import require_api_key
from sitecms.content.meta import extract_meta, generate_slug
from sitecms.content.sections import SectionFileHandler, section_handler
from sitecms.db.models import Post
from sitecms.db.store import ContentStore, safe_lang

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PostBody(BaseModel):
    slug: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Any = None
    date: Optional[str] = None
    readTime: Optional[str] = None
    coverUrl: Optional[str] = None
    lang: str = "ru"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _store(request: Request) -> ContentStore:
    return request.app.state.store


def _blog_files(request: Request) -> SectionFileHandler:
    return section_handler("blog", request.app.state.settings)  # type: ignore[return-value]


def _pick(value: Optional[str], fallback: str) -> str:
    """Use an explicit non-blank string, else the derived value."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _import_legacy(request: Request, slug: str, lang: str) -> Optional[Post]:
    legacy = _blog_files(request).read(slug, lang)
    if legacy is None or not legacy.content:
        return None
    meta = extract_meta(slug, legacy.content, lang)
    return _store(request).upsert_post(
        slug=slug,
        lang=lang,
        title=meta.title,
        content=legacy.content,
        excerpt=meta.excerpt,
        tags=meta.tags,
        date=meta.date,
        read_time=meta.read_time,
        cover_url=meta.cover_url,
        created_at_ms=meta.mtime_ms,
        updated_at_ms=meta.mtime_ms,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("")
def list_posts(request: Request) -> dict[str, Any]:
    """Return post metadata grouped by language."""
    store = _store(request)
    return {
        "posts": {
            lang: [m.to_dict() for m in store.list_post_metas(lang)]
            for lang in ("ru", "en")
        }
    }


@router.get("/{slug}")
def get_post(slug: str, request: Request, lang: str = "ru") -> dict[str, Any]:
    """Fetch one post, falling back to a legacy Markdown file."""
    lang = safe_lang(lang)
    post = _store(request).get_post(slug, lang) or _import_legacy(request, slug, lang)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return {"post": post.to_dict()}


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_post(body: PostBody, request: Request) -> dict[str, Any]:
    """Create a post; the slug comes from ``slug`` or is derived from the title."""
    if not body.title or not body.content:
        raise HTTPException(status_code=400, detail="Title and content are required")

    slug = generate_slug(body.slug if body.slug and body.slug.strip() else body.title)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not derive a slug from the title")

    lang = safe_lang(body.lang)
    meta = extract_meta(slug, body.content, lang)
    post = _store(request).upsert_post(
        slug=slug,
        lang=lang,
        title=body.title,
        content=body.content,
        excerpt=_pick(body.excerpt, meta.excerpt),
        tags=body.tags if isinstance(body.tags, list) else meta.tags,
        date=_pick(body.date, meta.date),
        read_time=_pick(body.readTime, meta.read_time),
        cover_url=_pick(body.coverUrl, meta.cover_url),
        created_at_ms=meta.mtime_ms,
        updated_at_ms=meta.mtime_ms,
    )
    _blog_files(request).write(slug, body.content, lang)
    return {"message": "Post created successfully", "post": post.to_dict()}


@router.put("/{slug}", dependencies=[Depends(require_api_key)])
def update_post(slug: str, body: PostBody, request: Request) -> dict[str, Any]:
    """Update a post; omitted fields keep or re-derive their values."""
    store = _store(request)
    lang = safe_lang(body.lang)

    existing = store.get_post(slug, lang)
    legacy = None
    if existing is None:
        legacy = _blog_files(request).read(slug, lang)
        if legacy is None or not legacy.content:
            raise HTTPException(status_code=404, detail="Post not found")

    if body.content is not None:
        content = body.content
    elif existing is not None:
        content = existing.content
    else:
        content = legacy.content  # type: ignore[union-attr]

    meta = extract_meta(slug, content, lang)
    post = store.upsert_post(
        slug=slug,
        lang=lang,
        title=_pick(body.title, meta.title),
        content=content,
        excerpt=_pick(body.excerpt, meta.excerpt),
        tags=body.tags if isinstance(body.tags, list) else meta.tags,
        date=_pick(body.date, meta.date),
        read_time=_pick(body.readTime, meta.read_time),
        cover_url=_pick(body.coverUrl, (existing.cover_url if existing else "") or meta.cover_url),
        updated_at_ms=meta.mtime_ms,
    )
    _blog_files(request).write(slug, content, lang)
    return {"message": "Post updated successfully", "post": post.to_dict()}


@router.delete("/{slug}", dependencies=[Depends(require_api_key)])
def delete_post(slug: str, request: Request, lang: str = "ru") -> dict[str, str]:
    """Delete one language variant from the store and the mirrored files."""
    lang = safe_lang(lang)
    deleted = _store(request).delete_post(slug, lang)
    _blog_files(request).remove(slug, lang)
    if not deleted:
        raise HTTPException(status_code=404, detail="Post not found")
    return {"message": "Post deleted successfully"}
