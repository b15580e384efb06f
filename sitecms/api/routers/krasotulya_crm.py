"""Krasotulya CRM case-study articles.

This section stays file-based: every call goes straight to the section
handler, so edits land in the dist root and the repo checkout at once.

Routes
------
GET    /api/krasotulya-crm           Article slugs
GET    /api/krasotulya-crm/{slug}    Raw Markdown (?lang=ru|en)
POST   /api/krasotulya-crm           Create an article     (API key)
PUT    /api/krasotulya-crm/{slug}    Overwrite an article  (API key)
DELETE /api/krasotulya-crm/{slug}    Delete one language   (API key)
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from sitecms.api.auth import require_api_key
from sitecms.content.sections import SectionFileHandler, filename_for, section_handler
from sitecms.db.store import safe_lang

SECTION = "krasotulya-crm"

router = APIRouter()


class ArticleBody(BaseModel):
    slug: Optional[str] = None
    content: Optional[str] = None
    lang: str = "ru"


def _files(request: Request) -> SectionFileHandler:
    return section_handler(SECTION, request.app.state.settings)  # type: ignore[return-value]


def _check_slug(slug: str) -> str:
    slug = slug.strip()
    if not slug or "/" in slug or "\\" in slug or slug.startswith("."):
        raise HTTPException(status_code=400, detail="Invalid slug")
    return slug


def _written(request: Request, slug: str, content: str, lang: str) -> dict[str, Any]:
    paths = _files(request).write(slug, content, lang)
    return {
        "slug": slug,
        "lang": lang,
        "filename": filename_for(slug, lang),
        "paths": [str(p) for p in paths],
    }


@router.get("")
def list_articles(request: Request) -> dict[str, list[str]]:
    return {"slugs": _files(request).list_slugs()}


@router.get("/{slug}")
def get_article(slug: str, request: Request, lang: str = "ru") -> dict[str, str]:
    lang = safe_lang(lang)
    found = _files(request).read(slug, lang)
    if found is None or not found.content:
        raise HTTPException(status_code=404, detail="Post not found")
    return {"slug": slug, "lang": lang, "content": found.content}


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_article(body: ArticleBody, request: Request) -> dict[str, Any]:
    if not body.slug or not body.content:
        raise HTTPException(status_code=400, detail="slug and content are required")
    slug = _check_slug(body.slug)
    return {"message": "Created", **_written(request, slug, body.content, safe_lang(body.lang))}


@router.put("/{slug}", dependencies=[Depends(require_api_key)])
def update_article(slug: str, body: ArticleBody, request: Request) -> dict[str, Any]:
    if not body.content:
        raise HTTPException(status_code=400, detail="content is required")
    slug = _check_slug(slug)
    lang = safe_lang(body.lang)
    existing = _files(request).read(slug, lang)
    if existing is None or not existing.content:
        raise HTTPException(status_code=404, detail="Post not found")
    return {"message": "Updated", **_written(request, slug, body.content, lang)}


@router.delete("/{slug}", dependencies=[Depends(require_api_key)])
def delete_article(slug: str, request: Request, lang: str = "ru") -> dict[str, str]:
    slug = _check_slug(slug)
    lang = safe_lang(lang)
    _files(request).remove(slug, lang)
    return {"message": "Deleted", "slug": slug, "lang": lang}
