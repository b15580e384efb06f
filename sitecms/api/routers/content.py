"""Section listings for the site's index pages.

GET /api/content/{section}?lang=ru|en

``blog`` is served from the content store; the other sections are still plain
Markdown files and are listed through their section handler, newest file
first.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from sitecms.content.meta import extract_meta
from sitecms.content.sections import section_handler
from sitecms.db.store import safe_lang

router = APIRouter()


@router.get("/{section}")
def list_section(section: str, request: Request, lang: str = "ru") -> dict[str, Any]:
    lang = safe_lang(lang)

    if section == "blog":
        metas = request.app.state.store.list_post_metas(lang)
        return {"section": section, "lang": lang, "items": [m.to_dict() for m in metas]}

    handler = section_handler(section, request.app.state.settings)
    if handler is None:
        raise HTTPException(status_code=404, detail="Unknown section")

    items = []
    for slug in handler.list_slugs():
        found = handler.read(slug, lang)
        if found is None:
            continue
        items.append(extract_meta(slug, found.content, lang, path=found.path))

    items.sort(key=lambda m: m.mtime_ms, reverse=True)
    return {"section": section, "lang": lang, "items": [m.to_dict() for m in items]}
