"""Project listing endpoints.

Routes
------
GET /api/projects?lang=ru|en    The project set for one language
PUT /api/projects?lang=ru|en    Replace the whole set (API key)

There is no per-project endpoint: a save always swaps the full list.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from sitecms.api.auth import require_api_key
from sitecms.db.store import ContentStore, safe_lang

router = APIRouter()


def _store(request: Request) -> ContentStore:
    return request.app.state.store


@router.get("")
def get_projects(request: Request, lang: str = "ru") -> dict[str, Any]:
    """Return the projects for *lang*, most recently saved first."""
    lang = safe_lang(lang)
    projects = _store(request).get_projects(lang)
    return {"lang": lang, "projects": [p.to_dict() for p in projects]}


@router.put("", dependencies=[Depends(require_api_key)])
def replace_projects(
    request: Request,
    lang: str = "ru",
    body: Any = Body(...),
) -> dict[str, Any]:
    """Replace the project set; the body is ``{"projects": [...]}``."""
    projects = body.get("projects") if isinstance(body, dict) else None
    if not isinstance(projects, list):
        raise HTTPException(status_code=400, detail="projects must be an array")

    lang = safe_lang(lang)
    stored = _store(request).replace_projects(lang, projects)
    return {
        "message": "Saved",
        "lang": lang,
        "projects": [p.to_dict() for p in stored],
    }
