"""Projects Router – project CRUD and base-schema changes.

Provides endpoints for:
- Listing, creating (JSON body or file upload) and deleting projects
- Replacing a project's base document
- Adding/removing base keys, cascaded to every stored translation
- Per-language completeness
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.core.auth import AuthContext, get_current_user, require_admin
from app.gateway.dependencies import get_document_cache, get_translation_service
from app.gateway.schemas import BaseDocumentUpdate, CompletenessOut, KeyCreate, ProjectCreate
from app.translation.cache import DocumentCache
from app.translation.errors import InvalidInputError
from app.translation.service import TranslationService
from app.translation.tree import parse_path_key

router = APIRouter(prefix="/projects", tags=["projects"])
logger = structlog.get_logger()


@router.get("")
async def list_projects(
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    return {"projects": service.list_projects()}


@router.post("")
async def create_project(
    body: ProjectCreate,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    require_admin(user)
    return {"project": service.create_project(body.name, body.base_json)}


@router.post("/upload")
async def upload_project(
    name: str = Form(...),
    file: UploadFile = File(...),
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    """Create a project from an uploaded base JSON file."""
    require_admin(user)
    raw = await file.read()
    try:
        base_json = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("project.upload_invalid_json", filename=file.filename)
        raise InvalidInputError("Invalid JSON file")
    return {"project": service.create_project(name, base_json)}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    return {"project": service.get_project(project_id)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    require_admin(user)
    service.delete_project(project_id)
    await cache.invalidate_project(project_id)
    return {"success": True}


@router.put("/{project_id}/base")
async def update_base_document(
    project_id: str,
    body: BaseDocumentUpdate,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    require_admin(user)
    project = service.update_base_document(project_id, body.base_json)
    await cache.invalidate_project(project_id)
    return {"project": project}


@router.post("/{project_id}/keys")
async def add_key(
    project_id: str,
    body: KeyCreate,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    require_admin(user)
    languages = service.add_key(project_id, body.path, body.value)
    await cache.invalidate_project(project_id)
    return {"success": True, "path": body.path, "languages": languages}


@router.delete("/{project_id}/keys")
async def delete_key(
    project_id: str,
    path: str = Query(..., description="Dotted path of the key to remove"),
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    require_admin(user)
    keys = parse_path_key(path.strip())
    languages = service.delete_key(project_id, keys)
    await cache.invalidate_project(project_id)
    return {"success": True, "path": keys, "languages": languages}


@router.get("/{project_id}/progress")
async def project_progress(
    project_id: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    progress = service.project_progress(project_id)
    return {
        "project_id": project_id,
        "languages": {
            language: CompletenessOut(total=c.total, translated=c.translated, percent=c.percent).model_dump()
            for language, c in progress.items()
        },
    }
