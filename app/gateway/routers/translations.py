"""Translations Router – per-language documents and the leaf editor."""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.auth import AuthContext, get_current_user
from app.gateway.dependencies import (
    get_document_cache,
    get_suggestion_client,
    get_translation_service,
)
from app.gateway.schemas import (
    CompletenessOut,
    EditorFieldOut,
    LeafUpdate,
    SuggestionRequest,
    TranslationUpdate,
)
from app.translation.cache import DocumentCache
from app.translation.errors import PathNotFoundError
from app.translation.llm import SuggestionClient
from app.translation.service import TranslationService
from app.translation.tree import Leaf, completeness, get_leaf_value, get_value_at_path

router = APIRouter(prefix="/projects/{project_id}/translations", tags=["translations"])
logger = structlog.get_logger()


async def _full_document(
    project_id: str,
    language: str,
    service: TranslationService,
    cache: DocumentCache,
) -> Any:
    language = service.check_language(language)
    cached = await cache.get_document(project_id, language)
    if cached is not None:
        return cached
    document = service.get_full_translation(project_id, language)
    await cache.set_document(project_id, language, document)
    return document


@router.get("/{language}")
async def get_translation(
    project_id: str,
    language: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    """Stored translation document as saved, 404 when never saved."""
    return {"translation": service.get_translation(project_id, service.check_language(language))}


@router.get("/{language}/full")
async def get_full_translation(
    project_id: str,
    language: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    """Translation reconciled against the current base document."""
    document = await _full_document(project_id, language, service, cache)
    return {"project_id": project_id, "language": language, "json": document}


@router.put("/{language}")
async def save_translation(
    project_id: str,
    language: str,
    body: TranslationUpdate,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    document = service.save_translation(project_id, language, body.json_document)
    await cache.invalidate_document(project_id, service.check_language(language))
    return {"translation": {"project_id": project_id, "language": language, "json": document}}


@router.patch("/{language}/leaf")
async def update_leaf(
    project_id: str,
    language: str,
    body: LeafUpdate,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    """Save a single edited leaf (read-merge-write)."""
    document = service.set_leaf(project_id, language, body.path, body.value)
    await cache.invalidate_document(project_id, service.check_language(language))
    return {"success": True, "path": body.path, "json": document}


@router.get("/{language}/progress")
async def translation_progress(
    project_id: str,
    language: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    language = service.check_language(language)
    result = completeness(service.get_base_tree(project_id), service.get_translation_tree(project_id, language))
    return {
        "language": language,
        **CompletenessOut(total=result.total, translated=result.translated, percent=result.percent).model_dump(),
    }


@router.get("/{language}/download")
async def download_translation(
    project_id: str,
    language: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> Response:
    document = await _full_document(project_id, language, service, cache)
    return Response(
        content=json.dumps(document, ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{language}.json"'},
    )


@router.get("/{language}/editor")
async def editor_view(
    project_id: str,
    language: str,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
) -> dict[str, Any]:
    """Editor rows: one per base leaf, with saved/untranslated/suggestion flags."""
    state = service.editor_state(project_id, language)
    fields = [EditorFieldOut(**vars(f)).model_dump() for f in state.fields()]
    return {"project_id": project_id, "language": state.language, "fields": fields}


@router.post("/{language}/suggest")
async def suggest_leaf(
    project_id: str,
    language: str,
    body: SuggestionRequest,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    client: SuggestionClient = Depends(get_suggestion_client),
) -> dict[str, Any]:
    """Ask the AI provider for one leaf. Nothing is persisted."""
    state = service.editor_state(project_id, language)
    if not body.path or not isinstance(get_value_at_path(state.base, body.path), Leaf):
        raise PathNotFoundError(body.path)
    source = get_leaf_value(state.base, body.path)
    suggestion = await client.translate(str(source), state.language)
    state.suggest(body.path, suggestion)
    logger.info("translation.suggested", project_id=project_id, language=state.language, path=".".join(body.path))
    return {"path": body.path, "suggestion": suggestion}


@router.post("/{language}/suggest/accept")
async def accept_suggestion(
    project_id: str,
    language: str,
    body: SuggestionRequest,
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    """Persist a pending AI suggestion as the leaf's translation."""
    state = service.editor_state(project_id, language)
    text = state.suggestion(body.path)
    if text is None:
        raise PathNotFoundError(body.path)
    document = service.set_leaf(project_id, state.language, body.path, text)
    await cache.invalidate_document(project_id, state.language)
    return {"success": True, "path": body.path, "json": document}
