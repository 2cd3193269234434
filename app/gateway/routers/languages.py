import structlog
from typing import Any
from fastapi import APIRouter, Depends

from app.core.auth import AuthContext, get_current_user
from app.gateway.dependencies import get_document_cache, get_suggestion_client, get_translation_service
from app.gateway.schemas import TranslateRequest
from app.translation.cache import DocumentCache
from app.translation.llm import LANGUAGE_NAMES, SuggestionClient
from app.translation.service import TranslationService

router = APIRouter(tags=["languages"])
logger = structlog.get_logger()


@router.get("/languages")
async def list_languages(
    user: AuthContext = Depends(get_current_user),
    service: TranslationService = Depends(get_translation_service),
    cache: DocumentCache = Depends(get_document_cache),
) -> dict[str, Any]:
    """Supported language codes with display names."""
    codes = await cache.get_languages()
    if codes is None:
        codes = service.supported_languages()
        await cache.set_languages(codes)
    return {
        "languages": [{"code": code, "name": LANGUAGE_NAMES.get(code, code)} for code in codes],
        "source_language": service.source_language,
    }


@router.post("/translate")
async def translate_text(
    body: TranslateRequest,
    user: AuthContext = Depends(get_current_user),
    client: SuggestionClient = Depends(get_suggestion_client),
) -> dict[str, str]:
    """Free-text AI translation, not tied to any project."""
    translation = await client.translate(body.text, body.target_language)
    return {"translation": translation}
