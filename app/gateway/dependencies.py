"""Shared dependencies for the Gateway routers.

Avoids circular imports by centralizing singleton initialization.
"""
import structlog

from app.translation.cache import DocumentCache
from app.translation.editor import EditorRegistry
from app.translation.llm import SuggestionClient
from app.translation.service import TranslationService
from config.settings import get_settings

logger = structlog.get_logger()
settings = get_settings()

# Initialize Singletons
document_cache = DocumentCache(redis_url=settings.redis_url, ttl_seconds=settings.document_cache_ttl_seconds)
editor_registry = EditorRegistry()
translation_service = TranslationService(editors=editor_registry)
suggestion_client = SuggestionClient.from_settings(settings)


def get_document_cache() -> DocumentCache:
    return document_cache


def get_translation_service() -> TranslationService:
    return translation_service


def get_suggestion_client() -> SuggestionClient:
    return suggestion_client
