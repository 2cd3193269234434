"""app/translation/llm.py – AI translation suggestions.

Stateless pass-through to an external text-completion endpoint. Supports the
Gemini ``generateContent`` protocol and OpenAI-compatible
``/chat/completions`` providers. One attempt per request, no retry.
"""
import time
from typing import Any

import httpx
import structlog
from prometheus_client import Counter

from app.translation.errors import InvalidInputError, SuggestionError
from config.settings import Settings, get_settings

logger = structlog.get_logger()

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "de": "German",
    "it": "Italian",
    "fr": "French",
    "es": "Spanish",
    "pl": "Polish",
    "sk": "Slovak",
    "cs": "Czech",
    "nl": "Dutch",
    "pt": "Portuguese",
    "da": "Danish",
    "sv": "Swedish",
    "no": "Norwegian",
    "fi": "Finnish",
    "hu": "Hungarian",
    "ro": "Romanian",
    "bg": "Bulgarian",
    "hr": "Croatian",
    "sl": "Slovenian",
    "el": "Greek",
    "tr": "Turkish",
    "ru": "Russian",
    "uk": "Ukrainian",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
}

SUGGESTION_COUNT = Counter(
    "lingua_ai_suggestions_total",
    "AI translation suggestions by provider, target language and outcome",
    ["provider", "language", "status"],
)

PROMPT_TEMPLATE = (
    "Translate the following text to {language} language. Keep the same meaning and tone. "
    "Only return the translation, without any additional text or explanations:\n\n{text}"
)


def language_name(code: str) -> str:
    name = LANGUAGE_NAMES.get((code or "").strip().lower())
    if not name:
        raise InvalidInputError(f"Unsupported language: {code!r}")
    return name


def unnamed_languages(codes: list[str]) -> list[str]:
    """Codes without a prompt name; suggestions for these would always fail."""
    return [code for code in codes if code.strip().lower() not in LANGUAGE_NAMES]


def build_prompt(text: str, target_language: str) -> str:
    return PROMPT_TEMPLATE.format(language=language_name(target_language), text=text)


def _extract_gemini(data: dict) -> str:
    return data["candidates"][0]["content"]["parts"][0]["text"]


def _extract_openai(data: dict) -> str:
    return data["choices"][0]["message"]["content"]


class SuggestionClient:
    """Translate one leaf at a time through the configured provider."""

    def __init__(
        self,
        *,
        provider: str = "gemini",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        api_key: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.provider = (provider or "gemini").strip().lower()
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SuggestionClient":
        settings = settings or get_settings()
        return cls(
            provider=settings.llm_provider,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            timeout=settings.llm_timeout_seconds,
        )

    def _request(self, prompt: str) -> tuple[str, dict[str, Any], dict[str, str]]:
        if self.provider == "gemini":
            url = f"{self.base_url}/models/{self.model}:generateContent?key={self._api_key}"
            payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
            return url, payload, {"Content-Type": "application/json"}
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.3,
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        return url, payload, headers

    async def translate(self, text: str, target_language: str) -> str:
        """Return the provider's translation of ``text``.

        Raises:
            InvalidInputError: empty text or unknown language code.
            SuggestionError: missing key, transport failure or bad response.
        """
        if not text or not target_language:
            raise InvalidInputError("Text and target language are required")
        prompt = build_prompt(text, target_language)
        if not self._api_key:
            SUGGESTION_COUNT.labels(provider=self.provider, language=target_language, status="unconfigured").inc()
            raise SuggestionError(f"API key for provider {self.provider} missing")

        url, payload, headers = self._request(prompt)
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=payload, headers=headers)
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            SUGGESTION_COUNT.labels(provider=self.provider, language=target_language, status="error").inc()
            logger.error("llm.request_failed", provider=self.provider, error=str(e))
            raise SuggestionError("Failed to translate text") from e

        latency = round((time.time() - start_time) * 1000)
        if resp.status_code != 200:
            error = data.get("error") if isinstance(data, dict) else None
            error_msg = str(error.get("message", "")) if isinstance(error, dict) else str(error or "")
            SUGGESTION_COUNT.labels(provider=self.provider, language=target_language, status="error").inc()
            logger.error("llm.provider_error", status=resp.status_code, detail=error_msg[:200], latency_ms=latency)
            raise SuggestionError(f"LLM Error ({resp.status_code})")

        try:
            content = _extract_gemini(data) if self.provider == "gemini" else _extract_openai(data)
        except (KeyError, IndexError, TypeError) as e:
            SUGGESTION_COUNT.labels(provider=self.provider, language=target_language, status="error").inc()
            logger.error("llm.malformed_response", provider=self.provider)
            raise SuggestionError("Malformed response from translation provider") from e

        SUGGESTION_COUNT.labels(provider=self.provider, language=target_language, status="ok").inc()
        logger.info(
            "llm.success",
            provider=self.provider,
            model=self.model,
            language=target_language,
            latency_ms=latency,
        )
        return (content or "").strip()
