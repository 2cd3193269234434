"""Lingua – Suggestion Client Tests.

Tests: prompt building, Gemini and OpenAI-compatible calls, error mapping.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.translation.errors import InvalidInputError, SuggestionError
from app.translation.llm import SuggestionClient, build_prompt, language_name, unnamed_languages


MOCK_GEMINI_RESPONSE = {
    "candidates": [{"content": {"parts": [{"text": "  Hallo Welt \n"}]}}],
}

MOCK_OPENAI_RESPONSE = {
    "choices": [{"message": {"content": "Bonjour le monde"}}],
}


def _mock_async_client(mock_client_cls, response=None, side_effect=None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=response, side_effect=side_effect)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _response(status_code: int, payload) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


class TestPrompt:
    def test_prompt_names_target_language(self) -> None:
        prompt = build_prompt("Hello world", "de")
        assert "to German language" in prompt
        assert prompt.endswith("\n\nHello world")

    def test_unknown_language(self) -> None:
        with pytest.raises(InvalidInputError):
            language_name("xx")

    def test_unnamed_languages(self) -> None:
        assert language_name("NL") == "Dutch"
        assert unnamed_languages(["en", "nl", "xx"]) == ["xx"]


class TestGemini:
    @pytest.mark.anyio
    async def test_success_returns_stripped_text(self) -> None:
        llm = SuggestionClient(provider="gemini", api_key="test-key-123")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client = _mock_async_client(mock_client_cls, _response(200, MOCK_GEMINI_RESPONSE))
            result = await llm.translate("Hello world", "de")

        assert result == "Hallo Welt"
        url = mock_client.post.call_args.args[0]
        assert url.endswith("/models/gemini-2.0-flash:generateContent?key=test-key-123")
        payload = mock_client.post.call_args.kwargs["json"]
        assert "German" in payload["contents"][0]["parts"][0]["text"]

    @pytest.mark.anyio
    async def test_provider_error_status(self) -> None:
        llm = SuggestionClient(provider="gemini", api_key="test-key-123")

        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_async_client(mock_client_cls, _response(429, {"error": {"message": "quota"}}))
            with pytest.raises(SuggestionError) as excinfo:
                await llm.translate("Hello", "de")

        assert "429" in str(excinfo.value)
        assert excinfo.value.status_code == 502

    @pytest.mark.anyio
    async def test_malformed_body(self) -> None:
        llm = SuggestionClient(provider="gemini", api_key="test-key-123")

        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_async_client(mock_client_cls, _response(200, {"candidates": []}))
            with pytest.raises(SuggestionError):
                await llm.translate("Hello", "de")


class TestOpenAICompatible:
    @pytest.mark.anyio
    async def test_success(self) -> None:
        llm = SuggestionClient(
            provider="openai",
            base_url="https://api.openai.com/v1/",
            model="gpt-4o-mini",
            api_key="sk-test",
        )

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client = _mock_async_client(mock_client_cls, _response(200, MOCK_OPENAI_RESPONSE))
            result = await llm.translate("Hello world", "fr")

        assert result == "Bonjour le monde"
        assert mock_client.post.call_args.args[0] == "https://api.openai.com/v1/chat/completions"
        headers = mock_client.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.anyio
    async def test_transport_failure(self) -> None:
        llm = SuggestionClient(provider="openai", api_key="sk-test")

        with patch("httpx.AsyncClient") as mock_client_cls:
            _mock_async_client(mock_client_cls, side_effect=httpx.ConnectError("connection refused"))
            with pytest.raises(SuggestionError, match="Failed to translate text"):
                await llm.translate("Hello", "fr")


class TestValidation:
    @pytest.mark.anyio
    async def test_missing_api_key(self) -> None:
        llm = SuggestionClient(api_key="")
        with patch("httpx.AsyncClient") as mock_client_cls:
            with pytest.raises(SuggestionError):
                await llm.translate("Hello", "de")
            mock_client_cls.assert_not_called()

    @pytest.mark.anyio
    async def test_empty_text(self) -> None:
        llm = SuggestionClient(api_key="test-key-123")
        with pytest.raises(InvalidInputError):
            await llm.translate("", "de")

    @pytest.mark.anyio
    async def test_unsupported_language(self) -> None:
        llm = SuggestionClient(api_key="test-key-123")
        with pytest.raises(InvalidInputError):
            await llm.translate("Hello", "xx")
