"""Lingua – Gateway request/response schemas.

Pydantic models for the HTTP surface. Paths are accepted either as a list of
keys or as a dotted string (``"header.title"``); keys containing dots need
the list form.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.translation.tree import parse_path_key


def _coerce_path(value: Any) -> list[str]:
    if isinstance(value, str):
        return parse_path_key(value.strip())
    if isinstance(value, list):
        return [str(part) for part in value]
    raise ValueError("path must be a list of keys or a dotted string")


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=200)


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Project display name")
    base_json: Any = Field(..., description="Base document (schema + source strings)")


class BaseDocumentUpdate(BaseModel):
    base_json: Any = Field(..., description="Replacement base document")


class TranslationUpdate(BaseModel):
    json_document: Any = Field(..., alias="json", description="Translation document for one language")

    model_config = {"populate_by_name": True}


class LeafUpdate(BaseModel):
    path: list[str] = Field(..., description="Path of the edited leaf")
    value: Any = Field(..., description="New leaf value")

    @field_validator("path", mode="before")
    @classmethod
    def _path(cls, value: Any) -> list[str]:
        return _coerce_path(value)


class KeyCreate(BaseModel):
    path: list[str] = Field(..., description="Path of the new base key")
    value: Any = Field(default="", description="Source value (leaf or subtree)")

    @field_validator("path", mode="before")
    @classmethod
    def _path(cls, value: Any) -> list[str]:
        return _coerce_path(value)


class SuggestionRequest(BaseModel):
    path: list[str] = Field(..., description="Leaf to translate")

    @field_validator("path", mode="before")
    @classmethod
    def _path(cls, value: Any) -> list[str]:
        return _coerce_path(value)


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    target_language: str = Field(..., min_length=2, alias="targetLanguage")

    model_config = {"populate_by_name": True}


class CompletenessOut(BaseModel):
    total: int
    translated: int
    percent: int


class EditorFieldOut(BaseModel):
    path: str
    base_value: Any = None
    value: Any = None
    untranslated: bool
    saved: bool
    suggestion: str | None = None
