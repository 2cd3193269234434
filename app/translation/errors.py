"""Lingua – Translation error taxonomy.

Mapped to HTTP responses by the gateway exception handler.
"""


class TranslationError(Exception):
    """Base class for all translation-domain errors."""

    status_code = 500


class InvalidInputError(TranslationError):
    """Malformed input, rejected before any state mutation."""

    status_code = 400


class PathConflictError(InvalidInputError):
    """A write would replace an existing leaf with a container."""

    status_code = 409

    def __init__(self, path: list[str], reason: str) -> None:
        self.path = list(path)
        super().__init__(f"Path conflict at '{'.'.join(self.path)}': {reason}")


class NotFoundError(TranslationError):
    status_code = 404


class PathNotFoundError(NotFoundError):
    def __init__(self, path: list[str]) -> None:
        self.path = list(path)
        super().__init__(f"Path not found: '{'.'.join(self.path)}'")


class PropagationError(TranslationError):
    """A schema change could not be applied to a stored translation.

    The change is rolled back as a whole; no document is modified.
    ``language`` is None when the failure happened at commit time.
    """

    def __init__(self, language: str | None, cause: Exception | None = None) -> None:
        self.language = language
        self.cause = cause
        if language:
            super().__init__(f"Failed to propagate schema change to language '{language}'")
        else:
            super().__init__("Failed to commit schema change")


class SuggestionError(TranslationError):
    """The upstream text-completion service failed for one leaf."""

    status_code = 502
