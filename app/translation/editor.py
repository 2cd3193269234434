"""Lingua – Path-indexed editor state.

Tracks one editor's view of a (project, language) pair while leaves are
edited one at a time. Annotations are keyed by dotted path and are purely
transient: nothing here is persisted except the merged document returned by
``set_leaf``.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from app.translation.errors import InvalidInputError, PathNotFoundError
from app.translation.tree import (
    Leaf,
    Node,
    Path,
    Tree,
    get_leaf_value,
    get_value_at_path,
    is_translated,
    iter_leaves,
    merge,
    parse_path_key,
    path_key,
    set_value_at_path,
)

logger = structlog.get_logger()

DEFAULT_SAVED_TTL = 2.0


@dataclass(frozen=True)
class EditorField:
    path: str
    base_value: Any
    value: Any
    untranslated: bool
    saved: bool
    suggestion: str | None = None


class EditorState:
    """In-memory editing state for one (project, language)."""

    def __init__(
        self,
        base: Tree,
        translation: Tree | None,
        language: str,
        *,
        source_language: str = "en",
        saved_ttl: float = DEFAULT_SAVED_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.language = language
        self.source_language = source_language
        self.saved_ttl = saved_ttl
        self._clock = clock
        self._saved_until: dict[str, float] = {}
        self._suggestions: dict[str, str] = {}
        self.reload(base, translation)

    def reload(self, base: Tree, translation: Tree | None) -> None:
        """Replace the documents with the stored ones.

        Annotations on paths that are no longer base leaves are dropped.
        """
        self.base = base
        # Working copy conformed to the base shape, so leaf writes never hit a
        # stale container or scalar.
        conformed = merge(base, translation)
        self.translation: Tree = conformed if isinstance(conformed, Node) else Node()
        for annotations in (self._saved_until, self._suggestions):
            for key in [k for k in annotations if not isinstance(get_value_at_path(base, parse_path_key(k)), Leaf)]:
                del annotations[key]

    def _require_base_leaf(self, path: Path) -> Leaf:
        found = get_value_at_path(self.base, path)
        if not isinstance(found, Leaf) or not path:
            raise PathNotFoundError(path)
        return found

    def set_leaf(self, path: Path, value: Any) -> Tree:
        """Apply one leaf edit locally and return the full document to persist."""
        self._require_base_leaf(path)
        if isinstance(value, (dict, list)):
            raise InvalidInputError(f"Value at '{path_key(path)}' must be a scalar, not an object or array")
        set_value_at_path(self.translation, path, Leaf(value))
        self._suggestions.pop(path_key(path), None)
        return merge(self.base, self.translation)

    def full_document(self) -> Tree:
        return merge(self.base, self.translation)

    # ── "recently saved" marks ────────────────────────────────────────────────

    def mark_saved(self, path: Path) -> None:
        self._saved_until[path_key(path)] = self._clock() + self.saved_ttl

    def is_recently_saved(self, path: Path) -> bool:
        key = path_key(path)
        until = self._saved_until.get(key)
        if until is None:
            return False
        if self._clock() >= until:
            del self._saved_until[key]
            return False
        return True

    # ── AI suggestions ────────────────────────────────────────────────────────

    def suggest(self, path: Path, text: str) -> None:
        self._require_base_leaf(path)
        self._suggestions[path_key(path)] = text

    def suggestion(self, path: Path) -> str | None:
        return self._suggestions.get(path_key(path))

    # ── Field view ────────────────────────────────────────────────────────────

    def is_untranslated(self, path: Path) -> bool:
        if self.language == self.source_language:
            return False
        # Same rule as the completeness counters.
        return not is_translated(self._require_base_leaf(path), get_value_at_path(self.translation, path))

    def fields(self) -> list[EditorField]:
        rows = []
        for path, leaf in iter_leaves(self.base):
            current = get_leaf_value(self.translation, path)
            rows.append(
                EditorField(
                    path=path_key(path),
                    base_value=leaf.value,
                    value=leaf.value if current is None else current,
                    untranslated=self.is_untranslated(path),
                    saved=self.is_recently_saved(path),
                    suggestion=self.suggestion(path),
                )
            )
        return rows


class EditorRegistry:
    """Process-local editor states keyed by (project_id, language)."""

    def __init__(self, saved_ttl: float = DEFAULT_SAVED_TTL) -> None:
        self._states: dict[tuple[str, str], EditorState] = {}
        self._lock = threading.RLock()
        self.saved_ttl = saved_ttl

    def get_or_create(
        self,
        project_id: str,
        language: str,
        loader: Callable[[], tuple[Tree, Tree | None]],
        source_language: str = "en",
    ) -> EditorState:
        """Return the cached state, building it from ``loader()`` on first use."""
        with self._lock:
            state = self._states.get((project_id, language))
            if state is None:
                base, translation = loader()
                state = EditorState(
                    base,
                    translation,
                    language,
                    source_language=source_language,
                    saved_ttl=self.saved_ttl,
                )
                self._states[(project_id, language)] = state
                logger.debug("editor.state_created", project_id=project_id, language=language)
            return state

    def get(self, project_id: str, language: str) -> EditorState | None:
        with self._lock:
            return self._states.get((project_id, language))

    def drop(self, project_id: str, language: str) -> None:
        with self._lock:
            self._states.pop((project_id, language), None)

    def drop_project(self, project_id: str) -> None:
        with self._lock:
            for key in [k for k in self._states if k[0] == project_id]:
                del self._states[key]

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
