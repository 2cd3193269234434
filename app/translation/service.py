"""Lingua – Translation persistence service.

Every translation write goes through ``merge`` against the project's base
document first, so stored documents always have the base's shape. Schema
changes commit the base and every stored translation in one transaction.
"""

import json
from typing import Any, Callable

import structlog
from sqlalchemy.orm import Session

from app.core.db import SessionLocal
from app.core.models import Project, Translation
from app.translation.editor import EditorRegistry, EditorState
from app.translation.errors import (
    InvalidInputError,
    NotFoundError,
    PathConflictError,
    PathNotFoundError,
    PropagationError,
)
from app.translation.tree import (
    Completeness,
    Path,
    Tree,
    build_full_translation,
    completeness,
    delete_at_path,
    from_json,
    get_value_at_path,
    merge,
    set_value_at_path,
    to_json,
)
from config.settings import get_settings

logger = structlog.get_logger()


def _dumps(document: Any) -> str:
    return json.dumps(document, ensure_ascii=False)


def _project_to_dict(row: Project, include_base: bool = True) -> dict[str, Any]:
    data = {
        "id": row.id,
        "name": row.name,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }
    if include_base:
        data["base_json"] = json.loads(row.base_json)
    return data


def _translation_to_dict(row: Translation) -> dict[str, Any]:
    return {
        "project_id": row.project_id,
        "language": row.language,
        "json": json.loads(row.json),
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


class TranslationService:
    """Projects, translations and base-schema changes."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        editors: EditorRegistry | None = None,
        languages: list[str] | None = None,
        source_language: str | None = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self.editors = editors or EditorRegistry()
        self._languages = languages
        self.source_language = source_language or settings.source_language

    # ── Languages ─────────────────────────────────────────────────────────────

    def supported_languages(self) -> list[str]:
        if self._languages is not None:
            return list(self._languages)
        return get_settings().language_codes

    def check_language(self, language: str | None) -> str:
        code = (language or "").strip().lower()
        if not code:
            raise InvalidInputError("Language is required")
        if code not in self.supported_languages():
            raise InvalidInputError(f"Unsupported language: {code}")
        return code

    # ── Internal helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _load_project(db: Session, project_id: str) -> Project:
        row = db.query(Project).filter(Project.id == project_id).first()
        if not row:
            raise NotFoundError("Project not found")
        return row

    @staticmethod
    def _load_translation(db: Session, project_id: str, language: str) -> Translation | None:
        return (
            db.query(Translation)
            .filter(Translation.project_id == project_id, Translation.language == language)
            .first()
        )

    def _upsert(self, db: Session, project_id: str, language: str, document: Any) -> Translation:
        row = self._load_translation(db, project_id, language)
        if row:
            row.json = _dumps(document)
        else:
            row = Translation(project_id=project_id, language=language, json=_dumps(document))
            db.add(row)
        db.commit()
        db.refresh(row)
        return row

    # ── Projects ──────────────────────────────────────────────────────────────

    def list_projects(self) -> list[dict[str, Any]]:
        db = self._session_factory()
        try:
            rows = db.query(Project).order_by(Project.created_at.desc()).all()
            return [_project_to_dict(r, include_base=False) for r in rows]
        finally:
            db.close()

    def create_project(self, name: str | None, base_json: Any) -> dict[str, Any]:
        name = (name or "").strip()
        if not name or base_json is None or base_json == "":
            raise InvalidInputError("Name and base_json are required")
        db = self._session_factory()
        try:
            row = Project(name=name, base_json=_dumps(base_json))
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info("project.created", project_id=row.id, name=name)
            return _project_to_dict(row)
        finally:
            db.close()

    def get_project(self, project_id: str) -> dict[str, Any]:
        db = self._session_factory()
        try:
            return _project_to_dict(self._load_project(db, project_id))
        finally:
            db.close()

    def delete_project(self, project_id: str) -> None:
        db = self._session_factory()
        try:
            row = self._load_project(db, project_id)
            db.query(Translation).filter(Translation.project_id == project_id).delete()
            db.delete(row)
            db.commit()
        finally:
            db.close()
        self.editors.drop_project(project_id)
        logger.info("project.deleted", project_id=project_id)

    def update_base_document(self, project_id: str, base_json: Any) -> dict[str, Any]:
        if base_json is None or base_json == "":
            raise InvalidInputError("base_json is required")
        db = self._session_factory()
        try:
            row = self._load_project(db, project_id)
            row.base_json = _dumps(base_json)
            db.commit()
            db.refresh(row)
            result = _project_to_dict(row)
        finally:
            db.close()
        self.editors.drop_project(project_id)
        logger.info("project.base_updated", project_id=project_id)
        return result

    def get_base_tree(self, project_id: str) -> Tree:
        return from_json(self.get_project(project_id)["base_json"])

    # ── Translations ──────────────────────────────────────────────────────────

    def get_translation(self, project_id: str, language: str) -> dict[str, Any]:
        db = self._session_factory()
        try:
            self._load_project(db, project_id)
            row = self._load_translation(db, project_id, language)
            if not row:
                raise NotFoundError("Translation not found")
            return _translation_to_dict(row)
        finally:
            db.close()

    def get_translation_tree(self, project_id: str, language: str) -> Tree | None:
        try:
            return from_json(self.get_translation(project_id, language)["json"])
        except NotFoundError:
            # Missing project must still surface; only a missing row means "no translation".
            self.get_project(project_id)
            return None

    def get_full_translation(self, project_id: str, language: str) -> Any:
        """Stored translation reconciled against the current base."""
        base = self.get_base_tree(project_id)
        return to_json(merge(base, self.get_translation_tree(project_id, language)))

    def save_translation(self, project_id: str, language: str, document: Any) -> Any:
        """Reconcile ``document`` against the base and upsert it."""
        language = self.check_language(language)
        if document is None:
            raise InvalidInputError("Language and json are required")
        db = self._session_factory()
        try:
            project = self._load_project(db, project_id)
            full = build_full_translation(json.loads(project.base_json), document)
            self._upsert(db, project_id, language, full)
        finally:
            db.close()
        self.editors.drop(project_id, language)
        logger.info("translation.saved", project_id=project_id, language=language)
        return full

    def _load_documents(self, db: Session, project_id: str, language: str) -> tuple[Tree, Tree | None]:
        """Current base and stored translation, read in ``db``."""
        project = self._load_project(db, project_id)
        row = self._load_translation(db, project_id, language)
        base = from_json(json.loads(project.base_json))
        return base, from_json(json.loads(row.json)) if row else None

    def _synced_state(self, db: Session, project_id: str, language: str) -> EditorState:
        base, stored = self._load_documents(db, project_id, language)
        state = self.editors.get_or_create(
            project_id,
            language,
            loader=lambda: (base, stored),
            source_language=self.source_language,
        )
        # Another process may have changed the schema or the row since the
        # state was built; the store is authoritative.
        state.reload(base, stored)
        return state

    def editor_state(self, project_id: str, language: str) -> EditorState:
        """Editor annotations for (project, language), synced with the store."""
        language = self.check_language(language)
        db = self._session_factory()
        try:
            return self._synced_state(db, project_id, language)
        finally:
            db.close()

    def set_leaf(self, project_id: str, language: str, path: Path, value: Any) -> Any:
        """One read-merge-write cycle for a single edited leaf."""
        language = self.check_language(language)
        db = self._session_factory()
        try:
            state = self._synced_state(db, project_id, language)
            document = to_json(state.set_leaf(path, value))
            self._upsert(db, project_id, language, document)
        finally:
            db.close()
        state.mark_saved(path)
        logger.info("translation.leaf_saved", project_id=project_id, language=language, path=".".join(path))
        return document

    # ── Schema changes ────────────────────────────────────────────────────────

    def _stored_languages(self, db: Session, project_id: str) -> list[str]:
        stored = {lang for (lang,) in db.query(Translation.language).filter(Translation.project_id == project_id)}
        ordered = [lang for lang in self.supported_languages() if lang in stored]
        return ordered + sorted(stored - set(ordered))

    def _change_schema(
        self,
        project_id: str,
        mutate: Callable[[Tree], None],
        transform: Callable[[Tree], Any],
    ) -> list[str]:
        """Apply ``mutate`` to the base and ``transform`` to every stored
        translation, then commit base and translations together.

        Errors raised by ``mutate`` surface unchanged before anything is
        written. A failure on any translation rolls the whole change back.
        """
        db = self._session_factory()
        try:
            project = self._load_project(db, project_id)
            base = from_json(json.loads(project.base_json))
            mutate(base)
            project.base_json = _dumps(to_json(base))

            language = None
            updated: list[str] = []
            try:
                for language in self._stored_languages(db, project_id):
                    row = self._load_translation(db, project_id, language)
                    if row is None:
                        continue
                    tree = from_json(json.loads(row.json))
                    transform(tree)
                    row.json = _dumps(to_json(merge(base, tree)))
                    updated.append(language)
                language = None
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(
                    "schema.propagation_failed",
                    project_id=project_id,
                    language=language,
                    error=str(e),
                )
                raise PropagationError(language, e) from e
        finally:
            db.close()
        self.editors.drop_project(project_id)
        return updated

    def add_key(self, project_id: str, path: Path, value: Any) -> list[str]:
        """Add a key to the base schema and push it to every stored language."""
        if not path:
            raise InvalidInputError("Path is required")

        def _add(base: Tree) -> None:
            if get_value_at_path(base, path) is not None:
                raise PathConflictError(path, "key already exists")
            set_value_at_path(base, path, value)

        updated = self._change_schema(project_id, _add, lambda tree: None)
        logger.info("schema.key_added", project_id=project_id, path=".".join(path), languages=updated)
        return updated

    def delete_key(self, project_id: str, path: Path) -> list[str]:
        """Remove a key from the base schema and from every stored language."""
        if not path:
            raise InvalidInputError("Path is required")

        def _delete(base: Tree) -> None:
            if not delete_at_path(base, path):
                raise PathNotFoundError(path)

        updated = self._change_schema(project_id, _delete, lambda tree: delete_at_path(tree, path))
        logger.info("schema.key_deleted", project_id=project_id, path=".".join(path), languages=updated)
        return updated

    # ── Completeness ──────────────────────────────────────────────────────────

    def project_progress(self, project_id: str) -> dict[str, Completeness]:
        """Completeness per supported language, source language excluded."""
        base = self.get_base_tree(project_id)
        return {
            language: completeness(base, self.get_translation_tree(project_id, language))
            for language in self.supported_languages()
            if language != self.source_language
        }
