"""Lingua – Translation service tests.

Runs against the throwaway SQLite database configured in conftest.
"""

import pytest

from app.translation.editor import EditorRegistry
from app.translation.errors import (
    InvalidInputError,
    NotFoundError,
    PathConflictError,
    PathNotFoundError,
    PropagationError,
)
from app.translation.service import TranslationService

BASE = {"a": {"b": "Hello", "c": "World"}, "list": ["One", "Two"]}


@pytest.fixture
def service() -> TranslationService:
    return TranslationService(
        editors=EditorRegistry(),
        languages=["en", "de", "it", "fr", "es"],
        source_language="en",
    )


@pytest.fixture
def project(service) -> dict:
    return service.create_project("Web App", BASE)


class TestProjects:
    def test_create_and_get(self, service, project) -> None:
        loaded = service.get_project(project["id"])
        assert loaded["name"] == "Web App"
        assert loaded["base_json"] == BASE

    def test_create_requires_name_and_base(self, service) -> None:
        with pytest.raises(InvalidInputError):
            service.create_project("", BASE)
        with pytest.raises(InvalidInputError):
            service.create_project("Name", None)

    def test_list_omits_base_document(self, service, project) -> None:
        listed = {p["id"]: p for p in service.list_projects()}
        assert project["id"] in listed
        assert "base_json" not in listed[project["id"]]

    def test_unknown_project(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.get_project("does-not-exist")

    def test_delete_cascades_to_translations(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo"}})
        service.delete_project(project["id"])
        with pytest.raises(NotFoundError):
            service.get_project(project["id"])
        with pytest.raises(NotFoundError):
            service.get_translation(project["id"], "de")

    def test_replacing_base_reconciles_lazily(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo", "c": "Welt"}})
        service.update_base_document(project["id"], {"a": {"b": "Hello"}, "new": "New"})
        assert service.get_full_translation(project["id"], "de") == {"a": {"b": "Hallo"}, "new": "New"}


class TestTranslations:
    def test_save_reconciles_against_base(self, service, project) -> None:
        saved = service.save_translation(project["id"], "de", {"a": {"b": "Hallo"}, "stray": 1})
        assert saved == {"a": {"b": "Hallo", "c": "World"}, "list": ["One", "Two"]}
        assert service.get_translation(project["id"], "de")["json"] == saved

    def test_unsupported_language(self, service, project) -> None:
        with pytest.raises(InvalidInputError):
            service.save_translation(project["id"], "xx", {})

    def test_language_is_normalised(self, service, project) -> None:
        service.save_translation(project["id"], "DE", {"a": {"b": "Hallo"}})
        assert service.get_translation(project["id"], "de")["language"] == "de"

    def test_missing_translation(self, service, project) -> None:
        with pytest.raises(NotFoundError):
            service.get_translation(project["id"], "fr")
        assert service.get_translation_tree(project["id"], "fr") is None

    def test_full_translation_without_row_is_base(self, service, project) -> None:
        assert service.get_full_translation(project["id"], "fr") == BASE

    def test_set_leaf_persists_merged_document(self, service, project) -> None:
        document = service.set_leaf(project["id"], "de", ["a", "b"], "Hallo")
        assert document == {"a": {"b": "Hallo", "c": "World"}, "list": ["One", "Two"]}
        assert service.get_translation(project["id"], "de")["json"] == document

    def test_set_leaf_marks_path_saved(self, service, project) -> None:
        service.set_leaf(project["id"], "de", ["list", "0"], "Eins")
        state = service.editor_state(project["id"], "de")
        assert state.is_recently_saved(["list", "0"]) is True

    def test_set_leaf_rejects_unknown_path(self, service, project) -> None:
        with pytest.raises(PathNotFoundError):
            service.set_leaf(project["id"], "de", ["a", "zzz"], "x")

    def test_set_leaf_keeps_other_edits(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"c": "Welt"}})
        service.set_leaf(project["id"], "de", ["a", "b"], "Hallo")
        assert service.get_translation(project["id"], "de")["json"]["a"] == {"b": "Hallo", "c": "Welt"}

    def test_save_resets_editor_state(self, service, project) -> None:
        service.set_leaf(project["id"], "de", ["a", "b"], "Hallo")
        service.save_translation(project["id"], "de", {"a": {"b": "Servus"}})
        assert service.editors.get(project["id"], "de") is None
        document = service.set_leaf(project["id"], "de", ["a", "c"], "Welt")
        assert document["a"] == {"b": "Servus", "c": "Welt"}

    def test_set_leaf_rejects_container_value(self, service, project) -> None:
        with pytest.raises(InvalidInputError):
            service.set_leaf(project["id"], "de", ["a", "b"], {"nested": "x"})
        assert service.get_translation_tree(project["id"], "de") is None

    def test_set_leaf_sees_key_deleted_by_another_worker(self, service, project) -> None:
        other = TranslationService(editors=EditorRegistry(), languages=["en", "de"], source_language="en")
        service.set_leaf(project["id"], "de", ["a", "b"], "Hallo")

        other.delete_key(project["id"], ["a", "c"])
        service.set_leaf(project["id"], "de", ["a", "b"], "Hallo!")

        assert service.get_translation(project["id"], "de")["json"]["a"] == {"b": "Hallo!"}
        assert service.get_project(project["id"])["base_json"]["a"] == {"b": "Hello"}
        paths = [f.path for f in service.editor_state(project["id"], "de").fields()]
        assert "a.c" not in paths

    def test_set_leaf_keeps_edit_saved_by_another_worker(self, service, project) -> None:
        other = TranslationService(editors=EditorRegistry(), languages=["en", "de"], source_language="en")
        service.set_leaf(project["id"], "de", ["a", "b"], "Hallo")
        other.set_leaf(project["id"], "de", ["a", "c"], "Welt")

        document = service.set_leaf(project["id"], "de", ["a", "b"], "Hallo!")

        assert document["a"] == {"b": "Hallo!", "c": "Welt"}


class TestSchemaChanges:
    def test_add_key_propagates_to_stored_languages(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo"}})
        service.save_translation(project["id"], "fr", {"a": {"b": "Bonjour"}})

        written = service.add_key(project["id"], ["a", "d"], "New text")

        assert written == ["de", "fr"]
        assert service.get_project(project["id"])["base_json"]["a"]["d"] == "New text"
        for language in ("de", "fr"):
            assert service.get_translation(project["id"], language)["json"]["a"]["d"] == "New text"
        with pytest.raises(NotFoundError):
            service.get_translation(project["id"], "it")

    def test_add_existing_key_conflicts(self, service, project) -> None:
        with pytest.raises(PathConflictError):
            service.add_key(project["id"], ["a", "b"], "x")

    def test_add_key_below_leaf_conflicts(self, service, project) -> None:
        with pytest.raises(PathConflictError):
            service.add_key(project["id"], ["a", "b", "deeper"], "x")
        assert service.get_project(project["id"])["base_json"] == BASE

    def test_delete_key_cascades(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo", "c": "Welt"}})
        service.save_translation(project["id"], "es", {"a": {"b": "Hola"}})

        written = service.delete_key(project["id"], ["a", "b"])

        assert written == ["de", "es"]
        assert "b" not in service.get_project(project["id"])["base_json"]["a"]
        assert service.get_translation(project["id"], "de")["json"]["a"] == {"c": "Welt"}
        assert service.get_translation(project["id"], "es")["json"]["a"] == {"c": "World"}

    def test_delete_array_element_shifts_translations(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"list": ["Eins", "Zwei"]})
        service.delete_key(project["id"], ["list", "0"])
        assert service.get_translation(project["id"], "de")["json"]["list"] == ["Zwei"]

    def test_delete_missing_key(self, service, project) -> None:
        with pytest.raises(PathNotFoundError):
            service.delete_key(project["id"], ["a", "zzz"])

    def test_empty_path_rejected(self, service, project) -> None:
        with pytest.raises(InvalidInputError):
            service.add_key(project["id"], [], "x")
        with pytest.raises(InvalidInputError):
            service.delete_key(project["id"], [])

    def test_failure_on_one_language_rolls_back_everything(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo"}})
        service.save_translation(project["id"], "fr", {"a": {"b": "Bonjour"}})
        service.save_translation(project["id"], "es", {"a": {"b": "Hola"}})

        original = TranslationService._load_translation

        def flaky(db, project_id, language):
            if language == "fr":
                raise RuntimeError("disk full")
            return original(db, project_id, language)

        service._load_translation = flaky
        with pytest.raises(PropagationError) as excinfo:
            service.add_key(project["id"], ["a", "d"], "New")
        del service._load_translation

        assert excinfo.value.language == "fr"
        assert "d" not in service.get_project(project["id"])["base_json"]["a"]
        for language in ("de", "fr", "es"):
            assert "d" not in service.get_translation(project["id"], language)["json"]["a"]


class TestProgress:
    def test_excludes_source_language(self, service, project) -> None:
        progress = service.project_progress(project["id"])
        assert "en" not in progress
        assert set(progress) == {"de", "it", "fr", "es"}

    def test_counts_translated_leaves(self, service, project) -> None:
        service.save_translation(project["id"], "de", {"a": {"b": "Hallo", "c": "World"}, "list": ["Eins", ""]})
        progress = service.project_progress(project["id"])
        assert progress["de"].total == 4
        assert progress["de"].translated == 2
        assert progress["de"].percent == 50
        assert progress["fr"].translated == 0
