#!/usr/bin/env python3
"""import_locales.py – Create a project from a directory of locale files.

Usage:
    python scripts/import_locales.py <locales_dir> --name "Web App" [--source en]

Expects one ``<language>.json`` per language. The source-language file becomes
the base document; every other supported language is reconciled against it
before being stored, so extra keys are dropped and missing keys fall back to
the source text.
"""

import argparse
import json
from pathlib import Path

import structlog

from app.core.db import run_migrations
from app.translation.errors import InvalidInputError
from app.translation.service import TranslationService

logger = structlog.get_logger()


def _read_locale(path: Path):
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidInputError(f"Invalid JSON in {path.name}") from e
    if document is None:
        raise InvalidInputError(f"Empty document in {path.name}")
    return document


def import_locales(
    locales_dir: Path,
    name: str,
    service: TranslationService,
    source_language: str = "en",
) -> dict:
    """Import ``locales_dir`` into a new project. Returns the project and languages written.

    Every file is read and parsed before anything is written, so a broken
    locale leaves the store untouched.
    """
    base_file = locales_dir / f"{source_language}.json"
    if not base_file.is_file():
        raise FileNotFoundError(f"Missing source locale: {base_file}")
    base = _read_locale(base_file)

    documents = {}
    supported = set(service.supported_languages())
    for path in sorted(locales_dir.glob("*.json")):
        language = path.stem.lower()
        if language == source_language:
            continue
        if language not in supported:
            logger.warning("import.language_skipped", language=language, file=str(path))
            continue
        documents[language] = _read_locale(path)

    project = service.create_project(name, base)
    for language, document in documents.items():
        service.save_translation(project["id"], language, document)
        logger.info("import.language_imported", project_id=project["id"], language=language)

    return {"project": project, "languages": list(documents)}


def main() -> None:
    parser = argparse.ArgumentParser(description="Import locale JSON files as a translation project")
    parser.add_argument("locales_dir", type=Path)
    parser.add_argument("--name", required=True, help="Project name")
    parser.add_argument("--source", default="en", help="Source language code (base document)")
    args = parser.parse_args()

    run_migrations()
    service = TranslationService(source_language=args.source)
    result = import_locales(args.locales_dir, args.name, service, source_language=args.source)
    print(f"Created project {result['project']['id']} with languages: {', '.join(result['languages']) or '-'}")


if __name__ == "__main__":
    main()
