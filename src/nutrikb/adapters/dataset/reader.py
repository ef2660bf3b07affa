"""Read dataset package files."""

from __future__ import annotations

import json
from collections.abc import Mapping
from logging import getLogger
from pathlib import Path

from pydantic import ValidationError

from nutrikb.domain.importing.errors import DatasetFormatError
from nutrikb.domain.model import LoadedDataset

from .schema import DatasetDocument
from .translator import translate_document

log = getLogger(__name__)


def read_dataset_file(path: str | Path) -> LoadedDataset:
    """Load a JSON dataset package from ``path``.

    Raises:
        DatasetFormatError: the file cannot be read, is not JSON, or its
            top-level structure is malformed.
    """

    source = Path(path)
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise DatasetFormatError(f"Cannot read dataset file {source}: {exc}") from exc
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DatasetFormatError(f"Dataset file {source} is not valid JSON: {exc}") from exc
    log.info("Read dataset package %s", source)
    return parse_dataset(document)


def parse_dataset(document: object) -> LoadedDataset:
    """Validate an already-decoded package document and translate it."""

    if not isinstance(document, Mapping):
        raise DatasetFormatError(
            f"Dataset package must be a JSON object, got {type(document).__name__}"
        )
    try:
        validated = DatasetDocument.model_validate(document)
    except ValidationError as exc:
        raise DatasetFormatError(f"Malformed dataset package: {exc}") from exc
    return translate_document(validated)
