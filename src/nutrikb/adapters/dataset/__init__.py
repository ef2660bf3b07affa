"""Dataset package adapter: file reading, schema validation and translation."""

from __future__ import annotations

from .reader import parse_dataset, read_dataset_file

__all__ = ["parse_dataset", "read_dataset_file"]
