"""Dataset import defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_int_env

DEFAULT_UPSERT_CHUNK_SIZE: Final[int] = 500
DATASET_STATE_KEY: Final[str] = "ingredient_dataset"


@dataclass(frozen=True, slots=True)
class ImporterConfig:
    chunk_size: int = DEFAULT_UPSERT_CHUNK_SIZE
    dataset_state_key: str = DATASET_STATE_KEY


def get_importer_config() -> ImporterConfig:
    return ImporterConfig(
        chunk_size=optional_int_env("NUTRIKB_IMPORT_CHUNK_SIZE", DEFAULT_UPSERT_CHUNK_SIZE),
    )
