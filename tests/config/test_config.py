from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from nutrikb.config import (
    ConfigurationError,
    get_database_uri,
    get_importer_config,
    get_retry_policy,
    get_storage_config,
    is_ci_environment,
    optional_int_env,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_optional_int_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NUTRIKB_TEST_INT", raising=False)
    assert optional_int_env("NUTRIKB_TEST_INT", 7) == 7

    monkeypatch.setenv("NUTRIKB_TEST_INT", " 12 ")
    assert optional_int_env("NUTRIKB_TEST_INT", 7) == 12

    monkeypatch.setenv("NUTRIKB_TEST_INT", "many")
    with pytest.raises(ConfigurationError) as excinfo:
        optional_int_env("NUTRIKB_TEST_INT", 7)
    assert excinfo.value.setting == "NUTRIKB_TEST_INT"

    monkeypatch.setenv("NUTRIKB_TEST_INT", "0")
    with pytest.raises(ConfigurationError):
        optional_int_env("NUTRIKB_TEST_INT", 7)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, False), ("", False), ("false", False), ("0", False), ("true", True), ("1", True)],
)
def test_is_ci_environment(
    monkeypatch: pytest.MonkeyPatch, value: str | None, expected: bool
) -> None:
    if value is None:
        monkeypatch.delenv("CI", raising=False)
    else:
        monkeypatch.setenv("CI", value)

    assert is_ci_environment() is expected


def test_database_uri_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/nutrikb")

    assert get_database_uri() == "postgresql+psycopg://localhost/nutrikb"


def test_database_uri_defaults_to_sqlite_in_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("NUTRIKB_DATA_DIR", str(tmp_path / "data"))

    uri = get_database_uri()

    assert uri == f"sqlite+pysqlite:///{(tmp_path / 'data').resolve() / 'nutrikb.db'}"
    assert get_storage_config().database_path.parent.is_dir()


def test_database_uri_can_skip_directory_creation(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("NUTRIKB_DATA_DIR", str(tmp_path / "absent"))

    uri = get_database_uri(create_dir=False)

    assert uri.endswith("nutrikb.db")
    assert not (tmp_path / "absent").exists()


def test_importer_and_retry_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NUTRIKB_IMPORT_CHUNK_SIZE", "50")
    monkeypatch.setenv("NUTRIKB_STORE_RETRIES", "2")

    importer = get_importer_config()

    assert importer.chunk_size == 50
    assert importer.dataset_state_key == "ingredient_dataset"
    assert get_retry_policy().total == 2
