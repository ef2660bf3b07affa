from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from nutrikb.adapters.dataset import parse_dataset, read_dataset_file
from nutrikb.domain.importing import DatasetFormatError
from nutrikb.domain.model import DoseRange, IssueType, PackageShape
from tests.support.packages import flat_document, sheets_document

if TYPE_CHECKING:
    from pathlib import Path


def test_flat_package_is_normalized() -> None:
    loaded = parse_dataset(flat_document())
    package = loaded.package

    assert package.shape is PackageShape.FLAT
    assert package.version == "2024.1"
    magnesium, zinc = package.ingredients
    assert magnesium.canonical_key == "magnesium"
    assert magnesium.synonyms == ("Mg", "magnesium ion")
    assert magnesium.goals == ("sleep", "stress")
    assert zinc.synonyms == ()

    (form,) = package.forms
    assert form.ingredient_key == "magnesium"
    assert form.label == "Magnesium glycinate"
    assert form.relative_factor == 0.9
    assert form.reference_ids == ("c1", "c2")

    (evidence,) = package.evidence
    assert evidence.optimal_range == DoseRange(200.0, 400.0)
    assert evidence.audit_status == "Verified"

    assert [citation.year for citation in package.citations] == [2019, None]
    (interaction,) = package.interactions
    assert interaction.condition == {"min_dose": 50}
    assert interaction.reference_ids == ("c1",)
    assert loaded.issues == ()


def test_sheets_package_wins_and_reads_meta_version() -> None:
    document = sheets_document()
    document["ingredients"] = [{"ingredient_id": "ignored", "ingredient": "Ignored"}]

    package = parse_dataset(document).package

    assert package.shape is PackageShape.SHEETS
    assert package.version == "2024.2"
    assert [ingredient.canonical_key for ingredient in package.ingredients] == ["magnesium"]
    assert package.ingredients[0].synonyms == ("Mg", "magnesium ion")
    assert package.forms[0].label == "Magnesium glycinate"
    assert package.evidence[0].optimal_range == DoseRange(200.0, 400.0)
    assert package.citations[0].id == "c1"
    assert package.ul_toxicity[0].ul_value == 350.0


def test_empty_sheets_fall_back_to_flat_arrays() -> None:
    document = flat_document()
    document["sheets"] = {"ingredients": []}

    assert parse_dataset(document).package.shape is PackageShape.FLAT


def test_numeric_version_is_text() -> None:
    assert parse_dataset({"version": 3, "ingredients": []}).package.version == "3"


def test_bad_rows_become_issues() -> None:
    document = {
        "ingredients": [
            {"ingredient_id": "magnesium", "ingredient": "Magnesium"},
            {"ingredient": "No key"},
            "not a row",
        ],
        "evidence": [
            {
                "ingredient_id": "magnesium",
                "goal": "sleep",
                "optimal_range": {"min": 500, "max": 100},
            }
        ],
        "interactions": [{"interaction_id": "int-1", "condition_json": "{broken"}],
    }

    loaded = parse_dataset(document)

    assert len(loaded.package.ingredients) == 1
    (evidence,) = loaded.package.evidence
    assert evidence.optimal_range is None
    (interaction,) = loaded.package.interactions
    assert interaction.condition is None
    assert [issue.issue_type for issue in loaded.issues] == [
        IssueType.INVALID_RECORD,
        IssueType.INVALID_RECORD,
        IssueType.INVALID_DOSE_RANGE,
        IssueType.INVALID_CONDITION,
    ]


@pytest.mark.parametrize(
    "document",
    [
        [],
        "package",
        {"ingredients": {"magnesium": {}}},
        {"sheets": ["ingredients"]},
    ],
)
def test_structural_errors_are_rejected(document: object) -> None:
    with pytest.raises(DatasetFormatError):
        parse_dataset(document)


def test_read_dataset_file(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text(json.dumps(flat_document()), encoding="utf-8")

    loaded = read_dataset_file(path)

    assert len(loaded.package.ingredients) == 2


def test_read_dataset_file_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(DatasetFormatError, match="not valid JSON"):
        read_dataset_file(path)


def test_read_dataset_file_missing(tmp_path: Path) -> None:
    with pytest.raises(DatasetFormatError, match="Cannot read"):
        read_dataset_file(tmp_path / "absent.json")
