"""Value normalization helpers shared by the dataset loader and the fact builders."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any

from nutrikb.domain.model import DoseRange

_WHITESPACE = re.compile(r"\s+")
_LIST_SEPARATORS = re.compile(r"[;|,]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class MalformedValueError(ValueError):
    """A value is present but cannot be interpreted."""


def clean_text(value: object) -> str | None:
    """Trim and collapse whitespace; empty or non-scalar values become ``None``."""

    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    text = _WHITESPACE.sub(" ", str(value)).strip()
    return text or None


def to_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_int(value: object) -> int | None:
    number = to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def split_list(value: object) -> tuple[str, ...]:
    """Split a list-valued cell.

    Accepts an array (each element cleaned) or a string delimited by ``;``, ``|``
    or ``,``. Empty parts are dropped; order and duplicates are kept.
    """

    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        parts: list[object] = list(value)
    else:
        text = clean_text(value)
        if text is None:
            return ()
        parts = list(_LIST_SEPARATORS.split(text))
    cleaned = (clean_text(part) for part in parts)
    return tuple(part for part in cleaned if part is not None)


def normalize_alias_text(value: str) -> str:
    """Lowercase, collapse runs of non-alphanumerics to one space, trim."""

    return _NON_ALNUM.sub(" ", value.lower()).strip()


def parse_condition(value: object) -> dict[str, Any] | None:
    """Interpret an interaction condition payload.

    Raises:
        MalformedValueError: the value is present but is neither an object nor a
            string holding a JSON object.
    """

    if value is None:
        return None
    if isinstance(value, Mapping):
        return {str(key): item for key, item in value.items()}
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedValueError(f"Condition is not valid JSON: {exc.msg}") from exc
        if isinstance(decoded, dict):
            return decoded
    raise MalformedValueError(f"Condition must be a JSON object, got {type(value).__name__}")


def build_dose_range(minimum: object, maximum: object) -> DoseRange | None:
    """Build the optimal dose interval; ``None`` when either bound is absent.

    Raises:
        MalformedValueError: the lower bound exceeds the upper bound.
    """

    low = to_number(minimum)
    high = to_number(maximum)
    if low is None or high is None:
        return None
    try:
        return DoseRange(low, high)
    except ValueError as exc:
        raise MalformedValueError(str(exc)) from exc
