"""Decode protocol spec documents."""

import json
from pathlib import Path
from typing import Any

from .errors import SpecLoadError
from .types import ProtocolSpec


def load(text: str) -> ProtocolSpec:
    """Decode a JSON spec document into a ProtocolSpec."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SpecLoadError(f"Spec is not valid JSON: {e}") from e
    return load_dict(data)


def load_dict(data: Any) -> ProtocolSpec:
    if not isinstance(data, dict):
        raise SpecLoadError(f"Spec must be a JSON object, got {type(data).__name__}")
    if "protocol" not in data:
        raise SpecLoadError("Spec has no 'protocol' section")
    try:
        return ProtocolSpec.from_dict(data)
    except KeyError as e:
        raise SpecLoadError(f"Spec is missing required key {e}") from e
    except (TypeError, ValueError) as e:
        raise SpecLoadError(f"Spec could not be decoded: {e}") from e


def load_file(path: str | Path) -> ProtocolSpec:
    with open(path, encoding="utf-8") as f:
        return load(f.read())
