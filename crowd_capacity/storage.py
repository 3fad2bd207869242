from __future__ import annotations

import json
from pathlib import Path

from backend.app.models import Capacities


class CapacityFileError(Exception):
    pass


REQUIRED_SECTIONS = ("input", "calculation", "capacities", "result")


def save_result(result: dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(result, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def load_result(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        raise CapacityFileError(f"result file not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception as e:  # noqa: BLE001
        raise CapacityFileError(f"failed to read result JSON: {e}") from e

    if not isinstance(data, dict):
        raise CapacityFileError("result JSON must be an object")
    missing = [k for k in REQUIRED_SECTIONS if k not in data]
    if missing:
        raise CapacityFileError(f"result JSON is missing sections: {missing}")
    return data


def load_capacities(path: str | Path) -> Capacities:
    data = load_result(path)
    try:
        return Capacities.from_dict(data["capacities"])
    except (KeyError, TypeError, ValueError) as e:
        raise CapacityFileError(f"invalid capacities in {path}: {e}") from e
