"""Run bookkeeping and JSON input/output for the CLI."""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = ROOT_DIR / "data"


@dataclass(slots=True)
class RunPaths:
    """Directories for one CLI run: ``data/<run_id>/<step_name>/``."""

    run_id: str
    step_name: str
    base_dir: Path
    step_dir: Path

    def build_path(self, filename: str) -> Path:
        path = self.step_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def generate_run_id() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"{timestamp}-{secrets.token_hex(2)}"


def prepare_run_directories(
    run_id: str, step_name: str, data_dir: Optional[Path] = None
) -> RunPaths:
    base_dir = (data_dir or DATA_DIR) / run_id
    step_dir = base_dir / step_name
    step_dir.mkdir(parents=True, exist_ok=True)
    return RunPaths(run_id=run_id, step_name=step_name, base_dir=base_dir, step_dir=step_dir)


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
    return path


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def read_json_object(path: Optional[Path]) -> Dict[str, Any]:
    """Load a JSON object file; no path means an empty object."""
    if path is None:
        return {}
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return payload


__all__ = [
    "DATA_DIR",
    "RunPaths",
    "generate_run_id",
    "prepare_run_directories",
    "read_json",
    "read_json_object",
    "write_json",
]
