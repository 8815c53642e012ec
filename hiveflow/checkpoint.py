"""Swarm snapshots: persist a JSON summary of the last swarm run for `swarm status`."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from hiveflow.swarm.state import summarize_swarm
from hiveflow.swarm.types import SwarmState

logger = logging.getLogger(__name__)

_SNAPSHOT_DIR = ".hiveflow"
_SNAPSHOT_FILE = "swarm-snapshot.json"


def snapshot_path(cwd: str, base_dir: str = _SNAPSHOT_DIR) -> Path:
    """Return the expected snapshot path under *cwd* (may not exist yet)."""
    return Path(cwd) / base_dir / _SNAPSHOT_FILE


def save_swarm_snapshot(state: SwarmState, cwd: str, base_dir: str = _SNAPSHOT_DIR) -> Path:
    """Write counts, item ids per lifecycle position and issues; return the path.

    Work items themselves are not stored, only what the status command shows.
    """
    path = snapshot_path(cwd, base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    snapshot: dict[str, Any] = {
        "saved_at": datetime.now(UTC).isoformat(),
        "counts": summarize_swarm(state),
        "items": {
            key: [item.id for item in state[key]]  # type: ignore[literal-required]
            for key in ("backlog", "active", "blocked", "completed", "deferred", "abandoned")
        },
        "workers": [
            {"id": w.id, "status": w.status, "item": w.assigned_item, "progress": w.progress}
            for w in state["workers"]
        ],
        "issues": list(state["issues"]),
    }
    path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
    logger.info("Swarm snapshot saved: %s", path)
    return path


def load_swarm_snapshot(cwd: str, base_dir: str = _SNAPSHOT_DIR) -> dict[str, Any]:
    """Load the last snapshot.

    Raises:
        FileNotFoundError: If no swarm has been run under *cwd*.
    """
    path = snapshot_path(cwd, base_dir)
    if not path.exists():
        raise FileNotFoundError(f"No swarm snapshot found at {path}")
    raw: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    logger.debug("Swarm snapshot loaded: %s", path)
    return raw
