"""
State file persistence — ~/.config/rice/state.json on disk.

``load_state`` never fails: a missing, unreadable or malformed document
yields a fresh one, so a damaged file costs a re-check of every tool
rather than a crash. ``save_state`` replaces the file atomically; a
reader sees either the previous document or the new one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from rice.core.models.state import StateDocument

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "state.json"


def default_state_path(state_dir: Path) -> Path:
    return state_dir / STATE_FILE_NAME


def load_state(path: Path) -> StateDocument:
    """Read ``path`` into a StateDocument, or a fresh document if it can't be used."""
    if not path.is_file():
        logger.info("No state file at %s, first run", path)
        return StateDocument()

    try:
        state = StateDocument.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except json.JSONDecodeError as e:
        reason = f"not JSON ({e.msg}, line {e.lineno})"
    except ValidationError as e:
        reason = f"{e.error_count()} invalid field(s)"
    except OSError as e:
        reason = e.strerror or str(e)
    else:
        logger.debug(
            "State %s: %d tool record(s), phases %s",
            path, len(state.tools), state.completed_phases,
        )
        return state

    logger.warning("Ignoring state file %s: %s", path, reason)
    return StateDocument()


def save_state(state: StateDocument, path: Path) -> None:
    """Write ``state`` to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(state.to_json(), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        tmp.replace(path)
    except BaseException as e:
        tmp.unlink(missing_ok=True)
        if isinstance(e, OSError):
            logger.error("Could not write state file %s: %s", path, e)
        raise
    logger.debug("State written to %s", path)
