"""
Session sidecar: .scriptorium/workflow_state.json

  {version, currentStage, selectedPage, totalPages, processedPages, timestamp}

Files written before versioning (no "version" key) are treated as
version 1 and migrated on load. A missing or unreadable sidecar yields the
default state; it never prevents a project from opening.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from infra.pipeline.stages import WorkflowStage, ENTRY_STAGE
from .atomic import atomic_write_json

logger = logging.getLogger(__name__)

CURRENT_VERSION = 2


class WorkflowState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    version: int = CURRENT_VERSION
    current_stage: WorkflowStage = Field(ENTRY_STAGE, alias="currentStage")
    selected_page: Optional[int] = Field(None, ge=0, alias="selectedPage")
    total_pages: int = Field(0, ge=0, alias="totalPages")
    processed_pages: int = Field(0, ge=0, alias="processedPages")
    timestamp: float = Field(default_factory=time.time)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def resume_key(self) -> tuple:
        return (self.current_stage, self.selected_page, self.total_pages, self.processed_pages)


def _migrate_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    # v1 always wrote selectedPage (0 when nothing was selected) and had no
    # version key; stage raw values are unchanged.
    migrated = dict(data)
    migrated.setdefault("selectedPage", None)
    migrated["version"] = 2
    return migrated


MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    1: _migrate_v1,
}


def migrate_workflow_state(data: Dict[str, Any]) -> Dict[str, Any]:
    version = data.get("version", 1)
    if not isinstance(version, int) or version > CURRENT_VERSION:
        raise ValueError(f"Unsupported workflow state version: {version!r}")

    while version < CURRENT_VERSION:
        data = MIGRATIONS[version](data)
        version = data["version"]
    return data


def save_workflow_state(path: Path, state: WorkflowState) -> WorkflowState:
    state = state.model_copy(update={"timestamp": time.time(), "version": CURRENT_VERSION})
    atomic_write_json(path, state.to_json())
    return state


def load_workflow_state(path: Path) -> WorkflowState:
    path = Path(path)
    if not path.exists():
        return WorkflowState()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("workflow state must be a JSON object")
        return WorkflowState.model_validate(migrate_workflow_state(data))
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable workflow state at {path}: {e}")
        return WorkflowState()
