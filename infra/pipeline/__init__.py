from infra.pipeline.logger import StageLogger
from infra.pipeline.stages import (
    WorkflowStage,
    STAGE_DEFINITIONS,
    STAGE_NAMES,
    STAGE_ORDER,
    can_transition,
    require_transition,
    next_stage,
    previous_stage,
    get_stage,
)
from infra.pipeline.storage import (
    ProjectLibrary,
    ProjectStorage,
    Project,
    WorkflowState,
)
from infra.pipeline.pages import PageRecord, PageRegistry

__all__ = [
    # Logger
    "StageLogger",

    # Stage graph
    "WorkflowStage",
    "STAGE_DEFINITIONS",
    "STAGE_NAMES",
    "STAGE_ORDER",
    "can_transition",
    "require_transition",
    "next_stage",
    "previous_stage",
    "get_stage",

    # Storage
    "ProjectLibrary",
    "ProjectStorage",
    "Project",
    "WorkflowState",

    # Pages
    "PageRecord",
    "PageRegistry",
]
