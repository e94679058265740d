from infra.errors import (
    WorkflowError,
    ErrorReporter,
)
from infra.pipeline import (
    StageLogger,
    WorkflowStage,
    PageRegistry,
)
from infra.pipeline.storage import (
    ProjectLibrary,
    ProjectStorage,
)

__all__ = [
    "WorkflowError",
    "ErrorReporter",

    "StageLogger",
    "WorkflowStage",
    "PageRegistry",

    "ProjectLibrary",
    "ProjectStorage",
]
