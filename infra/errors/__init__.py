from .taxonomy import (
    ErrorKind,
    WorkflowError,
    ProjectIOError,
    ImportFailure,
    StageTransitionInvalid,
    ProcessingFailure,
    EngineUnavailable,
    ResourceExhausted,
    NotFound,
)
from .reporter import ErrorReport, ErrorReporter, normalize_error

__all__ = [
    "ErrorKind",
    "WorkflowError",
    "ProjectIOError",
    "ImportFailure",
    "StageTransitionInvalid",
    "ProcessingFailure",
    "EngineUnavailable",
    "ResourceExhausted",
    "NotFound",
    "ErrorReport",
    "ErrorReporter",
    "normalize_error",
]
