"""
Closed error taxonomy for the transcription workflow.

Every failure that leaves a component is one of the kinds below. Callers
can switch on `error.kind` or catch the concrete class.
"""

from enum import Enum
from typing import Any, Callable, Optional


class ErrorKind(str, Enum):
    PROJECT_IO = "project_io"
    IMPORT_FAILURE = "import_failure"
    STAGE_TRANSITION_INVALID = "stage_transition_invalid"
    PROCESSING_FAILURE = "processing_failure"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    NOT_FOUND = "not_found"


class WorkflowError(Exception):
    kind: ErrorKind = None
    default_suggestion: Optional[str] = None

    def __init__(
        self,
        description: str,
        suggestion: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(description)
        self.description = description
        self.suggestion = suggestion if suggestion is not None else self.default_suggestion
        self.reason = reason
        self.retry: Optional[Callable[[], Any]] = None

    @property
    def can_retry(self) -> bool:
        return self.retry is not None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "suggestion": self.suggestion,
            "reason": self.reason,
        }


class ProjectIOError(WorkflowError):
    kind = ErrorKind.PROJECT_IO
    default_suggestion = "Check disk space and file permissions."


class ImportFailure(WorkflowError):
    kind = ErrorKind.IMPORT_FAILURE
    default_suggestion = "Ensure the source file is a valid PDF or image and is accessible."


class StageTransitionInvalid(WorkflowError):
    kind = ErrorKind.STAGE_TRANSITION_INVALID

    def __init__(self, from_stage, to_stage):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(
            f"Cannot transition from {from_stage.display_name} to {to_stage.display_name}",
            suggestion=f"Complete {from_stage.display_name} and advance one stage at a time.",
        )


class ProcessingFailure(WorkflowError):
    kind = ErrorKind.PROCESSING_FAILURE

    _SUGGESTIONS = {
        "preprocessing": "Try skipping preprocessing or using different options.",
        "ocr": "Try using a different OCR engine or preprocessing the image first.",
        "enhancement": "Try using the raw OCR text without enhancement.",
    }

    def __init__(self, stage: str, page: Optional[int], reason: str):
        self.stage = stage
        self.page = page
        where = f" on page {page + 1}" if page is not None else ""
        super().__init__(
            f"{stage.capitalize()} failed{where}: {reason}",
            suggestion=self._SUGGESTIONS.get(stage),
            reason=reason,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"stage": self.stage, "page": self.page})
        return data


class EngineUnavailable(WorkflowError):
    kind = ErrorKind.ENGINE_UNAVAILABLE

    def __init__(self, engine: str, suggestion: Optional[str] = None, reason: Optional[str] = None):
        self.engine = engine
        super().__init__(
            f"{engine} engine is not available",
            suggestion=suggestion or "Try using a different OCR engine.",
            reason=reason or f"{engine} is not running or not installed",
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["engine"] = self.engine
        return data


class ResourceExhausted(WorkflowError):
    kind = ErrorKind.RESOURCE_EXHAUSTED
    default_suggestion = "Free up at least 1GB of disk space."


class NotFound(WorkflowError):
    kind = ErrorKind.NOT_FOUND
