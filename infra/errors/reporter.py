import errno
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, List, Optional

from .taxonomy import (
    WorkflowError,
    ProjectIOError,
    ProcessingFailure,
    ResourceExhausted,
    NotFound,
)

logger = logging.getLogger(__name__)

_DISK_FULL = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}
_PERMISSION = {errno.EACCES, errno.EPERM, errno.EROFS}


def normalize_error(
    exc: BaseException,
    stage: Optional[str] = None,
    page: Optional[int] = None,
) -> WorkflowError:
    """Map any exception onto the closed taxonomy.

    Taxonomy errors pass through unchanged. OS errors are classified by
    errno; anything else becomes a ProcessingFailure when stage context is
    known and a ProjectIOError otherwise.
    """
    if isinstance(exc, WorkflowError):
        return exc

    if isinstance(exc, FileNotFoundError):
        target = exc.filename or str(exc)
        return NotFound(f"File not found: {target}", reason=str(exc))

    if isinstance(exc, OSError):
        if exc.errno in _DISK_FULL:
            return ResourceExhausted(
                "Disk is full. Please free up space and try again.",
                reason="Insufficient disk space",
            )
        if exc.errno in _PERMISSION:
            target = exc.filename or "project directory"
            return ResourceExhausted(
                f"Write permission denied for: {target}",
                suggestion="Check file permissions on the project directory.",
                reason=str(exc),
            )
        if stage is None:
            return ProjectIOError(f"Project I/O failed: {exc}", reason=str(exc))

    if stage is not None:
        return ProcessingFailure(stage, page, str(exc) or exc.__class__.__name__)

    return ProjectIOError(f"Project operation failed: {exc}", reason=str(exc))


@dataclass
class ErrorReport:
    error: WorkflowError
    retry_action: Optional[Callable[[], Any]] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def title(self) -> str:
        return "Error"

    @property
    def message(self) -> str:
        return self.error.description

    @property
    def suggestion(self) -> Optional[str]:
        return self.error.suggestion

    @property
    def can_retry(self) -> bool:
        return self.retry_action is not None

    def retry(self) -> Any:
        """Re-run the failed operation once. No backoff, no loop."""
        if self.retry_action is None:
            raise RuntimeError("This error has no retry action")
        return self.retry_action()


class ErrorReporter:
    def __init__(self, history_size: int = 50):
        self._lock = threading.Lock()
        self._history: Deque[ErrorReport] = deque(maxlen=history_size)
        self._listeners: List[Callable[[ErrorReport], None]] = []

    def add_listener(self, listener: Callable[[ErrorReport], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def report(
        self,
        exc: BaseException,
        retry: Optional[Callable[[], Any]] = None,
        stage: Optional[str] = None,
        page: Optional[int] = None,
    ) -> ErrorReport:
        error = normalize_error(exc, stage=stage, page=page)
        if retry is not None:
            error.retry = retry

        report = ErrorReport(error=error, retry_action=retry)

        with self._lock:
            self._history.append(report)
            listeners = list(self._listeners)

        logger.warning(
            "%s: %s", error.kind.value, error.description,
            extra={"error": error.reason or error.description},
        )

        for listener in listeners:
            listener(report)

        return report

    @property
    def latest(self) -> Optional[ErrorReport]:
        with self._lock:
            return self._history[-1] if self._history else None

    @property
    def history(self) -> List[ErrorReport]:
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
