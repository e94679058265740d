"""
Tests for infra/errors/

Key behaviors to verify:
1. Every exception maps onto one error kind
2. Taxonomy errors pass through normalization unchanged
3. The reporter keeps a bounded history and notifies listeners
4. Retry re-runs the failed operation exactly once
"""

import errno

import pytest

from infra.errors import (
    EngineUnavailable,
    ErrorKind,
    ErrorReporter,
    ImportFailure,
    NotFound,
    ProcessingFailure,
    ProjectIOError,
    ResourceExhausted,
    StageTransitionInvalid,
    normalize_error,
)
from infra.pipeline.stages import WorkflowStage


class TestTaxonomy:
    def test_kinds(self):
        assert ProjectIOError("x").kind == ErrorKind.PROJECT_IO
        assert ImportFailure("x").kind == ErrorKind.IMPORT_FAILURE
        assert NotFound("x").kind == ErrorKind.NOT_FOUND
        assert ResourceExhausted("x").kind == ErrorKind.RESOURCE_EXHAUSTED
        assert EngineUnavailable("tesseract").kind == ErrorKind.ENGINE_UNAVAILABLE

    def test_processing_failure_description(self):
        error = ProcessingFailure("ocr", 4, "timeout")

        assert error.description == "Ocr failed on page 5: timeout"
        assert error.suggestion == "Try using a different OCR engine or preprocessing the image first."
        assert error.to_dict()["page"] == 4

    def test_stage_transition_message(self):
        error = StageTransitionInvalid(WorkflowStage.SETUP, WorkflowStage.EDITING)
        assert error.description == "Cannot transition from Setup to Edit"
        assert error.from_stage == WorkflowStage.SETUP

    def test_engine_unavailable(self):
        error = EngineUnavailable("mock")
        assert error.description == "mock engine is not available"
        assert error.to_dict()["engine"] == "mock"

    def test_default_suggestion(self):
        assert ImportFailure("bad").suggestion.startswith("Ensure the source file")
        assert ImportFailure("bad", suggestion="Try again").suggestion == "Try again"


class TestNormalizeError:
    def test_passthrough(self):
        error = NotFound("missing")
        assert normalize_error(error) is error

    def test_file_not_found(self):
        exc = FileNotFoundError(errno.ENOENT, "No such file", "/tmp/x.pdf")
        error = normalize_error(exc)
        assert isinstance(error, NotFound)
        assert "/tmp/x.pdf" in error.description

    def test_disk_full(self):
        error = normalize_error(OSError(errno.ENOSPC, "No space left on device"))
        assert isinstance(error, ResourceExhausted)
        assert error.reason == "Insufficient disk space"

    def test_permission_denied(self):
        exc = PermissionError(errno.EACCES, "Permission denied", "/books/p1")
        error = normalize_error(exc)
        assert isinstance(error, ResourceExhausted)
        assert "/books/p1" in error.description

    def test_other_os_error_without_stage(self):
        assert isinstance(normalize_error(OSError(errno.EIO, "I/O error")), ProjectIOError)

    def test_generic_error_with_stage(self):
        error = normalize_error(RuntimeError("boom"), stage="preprocessing", page=0)
        assert isinstance(error, ProcessingFailure)
        assert error.description == "Preprocessing failed on page 1: boom"

    def test_generic_error_without_stage(self):
        assert isinstance(normalize_error(RuntimeError("boom")), ProjectIOError)

    def test_empty_message_uses_class_name(self):
        error = normalize_error(KeyError(), stage="ocr")
        assert error.reason == "KeyError"


class TestErrorReporter:
    def test_report_records_history(self):
        reporter = ErrorReporter()
        report = reporter.report(RuntimeError("boom"), stage="ocr", page=2)

        assert reporter.latest is report
        assert report.message == "Ocr failed on page 3: boom"
        assert not report.can_retry

    def test_history_is_bounded(self):
        reporter = ErrorReporter(history_size=2)
        for i in range(5):
            reporter.report(NotFound(f"missing {i}"))

        assert [r.message for r in reporter.history] == ["missing 3", "missing 4"]

        reporter.clear()
        assert reporter.latest is None

    def test_listeners_notified(self):
        reporter = ErrorReporter()
        seen = []
        reporter.add_listener(seen.append)

        report = reporter.report(ImportFailure("bad file"))

        assert seen == [report]

    def test_retry_runs_once(self):
        calls = []
        reporter = ErrorReporter()
        report = reporter.report(EngineUnavailable("mock"), retry=lambda: calls.append(1) or "ok")

        assert report.can_retry
        assert report.error.can_retry
        assert report.retry() == "ok"
        assert calls == [1]

    def test_retry_without_action(self):
        report = ErrorReporter().report(NotFound("x"))
        with pytest.raises(RuntimeError):
            report.retry()
