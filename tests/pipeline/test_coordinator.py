"""
End-to-end tests for WorkflowCoordinator.

Real project directories under tmp_path; OCR engines and the enhancer are
in-process fakes (see tests/fixtures/fakes.py).
"""

import errno
import json

import pytest
import requests
from PIL import Image

import pipeline.import_pages as import_pages
from infra.errors import (
    EngineUnavailable,
    ErrorKind,
    ImportFailure,
    NotFound,
    ResourceExhausted,
    StageTransitionInvalid,
)
from infra.pipeline.stages import WorkflowStage
from infra.pipeline.storage import ProjectStorage
from pipeline.coordinator import WorkflowCoordinator
from pipeline.preprocess import PreprocessOptions
from tests.fixtures.fakes import FakeEngine, FakeEnhancer


def reopen(coordinator, library_config, project_id):
    """A second session on the same storage root."""
    other = WorkflowCoordinator(
        storage_root=coordinator.storage_root,
        library_config=library_config,
        engines=[FakeEngine("tesseract")],
        enhancer=FakeEnhancer(available=False),
    )
    other.load_project(project_id)
    return other


class TestProjectLifecycle:
    def test_create_moves_to_import(self, coordinator):
        project = coordinator.create_project("Parish Register", author="St. Mary's", publication_date="1887")

        assert coordinator.has_project
        assert coordinator.current_stage == WorkflowStage.IMPORTING
        assert project.metadata.publication_date == "1887"
        assert coordinator.storage.load_state().current_stage == WorkflowStage.IMPORTING

    def test_import_sets_counts(self, imported):
        assert imported.total_pages == 3
        assert imported.selected_page == 0
        assert imported.project.metadata.total_pages == 3
        assert imported.project.metadata.source_type == "Images"

    def test_state_survives_reload(self, imported, library_config):
        imported.advance()
        imported.go_to_page(2)
        imported.save_state()

        other = reopen(imported, library_config, imported.project.id)

        assert other.current_stage == WorkflowStage.PREPROCESSING
        assert other.selected_page == 2
        assert other.total_pages == 3

    def test_load_missing_project(self, coordinator):
        with pytest.raises(NotFound):
            coordinator.load_project("nope")
        assert coordinator.reporter.latest.error.kind == ErrorKind.NOT_FOUND

    def test_update_metadata(self, imported):
        metadata = imported.update_metadata(notes="Water damage")
        assert metadata.notes == "Water damage"
        assert imported.project.metadata.notes == "Water damage"

    def test_list_and_delete(self, imported):
        project_id = imported.project.id
        assert [p.id for p in imported.list_projects()] == [project_id]

        imported.delete_project(project_id)

        assert not imported.has_project
        assert imported.list_projects() == []

    def test_operations_need_a_project(self, coordinator):
        with pytest.raises(NotFound, match="No project is open"):
            coordinator.save_state()
        with pytest.raises(NotFound):
            coordinator.run_ocr(0)


class TestStageNavigation:
    def test_readiness_gates_advance_affordance(self, coordinator, page_images):
        coordinator.create_project("Ledger")
        assert not coordinator.can_advance

        coordinator.import_images(page_images)

        assert coordinator.can_advance
        assert coordinator.stage_summary() == "3 pages imported"

    def test_skip_optional_preprocessing(self, imported):
        assert imported.go_to_stage(WorkflowStage.OCR) == WorkflowStage.OCR
        assert imported.storage.load_state().current_stage == WorkflowStage.OCR

    def test_cannot_skip_required_stage(self, imported):
        with pytest.raises(StageTransitionInvalid):
            imported.go_to_stage(WorkflowStage.EDITING)
        assert imported.current_stage == WorkflowStage.IMPORTING

    def test_back_is_always_allowed(self, imported):
        imported.go_to_stage(WorkflowStage.OCR)
        assert imported.go_to_stage(WorkflowStage.SETUP) == WorkflowStage.SETUP

    def test_advance_stops_at_export(self, imported):
        for _ in range(10):
            imported.advance()
        assert imported.current_stage == WorkflowStage.EXPORTING
        assert not imported.can_advance

    def test_go_back_stops_at_setup(self, imported):
        for _ in range(10):
            imported.go_back()
        assert imported.current_stage == WorkflowStage.SETUP

    def test_summaries(self, imported):
        summaries = imported.stage_summaries()
        assert summaries[WorkflowStage.SETUP] == "Complete"
        assert summaries[WorkflowStage.OCR] == "0 / 3 pages"
        assert summaries[WorkflowStage.EXPORTING] == "Not ready"


class TestPageNavigation:
    def test_next_and_previous_clamp(self, imported):
        imported.next_page()
        imported.next_page()
        imported.next_page()
        assert imported.selected_page == 2

        for _ in range(5):
            imported.previous_page()
        assert imported.selected_page == 0

    def test_go_to_missing_page(self, imported):
        with pytest.raises(NotFound):
            imported.go_to_page(3)
        assert imported.selected_page == 0

    def test_page_image(self, imported):
        assert imported.page_image(1).size == (200, 260)


class TestImport:
    def test_failed_import_keeps_pages(self, imported, tmp_path):
        bad = tmp_path / "broken.png"
        bad.write_bytes(b"junk")

        with pytest.raises(ImportFailure):
            imported.import_images([bad])

        assert imported.total_pages == 3
        assert len(imported.storage.pages) == 3
        assert imported.reporter.latest.can_retry

    def test_zero_page_pdf(self, imported, tmp_path, monkeypatch):
        pdf = tmp_path / "empty.pdf"
        pdf.write_bytes(b"%PDF-1.4\n")
        monkeypatch.setattr(import_pages, "pdfinfo_from_path", lambda path: {"Pages": 0})

        with pytest.raises(ImportFailure):
            imported.import_pdf(pdf)

        assert imported.total_pages == 3
        assert imported.storage.load_state().total_pages == 3

    def test_reimport_resets_progress(self, imported, page_images):
        imported.run_ocr(0)
        imported.save_transcription(0, "text")

        imported.import_images(page_images[:2])

        assert imported.total_pages == 2
        assert imported.processed_pages == 0
        assert imported.completion_percentage == pytest.approx(0.2)

    def test_metadata_write_failure_keeps_committed_pages(self, coordinator, page_images, library_config, monkeypatch):
        project = coordinator.create_project("Parish Register")
        original_update = ProjectStorage.update_metadata

        def disk_full(self, **updates):
            if "total_pages" in updates:
                raise OSError(errno.ENOSPC, "No space left on device")
            return original_update(self, **updates)

        monkeypatch.setattr(ProjectStorage, "update_metadata", disk_full)

        with pytest.raises(ResourceExhausted):
            coordinator.import_images(page_images)

        assert len(coordinator.storage.pages) == 3
        assert coordinator.total_pages == 3
        assert coordinator.project.metadata.total_pages == 3
        assert coordinator.completion_percentage == pytest.approx(0.2)

        other = reopen(coordinator, library_config, project.id)
        assert other.total_pages == 3
        assert other.completion_percentage == pytest.approx(0.2)

        monkeypatch.undo()
        repaired = reopen(coordinator, library_config, project.id)
        assert repaired.total_pages == 3
        assert repaired.storage.load_metadata().total_pages == 3

    def test_reload_counts_pages_on_disk(self, imported, library_config):
        imported.storage.update_metadata(total_pages=0)

        other = reopen(imported, library_config, imported.project.id)

        assert other.total_pages == 3
        assert other.project.metadata.total_pages == 3
        assert other.storage.load_metadata().total_pages == 3

    def test_stale_import_discarded(self, imported, page_images):
        storage = imported.storage

        def reset_midway(done, total):
            if done == 1:
                imported.reset()

        result = imported.import_images(page_images[:1], progress=reset_midway)

        assert result is None
        assert len(storage.pages) == 3
        assert not any(p.name.endswith(".staging") for p in storage.project_dir.iterdir())


class TestPreprocessing:
    def test_batch_marks_metadata(self, imported):
        outcome = imported.preprocess_pages(PreprocessOptions())

        assert outcome.status == "success"
        assert imported.project.metadata.preprocessed
        assert imported.page(0).preprocessed_image is not None
        assert imported.completion_progress(0) == pytest.approx(0.2)

    def test_clear(self, imported):
        imported.preprocess_page(1, PreprocessOptions())

        imported.clear_preprocessing()

        assert imported.page(1).preprocessed_image is None
        assert not imported.project.metadata.preprocessed

    def test_preview(self, imported):
        before, after = imported.preview_preprocessing(0, PreprocessOptions())
        assert before.mode == "RGB"
        assert after.mode == "L"
        assert imported.storage.preprocessed_image(0) is None


class TestOCR:
    def test_single_page(self, imported):
        page = imported.run_ocr(0)

        assert set(page.succeeded) == {"tesseract"}
        assert imported.processed_pages == 1
        assert imported.project.metadata.ocr_engine == "tesseract"
        assert imported.completion_progress(0) == pytest.approx(0.6)

    def test_unavailable_engine_reported(self, imported):
        page = imported.run_ocr(0, engines=["tesseract", "mock"])

        assert set(page.succeeded) == {"tesseract"}
        report = imported.reporter.latest
        assert isinstance(report.error, EngineUnavailable)
        assert report.can_retry

    def test_batch(self, imported):
        progress = []
        outcome = imported.run_ocr_batch(progress=lambda done, total: progress.append(done))

        assert outcome.status == "success"
        assert progress == [1, 2, 3]
        assert imported.processed_pages == 3
        assert imported.is_stage_ready(WorkflowStage.OCR)

    def test_batch_reports_each_failed_engine(self, storage_root, library_config, page_images):
        kraken = FakeEngine("kraken", fail=True)
        coordinator = WorkflowCoordinator(
            storage_root=storage_root,
            library_config=library_config,
            engines=[FakeEngine("tesseract"), kraken],
            enhancer=FakeEnhancer(available=False),
        )
        coordinator.create_project("Ledger")
        coordinator.import_images(page_images)

        outcome = coordinator.run_ocr_batch(engines=["tesseract", "kraken"])

        assert outcome.status == "success"
        reports = coordinator.reporter.history
        assert sorted(r.error.page for r in reports) == [0, 1, 2]
        assert all(r.error.stage == "ocr" and r.can_retry for r in reports)

        kraken.fail = False
        page = reports[0].retry()

        assert set(page.succeeded) == {"kraken"}
        assert coordinator.registry.has_ocr(reports[0].error.page, "kraken")
        assert coordinator.registry.ocr_count("kraken") == 1
        coordinator.storage.close()

    def test_batch_reports_failed_pages(self, storage_root, library_config, page_images):
        tesseract = FakeEngine("tesseract", fail=True)
        coordinator = WorkflowCoordinator(
            storage_root=storage_root,
            library_config=library_config,
            engines=[tesseract],
            enhancer=FakeEnhancer(available=False),
        )
        coordinator.create_project("Ledger")
        coordinator.import_images(page_images)

        outcome = coordinator.run_ocr_batch()

        assert outcome.status == "failed"
        assert len(coordinator.reporter.history) == 3

        tesseract.fail = False
        coordinator.reporter.latest.retry()

        assert coordinator.processed_pages == 1
        coordinator.storage.close()

    def test_enabled_library_engines_are_offered(self, storage_root, library_config, monkeypatch):
        def refuse(url, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", refuse)
        coordinator = WorkflowCoordinator(
            storage_root=storage_root,
            library_config=library_config,
            enhancer=FakeEnhancer(available=False),
        )
        coordinator.create_project("Ledger")

        assert set(coordinator.ocr.engines) == {"tesseract", "ollama"}
        assert not coordinator.ocr.is_available("ollama")
        coordinator.storage.close()

    def test_result_discarded_after_reset(self, imported, engines, monkeypatch):
        engine = engines[0]
        original = engine.recognize
        storage = imported.storage

        def recognize_then_reset(image, language, options=None):
            result = original(image, language, options)
            imported.reset()
            return result

        monkeypatch.setattr(engine, "recognize", recognize_then_reset)

        page = imported.run_ocr(0)

        assert page.discarded
        assert not storage.has_ocr_result(0)

    def test_select_engine_persists(self, imported, library_config):
        imported.run_ocr(0)
        imported.storage.save_ocr_result(
            0, "mock", "Mock text", imported.storage.load_ocr_result(0, "tesseract")[1].model_copy(update={"engine": "mock"}),
        )
        imported.registry.rebuild()

        imported.select_engine(0, "mock")

        assert imported.transcription_text(0) == "Mock text"
        assert imported.load_ocr_result(0)[0] == "Mock text"
        other = reopen(imported, library_config, imported.project.id)
        assert other.page(0).selected_engine == "mock"

    def test_select_engine_without_result(self, imported):
        with pytest.raises(NotFound):
            imported.select_engine(0, "mock")


class TestEnhancementAndTranscription:
    def test_transcription_falls_back_to_ocr(self, imported):
        assert imported.transcription_text(0) == ""
        imported.run_ocr(0)
        assert imported.transcription_text(0) == "Parish register, page text"

    def test_enhance_page_does_not_save(self, imported):
        imported.run_ocr(0)

        enhanced = imported.enhance_page(0)

        assert enhanced == "Parish register, page text [enhanced]"
        assert not imported.storage.has_transcription(0)

    def test_recheck_enhancer_availability(self, storage_root, library_config, engines):
        enhancer = FakeEnhancer(available=False)
        coordinator = WorkflowCoordinator(
            storage_root=storage_root,
            library_config=library_config,
            engines=engines,
            enhancer=enhancer,
        )
        assert not coordinator.enhancement.wait_for_probe(5)
        assert not coordinator.enhancement_available

        enhancer.available = True
        coordinator.reprobe_enhancer()

        assert coordinator.enhancement.wait_for_probe(5)
        assert coordinator.enhancement_available

    def test_enhancer_failure(self, storage_root, library_config, engines, page_images):
        coordinator = WorkflowCoordinator(
            storage_root=storage_root,
            library_config=library_config,
            engines=engines,
            enhancer=FakeEnhancer(fail=True),
        )
        coordinator.create_project("Ledger")

        with pytest.raises(EngineUnavailable):
            coordinator.enhance_text("x")

    def test_save_enhanced_transcription(self, imported):
        imported.save_transcription(0, "Final text", enhanced=True)

        assert imported.transcription_text(0) == "Final text"
        assert imported.project.metadata.enhanced
        with open(imported.storage.selections_file) as f:
            assert json.load(f)["pages"] == [{"index": 0, "selectedEngine": None, "enhanced": True}]

    def test_save_transcription_for_missing_page(self, imported):
        with pytest.raises(NotFound):
            imported.save_transcription(5, "x")


class TestEndToEnd:
    def test_partial_workflow_export(self, imported):
        imported.go_to_stage(WorkflowStage.OCR)
        imported.run_ocr(0)
        imported.advance()
        imported.save_transcription(0, imported.transcription_text(0))

        assert imported.completion_percentage == pytest.approx((1.0 + 0.2 + 0.2) / 3)
        assert not imported.is_stage_ready(WorkflowStage.EXPORTING)

        imported.advance()
        result = imported.export()

        assert result.partial
        assert result.missing_pages == [1, 2]
        assert result.text.count("<!-- Page ") == 1
        assert "<!-- Page 1 -->\n\nParish register, page text" in result.text
        assert result.path.read_text() == result.text

    def test_complete_export(self, imported, tmp_path):
        for i in range(3):
            imported.save_transcription(i, f"Page {i + 1} text")

        assert imported.is_stage_ready(WorkflowStage.EXPORTING)
        result = imported.export(output_path=tmp_path / "out.md", include_frontmatter=False)

        assert not result.partial
        assert result.text.startswith("<!-- Page 1 -->")

    def test_preview_export(self, imported):
        imported.save_transcription(1, "x")
        result = imported.export(preview=True)
        assert result.path is None
        assert result.text.startswith("---\n")

    def test_processed_image_used_for_ocr(self, imported, engines, monkeypatch):
        imported.storage.save_preprocessed(0, Image.new('L', (50, 70), color=255))
        sizes = []
        original = engines[0].recognize
        monkeypatch.setattr(engines[0], "recognize", lambda image, *a: sizes.append(image.size) or original(image, *a))

        imported.run_ocr(0)

        assert sizes == [(50, 70)]
