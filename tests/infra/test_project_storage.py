"""
Tests for ProjectStorage.

All tests use real filesystem operations - no mocking.
"""

import json

import pytest
from PIL import Image

from infra.errors import NotFound, ProjectIOError
from infra.pipeline.storage import OCRResultMetadata, PageSelection, PageSelections
from infra.pipeline.storage.project_storage import render_frontmatter, split_frontmatter


class TestLayout:
    def test_directories_created(self, project_storage):
        for name in ["source", "pages", "preprocessed", "ocr", "transcription", ".scriptorium"]:
            assert (project_storage.project_dir / name).is_dir()

    def test_sidecar_files(self, project_storage):
        assert project_storage.metadata_file.name == "project.json"
        assert project_storage.workflow_state_file.name == "workflow_state.json"
        assert project_storage.exists


class TestPageImages:
    def test_resolve_prefers_preprocessed(self, storage_with_pages):
        assert storage_with_pages.resolve_page_image(1).parent.name == "pages"

        storage_with_pages.save_preprocessed(1, Image.new('L', (10, 10), color=255))

        assert storage_with_pages.resolve_page_image(1).name == "page_001.png"
        assert storage_with_pages.resolve_page_image(1).parent.name == "preprocessed"
        assert storage_with_pages.resolve_page_image(0).parent.name == "pages"

    def test_resolve_missing_page(self, storage_with_pages):
        with pytest.raises(NotFound):
            storage_with_pages.resolve_page_image(7)

    def test_load_page_image_is_detached(self, storage_with_pages):
        image = storage_with_pages.load_page_image(0)
        assert image.size == (200, 260)

    def test_clear_preprocessed(self, storage_with_pages):
        storage_with_pages.save_preprocessed(0, Image.new('L', (10, 10)))
        storage_with_pages.clear_preprocessed()
        assert storage_with_pages.preprocessed_image(0) is None
        assert storage_with_pages.preprocessed_dir.is_dir()

    def test_replace_pages(self, storage_with_pages):
        staging = storage_with_pages.staging_dir()
        Image.new('RGB', (5, 5)).save(staging / "page_000.jpg")

        pages = storage_with_pages.replace_pages(staging)

        assert [p.name for p in pages] == ["page_000.jpg"]
        assert not staging.exists()
        assert storage_with_pages.page_image(1) is None


class TestOCRResults:
    def test_save_and_load(self, project_storage):
        metadata = OCRResultMetadata(confidence=0.87, language="eng", processing_time=1.5,
                                     engine="tesseract", regions_count=4)
        path = project_storage.save_ocr_result(2, "tesseract", "Some text", metadata)

        assert path == project_storage.ocr_dir / "tesseract" / "page_002.txt"
        text, loaded = project_storage.load_ocr_result(2, "tesseract")
        assert text == "Some text"
        assert loaded.confidence == 0.87
        assert loaded.regions_count == 4

    def test_metadata_uses_camel_case(self, project_storage):
        metadata = OCRResultMetadata(engine="tesseract", processing_time=0.5, regions_count=2)
        path = project_storage.save_ocr_result(0, "tesseract", "x", metadata)

        with open(path.with_suffix(".json")) as f:
            data = json.load(f)

        assert set(data) == {"confidence", "language", "processingTime", "engine", "regionsCount", "timestamp"}

    def test_has_ocr_result(self, project_storage):
        project_storage.save_ocr_result(0, "mock", "x", OCRResultMetadata(engine="mock"))
        assert project_storage.has_ocr_result(0)
        assert project_storage.has_ocr_result(0, "mock")
        assert not project_storage.has_ocr_result(0, "tesseract")
        assert not project_storage.has_ocr_result(1)
        assert project_storage.list_ocr_engines() == ["mock"]

    def test_has_ocr_result_follows_disk(self, project_storage):
        path = project_storage.ocr_result_path(2, "kraken")
        path.parent.mkdir(parents=True)
        path.write_text("x")

        assert project_storage.has_ocr_result(2, "kraken")
        assert project_storage.has_ocr_result(2)

        path.unlink()
        assert not project_storage.has_ocr_result(2)

    def test_load_missing(self, project_storage):
        with pytest.raises(NotFound):
            project_storage.load_ocr_result(0, "tesseract")

    def test_corrupt_metadata_still_returns_text(self, project_storage):
        path = project_storage.save_ocr_result(0, "tesseract", "text", OCRResultMetadata(engine="tesseract"))
        path.with_suffix(".json").write_text("{broken")

        text, metadata = project_storage.load_ocr_result(0, "tesseract")

        assert text == "text"
        assert metadata is None


class TestTranscriptions:
    def test_plain_text(self, project_storage):
        path = project_storage.save_transcription(0, "Final text")
        assert path.name == "page_000.md"
        assert project_storage.load_transcription(0) == ({}, "Final text")

    def test_with_frontmatter(self, project_storage):
        project_storage.save_transcription(1, "Body", frontmatter={"reviewer": "ana"})

        raw = project_storage.transcription_path(1).read_text()
        assert raw.startswith("---\nreviewer: ana\n---\n")
        assert project_storage.load_transcription(1) == ({"reviewer": "ana"}, "Body")

    def test_list_ignores_non_page_files(self, project_storage):
        project_storage.save_transcription(2, "b")
        project_storage.save_transcription(0, "a")
        (project_storage.transcription_dir / "notes.md").write_text("ignore me")
        (project_storage.transcription_dir / "page_001.txt").write_text("wrong extension")

        names = [p.name for p in project_storage.list_transcription_files()]

        assert names == ["page_000.md", "page_002.md"]

    def test_missing(self, project_storage):
        assert not project_storage.has_transcription(0)
        with pytest.raises(NotFound):
            project_storage.load_transcription(0)


class TestFrontmatter:
    def test_split_without_header(self):
        assert split_frontmatter("just text\n") == ({}, "just text\n")

    def test_split_round_trip(self):
        text = render_frontmatter({"title": "Register", "pages": 3}) + "Body\n"
        assert split_frontmatter(text) == ({"title": "Register", "pages": 3}, "Body\n")

    def test_unterminated_header_is_body(self):
        text = "---\ntitle: x\nno end"
        assert split_frontmatter(text) == ({}, text)


class TestSidecars:
    def test_metadata_update(self, project_storage):
        before = project_storage.load_metadata()
        updated = project_storage.update_metadata(total_pages=9, source_type="PDF")

        assert updated.total_pages == 9
        assert updated.modified >= before.modified
        assert project_storage.load_metadata().source_type == "PDF"

    def test_corrupt_metadata_raises(self, project_storage):
        project_storage.metadata_file.write_text("{")
        with pytest.raises(ProjectIOError):
            project_storage.load_metadata()

    def test_selections_round_trip(self, project_storage):
        selections = PageSelections(pages=[PageSelection(index=1, selected_engine="mock", enhanced=True)])
        project_storage.save_selections(selections)

        with open(project_storage.selections_file) as f:
            assert json.load(f)["pages"][0]["selectedEngine"] == "mock"
        assert project_storage.load_selections().by_index()[1].enhanced

    def test_corrupt_selections_ignored(self, project_storage):
        project_storage.selections_file.write_text("nope")
        assert project_storage.load_selections().pages == []


class TestLogging:
    def test_stage_logger_writes_jsonl(self, project_storage):
        project_storage.logger("ocr").info("Recognized", page=1, engine="mock")

        log_file = project_storage.logs_dir / "ocr.jsonl"
        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "Recognized"
        assert entry["project_id"] == project_storage.project_id
        assert entry["stage"] == "ocr"
        assert entry["engine"] == "mock"
