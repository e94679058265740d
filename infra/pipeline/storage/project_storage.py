import io
import json
import os
import shutil
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from PIL import Image
from pydantic import ValidationError

from infra.errors import NotFound, ProjectIOError
from infra.pipeline.storage import layout
from infra.pipeline.storage.atomic import atomic_write_bytes, atomic_write_json, atomic_write_text
from infra.pipeline.storage.schemas import OCRResultMetadata, PageSelections, ProjectMetadata
from infra.pipeline.storage.workflow_state import (
    WorkflowState,
    load_workflow_state,
    save_workflow_state,
)

FRONTMATTER_DELIMITER = "---"


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split an optional leading YAML block delimited by '---' lines."""
    if not text.startswith(FRONTMATTER_DELIMITER + "\n"):
        return {}, text

    end = text.find("\n" + FRONTMATTER_DELIMITER, len(FRONTMATTER_DELIMITER))
    if end == -1:
        return {}, text

    header = text[len(FRONTMATTER_DELIMITER) + 1:end]
    body = text[end + len(FRONTMATTER_DELIMITER) + 1:]
    if body.startswith("\n"):
        body = body[1:]

    try:
        data = yaml.safe_load(header) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, body


def render_frontmatter(data: Dict[str, Any]) -> str:
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return f"{FRONTMATTER_DELIMITER}\n{dumped}{FRONTMATTER_DELIMITER}\n"


class ProjectStorage:
    """Filesystem access for one project directory.

    Directories are created on demand. Page artifacts are tracked through
    PageFileTables that are scanned once and updated on every write.
    """
    def __init__(self, project_id: str, storage_root: Optional[Path] = None):
        self._project_id = project_id
        self._storage_root = Path(storage_root or Path.home() / "Documents" / "scriptorium").expanduser()
        self._project_dir = self._storage_root / project_id

        self._lock = threading.RLock()
        self._tables: Dict[str, layout.PageFileTable] = {}
        self._ocr_tables: Dict[str, layout.PageFileTable] = {}
        self._loggers: Dict[str, Any] = {}

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    @property
    def exists(self) -> bool:
        return self.metadata_file.exists()

    @property
    def source_dir(self) -> Path:
        return self._project_dir / layout.SOURCE_DIR

    @property
    def pages_dir(self) -> Path:
        return self._project_dir / layout.PAGES_DIR

    @property
    def preprocessed_dir(self) -> Path:
        return self._project_dir / layout.PREPROCESSED_DIR

    @property
    def ocr_dir(self) -> Path:
        return self._project_dir / layout.OCR_DIR

    @property
    def transcription_dir(self) -> Path:
        return self._project_dir / layout.TRANSCRIPTION_DIR

    @property
    def sidecar_dir(self) -> Path:
        return self._project_dir / layout.SIDECAR_DIR

    @property
    def logs_dir(self) -> Path:
        return self.sidecar_dir / layout.LOGS_DIR

    @property
    def metadata_file(self) -> Path:
        return self.sidecar_dir / layout.PROJECT_METADATA_FILENAME

    @property
    def selections_file(self) -> Path:
        return self.sidecar_dir / layout.PAGE_SELECTIONS_FILENAME

    @property
    def workflow_state_file(self) -> Path:
        return self.sidecar_dir / layout.WORKFLOW_STATE_FILENAME

    def ensure_directories(self) -> None:
        for name in layout.PROJECT_DIRECTORIES:
            (self._project_dir / name).mkdir(parents=True, exist_ok=True)

    def _table(self, key: str, directory: Path, extensions: Optional[List[str]] = None) -> layout.PageFileTable:
        with self._lock:
            if key not in self._tables:
                self._tables[key] = layout.PageFileTable(directory, extensions)
            return self._tables[key]

    @property
    def pages(self) -> layout.PageFileTable:
        return self._table(layout.PAGES_DIR, self.pages_dir)

    @property
    def preprocessed(self) -> layout.PageFileTable:
        return self._table(layout.PREPROCESSED_DIR, self.preprocessed_dir, ["png"])

    @property
    def transcriptions(self) -> layout.PageFileTable:
        return self._table(layout.TRANSCRIPTION_DIR, self.transcription_dir, ["md"])

    def ocr_results(self, engine: str) -> layout.PageFileTable:
        with self._lock:
            if engine not in self._ocr_tables:
                self._ocr_tables[engine] = layout.PageFileTable(self.ocr_dir / engine, ["txt"])
            return self._ocr_tables[engine]

    def refresh(self) -> None:
        """Rescan every page directory."""
        with self._lock:
            self._tables.clear()
            self._ocr_tables.clear()
            for engine in self.list_ocr_engines():
                self.ocr_results(engine)

    def list_ocr_engines(self) -> List[str]:
        if not self.ocr_dir.is_dir():
            return []
        return sorted(
            item.name for item in self.ocr_dir.iterdir()
            if item.is_dir() and not item.name.startswith('.')
        )

    # Page images

    def page_image(self, index: int) -> Optional[Path]:
        return self.pages.get(index)

    def preprocessed_image(self, index: int) -> Optional[Path]:
        return self.preprocessed.get(index)

    def resolve_page_image(self, index: int) -> Path:
        path = self.preprocessed_image(index) or self.page_image(index)
        if path is None:
            raise NotFound(
                f"No image for page {index + 1}",
                suggestion="Import the document before processing pages.",
            )
        return path

    def load_page_image(self, index: int) -> Image.Image:
        path = self.resolve_page_image(index)
        with Image.open(path) as image:
            image.load()
            return image.copy()

    def staging_dir(self) -> Path:
        path = self._project_dir / f".{layout.PAGES_DIR}.staging"
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
        return path

    def replace_pages(self, staged_dir: Path) -> List[Path]:
        """Swap a fully written staging directory in as pages/."""
        with self._lock:
            backup = self._project_dir / f".{layout.PAGES_DIR}.old"
            if backup.exists():
                shutil.rmtree(backup)
            if self.pages_dir.exists():
                os.replace(self.pages_dir, backup)
            os.replace(staged_dir, self.pages_dir)
            if backup.exists():
                shutil.rmtree(backup)

            self.pages.refresh()
            return [self.pages.get(i) for i in self.pages.indices()]

    def save_preprocessed(self, index: int, image: Image.Image) -> Path:
        path = self.preprocessed_dir / layout.page_filename(index, "png")
        path.parent.mkdir(parents=True, exist_ok=True)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        atomic_write_bytes(path, buffer.getvalue())
        self.preprocessed.set(index, path)
        return path

    def copy_to_source(self, source_path: Path) -> Path:
        source_path = Path(source_path)
        self.source_dir.mkdir(parents=True, exist_ok=True)
        target = self.source_dir / source_path.name
        if target.resolve() != source_path.resolve():
            shutil.copy2(source_path, target)
        return target

    def clear_source(self, keep: Optional[List[Path]] = None) -> None:
        """Empty source/, sparing any of `keep` that already live there."""
        keep_resolved = {Path(p).resolve() for p in keep or []}
        if self.source_dir.exists():
            for item in self.source_dir.iterdir():
                if item.resolve() in keep_resolved:
                    continue
                if item.is_dir():
                    shutil.rmtree(item)
                else:
                    item.unlink()
        self.source_dir.mkdir(parents=True, exist_ok=True)

    # OCR results

    def ocr_result_path(self, index: int, engine: str) -> Path:
        return self.ocr_dir / engine / layout.page_filename(index, "txt")

    def save_ocr_result(self, index: int, engine: str, text: str, metadata: OCRResultMetadata) -> Path:
        text_path = self.ocr_result_path(index, engine)
        atomic_write_text(text_path, text)
        atomic_write_json(
            text_path.with_suffix(".json"),
            metadata.model_dump(mode="json", by_alias=True),
        )
        self.ocr_results(engine).set(index, text_path)
        return text_path

    def has_ocr_result(self, index: int, engine: Optional[str] = None) -> bool:
        """Checked against the files on disk, not the cached tables."""
        engines = [engine] if engine else self.list_ocr_engines()
        return any(self.ocr_result_path(index, e).exists() for e in engines)

    def load_ocr_result(self, index: int, engine: str) -> Tuple[str, Optional[OCRResultMetadata]]:
        text_path = self.ocr_results(engine).get(index)
        if text_path is None:
            raise NotFound(
                f"No {engine} result for page {index + 1}",
                suggestion="Run OCR on this page first.",
            )

        with open(text_path, 'r', encoding='utf-8') as f:
            text = f.read()

        metadata = None
        metadata_path = text_path.with_suffix(".json")
        if metadata_path.exists():
            try:
                with open(metadata_path, 'r', encoding='utf-8') as f:
                    metadata = OCRResultMetadata.model_validate(json.load(f))
            except (ValueError, ValidationError) as e:
                self.logger(layout.OCR_DIR).warning(
                    f"Unreadable OCR metadata {metadata_path.name}: {e}",
                    page=index, engine=engine,
                )
        return text, metadata

    # Transcriptions

    def transcription_path(self, index: int) -> Path:
        return self.transcription_dir / layout.page_filename(index, "md")

    def save_transcription(self, index: int, text: str, frontmatter: Optional[Dict[str, Any]] = None) -> Path:
        path = self.transcription_path(index)
        content = render_frontmatter(frontmatter) + text if frontmatter else text
        atomic_write_text(path, content)
        self.transcriptions.set(index, path)
        return path

    def has_transcription(self, index: int) -> bool:
        return index in self.transcriptions

    def load_transcription(self, index: int) -> Tuple[Dict[str, Any], str]:
        path = self.transcriptions.get(index)
        if path is None:
            raise NotFound(f"No transcription for page {index + 1}")
        with open(path, 'r', encoding='utf-8') as f:
            return split_frontmatter(f.read())

    def list_transcription_files(self) -> List[Path]:
        if not self.transcription_dir.is_dir():
            return []
        return sorted(
            (p for p in self.transcription_dir.iterdir()
             if p.is_file() and layout.parse_page_filename(p.name) and p.suffix == ".md"),
            key=lambda p: p.name,
        )

    def clear_page_artifacts(self) -> None:
        """Remove every page-derived artifact (pages, preprocessed, ocr, transcription)."""
        with self._lock:
            for directory in (self.pages_dir, self.preprocessed_dir, self.ocr_dir, self.transcription_dir):
                if directory.exists():
                    shutil.rmtree(directory)
                directory.mkdir(parents=True, exist_ok=True)
            self._tables.clear()
            self._ocr_tables.clear()

    def clear_preprocessed(self) -> None:
        with self._lock:
            if self.preprocessed_dir.exists():
                shutil.rmtree(self.preprocessed_dir)
            self.preprocessed_dir.mkdir(parents=True, exist_ok=True)
            self.preprocessed.refresh()

    # Sidecar records

    def load_metadata(self) -> ProjectMetadata:
        if not self.metadata_file.exists():
            raise NotFound(f"Project {self._project_id} not found")
        try:
            with open(self.metadata_file, 'r', encoding='utf-8') as f:
                return ProjectMetadata.model_validate(json.load(f))
        except (ValueError, ValidationError) as e:
            raise ProjectIOError(
                f"Project metadata for {self._project_id} is unreadable",
                reason=str(e),
            ) from e

    def save_metadata(self, metadata: ProjectMetadata) -> None:
        atomic_write_json(self.metadata_file, metadata.model_dump(mode="json"))

    def update_metadata(self, **updates) -> ProjectMetadata:
        with self._lock:
            metadata = self.load_metadata()
            metadata = metadata.model_copy(update=updates)
            metadata.mark_modified()
            self.save_metadata(metadata)
            return metadata

    def load_selections(self) -> PageSelections:
        if not self.selections_file.exists():
            return PageSelections()
        try:
            with open(self.selections_file, 'r', encoding='utf-8') as f:
                return PageSelections.model_validate(json.load(f))
        except (ValueError, ValidationError) as e:
            self.logger("workflow").warning(f"Ignoring unreadable page selections: {e}")
            return PageSelections()

    def save_selections(self, selections: PageSelections) -> None:
        atomic_write_json(self.selections_file, selections.model_dump(mode="json", by_alias=True))

    def load_state(self) -> WorkflowState:
        return load_workflow_state(self.workflow_state_file)

    def save_state(self, state: WorkflowState) -> WorkflowState:
        return save_workflow_state(self.workflow_state_file, state)

    def logger(self, stage: str):
        """JSONL logger for a stage, written to .scriptorium/logs/<stage>.jsonl."""
        with self._lock:
            if stage not in self._loggers:
                from infra.pipeline.logger import StageLogger
                log_level = "DEBUG" if os.environ.get("DEBUG", "").lower() in ("true", "1", "yes") else "INFO"
                self._loggers[stage] = StageLogger(
                    self._project_id,
                    stage,
                    log_dir=self.logs_dir,
                    level=log_level,
                )
            return self._loggers[stage]

    def close(self) -> None:
        with self._lock:
            for pipeline_logger in self._loggers.values():
                pipeline_logger.close()
            self._loggers.clear()
