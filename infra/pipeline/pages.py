"""
Per-page records and the progress model.

Completion of a page is a weighted sum over which canonical artifacts
exist on disk:

  original image          0.2
  any OCR result          0.4
  saved transcription     0.4

The registry caches paths for display, but every completion and readiness
figure is computed from the filesystem, so it can always be rebuilt.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from infra.errors import NotFound
from infra.pipeline.stages import WorkflowStage
from infra.pipeline.storage.project_storage import ProjectStorage
from infra.pipeline.storage.schemas import PageSelection, PageSelections

COMPLETION_WEIGHTS = {
    'original': 0.2,
    'ocr': 0.4,
    'transcription': 0.4,
}


@dataclass
class PageRecord:
    index: int
    original_image: Optional[Path] = None
    preprocessed_image: Optional[Path] = None
    ocr_results: Dict[str, Path] = field(default_factory=dict)
    selected_engine: Optional[str] = None
    enhanced: bool = False
    transcription: Optional[Path] = None

    @property
    def display_number(self) -> str:
        return f"Page {self.index + 1}"

    @property
    def selected_result(self) -> Optional[Path]:
        if self.selected_engine is None:
            return None
        return self.ocr_results.get(self.selected_engine)


class PageRegistry:
    def __init__(self, storage: ProjectStorage, default_engine: str = "tesseract"):
        self.storage = storage
        self.default_engine = default_engine
        self._lock = threading.RLock()
        self._records: List[PageRecord] = []

    def initialize(self, count: int) -> None:
        """Replace every record with `count` fresh pages (used by import)."""
        if count < 0:
            raise ValueError(f"Page count must be non-negative: {count}")
        with self._lock:
            self._records = [PageRecord(index=i) for i in range(count)]
            self._populate(PageSelections())

    def rebuild(self, count: Optional[int] = None) -> None:
        """Re-derive every record from the files on disk."""
        with self._lock:
            if count is None:
                count = len(self._records)
            self.storage.refresh()
            self._records = [PageRecord(index=i) for i in range(count)]
            self._populate(self.storage.load_selections())

    def _populate(self, selections: PageSelections) -> None:
        chosen = selections.by_index()
        engines = self.storage.list_ocr_engines()
        for record in self._records:
            i = record.index
            record.original_image = self.storage.page_image(i)
            record.preprocessed_image = self.storage.preprocessed_image(i)
            record.ocr_results = {}
            for engine in engines:
                path = self.storage.ocr_results(engine).get(i)
                if path is not None:
                    record.ocr_results[engine] = path
            record.transcription = self.storage.transcriptions.get(i)
            if i in chosen:
                record.selected_engine = chosen[i].selected_engine
                record.enhanced = chosen[i].enhanced

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PageRecord]:
        with self._lock:
            return iter(list(self._records))

    @property
    def total_pages(self) -> int:
        return len(self._records)

    def get(self, index: int) -> PageRecord:
        with self._lock:
            if not 0 <= index < len(self._records):
                raise NotFound(f"Page {index + 1} does not exist (project has {len(self._records)} pages)")
            return self._records[index]

    # Artifact predicates, evaluated against the filesystem

    def has_original(self, index: int) -> bool:
        return self.storage.page_image(index) is not None

    def is_preprocessed(self, index: int) -> bool:
        return self.storage.preprocessed_image(index) is not None

    def has_ocr(self, index: int, engine: Optional[str] = None) -> bool:
        return self.storage.has_ocr_result(index, engine)

    def has_transcription(self, index: int) -> bool:
        return self.storage.transcription_path(index).exists()

    def completion_progress(self, index: int) -> float:
        progress = 0.0
        if self.has_original(index):
            progress += COMPLETION_WEIGHTS['original']
        if self.has_ocr(index):
            progress += COMPLETION_WEIGHTS['ocr']
        if self.has_transcription(index):
            progress += COMPLETION_WEIGHTS['transcription']
        return round(progress, 6)

    @property
    def completion_percentage(self) -> float:
        count = len(self._records)
        if count == 0:
            return 0.0
        return sum(self.completion_progress(i) for i in range(count)) / count

    # Counts

    def ocr_count(self, engine: Optional[str] = None) -> int:
        return sum(1 for i in range(len(self._records)) if self.has_ocr(i, engine))

    def ocr_counts(self) -> Dict[str, int]:
        return {e: self.ocr_count(e) for e in self.storage.list_ocr_engines()}

    def preprocessed_count(self) -> int:
        return sum(1 for i in range(len(self._records)) if self.is_preprocessed(i))

    def transcribed_count(self) -> int:
        return sum(1 for i in range(len(self._records)) if self.has_transcription(i))

    def missing_transcriptions(self) -> List[int]:
        return [i for i in range(len(self._records)) if not self.has_transcription(i)]

    # Readiness

    def is_ready(self, stage: WorkflowStage, project_open: bool = True) -> bool:
        total = len(self._records)
        if stage == WorkflowStage.SETUP:
            return project_open
        if stage == WorkflowStage.IMPORTING:
            return total > 0
        if stage == WorkflowStage.PREPROCESSING:
            return True
        if stage == WorkflowStage.OCR:
            return self.ocr_count(self.default_engine) > 0
        if stage == WorkflowStage.EDITING:
            return self.transcribed_count() > 0
        if stage == WorkflowStage.EXPORTING:
            return total > 0 and self.transcribed_count() == total
        raise ValueError(f"Unknown stage: {stage}")

    def stage_summary(self, stage: WorkflowStage, project_open: bool = True) -> str:
        total = len(self._records)
        if stage == WorkflowStage.SETUP:
            return "Complete" if project_open else "Not started"
        if stage == WorkflowStage.IMPORTING:
            return f"{total} pages imported" if total > 0 else "Not started"
        if stage == WorkflowStage.PREPROCESSING:
            return f"{self.preprocessed_count()} / {total} pages"
        if stage == WorkflowStage.OCR:
            return f"{self.ocr_count(self.default_engine)} / {total} pages"
        if stage == WorkflowStage.EDITING:
            return f"{self.transcribed_count()} / {total} pages"
        if stage == WorkflowStage.EXPORTING:
            return "Ready" if self.is_ready(stage) else "Not ready"
        raise ValueError(f"Unknown stage: {stage}")

    # Record updates; callers hold the coordinator lock

    def apply_ocr_results(self, index: int, results: Dict[str, Path]) -> PageRecord:
        with self._lock:
            record = self.get(index)
            merged = dict(record.ocr_results)
            merged.update(results)
            record.ocr_results = merged
            return record

    def set_preprocessed(self, index: int, path: Optional[Path]) -> None:
        with self._lock:
            self.get(index).preprocessed_image = path

    def clear_preprocessed(self) -> None:
        with self._lock:
            for record in self._records:
                record.preprocessed_image = None

    def select_engine(self, index: int, engine: str) -> PageRecord:
        with self._lock:
            record = self.get(index)
            if not self.has_ocr(index, engine):
                raise NotFound(
                    f"No {engine} result for page {index + 1}",
                    suggestion="Run OCR with this engine before selecting it.",
                )
            record.selected_engine = engine
            record.ocr_results = {**record.ocr_results, engine: self.storage.ocr_result_path(index, engine)}
            return record

    def set_transcription(self, index: int, path: Path, enhanced: Optional[bool] = None) -> PageRecord:
        with self._lock:
            record = self.get(index)
            record.transcription = path
            if enhanced is not None:
                record.enhanced = enhanced
            return record

    def selections(self) -> PageSelections:
        with self._lock:
            return PageSelections(pages=[
                PageSelection(index=r.index, selected_engine=r.selected_engine, enhanced=r.enhanced)
                for r in self._records
                if r.selected_engine is not None or r.enhanced
            ])
