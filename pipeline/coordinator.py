"""
WorkflowCoordinator: the session handle for one open project.

The coordinator owns the current stage, selected page, page registry and
progress counters. Every mutation of that state happens under its lock.
Long operations (import, preprocessing, OCR, enhancement) compute their
results outside the lock, capture the generation at invocation and drop
their result when the generation moved on (reset, load, create).
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from PIL import Image

from infra.config import LibraryConfig, ResolvedProjectConfig, get_storage_root, load_library_config
from infra.config.project_config import ProjectConfigManager
from infra.errors import ErrorReporter, NotFound, WorkflowError
from infra.llm import TextEnhancer
from infra.ocr import OCREngine, OCROptions
from infra.pipeline.batch import BatchOutcome, ProgressCallback
from infra.pipeline.pages import PageRecord, PageRegistry
from infra.pipeline.stages import (
    STAGE_ORDER,
    WorkflowStage,
    next_stage,
    previous_stage,
    require_transition,
)
from infra.pipeline.storage import (
    Project,
    ProjectLibrary,
    ProjectMetadata,
    ProjectStorage,
    WorkflowState,
)
from pipeline.enhance import EnhancementService
from pipeline.export import Exporter, ExportResult
from pipeline.import_pages import DocumentImporter, StagedImport
from pipeline.ocr_pages import OCROrchestrator, PageOCROutcome
from pipeline.preprocess import Preprocessor, PreprocessOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkflowCoordinator:
    def __init__(
        self,
        storage_root: Optional[Path] = None,
        library_config: Optional[LibraryConfig] = None,
        engines: Optional[List[OCREngine]] = None,
        enhancer: Optional[TextEnhancer] = None,
        reporter: Optional[ErrorReporter] = None,
    ):
        self.storage_root = Path(storage_root) if storage_root else get_storage_root()
        self.library_config = library_config or load_library_config(self.storage_root)
        self.library = ProjectLibrary(self.storage_root)
        self.reporter = reporter or ErrorReporter()

        self._engine_overrides = engines
        self._lock = threading.RLock()
        self._generation = 0

        self.project: Optional[Project] = None
        self.storage: Optional[ProjectStorage] = None
        self.registry: Optional[PageRegistry] = None
        self.config: Optional[ResolvedProjectConfig] = None
        self.state = WorkflowState()
        self.status_message = ""
        self._ocr: Optional[OCROrchestrator] = None

        if enhancer is not None:
            self.enhancement = EnhancementService(enhancer, context=self.library_config.enhancer.context)
        else:
            self.enhancement = EnhancementService.from_config(self.library_config.enhancer)

    # Session bookkeeping

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> Callable[[], bool]:
        return lambda: self._generation == generation

    @property
    def has_project(self) -> bool:
        return self.project is not None

    @property
    def current_stage(self) -> WorkflowStage:
        return self.state.current_stage

    @property
    def selected_page(self) -> Optional[int]:
        return self.state.selected_page

    @property
    def total_pages(self) -> int:
        return self.state.total_pages

    @property
    def processed_pages(self) -> int:
        return self.state.processed_pages

    def _update_status(self, message: str) -> None:
        self.status_message = message
        logger.info(message)

    def _require_project(self) -> ProjectStorage:
        if self.storage is None:
            raise NotFound("No project is open", suggestion="Create or load a project first.")
        return self.storage

    def _run(
        self,
        operation: Callable[[], T],
        retry: Optional[Callable[[], Any]] = None,
        stage: Optional[str] = None,
        page: Optional[int] = None,
    ) -> T:
        """Run an operation, reporting any failure with its retry continuation."""
        try:
            return operation()
        except Exception as e:
            report = self.reporter.report(e, retry=retry, stage=stage, page=page)
            self.status_message = report.message
            if report.error is e:
                raise
            raise report.error from e

    def _save_state_unlocked(self) -> None:
        if self.storage is not None:
            self.state = self.storage.save_state(self.state)

    def _save_selections_unlocked(self) -> None:
        if self.storage is not None and self.registry is not None:
            self.storage.save_selections(self.registry.selections())

    # Project lifecycle

    def _open(self, project: Project, state: Optional[WorkflowState] = None) -> None:
        storage = self.library.get_project_storage(project.id)
        config = ProjectConfigManager(storage.project_dir).resolve(self.library_config)

        if state is None:
            state = storage.load_state()

        storage.refresh()
        indices = storage.pages.indices()
        page_count = indices[-1] + 1 if indices else 0
        if page_count != project.metadata.total_pages:
            project.metadata = self._recover_page_count(storage, project.metadata, page_count)

        registry = PageRegistry(storage, default_engine=config.default_engine)
        registry.rebuild(count=page_count)

        updates: Dict[str, Any] = {"total_pages": registry.total_pages}
        if state.selected_page is not None and state.selected_page >= registry.total_pages:
            updates["selected_page"] = None
        state = state.model_copy(update=updates)

        with self._lock:
            self._generation += 1
            self.project = project
            self.storage = storage
            self.config = config
            self.registry = registry
            self.state = state
            self._ocr = None

    def _recover_page_count(self, storage: ProjectStorage, metadata: ProjectMetadata, page_count: int) -> ProjectMetadata:
        """Pages on disk win over project.json; write the count back when possible."""
        logger.warning(
            f"Project {metadata.id}: project.json lists {metadata.total_pages} pages, "
            f"{page_count} found on disk"
        )
        try:
            return storage.update_metadata(total_pages=page_count)
        except (OSError, WorkflowError) as e:
            logger.warning(f"Could not write recovered page count for {metadata.id}: {e}")
            return metadata.model_copy(update={"total_pages": page_count})

    def create_project(
        self,
        title: str,
        author: str = "",
        publication_date: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Project:
        def init(metadata: ProjectMetadata) -> None:
            metadata.publication_date = publication_date
            metadata.notes = notes

        def operation() -> Project:
            project = self.library.create(title, author, metadata_init=init)
            self._open(project, WorkflowState())
            with self._lock:
                self.state = self.state.model_copy(update={"current_stage": WorkflowStage.IMPORTING})
                self._save_state_unlocked()
            self._update_status("Project created successfully")
            return project

        return self._run(operation, retry=lambda: self.create_project(title, author, publication_date, notes))

    def load_project(self, project_id: str) -> Project:
        def operation() -> Project:
            project = self.library.load(project_id)
            if project is None:
                raise NotFound(f"Project {project_id} not found")
            self._open(project)
            self._update_status("Project loaded successfully")
            return project

        return self._run(operation, retry=lambda: self.load_project(project_id))

    def save_project(self) -> None:
        def operation() -> None:
            self._require_project()
            with self._lock:
                self.library.save(self.project)
                self._save_state_unlocked()
                self._save_selections_unlocked()

        self._run(operation, retry=self.save_project)

    def save_state(self) -> None:
        """Persist the session sidecar (stage, page, counters) only."""
        def operation() -> None:
            self._require_project()
            with self._lock:
                self._save_state_unlocked()

        self._run(operation, retry=self.save_state)

    def update_metadata(self, **updates) -> ProjectMetadata:
        def operation() -> ProjectMetadata:
            storage = self._require_project()
            with self._lock:
                metadata = storage.update_metadata(**updates)
                self.project.metadata = metadata
                return metadata

        return self._run(operation, retry=lambda: self.update_metadata(**updates))

    def list_projects(self) -> List[Project]:
        return self._run(self.library.list, retry=self.list_projects)

    def delete_project(self, project_id: str) -> None:
        def operation() -> None:
            if self.project is not None and self.project.id == project_id:
                self.reset()
            self.library.delete(project_id)

        self._run(operation, retry=lambda: self.delete_project(project_id))

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self.project = None
            self.storage = None
            self.config = None
            self.registry = None
            self.state = WorkflowState()
            self.status_message = ""
            self._ocr = None

    # Stage navigation

    def _set_stage(self, stage: WorkflowStage) -> WorkflowStage:
        with self._lock:
            self.state = self.state.model_copy(update={"current_stage": stage})
            self._save_state_unlocked()
        return stage

    def go_to_stage(self, target: WorkflowStage) -> WorkflowStage:
        def operation() -> WorkflowStage:
            self._require_project()
            require_transition(self.current_stage, target)
            self._set_stage(target)
            self._update_status(f"Moved to {target.display_name} stage")
            return target

        return self._run(operation)

    def advance(self) -> WorkflowStage:
        """Move to the next stage; a no-op on the terminal stage."""
        following = next_stage(self.current_stage)
        if following is None:
            return self.current_stage
        return self.go_to_stage(following)

    def go_back(self) -> WorkflowStage:
        """Move to the previous stage; a no-op on the entry stage."""
        previous = previous_stage(self.current_stage)
        if previous is None:
            return self.current_stage
        return self.go_to_stage(previous)

    def is_stage_ready(self, stage: Optional[WorkflowStage] = None) -> bool:
        stage = stage or self.current_stage
        if self.registry is None:
            return False
        return self.registry.is_ready(stage, project_open=self.has_project)

    @property
    def can_advance(self) -> bool:
        return next_stage(self.current_stage) is not None and self.is_stage_ready()

    def stage_summary(self, stage: Optional[WorkflowStage] = None) -> str:
        stage = stage or self.current_stage
        if self.registry is None:
            return "Not started"
        return self.registry.stage_summary(stage, project_open=self.has_project)

    def stage_summaries(self) -> Dict[WorkflowStage, str]:
        return {stage: self.stage_summary(stage) for stage in STAGE_ORDER}

    # Page navigation

    def go_to_page(self, index: int) -> PageRecord:
        def operation() -> PageRecord:
            self._require_project()
            with self._lock:
                record = self.registry.get(index)
                self.state = self.state.model_copy(update={"selected_page": index})
            self._update_status(f"Viewing page {index + 1} of {self.total_pages}")
            return record

        return self._run(operation)

    def next_page(self) -> Optional[PageRecord]:
        if self.total_pages == 0:
            return None
        if self.selected_page is None:
            return self.go_to_page(0)
        return self.go_to_page(min(self.selected_page + 1, self.total_pages - 1))

    def previous_page(self) -> Optional[PageRecord]:
        if self.selected_page is None:
            return None
        return self.go_to_page(max(self.selected_page - 1, 0))

    def page(self, index: int) -> PageRecord:
        self._require_project()
        return self.registry.get(index)

    def completion_progress(self, index: int) -> float:
        self._require_project()
        self.registry.get(index)
        return self.registry.completion_progress(index)

    @property
    def completion_percentage(self) -> float:
        if self.registry is None:
            return 0.0
        return self.registry.completion_percentage

    def page_image(self, index: int) -> Image.Image:
        storage = self._require_project()
        return storage.load_page_image(index)

    # Import

    def _apply_import(self, importer: DocumentImporter, staged: StagedImport, generation: int) -> Optional[List[Path]]:
        with self._lock:
            if self._generation != generation:
                importer.discard(staged)
                return None

            pages = importer.commit(staged)
            updates = {
                "total_pages": len(pages),
                "source_type": staged.source_type,
                "preprocessed": False,
                "ocr_engine": None,
                "enhanced": False,
            }
            # The old page artifacts are gone; the session follows the disk
            # even when project.json cannot be written.
            self.project.metadata = self.project.metadata.model_copy(update=updates)
            try:
                self.project.metadata = self.storage.update_metadata(**updates)
            finally:
                self.registry.initialize(len(pages))
                self.state = self.state.model_copy(update={
                    "total_pages": len(pages),
                    "processed_pages": 0,
                    "selected_page": 0 if pages else None,
                })
            self._save_selections_unlocked()
            self._save_state_unlocked()

        self._update_status(f"Imported {len(pages)} pages")
        return pages

    def _import(self, stage_source: Callable[[DocumentImporter], StagedImport], retry: Callable[[], Any]):
        def operation() -> Optional[List[Path]]:
            storage = self._require_project()
            generation = self._generation
            importer = DocumentImporter(storage, dpi=self.config.pdf_dpi, max_workers=self.config.max_workers)
            staged = stage_source(importer)
            return self._apply_import(importer, staged, generation)

        return self._run(operation, retry=retry)

    def import_pdf(self, pdf_path: Path, progress: Optional[ProgressCallback] = None) -> Optional[List[Path]]:
        """Import a PDF; returns the page paths, or None when the session moved on."""
        return self._import(
            lambda importer: importer.stage_pdf(pdf_path, progress),
            retry=lambda: self.import_pdf(pdf_path, progress),
        )

    def import_images(self, image_paths: List[Path], progress: Optional[ProgressCallback] = None) -> Optional[List[Path]]:
        return self._import(
            lambda importer: importer.stage_images(image_paths, progress),
            retry=lambda: self.import_images(image_paths, progress),
        )

    # Preprocessing

    def _preprocessor(self) -> Preprocessor:
        return Preprocessor(self._require_project(), max_workers=self.config.max_workers)

    def preview_preprocessing(self, index: int, options: PreprocessOptions):
        return self._run(
            lambda: self._preprocessor().preview(index, options),
            stage="preprocessing", page=index,
        )

    def preprocess_page(self, index: int, options: PreprocessOptions) -> Optional[Path]:
        def operation() -> Optional[Path]:
            self.page(index)
            generation = self._generation
            path = self._preprocessor().preprocess_page(index, options, self._is_current(generation))
            with self._lock:
                if path is None or self._generation != generation:
                    return None
                self.registry.set_preprocessed(index, path)
                self._mark_preprocessed_unlocked()
            return path

        return self._run(
            operation,
            retry=lambda: self.preprocess_page(index, options),
            stage="preprocessing", page=index,
        )

    def preprocess_pages(
        self,
        options: PreprocessOptions,
        indices: Optional[Iterable[int]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        self._run(self._require_project)
        indices = list(indices) if indices is not None else list(range(self.total_pages))
        generation = self._generation
        outcome = self._preprocessor().preprocess_pages(
            indices, options, progress=progress, is_current=self._is_current(generation)
        )

        with self._lock:
            if self._generation != generation:
                outcome.discarded = True
                return outcome
            for index, path in outcome.results.items():
                self.registry.set_preprocessed(index, path)
            if outcome.results:
                self._mark_preprocessed_unlocked()

        self._update_status(f"Preprocessed {len(outcome.results)}/{outcome.total} pages")
        return outcome

    def _mark_preprocessed_unlocked(self) -> None:
        if not self.project.metadata.preprocessed:
            self.project.metadata = self.storage.update_metadata(preprocessed=True)

    def clear_preprocessing(self) -> None:
        def operation() -> None:
            storage = self._require_project()
            with self._lock:
                storage.clear_preprocessed()
                self.registry.clear_preprocessed()
                self.project.metadata = storage.update_metadata(preprocessed=False)

        self._run(operation, retry=self.clear_preprocessing)

    # OCR

    @property
    def ocr(self) -> OCROrchestrator:
        storage = self._require_project()
        with self._lock:
            if self._ocr is None:
                if self._engine_overrides is not None:
                    self._ocr = OCROrchestrator(
                        storage,
                        self._engine_overrides,
                        language=self.config.language,
                        max_workers=self.config.max_workers,
                    )
                else:
                    names = list(dict.fromkeys(
                        self.config.ocr_engines + self.library_config.enabled_engines()
                    ))
                    self._ocr = OCROrchestrator.from_config(
                        storage,
                        self.library_config,
                        names,
                        language=self.config.language,
                        max_workers=self.config.max_workers,
                    )
            return self._ocr

    @property
    def available_engines(self) -> List[str]:
        return self.ocr.available_engines

    def _apply_ocr_unlocked(self, page: PageOCROutcome) -> None:
        succeeded = page.succeeded
        if not succeeded:
            return
        self.registry.apply_ocr_results(page.index, succeeded)
        if self.project.metadata.ocr_engine is None:
            self.project.metadata = self.storage.update_metadata(ocr_engine=next(iter(succeeded)))

    def run_ocr(
        self,
        index: int,
        engines: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        options: Optional[OCROptions] = None,
    ) -> PageOCROutcome:
        """OCR one page with several engines; per-engine failures are in the outcome."""
        engines = list(engines) if engines is not None else None

        def operation() -> PageOCROutcome:
            self.page(index)
            generation = self._generation
            orchestrator = self.ocr
            requested = engines if engines is not None else list(self.config.ocr_engines)
            page = orchestrator.run_page(index, requested, language, options, self._is_current(generation))

            with self._lock:
                if page.discarded or self._generation != generation:
                    page.discarded = True
                    return page
                self._apply_ocr_unlocked(page)
                self.state = self.state.model_copy(update={
                    "processed_pages": self.registry.ocr_count(),
                })
                self._save_state_unlocked()
            return page

        page = self._run(
            operation,
            retry=lambda: self.run_ocr(index, engines, language, options),
            stage="ocr", page=index,
        )
        if not page.discarded:
            self._report_engine_failures(page, language, options)
        return page

    def _report_engine_failures(
        self,
        page: PageOCROutcome,
        language: Optional[str],
        options: Optional[OCROptions] = None,
    ) -> None:
        """Report each failed engine with a retry of that engine alone."""
        for engine, error in page.failed.items():
            self.reporter.report(
                error,
                retry=lambda engine=engine: self.run_ocr(page.index, [engine], language, options),
                stage="ocr", page=page.index,
            )

    def run_ocr_batch(
        self,
        indices: Optional[Iterable[int]] = None,
        engines: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        self._run(self._require_project)
        indices = list(indices) if indices is not None else list(range(self.total_pages))
        engines = list(engines) if engines is not None else list(self.config.ocr_engines)
        generation = self._generation

        outcome = self.ocr.run_pages(
            indices, engines, language, progress=progress, is_current=self._is_current(generation)
        )

        with self._lock:
            if self._generation != generation:
                outcome.discarded = True
                return outcome
            for page in outcome.results.values():
                if not page.discarded:
                    self._apply_ocr_unlocked(page)
            self.state = self.state.model_copy(update={"processed_pages": self.registry.ocr_count()})
            self._save_state_unlocked()

        for page in outcome.results.values():
            if not page.discarded:
                self._report_engine_failures(page, language)
        for index, error in outcome.failed.items():
            self.reporter.report(
                error,
                retry=lambda index=index: self.run_ocr(index, engines, language),
                stage="ocr", page=index,
            )

        self._update_status(f"OCR complete: {len(outcome.results)}/{outcome.total} pages")
        return outcome

    def select_engine(self, index: int, engine: str) -> PageRecord:
        def operation() -> PageRecord:
            self._require_project()
            with self._lock:
                record = self.registry.select_engine(index, engine)
                self._save_selections_unlocked()
                return record

        return self._run(operation)

    def load_ocr_result(self, index: int, engine: Optional[str] = None):
        def operation():
            record = self.page(index)
            name = engine or record.selected_engine or self.config.default_engine
            return self.storage.load_ocr_result(index, name)

        return self._run(operation)

    # Enhancement

    @property
    def enhancement_available(self) -> bool:
        return self.enhancement.enhancement_available

    def reprobe_enhancer(self) -> None:
        self.enhancement.reprobe()

    def enhance_text(
        self,
        text: str,
        language: Optional[str] = None,
        context: Optional[str] = None,
        page: Optional[int] = None,
    ) -> Optional[str]:
        """Enhanced text, or None when the session moved on meanwhile. Nothing is saved."""
        generation = self._generation
        language = language or (self.config.language if self.config else "eng")
        enhanced = self._run(
            lambda: self.enhancement.enhance(text, language, context, page=page),
            retry=lambda: self.enhance_text(text, language, context, page),
            stage="enhancement", page=page,
        )
        if self._generation != generation:
            return None
        return enhanced

    def enhance_page(self, index: int, engine: Optional[str] = None, context: Optional[str] = None) -> Optional[str]:
        text, _ = self.load_ocr_result(index, engine)
        return self.enhance_text(text, context=context, page=index)

    # Transcription

    def transcription_text(self, index: int) -> str:
        """Saved transcription body, else the selected OCR text, else empty."""
        storage = self._require_project()
        record = self.page(index)
        if self.registry.has_transcription(index):
            return storage.load_transcription(index)[1]
        engine = record.selected_engine or self.config.default_engine
        if self.registry.has_ocr(index, engine):
            return storage.load_ocr_result(index, engine)[0]
        return ""

    def save_transcription(
        self,
        index: int,
        text: str,
        enhanced: Optional[bool] = None,
        frontmatter: Optional[Dict[str, Any]] = None,
    ) -> Path:
        def operation() -> Path:
            storage = self._require_project()
            with self._lock:
                self.registry.get(index)
                path = storage.save_transcription(index, text, frontmatter)
                self.registry.set_transcription(index, path, enhanced)
                if enhanced is not None:
                    self._save_selections_unlocked()
                if enhanced and not self.project.metadata.enhanced:
                    self.project.metadata = storage.update_metadata(enhanced=True)
                self._save_state_unlocked()
            self._update_status(f"Saved transcription for page {index + 1}")
            return path

        return self._run(
            operation,
            retry=lambda: self.save_transcription(index, text, enhanced, frontmatter),
        )

    # Export

    def export(
        self,
        output_path: Optional[Path] = None,
        include_frontmatter: Optional[bool] = None,
        preview: bool = False,
    ) -> ExportResult:
        def operation() -> ExportResult:
            storage = self._require_project()
            include = self.config.include_frontmatter if include_frontmatter is None else include_frontmatter
            exporter = Exporter(storage)
            if preview:
                return exporter.preview(self.project.metadata, self.total_pages, include)
            result = exporter.export(self.project.metadata, self.total_pages, include, output_path)
            self._update_status(f"Export complete: {result.path.name}")
            return result

        return self._run(
            operation,
            retry=lambda: self.export(output_path, include_frontmatter, preview),
        )


__all__ = ["WorkflowCoordinator"]
