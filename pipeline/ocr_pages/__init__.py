from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from infra.config import LibraryConfig
from infra.errors import EngineUnavailable, WorkflowError, normalize_error
from infra.ocr import OCREngine, OCROptions, OCRResult, get_engine
from infra.pipeline.batch import BatchOutcome, ProgressCallback, run_page_batch
from infra.pipeline.storage import OCRResultMetadata, ProjectStorage


@dataclass
class EngineOutcome:
    engine: str
    result: Optional[OCRResult] = None
    error: Optional[WorkflowError] = None
    path: Optional[Path] = None

    @property
    def success(self) -> bool:
        return self.result is not None and self.error is None


@dataclass
class PageOCROutcome:
    index: int
    engines: Dict[str, EngineOutcome] = field(default_factory=dict)
    discarded: bool = False

    @property
    def succeeded(self) -> Dict[str, Path]:
        return {name: o.path for name, o in self.engines.items() if o.success and o.path is not None}

    @property
    def failed(self) -> Dict[str, WorkflowError]:
        return {name: o.error for name, o in self.engines.items() if o.error is not None}


class OCROrchestrator:
    """
    OCR stage - run one or more engines on a page and store each result.

    Engine availability is probed once, here, and cached. Requested engines
    that are unknown or were unavailable at probe time fail immediately with
    EngineUnavailable; the rest run concurrently and are joined before any
    result is written.
    """
    name = "ocr"

    def __init__(
        self,
        storage: ProjectStorage,
        engines: Iterable[OCREngine],
        language: str = "eng",
        max_workers: int = 4,
    ):
        self.storage = storage
        self.language = language
        self.max_workers = max_workers
        self.logger = storage.logger(self.name)

        self.engines: Dict[str, OCREngine] = {e.name: e for e in engines}
        self._available: Dict[str, bool] = {
            name: self._probe(engine) for name, engine in self.engines.items()
        }

    @classmethod
    def from_config(
        cls,
        storage: ProjectStorage,
        library_config: LibraryConfig,
        engine_names: List[str],
        language: str = "eng",
        max_workers: int = 4,
    ) -> "OCROrchestrator":
        engines = []
        for name in engine_names:
            engine_config = library_config.get_engine(name)
            if engine_config is not None and not engine_config.enabled:
                continue
            try:
                engines.append(get_engine(name, config=library_config))
            except ValueError as e:
                storage.logger(cls.name).warning(f"Engine '{name}' not available: {e}", engine=name)
        return cls(storage, engines, language=language, max_workers=max_workers)

    def _probe(self, engine: OCREngine) -> bool:
        try:
            available = bool(engine.is_available())
        except Exception as e:
            self.logger.warning(f"Availability probe for {engine.name} failed: {e}", engine=engine.name)
            return False
        if not available:
            self.logger.info(f"{engine.name} engine unavailable", engine=engine.name)
        return available

    def is_available(self, engine: str) -> bool:
        return self._available.get(engine, False)

    @property
    def available_engines(self) -> List[str]:
        return sorted(name for name, ok in self._available.items() if ok)

    # Recognition (no project state touched)

    def _recognize_one(self, engine: OCREngine, image, language: str, options: Optional[OCROptions]) -> OCRResult:
        result = engine.recognize(image, language, options)
        if not result.engine:
            result.engine = engine.name
        return result

    def recognize_page(
        self,
        index: int,
        engines: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        options: Optional[OCROptions] = None,
    ) -> Dict[str, EngineOutcome]:
        requested = list(dict.fromkeys(engines)) if engines is not None else self.available_engines
        language = language or self.language
        outcomes: Dict[str, EngineOutcome] = {}

        runnable = []
        for name in requested:
            if self.is_available(name):
                runnable.append(name)
            else:
                outcomes[name] = EngineOutcome(engine=name, error=EngineUnavailable(name))

        if not runnable:
            return outcomes

        image = self.storage.load_page_image(index)

        with ThreadPoolExecutor(max_workers=len(runnable)) as executor:
            futures = {
                name: executor.submit(self._recognize_one, self.engines[name], image, language, options)
                for name in runnable
            }
            for name, future in futures.items():
                try:
                    outcomes[name] = EngineOutcome(engine=name, result=future.result())
                except Exception as e:
                    error = normalize_error(e, stage="ocr", page=index)
                    self.logger.error(f"{name} failed on page {index + 1}: {error.description}",
                                      page=index, engine=name, error=error.reason)
                    outcomes[name] = EngineOutcome(engine=name, error=error)

        return {name: outcomes[name] for name in requested}

    def write_results(self, index: int, outcomes: Dict[str, EngineOutcome]) -> Dict[str, Path]:
        written = {}
        for name, outcome in outcomes.items():
            if not outcome.success:
                continue
            result = outcome.result
            metadata = OCRResultMetadata(
                confidence=max(0.0, min(result.confidence, 1.0)),
                language=result.language or "unknown",
                processing_time=max(result.processing_time, 0.0),
                engine=result.engine or name,
                regions_count=max(result.regions_count, 0),
            )
            outcome.path = self.storage.save_ocr_result(index, name, result.text, metadata)
            written[name] = outcome.path
        return written

    def run_page(
        self,
        index: int,
        engines: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        options: Optional[OCROptions] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> PageOCROutcome:
        outcomes = self.recognize_page(index, engines, language, options)
        page = PageOCROutcome(index=index, engines=outcomes)
        if not is_current():
            page.discarded = True
            return page

        written = self.write_results(index, outcomes)
        self.logger.info(
            f"Page {index + 1}: {len(written)}/{len(outcomes)} engines succeeded",
            page=index, completed=len(written), total=len(outcomes),
        )
        return page

    def run_pages(
        self,
        indices: Iterable[int],
        engines: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        options: Optional[OCROptions] = None,
        progress: Optional[ProgressCallback] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> BatchOutcome:
        engines = list(engines) if engines is not None else None

        def work(index: int) -> PageOCROutcome:
            page = self.run_page(index, engines, language, options, is_current)
            if not page.discarded and not page.succeeded and page.failed:
                raise next(iter(page.failed.values()))
            return page

        outcome = run_page_batch(
            indices,
            work,
            max_workers=self.max_workers,
            stage="ocr",
            progress=progress,
            logger=self.logger,
        )
        outcome.discarded = not is_current()
        return outcome


__all__ = [
    "OCROrchestrator",
    "EngineOutcome",
    "PageOCROutcome",
]
