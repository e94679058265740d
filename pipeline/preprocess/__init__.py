from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from PIL import Image

from infra.errors import NotFound
from infra.pipeline.batch import BatchOutcome, ProgressCallback, run_page_batch
from infra.pipeline.storage import ProjectStorage
from .image_pipeline import ImagePipeline
from .options import PRESETS, PresetType, PreprocessOptions


def process(image: Image.Image, options: PreprocessOptions) -> Image.Image:
    return ImagePipeline.from_options(options).process(image)


def process_batch(images: List[Image.Image], options: PreprocessOptions, max_workers: int = 4) -> List[Image.Image]:
    return ImagePipeline.from_options(options, max_workers=max_workers).process_batch(images)


class Preprocessor:
    """
    Preprocess stage - prepare page images for OCR.

    Always reads the original page image and writes
    preprocessed/page_NNN.png. Optional: OCR falls back to the original
    when no preprocessed artifact exists.
    """
    name = "preprocess"

    def __init__(self, storage: ProjectStorage, max_workers: int = 4):
        self.storage = storage
        self.max_workers = max_workers
        self.logger = storage.logger(self.name)

    def _load_original(self, index: int) -> Image.Image:
        path = self.storage.page_image(index)
        if path is None:
            raise NotFound(f"No original image for page {index + 1}")
        with Image.open(path) as image:
            image.load()
            return image.copy()

    def preview(self, index: int, options: PreprocessOptions) -> Tuple[Image.Image, Image.Image]:
        before = self._load_original(index)
        return before, process(before, options)

    def preprocess_page(
        self,
        index: int,
        options: PreprocessOptions,
        is_current: Callable[[], bool] = lambda: True,
    ) -> Optional[Path]:
        """Write the preprocessed artifact; None when the result went stale."""
        processed = process(self._load_original(index), options)
        if not is_current():
            return None
        return self.storage.save_preprocessed(index, processed)

    def preprocess_pages(
        self,
        indices: Iterable[int],
        options: PreprocessOptions,
        progress: Optional[ProgressCallback] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> BatchOutcome:
        indices = list(indices)
        self.logger.info(f"Preprocessing {len(indices)} pages ({options.summary})", total=len(indices))

        outcome = run_page_batch(
            indices,
            lambda i: self.preprocess_page(i, options, is_current),
            max_workers=self.max_workers,
            stage="preprocessing",
            progress=progress,
            logger=self.logger,
        )
        outcome.results = {i: p for i, p in outcome.results.items() if p is not None}
        outcome.discarded = not is_current()

        self.logger.info(
            f"Preprocessing {outcome.status}: {len(outcome.results)}/{outcome.total} pages",
            completed=len(outcome.results), total=outcome.total,
        )
        return outcome


__all__ = [
    "Preprocessor",
    "ImagePipeline",
    "PreprocessOptions",
    "PresetType",
    "PRESETS",
    "process",
    "process_batch",
]
