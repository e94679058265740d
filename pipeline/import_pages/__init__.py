"""
Import stage: turn a PDF or a set of images into pages/page_NNN.<ext>.

Pages are rendered into a staging directory first. Nothing in the project
changes until `commit()` swaps the staging directory in, so a failed or
discarded import leaves the previous pages untouched.
"""

import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from PIL import Image, UnidentifiedImageError
from pdf2image import convert_from_path
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from pdf2image.pdf2image import pdfinfo_from_path

from infra.errors import ImportFailure
from infra.pipeline.batch import ProgressCallback
from infra.pipeline.storage import ProjectStorage, page_filename

SUPPORTED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "tif", "tiff", "bmp", "gif", "webp"}



@dataclass
class StagedImport:
    staging_dir: Path
    page_count: int
    source_type: str
    sources: List[Path]


class DocumentImporter:
    def __init__(self, storage: ProjectStorage, dpi: int = 300, max_workers: int = 4):
        self.storage = storage
        self.dpi = dpi
        self.max_workers = max_workers
        self.logger = storage.logger("import")

    # PDF

    def count_pdf_pages(self, pdf_path: Path) -> int:
        try:
            info = pdfinfo_from_path(str(pdf_path))
        except (PDFPageCountError, PDFSyntaxError) as e:
            raise ImportFailure(f"Could not read PDF {Path(pdf_path).name}", reason=str(e)) from e
        except PDFInfoNotInstalledError as e:
            raise ImportFailure(
                "PDF support requires poppler",
                suggestion="Install poppler-utils (pdfinfo, pdftoppm) and try again.",
                reason=str(e),
            ) from e
        return int(info.get("Pages", 0))

    def _render_pdf_page(self, pdf_path: Path, page_number: int, output_path: Path) -> Path:
        images = convert_from_path(
            str(pdf_path),
            dpi=self.dpi,
            first_page=page_number,
            last_page=page_number,
        )
        if not images:
            raise ImportFailure(f"No image returned for page {page_number}")
        images[0].save(output_path, format="PNG")
        return output_path

    def stage_pdf(self, pdf_path: Path, progress: Optional[ProgressCallback] = None) -> StagedImport:
        pdf_path = Path(pdf_path)
        if not pdf_path.is_file():
            raise ImportFailure(f"File not found: {pdf_path}")
        if pdf_path.suffix.lower() != ".pdf":
            raise ImportFailure(f"Unsupported format: {pdf_path.suffix or pdf_path.name}")

        total = self.count_pdf_pages(pdf_path)
        if total <= 0:
            raise ImportFailure(
                f"{pdf_path.name} contains no pages",
                suggestion="Choose a PDF with at least one page.",
            )

        self.logger.info(f"Extracting {total} pages at {self.dpi} DPI from {pdf_path.name}", total=total)
        staging = self.storage.staging_dir()
        try:
            done = 0
            with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, total))) as executor:
                futures = {
                    executor.submit(
                        self._render_pdf_page, pdf_path, i + 1, staging / page_filename(i, "png")
                    ): i
                    for i in range(total)
                }
                for future in as_completed(futures):
                    index = futures[future]
                    try:
                        future.result()
                    except ImportFailure:
                        raise
                    except Exception as e:
                        raise ImportFailure(
                            f"Failed to extract page {index + 1} of {pdf_path.name}",
                            reason=str(e),
                        ) from e
                    done += 1
                    if progress:
                        progress(done, total)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        return StagedImport(staging_dir=staging, page_count=total, source_type="PDF", sources=[pdf_path])

    # Images

    def stage_images(self, image_paths: List[Path], progress: Optional[ProgressCallback] = None) -> StagedImport:
        paths = [Path(p) for p in image_paths]
        if not paths:
            raise ImportFailure("No images selected", suggestion="Select at least one image file.")

        for path in paths:
            extension = path.suffix.lower().lstrip(".")
            if extension not in SUPPORTED_IMAGE_EXTENSIONS:
                raise ImportFailure(f"Unsupported format: {path.name}")
            if not path.is_file():
                raise ImportFailure(f"File not found: {path}")
            try:
                with Image.open(path) as image:
                    image.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                raise ImportFailure(f"Invalid image: {path.name}", reason=str(e)) from e

        staging = self.storage.staging_dir()
        try:
            for i, path in enumerate(paths):
                extension = path.suffix.lower().lstrip(".")
                shutil.copy2(path, staging / page_filename(i, extension))
                if progress:
                    progress(i + 1, len(paths))
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        return StagedImport(staging_dir=staging, page_count=len(paths), source_type="Images", sources=paths)

    # Apply

    def commit(self, staged: StagedImport) -> List[Path]:
        """Replace every page artifact of the project with the staged pages."""
        self.storage.clear_source(keep=staged.sources)
        for source in staged.sources:
            self.storage.copy_to_source(source)
        self.storage.clear_page_artifacts()

        pages = self.storage.replace_pages(staged.staging_dir)
        self.logger.info(f"Imported {len(pages)} pages ({staged.source_type})", total=len(pages))
        return pages

    def discard(self, staged: StagedImport) -> None:
        shutil.rmtree(staged.staging_dir, ignore_errors=True)

    def import_pdf(self, pdf_path: Path, progress: Optional[ProgressCallback] = None) -> List[Path]:
        return self.commit(self.stage_pdf(pdf_path, progress))

    def import_images(self, image_paths: List[Path], progress: Optional[ProgressCallback] = None) -> List[Path]:
        return self.commit(self.stage_images(image_paths, progress))


__all__ = [
    "DocumentImporter",
    "StagedImport",
    "SUPPORTED_IMAGE_EXTENSIONS",
]
