"""
Export stage: combine transcription/page_NNN.md into one Markdown document.

  ---                         optional, once
  title: ...
  author: ...
  date: ...
  pages: <pages included>
  generated: <ISO timestamp>
  ---

  <!-- Page 1 -->

  ...text of page_000...

Per-page frontmatter is stripped. Pages without a transcription are left
out and reported; the export still succeeds.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml

from infra.pipeline.storage import ProjectMetadata, ProjectStorage, parse_page_filename
from infra.pipeline.storage.atomic import atomic_write_text
from infra.pipeline.storage.project_storage import split_frontmatter


@dataclass
class ExportResult:
    text: str
    path: Optional[Path]
    pages_included: List[int]
    total_pages: int
    missing_pages: List[int] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.missing_pages)


def export_filename(title: str, fallback: str = "project") -> str:
    """Filename-safe `<title>_transcription.md`; `fallback` is used when nothing of the title survives."""
    stem = re.sub(r"[^\w\-]+", "_", title).strip("_")
    return f"{stem or fallback}_transcription.md"


def page_marker(index: int) -> str:
    return f"<!-- Page {index + 1} -->"


class Exporter:
    name = "export"

    def __init__(self, storage: ProjectStorage):
        self.storage = storage
        self.logger = storage.logger(self.name)

    def _frontmatter(self, metadata: ProjectMetadata, page_count: int) -> str:
        data = {
            "title": metadata.title,
            "author": metadata.author,
            "date": metadata.publication_date or "",
            "pages": page_count,
            "generated": datetime.now().isoformat(timespec="seconds"),
        }
        dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        return f"---\n{dumped}---\n"

    def combine(self, metadata: ProjectMetadata, total_pages: int, include_frontmatter: bool = True) -> ExportResult:
        files = self.storage.list_transcription_files()

        parts = []
        included = []
        for path in files:
            index = parse_page_filename(path.name)[0]
            with open(path, 'r', encoding='utf-8') as f:
                _, body = split_frontmatter(f.read())
            parts.append(f"{page_marker(index)}\n\n{body.strip()}")
            included.append(index)

        text = "\n\n".join(parts)
        if include_frontmatter:
            text = self._frontmatter(metadata, len(included)) + ("\n" + text if text else "")
        if text and not text.endswith("\n"):
            text += "\n"

        present = set(included)
        missing = [i for i in range(total_pages) if i not in present]
        return ExportResult(
            text=text,
            path=None,
            pages_included=included,
            total_pages=total_pages,
            missing_pages=missing,
        )

    def preview(self, metadata: ProjectMetadata, total_pages: int, include_frontmatter: bool = True) -> ExportResult:
        return self.combine(metadata, total_pages, include_frontmatter)

    def export(
        self,
        metadata: ProjectMetadata,
        total_pages: int,
        include_frontmatter: bool = True,
        output_path: Optional[Path] = None,
    ) -> ExportResult:
        result = self.combine(metadata, total_pages, include_frontmatter)

        if output_path:
            path = Path(output_path)
        else:
            path = self.storage.project_dir / export_filename(metadata.title, metadata.id)
        atomic_write_text(path, result.text)
        result.path = path

        self.logger.info(
            f"Exported {len(result.pages_included)}/{total_pages} pages to {path.name}",
            completed=len(result.pages_included), total=total_pages,
        )
        if result.partial:
            self.logger.warning(f"Partial export; missing pages: {[i + 1 for i in result.missing_pages]}")
        return result


__all__ = [
    "Exporter",
    "ExportResult",
    "export_filename",
    "page_marker",
]
