"""
Canonical project directory layout.

  <project-root>/
    source/                          original uploaded file(s)
    pages/page_NNN.<ext>             imported page images
    preprocessed/page_NNN.png        preprocessed images (optional)
    ocr/<engine>/page_NNN.txt        recognized text
    ocr/<engine>/page_NNN.json       recognition metadata
    transcription/page_NNN.md        final text
    .scriptorium/                    session sidecar (state, metadata, logs)

Page files are matched with a strict pattern; anything else in a page
directory is ignored.
"""

import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

SOURCE_DIR = "source"
PAGES_DIR = "pages"
PREPROCESSED_DIR = "preprocessed"
OCR_DIR = "ocr"
TRANSCRIPTION_DIR = "transcription"
SIDECAR_DIR = ".scriptorium"
LOGS_DIR = "logs"

PAGE_DIGITS = 3
PAGE_FILENAME_RE = re.compile(r"^page_(\d{3,})\.([A-Za-z0-9]+)$")

WORKFLOW_STATE_FILENAME = "workflow_state.json"
PROJECT_METADATA_FILENAME = "project.json"
PAGE_SELECTIONS_FILENAME = "pages.json"

PROJECT_DIRECTORIES = [SOURCE_DIR, PAGES_DIR, PREPROCESSED_DIR, OCR_DIR, TRANSCRIPTION_DIR, SIDECAR_DIR]


def page_filename(index: int, extension: str) -> str:
    if index < 0:
        raise ValueError(f"Page index must be non-negative: {index}")
    return f"page_{index:0{PAGE_DIGITS}d}.{extension.lstrip('.')}"


def parse_page_filename(name: str) -> Optional[Tuple[int, str]]:
    match = PAGE_FILENAME_RE.match(name)
    if not match:
        return None
    return int(match.group(1)), match.group(2)


class PageFileTable:
    """Index -> path table for one page directory.

    Built by scanning the directory once and kept current by the storage
    layer as it writes or removes files.
    """

    def __init__(self, directory: Path, extensions: Optional[List[str]] = None):
        self.directory = Path(directory)
        self.extensions = {e.lower() for e in extensions} if extensions else None
        self._lock = threading.Lock()
        self._paths: Dict[int, Path] = {}
        self.refresh()

    def _accepts(self, extension: str) -> bool:
        return self.extensions is None or extension.lower() in self.extensions

    def refresh(self) -> None:
        paths: Dict[int, Path] = {}
        if self.directory.is_dir():
            for path in sorted(self.directory.iterdir()):
                if not path.is_file():
                    continue
                parsed = parse_page_filename(path.name)
                if parsed is None or not self._accepts(parsed[1]):
                    continue
                paths.setdefault(parsed[0], path)
        with self._lock:
            self._paths = paths

    def get(self, index: int) -> Optional[Path]:
        with self._lock:
            path = self._paths.get(index)
        if path is not None and not path.exists():
            with self._lock:
                self._paths.pop(index, None)
            return None
        return path

    def set(self, index: int, path: Path) -> None:
        with self._lock:
            self._paths[index] = Path(path)

    def remove(self, index: int) -> None:
        with self._lock:
            self._paths.pop(index, None)

    def clear(self) -> None:
        with self._lock:
            self._paths.clear()

    def indices(self) -> List[int]:
        with self._lock:
            return sorted(self._paths)

    def __contains__(self, index: int) -> bool:
        return self.get(index) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)
