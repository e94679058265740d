"""
Per-stage JSONL logs for a project.

Each stage appends to <project>/.scriptorium/logs/<stage>.jsonl, one JSON
object per line:

  {"timestamp": "...", "level": "INFO", "message": "Page 3: 1/1 engines succeeded",
   "project_id": "parish-register", "stage": "ocr", "page": 2, "completed": 1, "total": 1}

Keyword arguments named in RECORD_FIELDS become fields; any others are
dropped. Neither the directory nor the file exists until the first record
is written.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

RECORD_FIELDS = ('page', 'engine', 'completed', 'total', 'duration_seconds', 'error')
_LOGGING_KWARGS = ('exc_info', 'stack_info', 'stacklevel')


class JSONLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "project_id": getattr(record, 'project_id', None),
            "stage": getattr(record, 'stage', None),
        }
        entry.update({name: getattr(record, name) for name in RECORD_FIELDS if hasattr(record, name)})
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class JSONLineHandler(logging.FileHandler):
    """Append-mode handler that opens its file on the first record and flushes each one."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(self.path, mode='a', encoding='utf-8', delay=True)
        self.setFormatter(JSONLineFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        if self.stream is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        super().emit(record)
        self.flush()


class StageLogger(logging.LoggerAdapter):
    """
    Adapter binding project_id and stage to every record of one stage log.

        log = StageLogger(project_id, "ocr", log_dir=storage.logs_dir)
        log.info("Recognized page", page=3, engine="tesseract")
    """

    def __init__(
        self,
        project_id: str,
        stage: str,
        log_dir: Path,
        level: str = "INFO",
        filename: Optional[str] = None,
    ):
        self.project_id = project_id
        self.stage = stage
        self.path = Path(log_dir) / (filename or f"{stage}.jsonl")

        logger = logging.getLogger(f"scriptorium.{project_id}.{stage}.{id(self)}")
        logger.setLevel(level.upper())
        logger.propagate = False
        self._handler = JSONLineHandler(self.path)
        logger.addHandler(self._handler)

        super().__init__(logger, {'project_id': project_id, 'stage': stage})

    @property
    def log_file(self) -> Optional[Path]:
        return self.path if self.path.exists() else None

    def process(self, msg, kwargs):
        fields = {name: kwargs.pop(name) for name in RECORD_FIELDS if name in kwargs}
        passthrough = {name: kwargs[name] for name in _LOGGING_KWARGS if name in kwargs}
        return msg, {**passthrough, 'extra': {**self.extra, **fields}}

    def close(self) -> None:
        self.logger.removeHandler(self._handler)
        self._handler.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
