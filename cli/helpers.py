import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from infra.config import get_storage_root
from infra.errors import WorkflowError
from infra.pipeline.batch import ProgressCallback
from pipeline.coordinator import WorkflowCoordinator


def is_headless() -> bool:
    """Check if running in headless mode (no Rich displays)."""
    return os.environ.get('SCRIPTORIUM_HEADLESS', '').lower() in ('1', 'true', 'yes')


def storage_root(args) -> Path:
    return get_storage_root(getattr(args, 'root', None))


def get_coordinator(args) -> WorkflowCoordinator:
    return WorkflowCoordinator(storage_root=storage_root(args))


def open_project(args) -> WorkflowCoordinator:
    coordinator = get_coordinator(args)
    coordinator.load_project(args.project_id)
    return coordinator


def print_error(error: WorkflowError) -> None:
    print(f"❌ {error.description}", file=sys.stderr)
    if error.suggestion:
        print(f"   {error.suggestion}", file=sys.stderr)


def to_index(page_number: int) -> int:
    """CLI page numbers are 1-based."""
    if page_number < 1:
        raise ValueError(f"Page numbers start at 1 (got {page_number})")
    return page_number - 1


def to_indices(page_numbers: Optional[List[int]]) -> Optional[List[int]]:
    if not page_numbers:
        return None
    return [to_index(n) for n in page_numbers]


def completion_symbol(progress: float) -> str:
    if progress >= 1.0:
        return '✅'
    if progress <= 0.0:
        return '○'
    return '⏳'


def parse_value(value: str):
    """
    Parse a string value into appropriate Python type.

    Handles booleans, numbers, JSON arrays/objects, comma-separated lists
    and plain strings.
    """
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False

    try:
        if '.' in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    if value.startswith('[') or value.startswith('{'):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    if ',' in value:
        return [v.strip() for v in value.split(',') if v.strip()]

    return value


@contextmanager
def progress_bar(description: str, total: int) -> Iterator[ProgressCallback]:
    progress = Progress(
        TextColumn("⏳ {task.description}"),
        BarColumn(bar_width=40),
        TaskProgressColumn(),
        TextColumn("{task.fields[suffix]}", justify="right"),
        transient=True,
        disable=is_headless(),
    )
    task_id = progress.add_task(description, total=total, suffix="starting...")

    def update(done: int, total: int) -> None:
        progress.update(task_id, completed=done, total=total, suffix=f"{done}/{total}")

    with progress:
        yield update
