import logging
import shutil
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from infra.errors import NotFound, ProjectIOError, WorkflowError
from infra.pipeline.storage import layout
from infra.pipeline.storage.project_storage import ProjectStorage
from infra.pipeline.storage.schemas import ProjectMetadata
from infra.pipeline.storage.workflow_state import WorkflowState

logger = logging.getLogger(__name__)


@dataclass
class Project:
    metadata: ProjectMetadata
    root: Path

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def author(self) -> str:
        return self.metadata.author


class ProjectLibrary:
    """All projects under one storage root, one directory per project id."""

    def __init__(self, storage_root: Path):
        self.storage_root = Path(storage_root).expanduser()
        self.storage_root.mkdir(parents=True, exist_ok=True)

        self._storage_cache: Dict[str, ProjectStorage] = {}
        self._lock = threading.Lock()

    def _scan_project_directories(self) -> List[str]:
        project_ids = []

        if not self.storage_root.exists():
            return project_ids

        for item in self.storage_root.iterdir():
            if not item.is_dir():
                continue

            if item.name.startswith('.'):
                continue

            if (item / layout.SIDECAR_DIR / layout.PROJECT_METADATA_FILENAME).exists():
                project_ids.append(item.name)

        return sorted(project_ids)

    def get_project_storage(self, project_id: str) -> ProjectStorage:
        with self._lock:
            if project_id not in self._storage_cache:
                self._storage_cache[project_id] = ProjectStorage(project_id, storage_root=self.storage_root)
            return self._storage_cache[project_id]

    def create(
        self,
        title: str,
        author: str = "",
        metadata_init: Optional[Callable[[ProjectMetadata], None]] = None,
    ) -> Project:
        project_id = str(uuid.uuid4())
        metadata = ProjectMetadata(id=project_id, title=title, author=author)
        if metadata_init is not None:
            metadata_init(metadata)

        storage = self.get_project_storage(project_id)
        try:
            storage.ensure_directories()
            storage.save_metadata(metadata)
            storage.save_state(WorkflowState())
        except OSError:
            if storage.project_dir.exists():
                shutil.rmtree(storage.project_dir, ignore_errors=True)
            raise

        logger.info(f"Created project {project_id} ({title})")
        return Project(metadata=metadata, root=storage.project_dir)

    def load(self, project_id: str) -> Optional[Project]:
        storage = self.get_project_storage(project_id)
        if not storage.exists:
            return None
        return Project(metadata=storage.load_metadata(), root=storage.project_dir)

    def save(self, project: Project) -> Project:
        storage = self.get_project_storage(project.id)
        if not storage.project_dir.exists():
            raise NotFound(f"Project {project.id} not found")

        project.metadata.mark_modified()
        storage.save_metadata(project.metadata)
        return project

    def list(self) -> List[Project]:
        """Every readable project, most recently modified first."""
        projects = []
        for project_id in self._scan_project_directories():
            try:
                project = self.load(project_id)
            except WorkflowError as e:
                logger.warning(f"Skipping project {project_id}: {e.description}")
                continue
            if project is not None:
                projects.append(project)

        return sorted(projects, key=lambda p: p.metadata.modified, reverse=True)

    def delete(self, project_id: str) -> None:
        project_dir = self.storage_root / project_id
        if not project_dir.exists():
            raise NotFound(f"Project {project_id} not found in library")

        with self._lock:
            storage = self._storage_cache.pop(project_id, None)
        if storage is not None:
            storage.close()

        try:
            shutil.rmtree(project_dir)
        except OSError as e:
            raise ProjectIOError(f"Failed to delete project directory {project_dir}", reason=str(e)) from e

        logger.info(f"Deleted project {project_id}")

    def get_stats(self) -> Dict[str, int]:
        projects = self.list()
        return {
            "total_projects": len(projects),
            "total_pages": sum(p.metadata.total_pages for p in projects),
        }
