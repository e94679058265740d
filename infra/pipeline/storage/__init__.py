from infra.pipeline.storage.layout import PageFileTable, page_filename, parse_page_filename
from infra.pipeline.storage.schemas import (
    OCRResultMetadata,
    PageSelection,
    PageSelections,
    ProjectMetadata,
)
from infra.pipeline.storage.workflow_state import (
    WorkflowState,
    load_workflow_state,
    migrate_workflow_state,
    save_workflow_state,
)
from infra.pipeline.storage.project_storage import ProjectStorage
from infra.pipeline.storage.library import Project, ProjectLibrary

__all__ = [
    "PageFileTable",
    "page_filename",
    "parse_page_filename",
    "OCRResultMetadata",
    "PageSelection",
    "PageSelections",
    "ProjectMetadata",
    "WorkflowState",
    "load_workflow_state",
    "migrate_workflow_state",
    "save_workflow_state",
    "ProjectStorage",
    "Project",
    "ProjectLibrary",
]
