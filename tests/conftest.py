"""
Shared fixtures for the test suite.

All tests use real filesystem operations under tmp_path. OCR engines and the
text enhancer are in-process fakes; images are generated with Pillow.
"""

from pathlib import Path
from typing import List

import pytest

from infra.config import EnhancerConfig, LibraryConfig
from infra.pipeline.storage import ProjectLibrary, ProjectStorage
from pipeline.coordinator import WorkflowCoordinator
from tests.fixtures.fakes import FakeEngine, FakeEnhancer
from tests.fixtures.images import make_page_image


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "scriptorium"
    root.mkdir()
    return root


@pytest.fixture
def library_config():
    """Default library config with the network enhancer disabled."""
    config = LibraryConfig.with_defaults()
    config.enhancer = EnhancerConfig(enabled=False)
    return config


@pytest.fixture
def library(storage_root):
    return ProjectLibrary(storage_root)


@pytest.fixture
def page_images(tmp_path) -> List[Path]:
    image_dir = tmp_path / "scans"
    image_dir.mkdir()
    return [make_page_image(image_dir / f"scan_{i}.png") for i in range(3)]


@pytest.fixture
def engines():
    return [FakeEngine("tesseract", text="Parish register, page text"), FakeEngine("mock", available=False)]


@pytest.fixture
def enhancer():
    return FakeEnhancer()


@pytest.fixture
def coordinator(storage_root, library_config, engines, enhancer):
    coordinator = WorkflowCoordinator(
        storage_root=storage_root,
        library_config=library_config,
        engines=engines,
        enhancer=enhancer,
    )
    coordinator.enhancement.wait_for_probe(5)
    yield coordinator
    if coordinator.storage is not None:
        coordinator.storage.close()


@pytest.fixture
def imported(coordinator, page_images):
    """A coordinator with an open project holding three imported pages."""
    coordinator.create_project("Parish Register", author="St. Mary's")
    coordinator.import_images(page_images)
    return coordinator


@pytest.fixture
def project(library):
    """A freshly created project."""
    return library.create("Test Document", author="Test Author")


@pytest.fixture
def project_storage(library, project) -> ProjectStorage:
    storage = library.get_project_storage(project.id)
    yield storage
    storage.close()


@pytest.fixture
def storage_with_pages(project_storage):
    """Project storage with three page images in pages/."""
    for i in range(3):
        make_page_image(project_storage.pages_dir / f"page_{i:03d}.png")
    project_storage.refresh()
    return project_storage
