"""
Per-project configuration loading and management.

Project config is stored at {project_root}/.scriptorium/config.yaml
and inherits from the library config, allowing per-project overrides.
"""

from pathlib import Path
from typing import Optional
import yaml

from .schemas import ProjectConfig, LibraryConfig, ResolvedProjectConfig
from .library_config import load_library_config


CONFIG_FILENAME = "config.yaml"
SIDECAR_DIRNAME = ".scriptorium"


class ProjectConfigManager:
    """
    Manages per-project configuration.

    Usage:
        manager = ProjectConfigManager(project_root)
        config = manager.load()                  # ProjectConfig (overrides only)
        resolved = manager.resolve(library)      # ResolvedProjectConfig (merged)
    """

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root)
        self.config_path = self.project_root / SIDECAR_DIRNAME / CONFIG_FILENAME

    def exists(self) -> bool:
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """
        Load project config from disk.

        Returns empty ProjectConfig if file doesn't exist.
        """
        if not self.config_path.exists():
            return ProjectConfig()

        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return ProjectConfig.model_validate(data)

    def save(self, config: ProjectConfig) -> None:
        """Save project config, writing only fields that were overridden."""
        data = config.model_dump(exclude_none=True, exclude_defaults=True)

        # Don't write empty config files
        if not data:
            if self.config_path.exists():
                self.config_path.unlink()
            return

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def resolve(self, library_config: LibraryConfig) -> ResolvedProjectConfig:
        return ResolvedProjectConfig.from_configs(library_config, self.load())

    def set(self, **kwargs) -> ProjectConfig:
        config = self.load()
        data = config.model_dump()
        data.update(kwargs)
        new_config = ProjectConfig.model_validate(data)
        self.save(new_config)
        return new_config

    def clear(self) -> None:
        """Remove project config (revert to library defaults)."""
        if self.config_path.exists():
            self.config_path.unlink()


def resolve_project_config(
    project_root: Path,
    storage_root: Path,
    library_config: Optional[LibraryConfig] = None
) -> ResolvedProjectConfig:
    if library_config is None:
        library_config = load_library_config(storage_root)
    return ProjectConfigManager(project_root).resolve(library_config)
