"""
Configuration management for Scriptorium.

Hierarchical config system:
- Library config: {storage_root}/config.yaml
- Project config: {project_root}/.scriptorium/config.yaml

Usage:
    from infra.config import LibraryConfigManager, ProjectConfigManager

    lib_config = LibraryConfigManager(storage_root).load()
    resolved = ProjectConfigManager(project_root).resolve(lib_config)
"""

from .schemas import (
    EngineConfig,
    EnhancerConfig,
    DefaultsConfig,
    LibraryConfig,
    ProjectConfig,
    ResolvedProjectConfig,
    resolve_env_vars,
)

from .library_config import (
    LibraryConfigManager,
    load_library_config,
)

from .project_config import (
    ProjectConfigManager,
    resolve_project_config,
)

from .runtime import (
    get_storage_root,
    get_library_config,
    reload_config,
)


__all__ = [
    "EngineConfig",
    "EnhancerConfig",
    "DefaultsConfig",
    "LibraryConfig",
    "ProjectConfig",
    "ResolvedProjectConfig",
    "resolve_env_vars",
    "LibraryConfigManager",
    "load_library_config",
    "ProjectConfigManager",
    "resolve_project_config",
    "get_storage_root",
    "get_library_config",
    "reload_config",
]
