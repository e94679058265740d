"""
Configuration schemas for Scriptorium.

Defines the structure of library and project configuration files.
All config is stored under ~/Documents/scriptorium/ (or SCRIPTORIUM_ROOT).
"""

from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field, field_validator
import os
import re


class EngineConfig(BaseModel):
    """Configuration for an OCR engine (text extraction from images)."""
    type: str = Field(..., description="Engine type: tesseract, ollama")
    language: Optional[str] = Field(None, description="Engine-specific language code override")
    enabled: bool = Field(True, description="Whether this engine is probed at startup")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Engine-specific settings")


class EnhancerConfig(BaseModel):
    """Configuration for the text-enhancement backend."""
    type: str = Field("ollama", description="Enhancer type: ollama")
    model: str = Field("llama3", description="Model identifier")
    base_url: str = Field("http://localhost:11434", description="Server base URL")
    enabled: bool = Field(True, description="Whether enhancement is offered at all")
    timeout: float = Field(120.0, gt=0, description="Request timeout in seconds")
    context: str = Field(
        "Historical document",
        description="Default context passed to the enhancer",
    )


class DefaultsConfig(BaseModel):
    """Default settings for new projects."""
    default_engine: str = Field(
        default="tesseract",
        description="Engine whose results gate the OCR stage"
    )
    ocr_engines: List[str] = Field(
        default=["tesseract"],
        description="Engines to run when none are requested explicitly"
    )
    language: str = Field(default="eng", description="Recognition language")
    max_workers: int = Field(default=4, ge=1, description="Default parallel workers")
    pdf_dpi: int = Field(default=300, ge=50, description="Resolution for PDF page extraction")
    include_frontmatter: bool = Field(
        default=True,
        description="Prepend YAML frontmatter when exporting"
    )


class LibraryConfig(BaseModel):
    """
    Library-level configuration.

    Stored at: {storage_root}/config.yaml
    """
    ocr_engines: Dict[str, EngineConfig] = Field(
        default_factory=dict,
        description="OCR engine definitions"
    )
    enhancer: EnhancerConfig = Field(
        default_factory=EnhancerConfig,
        description="Text enhancer definition"
    )
    defaults: DefaultsConfig = Field(
        default_factory=DefaultsConfig,
        description="Default settings for new projects"
    )

    def get_engine(self, name: str) -> Optional[EngineConfig]:
        return self.ocr_engines.get(name)

    def enabled_engines(self) -> List[str]:
        return [name for name, engine in self.ocr_engines.items() if engine.enabled]

    @classmethod
    def with_defaults(cls) -> "LibraryConfig":
        """Create a config with sensible defaults."""
        return cls(
            ocr_engines={
                "tesseract": EngineConfig(type="tesseract", extra={"psm": 3}),
                "ollama": EngineConfig(
                    type="ollama",
                    extra={"model": "llava", "base_url": "${OLLAMA_HOST:-http://localhost:11434}"},
                ),
            },
            enhancer=EnhancerConfig(base_url="${OLLAMA_HOST:-http://localhost:11434}"),
            defaults=DefaultsConfig(),
        )


class ProjectConfig(BaseModel):
    """
    Per-project configuration overrides.

    Stored at: {project_root}/.scriptorium/config.yaml
    Inherits from library config, can override specific values.
    """
    ocr_engines: Optional[List[str]] = Field(None, description="Override engines for this project")
    language: Optional[str] = Field(None, description="Override recognition language")
    max_workers: Optional[int] = Field(None, ge=1, description="Override max workers")
    include_frontmatter: Optional[bool] = Field(None, description="Override export frontmatter")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Project-specific settings")


class ResolvedProjectConfig(BaseModel):
    """
    Fully resolved configuration for a project.

    Combines library defaults with project-specific overrides.
    """
    default_engine: str
    ocr_engines: List[str]
    language: str
    max_workers: int
    pdf_dpi: int
    include_frontmatter: bool
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("ocr_engines")
    @classmethod
    def validate_engines(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one OCR engine must be configured")
        return v

    @classmethod
    def from_configs(
        cls,
        library_config: LibraryConfig,
        project_config: Optional[ProjectConfig] = None
    ) -> "ResolvedProjectConfig":
        defaults = library_config.defaults
        project = project_config or ProjectConfig()

        include_frontmatter = project.include_frontmatter
        if include_frontmatter is None:
            include_frontmatter = defaults.include_frontmatter

        return cls(
            default_engine=defaults.default_engine,
            ocr_engines=project.ocr_engines or defaults.ocr_engines,
            language=project.language or defaults.language,
            max_workers=project.max_workers or defaults.max_workers,
            pdf_dpi=defaults.pdf_dpi,
            include_frontmatter=include_frontmatter,
            extra=project.extra,
        )


def resolve_env_vars(value: str) -> str:
    """
    Resolve ${ENV_VAR} and ${ENV_VAR:-default} references in a string.

    Examples:
        "${OLLAMA_HOST}" -> value from environment ("" if unset)
        "${OLLAMA_HOST:-http://localhost:11434}" -> env value or the default
        "literal-value" -> "literal-value"
    """
    if not isinstance(value, str):
        return value

    pattern = r'\$\{([^}:]+)(?::-([^}]*))?\}'

    def replace(match):
        var_name = match.group(1)
        default = match.group(2) or ""
        return os.environ.get(var_name) or default

    return re.sub(pattern, replace, value)
