"""
The library config file, {storage_root}/config.yaml.

Values are edited by dotted key ("defaults.max_workers",
"ocr_engines.ollama.enabled"). Every edit is validated as a whole
LibraryConfig before the file is replaced, and ${VAR} references are
written back verbatim.
"""

from pathlib import Path
from typing import Any

import yaml

from infra.pipeline.storage.atomic import atomic_write_text

from .schemas import EngineConfig, LibraryConfig


CONFIG_FILENAME = "config.yaml"


class LibraryConfigManager:
    def __init__(self, storage_root: Path):
        self.storage_root = Path(storage_root).expanduser().resolve()
        self.config_path = self.storage_root / CONFIG_FILENAME

    def exists(self) -> bool:
        return self.config_path.exists()

    def load(self) -> LibraryConfig:
        """The stored config, or LibraryConfig.with_defaults() before `init`."""
        if not self.exists():
            return LibraryConfig.with_defaults()
        data = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        return LibraryConfig.model_validate(data or {})

    def save(self, config: LibraryConfig) -> None:
        text = yaml.safe_dump(config.model_dump(exclude_none=True), default_flow_style=False, sort_keys=False)
        atomic_write_text(self.config_path, text)

    def get_value(self, key: str) -> Any:
        value: Any = self.load().model_dump()
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                raise KeyError(key)
            value = value[part]
        return value

    def set_value(self, key: str, value: Any) -> LibraryConfig:
        """Set one nested value; raises ValueError for a bare section name."""
        section, _, rest = key.partition('.')
        if not rest:
            raise ValueError(
                f"Cannot set top-level key '{key}' directly; "
                "use a nested key like 'defaults.max_workers' or 'enhancer.model'"
            )
        data = self.load().model_dump()
        if section not in data:
            raise ValueError(f"Unknown config section '{section}'")
        target = data[section]
        *parents, leaf = rest.split('.')
        for part in parents:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                raise ValueError(f"'{key}' does not name a nested value")
        target[leaf] = value
        return self._replace(data)

    def set_engine(self, name: str, engine: EngineConfig) -> LibraryConfig:
        """Add or replace one OCR engine definition."""
        config = self.load()
        config.ocr_engines[name] = engine
        self.save(config)
        return config

    def set_engine_enabled(self, name: str, enabled: bool) -> LibraryConfig:
        config = self.load()
        if name not in config.ocr_engines:
            raise KeyError(f"No OCR engine named '{name}' (configured: {', '.join(config.ocr_engines) or 'none'})")
        return self.set_value(f"ocr_engines.{name}.enabled", enabled)

    def _replace(self, data: dict) -> LibraryConfig:
        config = LibraryConfig.model_validate(data)
        self.save(config)
        return config


def load_library_config(storage_root: Path) -> LibraryConfig:
    return LibraryConfigManager(storage_root).load()
