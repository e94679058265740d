"""
Locating the library.

SCRIPTORIUM_ROOT (read from the environment or a .env file in the working
directory) names the library directory; everything else lives in its
config.yaml. An explicit root, such as the CLI's --root, wins over both.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .library_config import LibraryConfigManager
from .schemas import LibraryConfig

ROOT_ENV_VAR = "SCRIPTORIUM_ROOT"
DEFAULT_ROOT = "~/Documents/scriptorium"

load_dotenv()


def get_storage_root(override: Optional[Union[str, Path]] = None) -> Path:
    raw = override or os.getenv(ROOT_ENV_VAR) or DEFAULT_ROOT
    return Path(raw).expanduser().resolve()


@lru_cache(maxsize=None)
def _load_cached(root: Path) -> LibraryConfig:
    return LibraryConfigManager(root).load()


def get_library_config(root: Optional[Union[str, Path]] = None) -> LibraryConfig:
    """Library config for `root`, read once per process."""
    return _load_cached(get_storage_root(root))


def reload_config(root: Optional[Union[str, Path]] = None) -> LibraryConfig:
    _load_cached.cache_clear()
    return get_library_config(root)
