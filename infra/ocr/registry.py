"""
OCR engine registry.

Engine classes register under a type name ("tesseract", "ollama"); configured
engines in the library config refer to those types. Tests and plugins can
register their own adapters.

Usage:
    from infra.ocr.registry import get_engine, list_engines

    engine = get_engine("tesseract", config=library_config)
"""

from typing import Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from infra.ocr.provider import OCREngine
    from infra.config import LibraryConfig, EngineConfig


EngineFactory = Callable[..., "OCREngine"]

# Registry of engine factories by type name
_ENGINE_REGISTRY: Dict[str, EngineFactory] = {}


def register_engine(engine_type: str, factory: EngineFactory) -> None:
    _ENGINE_REGISTRY[engine_type] = factory


def unregister_engine(engine_type: str) -> None:
    _ENGINE_REGISTRY.pop(engine_type, None)


def get_engine(name: str, config: Optional["LibraryConfig"] = None) -> "OCREngine":
    """Instantiate an engine by configured name, falling back to its type name.

    Raises:
        ValueError: no configured engine or registered type with this name
    """
    engine_config: Optional["EngineConfig"] = config.get_engine(name) if config else None
    engine_type = engine_config.type if engine_config else name

    factory = _ENGINE_REGISTRY.get(engine_type)
    if factory is None:
        raise ValueError(
            f"Unknown OCR engine: {name}. Available: {', '.join(list_engines(config))}"
        )

    if engine_config is None:
        return factory(name=name)
    return factory(
        name=name,
        language=engine_config.language,
        **engine_config.extra,
    )


def list_engines(config: Optional["LibraryConfig"] = None) -> List[str]:
    names = set(_ENGINE_REGISTRY)
    if config:
        names.update(config.ocr_engines)
    return sorted(names)


def _register_builtin_engines() -> None:
    from infra.ocr.ollama import OllamaOCREngine
    from infra.ocr.tesseract import TesseractEngine
    register_engine("tesseract", TesseractEngine)
    register_engine("ollama", OllamaOCREngine)


_register_builtin_engines()
