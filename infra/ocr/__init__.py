from .provider import OCREngine, OCROptions, OCRResult
from .registry import get_engine, list_engines, register_engine, unregister_engine
from .tesseract import TesseractEngine
from .ollama import OllamaOCREngine

__all__ = [
    "OCREngine",
    "OCROptions",
    "OCRResult",
    "get_engine",
    "list_engines",
    "register_engine",
    "unregister_engine",
    "TesseractEngine",
    "OllamaOCREngine",
]
