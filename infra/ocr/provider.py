from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from PIL import Image


@dataclass
class OCRResult:
    text: str
    confidence: float = 0.0
    language: str = "unknown"
    processing_time: float = 0.0
    engine: str = ""
    regions_count: int = 0


@dataclass
class OCROptions:
    """Engine-neutral recognition options; `extra` carries engine-specific keys."""
    psm: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class OCREngine(ABC):
    """A text recognition backend.

    `is_available()` is only consulted by the availability probe when an
    orchestrator is built; `recognize()` must not probe again.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def recognize(self, image: Image.Image, language: str, options: Optional[OCROptions] = None) -> OCRResult:
        pass

    @property
    def display_name(self) -> str:
        return self.name
