"""
In-process engine and enhancer adapters for tests.

They implement the real interfaces, record their calls and can be told to
fail, so orchestration can be tested without tesseract or an Ollama server.
"""

import threading
import time
from typing import List, Optional

from PIL import Image

from infra.llm import EnhancementError, TextEnhancer
from infra.ocr import OCREngine, OCROptions, OCRResult


class FakeEngine(OCREngine):
    def __init__(
        self,
        name: str = "fake",
        text: str = "recognized text",
        available: bool = True,
        fail: bool = False,
        delay: float = 0.0,
        confidence: float = 0.9,
    ):
        self._name = name
        self.text = text
        self.available = available
        self.fail = fail
        self.delay = delay
        self.confidence = confidence
        self.probes = 0
        self.calls: List[str] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        self.probes += 1
        return self.available

    def recognize(self, image: Image.Image, language: str, options: Optional[OCROptions] = None) -> OCRResult:
        with self._lock:
            self.calls.append(language)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self._name} crashed")
        return OCRResult(
            text=self.text,
            confidence=self.confidence,
            language=language,
            processing_time=0.01,
            engine=self._name,
            regions_count=1,
        )


class FakeEnhancer(TextEnhancer):
    def __init__(self, available: bool = True, fail: bool = False, suffix: str = " [enhanced]"):
        self.available = available
        self.fail = fail
        self.suffix = suffix
        self.calls: List[tuple] = []

    @property
    def name(self) -> str:
        return "fake-enhancer"

    def test_availability(self) -> bool:
        return self.available

    def enhance(self, text: str, language: str, context: Optional[str] = None) -> str:
        self.calls.append((text, language, context))
        if self.fail:
            raise EnhancementError("model crashed")
        return text + self.suffix
