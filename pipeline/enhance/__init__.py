import threading
from typing import Optional

from infra.config import EnhancerConfig
from infra.errors import EngineUnavailable
from infra.llm import OllamaEnhancer, TextEnhancer
from infra.pipeline.storage import ProjectStorage

SKIP_SUGGESTION = "Skip enhancement and use the raw OCR text."


class EnhancementService:
    """
    Enhancement stage - optional text-to-text refinement of OCR output.

    The enhancer is probed in a background thread when the service is built.
    Until the probe finishes, or when it fails, `enhancement_available` is
    False and the step is simply not offered. Results are returned, never
    stored; saving them is the caller's transcription step.
    """
    name = "enhancement"

    def __init__(
        self,
        enhancer: Optional[TextEnhancer],
        storage: Optional[ProjectStorage] = None,
        context: Optional[str] = None,
        probe: bool = True,
    ):
        self.enhancer = enhancer
        self.context = context
        self.logger = storage.logger(self.name) if storage else None

        self._lock = threading.Lock()
        self._available = False
        self._probe_thread: Optional[threading.Thread] = None
        if probe and enhancer is not None:
            self.reprobe()

    @classmethod
    def from_config(cls, config: EnhancerConfig, storage: Optional[ProjectStorage] = None) -> "EnhancementService":
        enhancer = OllamaEnhancer(config) if config.enabled else None
        return cls(enhancer, storage=storage, context=config.context)

    def _log(self, level: str, message: str, **kwargs) -> None:
        if self.logger:
            getattr(self.logger, level)(message, **kwargs)

    def _run_probe(self) -> None:
        try:
            available = bool(self.enhancer.test_availability())
        except Exception as e:
            self._log("warning", f"Enhancer probe failed: {e}")
            available = False
        with self._lock:
            self._available = available
        self._log("info", f"Enhancer {self.enhancer.name} {'available' if available else 'unavailable'}")

    def reprobe(self) -> threading.Thread:
        """Start a new availability probe in the background."""
        thread = threading.Thread(target=self._run_probe, name="enhancer-probe", daemon=True)
        with self._lock:
            self._probe_thread = thread
        thread.start()
        return thread

    def wait_for_probe(self, timeout: Optional[float] = None) -> bool:
        with self._lock:
            thread = self._probe_thread
        if thread is not None:
            thread.join(timeout)
        return self.enhancement_available

    @property
    def enhancement_available(self) -> bool:
        with self._lock:
            return self._available and self.enhancer is not None

    def enhance(self, text: str, language: str, context: Optional[str] = None, page: Optional[int] = None) -> str:
        if self.enhancer is None:
            raise EngineUnavailable("Enhancement", suggestion=SKIP_SUGGESTION, reason="No enhancer configured")

        try:
            enhanced = self.enhancer.enhance(text, language, context or self.context)
        except Exception as e:
            self._log("error", f"Enhancement failed: {e}", page=page)
            raise EngineUnavailable(self.enhancer.name, suggestion=SKIP_SUGGESTION, reason=str(e)) from e

        self._log("info", f"Enhanced {len(text)} chars", page=page)
        return enhanced


__all__ = [
    "EnhancementService",
    "SKIP_SUGGESTION",
]
