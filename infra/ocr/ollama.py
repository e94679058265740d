import base64
import io
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from PIL import Image

from infra.config.schemas import resolve_env_vars
from infra.ocr.provider import OCREngine, OCROptions, OCRResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "${OLLAMA_HOST:-http://localhost:11434}"
DEFAULT_MODEL = "llava"

OCR_PROMPT = """Transcribe all text visible in this scanned page exactly as written.
Language: {language}
Keep the original line breaks and spelling. Do not translate, summarize or correct anything.
Return only the transcribed text."""


def encode_image(image: Image.Image) -> str:
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffered = io.BytesIO()
    image.save(buffered, format="PNG")
    return base64.b64encode(buffered.getvalue()).decode('utf-8')


class OllamaOCREngine(OCREngine):
    """Vision-language OCR through a local Ollama server.

    Availability means the server answers /api/tags and has a model whose
    name contains the configured one (a llava-class vision model). Ollama
    reports no confidence, so results carry 0.0.
    """

    def __init__(
        self,
        name: str = "ollama",
        language: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 300.0,
        **extra
    ):
        self._name = name
        self.language = language
        self.model = model
        self.base_url = resolve_env_vars(base_url).rstrip('/')
        self.timeout = timeout
        self.extra = extra
        self._resolved_model: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return "Ollama VLLM"

    def available_models(self) -> List[str]:
        response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    def is_available(self) -> bool:
        try:
            models = self.available_models()
        except (requests.RequestException, ValueError) as e:
            logger.info(f"Ollama not reachable at {self.base_url}: {e}")
            return False

        matches = [m for m in models if self.model in m]
        if not matches:
            logger.info(f"Ollama at {self.base_url} has no '{self.model}' vision model")
            return False
        self._resolved_model = matches[0]
        return True

    def recognize(self, image: Image.Image, language: str, options: Optional[OCROptions] = None) -> OCRResult:
        start_time = time.time()
        lang = self.language or language
        payload: Dict[str, Any] = {
            "model": self._resolved_model or self.model,
            "prompt": OCR_PROMPT.format(language=lang),
            "images": [encode_image(image)],
            "stream": False,
        }
        if options and options.extra.get("temperature") is not None:
            payload["options"] = {"temperature": options.extra["temperature"]}

        response = requests.post(
            f"{self.base_url}/api/generate",
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        result = response.json()

        text = result.get("response")
        if not isinstance(text, str):
            raise ValueError("Ollama returned no text")
        text = text.strip()

        return OCRResult(
            text=text,
            confidence=0.0,
            language=lang,
            processing_time=time.time() - start_time,
            engine=self.name,
            regions_count=len([p for p in text.split("\n\n") if p.strip()]),
        )
