import logging
from typing import Any, Dict, List, Optional

import requests

from infra.config.schemas import EnhancerConfig, resolve_env_vars
from infra.llm.enhancer import EnhancementError, TextEnhancer, build_enhancement_prompt


class OllamaEnhancer(TextEnhancer):
    """Enhancer backed by a local Ollama server (/api/tags, /api/generate)."""

    def __init__(self, config: Optional[EnhancerConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or EnhancerConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = resolve_env_vars(self.config.base_url).rstrip('/')
        self.timeout = self.config.timeout
        self.model: Optional[str] = None

    @property
    def name(self) -> str:
        return "ollama"

    def available_models(self) -> List[str]:
        response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    def _pick_model(self, models: List[str]) -> Optional[str]:
        for model in models:
            if self.config.model in model:
                return model
        return models[0] if models else None

    def test_availability(self) -> bool:
        try:
            models = self.available_models()
        except (requests.RequestException, ValueError) as e:
            self.logger.info(f"Ollama not reachable at {self.base_url}: {e}")
            return False

        self.model = self._pick_model(models)
        if self.model is None:
            self.logger.info(f"Ollama at {self.base_url} has no models installed")
            return False
        return True

    def enhance(self, text: str, language: str, context: Optional[str] = None) -> str:
        payload: Dict[str, Any] = {
            "model": self.model or self.config.model,
            "prompt": build_enhancement_prompt(text, language, context or self.config.context),
            "stream": False,
        }

        self.logger.debug(f"Ollama generate request (model={payload['model']}, chars={len(text)})")

        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            raise EnhancementError(f"Ollama request failed: {e}") from e

        enhanced = result.get("response")
        if not isinstance(enhanced, str) or not enhanced.strip():
            raise EnhancementError("Ollama returned an empty response")
        return enhanced.strip()
