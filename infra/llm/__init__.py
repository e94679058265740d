"""
Text enhancement subsystem.

Provides:
- TextEnhancer: abstract text-to-text refinement of raw OCR output
- OllamaEnhancer: local Ollama server adapter over HTTP
"""

from infra.llm.enhancer import EnhancementError, TextEnhancer, build_enhancement_prompt
from infra.llm.ollama import OllamaEnhancer

__all__ = [
    "EnhancementError",
    "TextEnhancer",
    "build_enhancement_prompt",
    "OllamaEnhancer",
]
