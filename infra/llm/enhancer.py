from abc import ABC, abstractmethod
from typing import Optional


class EnhancementError(Exception):
    """Raised by an enhancer when a call cannot produce text."""


class TextEnhancer(ABC):
    """Text-to-text refinement of raw OCR output."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def test_availability(self) -> bool:
        pass

    @abstractmethod
    def enhance(self, text: str, language: str, context: Optional[str] = None) -> str:
        pass


def build_enhancement_prompt(text: str, language: str, context: Optional[str] = None) -> str:
    lines = [
        "You are correcting text produced by optical character recognition.",
        f"Language: {language}.",
    ]
    if context:
        lines.append(f"Context: {context}.")
    lines.extend([
        "Fix recognition errors, broken words and hyphenation across line breaks.",
        "Keep the original wording, spelling conventions and paragraph structure.",
        "Return only the corrected text, without commentary.",
        "",
        "Text:",
        text,
    ])
    return "\n".join(lines)
