from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class PresetType(str, Enum):
    DOCUMENT_OCR = "Document OCR"
    SCANNED_DOCUMENT = "Scanned Document"
    PHOTO_TEXT = "Photo Text"
    CUSTOM = "Custom"

    @property
    def description(self) -> str:
        return _PRESET_DESCRIPTIONS[self]


_PRESET_DESCRIPTIONS = {
    PresetType.DOCUMENT_OCR: "Optimized for clean printed documents",
    PresetType.SCANNED_DOCUMENT: "Optimized for scanned pages with potential skew",
    PresetType.PHOTO_TEXT: "Optimized for photos containing text",
    PresetType.CUSTOM: "Individually selected filters",
}


class PreprocessOptions(BaseModel):
    preset: PresetType = PresetType.DOCUMENT_OCR
    grayscale: bool = True
    deskew: bool = True
    deskew_tolerance: float = Field(5.0, gt=0, le=45, description="Maximum correction angle in degrees")
    denoise: bool = False
    denoise_radius: float = Field(2.0, gt=0)
    enhance_contrast: bool = False
    binarize: bool = True

    @classmethod
    def from_preset(cls, preset: PresetType) -> "PreprocessOptions":
        return PRESETS[preset].model_copy()

    @property
    def enabled_steps(self) -> List[str]:
        steps = []
        if self.grayscale:
            steps.append("Grayscale")
        if self.deskew:
            steps.append("Deskew")
        if self.denoise:
            steps.append("Denoise")
        if self.enhance_contrast:
            steps.append("Contrast")
        if self.binarize:
            steps.append("Binarize")
        return steps

    @property
    def summary(self) -> str:
        if self.preset != PresetType.CUSTOM:
            return self.preset.value
        steps = self.enabled_steps
        return ", ".join(steps) if steps else "None"


PRESETS = {
    PresetType.DOCUMENT_OCR: PreprocessOptions(
        preset=PresetType.DOCUMENT_OCR,
        grayscale=True, deskew=True, deskew_tolerance=5.0,
        denoise=False, denoise_radius=2.0, enhance_contrast=False, binarize=True,
    ),
    PresetType.SCANNED_DOCUMENT: PreprocessOptions(
        preset=PresetType.SCANNED_DOCUMENT,
        grayscale=True, deskew=True, deskew_tolerance=10.0,
        denoise=True, denoise_radius=2.0, enhance_contrast=True, binarize=True,
    ),
    PresetType.PHOTO_TEXT: PreprocessOptions(
        preset=PresetType.PHOTO_TEXT,
        grayscale=True, deskew=False, deskew_tolerance=5.0,
        denoise=True, denoise_radius=3.0, enhance_contrast=True, binarize=False,
    ),
    PresetType.CUSTOM: PreprocessOptions(
        preset=PresetType.CUSTOM,
        grayscale=False, deskew=False, deskew_tolerance=5.0,
        denoise=False, denoise_radius=2.0, enhance_contrast=False, binarize=False,
    ),
}
