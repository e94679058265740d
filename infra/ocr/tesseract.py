import logging
import time
from collections import defaultdict
from typing import Optional

import pytesseract
from PIL import Image

from infra.ocr.provider import OCREngine, OCROptions, OCRResult

logger = logging.getLogger(__name__)


class TesseractEngine(OCREngine):
    """Local Tesseract via pytesseract.

    Uses PSM mode 3 by default (automatic page segmentation). Confidence is
    the mean word confidence rescaled from Tesseract's 0-100 range.
    """

    def __init__(self, name: str = "tesseract", language: Optional[str] = None, psm: int = 3, **extra):
        self._name = name
        self.language = language
        self.psm = psm
        self.extra = extra

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return "Tesseract"

    def is_available(self) -> bool:
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.info(f"Tesseract not available: {e}")
            return False
        logger.debug(f"Tesseract {version} available")
        return True

    def recognize(self, image: Image.Image, language: str, options: Optional[OCROptions] = None) -> OCRResult:
        start_time = time.time()
        lang = self.language or language
        psm = options.psm if options and options.psm is not None else self.psm

        tsv_output = pytesseract.image_to_data(
            image,
            lang=lang,
            config=f"--psm {psm}",
            output_type=pytesseract.Output.STRING,
        )
        paragraphs = _extract_paragraphs_from_tsv(tsv_output)

        text = "\n\n".join(p["text"] for p in paragraphs)
        confidence = 0.0
        if paragraphs:
            confidence = sum(p["confidence"] for p in paragraphs) / len(paragraphs)

        return OCRResult(
            text=text,
            confidence=confidence,
            language=lang,
            processing_time=time.time() - start_time,
            engine=self.name,
            regions_count=len(paragraphs),
        )


def _extract_paragraphs_from_tsv(tsv_output: str) -> list:
    """Extract paragraph-level text from Tesseract TSV output."""
    lines = tsv_output.strip().split('\n')

    if len(lines) < 2:
        return []

    header = lines[0].split('\t')

    try:
        block_idx = header.index('block_num')
        par_num_idx = header.index('par_num')
        text_idx = header.index('text')
        conf_idx = header.index('conf')
    except ValueError as e:
        raise ValueError(f"Missing required column in TSV header: {e}")

    paragraph_data = defaultdict(lambda: {"words": [], "confidences": []})

    for line in lines[1:]:
        fields = line.split('\t')

        if len(fields) <= max(block_idx, par_num_idx, text_idx, conf_idx):
            continue

        try:
            key = (int(fields[block_idx]), int(fields[par_num_idx]))
            text = fields[text_idx]
            conf = float(fields[conf_idx])
        except (ValueError, IndexError):
            continue

        if text.strip() and conf >= 0:
            paragraph_data[key]["words"].append(text)
            paragraph_data[key]["confidences"].append(conf)

    paragraphs = []
    for key in sorted(paragraph_data.keys()):
        data = paragraph_data[key]

        if not data["words"]:
            continue

        avg_conf = sum(data["confidences"]) / len(data["confidences"])
        paragraphs.append({
            "text": " ".join(data["words"]),
            "confidence": min(avg_conf / 100.0, 1.0),
        })

    return paragraphs
