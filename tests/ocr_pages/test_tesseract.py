"""
Tests for the Tesseract engine adapter.

pytesseract is monkeypatched; no tesseract binary is needed.
"""

import pytest
import pytesseract
from PIL import Image

from infra.ocr import OCROptions, TesseractEngine
from infra.ocr.tesseract import _extract_paragraphs_from_tsv

HEADER = "level\tpage_num\tblock_num\tpar_num\tline_num\tword_num\tleft\ttop\twidth\theight\tconf\ttext"


def tsv(*rows):
    lines = [HEADER]
    for block, par, conf, text in rows:
        lines.append(f"5\t1\t{block}\t{par}\t1\t1\t0\t0\t10\t10\t{conf}\t{text}")
    return "\n".join(lines)


class TestParseTsv:
    def test_groups_words_by_paragraph(self):
        output = tsv(
            (1, 1, 90, "Baptisms"),
            (1, 1, 80, "1887"),
            (2, 1, 70, "John"),
        )

        paragraphs = _extract_paragraphs_from_tsv(output)

        assert [p["text"] for p in paragraphs] == ["Baptisms 1887", "John"]
        assert paragraphs[0]["confidence"] == pytest.approx(0.85)
        assert paragraphs[1]["confidence"] == pytest.approx(0.70)

    def test_skips_empty_and_negative_confidence(self):
        output = tsv(
            (1, 1, -1, ""),
            (1, 1, -1, "ghost"),
            (1, 1, 95, "word"),
        )

        assert [p["text"] for p in _extract_paragraphs_from_tsv(output)] == ["word"]

    def test_header_only(self):
        assert _extract_paragraphs_from_tsv(HEADER) == []

    def test_missing_column(self):
        with pytest.raises(ValueError):
            _extract_paragraphs_from_tsv("level\ttext\n1\tword")


class TestTesseractEngine:
    def test_recognize(self, monkeypatch):
        calls = {}

        def fake_image_to_data(image, lang, config, output_type):
            calls.update(lang=lang, config=config)
            return tsv((1, 1, 90, "Parish"), (1, 1, 70, "register"), (2, 1, 60, "Page"))

        monkeypatch.setattr(pytesseract, "image_to_data", fake_image_to_data)

        result = TesseractEngine().recognize(Image.new('L', (20, 20)), "eng")

        assert result.text == "Parish register\n\nPage"
        assert result.confidence == pytest.approx((0.8 + 0.6) / 2)
        assert result.regions_count == 2
        assert result.engine == "tesseract"
        assert calls == {"lang": "eng", "config": "--psm 3"}

    def test_language_and_psm_overrides(self, monkeypatch):
        calls = {}

        def fake_image_to_data(image, lang, config, output_type):
            calls.update(lang=lang, config=config)
            return HEADER

        monkeypatch.setattr(pytesseract, "image_to_data", fake_image_to_data)

        result = TesseractEngine(language="lat").recognize(Image.new('L', (20, 20)), "eng", OCROptions(psm=6))

        assert calls == {"lang": "lat", "config": "--psm 6"}
        assert result.text == ""
        assert result.confidence == 0.0

    def test_available(self, monkeypatch):
        monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
        assert TesseractEngine().is_available()

    def test_not_installed(self, monkeypatch):
        def missing():
            raise pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)
        assert not TesseractEngine().is_available()
