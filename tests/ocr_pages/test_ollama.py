"""
Tests for the Ollama vision OCR adapter.

requests.get / requests.post are monkeypatched; no Ollama server is needed.
"""

import base64
import io

import pytest
import requests
from PIL import Image

from infra.ocr import OCROptions, OllamaOCREngine
from infra.ocr.ollama import encode_image


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if self.payload is None:
            raise ValueError("no JSON")
        return self.payload


@pytest.fixture
def engine(monkeypatch):
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    return OllamaOCREngine()


@pytest.fixture
def page():
    return Image.new("RGB", (120, 80), "white")


class TestAvailability:
    def test_vision_model_installed(self, engine, monkeypatch):
        def fake_get(url, timeout):
            assert url == "http://localhost:11434/api/tags"
            return FakeResponse({"models": [{"name": "llama3:8b"}, {"name": "llava:13b"}]})

        monkeypatch.setattr(requests, "get", fake_get)

        assert engine.is_available()
        assert engine.available_models() == ["llama3:8b", "llava:13b"]

    def test_no_vision_model(self, engine, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse({"models": [{"name": "llama3:8b"}]}))
        assert not engine.is_available()

    def test_server_down(self, engine, monkeypatch):
        def refuse(url, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", refuse)
        assert not engine.is_available()

    def test_malformed_tags(self, engine, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(None))
        assert not engine.is_available()

    def test_host_from_environment(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434/")
        assert OllamaOCREngine().base_url == "http://gpu-box:11434"


class TestRecognize:
    def test_sends_image_and_parses_text(self, engine, page, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse({"models": [{"name": "llava:13b"}]}))
        sent = {}

        def fake_post(url, json, timeout):
            sent.update(url=url, payload=json, timeout=timeout)
            return FakeResponse({"response": "  Baptisms 1887\n\nJohn Smith, son of  "})

        monkeypatch.setattr(requests, "post", fake_post)
        assert engine.is_available()

        result = engine.recognize(page, "lat")

        assert result.text == "Baptisms 1887\n\nJohn Smith, son of"
        assert result.engine == "ollama"
        assert result.language == "lat"
        assert result.confidence == 0.0
        assert result.regions_count == 2

        payload = sent["payload"]
        assert sent["url"] == "http://localhost:11434/api/generate"
        assert payload["model"] == "llava:13b"
        assert payload["stream"] is False
        assert "Language: lat" in payload["prompt"]
        assert "options" not in payload
        decoded = Image.open(io.BytesIO(base64.b64decode(payload["images"][0])))
        assert decoded.size == (120, 80)

    def test_temperature_option(self, engine, page, monkeypatch):
        sent = {}

        def fake_post(url, json, timeout):
            sent.update(payload=json)
            return FakeResponse({"response": "text"})

        monkeypatch.setattr(requests, "post", fake_post)

        engine.recognize(page, "eng", OCROptions(extra={"temperature": 0.1}))

        assert sent["payload"]["model"] == "llava"
        assert sent["payload"]["options"] == {"temperature": 0.1}

    def test_http_error(self, engine, page, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda url, json, timeout: FakeResponse(status=500))
        with pytest.raises(requests.HTTPError):
            engine.recognize(page, "eng")

    def test_missing_response_text(self, engine, page, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda url, json, timeout: FakeResponse({"done": True}))
        with pytest.raises(ValueError, match="no text"):
            engine.recognize(page, "eng")

    def test_engine_language_wins(self, page, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda url, json, timeout: FakeResponse({"response": "x"}))
        engine = OllamaOCREngine(name="ollama-lat", language="lat")

        result = engine.recognize(page, "eng")

        assert result.language == "lat"
        assert result.engine == "ollama-lat"


class TestEncodeImage:
    def test_rgba_converted(self):
        data = base64.b64decode(encode_image(Image.new("RGBA", (10, 10))))
        assert Image.open(io.BytesIO(data)).mode == "RGB"

    def test_grayscale_kept(self):
        data = base64.b64decode(encode_image(Image.new("L", (10, 10))))
        assert Image.open(io.BytesIO(data)).mode == "L"
