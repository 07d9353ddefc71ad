"""Tests for the remote image edit client."""

from typing import Any

import pytest
import requests
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QApplication

from layerlab.config.constants import AI_EDIT_MODEL
from layerlab.core.errors import RemoteEditError
from layerlab.io import ai_edit
from layerlab.io.ai_edit import AiEditWorker


class FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _image() -> QImage:
    img = QImage(4, 4, QImage.Format.Format_ARGB32)
    img.fill(QColor("white"))
    return img


def _ok(parts: list[dict]) -> dict:
    return {"candidates": [{"finishReason": "STOP", "content": {"parts": parts}}]}


def test_build_request() -> None:
    body = ai_edit.build_request("make it blue", "image/png", "QUJD")
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"text": "make it blue"}
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}


def test_parse_response_returns_image() -> None:
    payload = _ok([{"text": "here"}, {"inlineData": {"mimeType": "image/jpeg", "data": "Zm9v"}}])
    assert ai_edit.parse_response(200, payload) == ("image/jpeg", "Zm9v")


@pytest.mark.parametrize(
    ("status", "payload", "reason"),
    [
        (400, {"error": {"message": "API key not valid"}}, "API key not valid"),
        (500, None, "HTTP Error: 500"),
        (200, {"promptFeedback": {"blockReason": "SAFETY"}}, "Request blocked: SAFETY"),
        (200, {"candidates": []}, "API returned no candidates in its response."),
        (
            200,
            {"candidates": [{"finishReason": "IMAGE_SAFETY"}]},
            "Generation failed. Reason: IMAGE_SAFETY",
        ),
        (502, {"error": "Bad gateway"}, "HTTP Error: 502"),
        (200, {"candidates": ["oops"]}, "Invalid response: Malformed candidate."),
        (200, {"candidates": "oops"}, "API returned no candidates in its response."),
        (
            200,
            {"candidates": [{"content": {"parts": ["x"]}}]},
            "Invalid response: Malformed content part.",
        ),
        (200, {"candidates": [{"content": "x"}]}, "Invalid response: No content parts found."),
        (200, _ok([]), "Invalid response: No content parts found."),
        (200, _ok([{"text": "I cannot do that"}]), 'AI returned text: "I cannot do that"'),
        (200, _ok([{"thought": True}]), "AI did not return an image."),
    ],
)
def test_parse_response_errors(status: int, payload: Any, reason: str) -> None:
    with pytest.raises(RemoteEditError) as excinfo:
        ai_edit.parse_response(status, payload)
    assert excinfo.value.reason == reason


def test_request_edit_posts_to_model(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def fake_post(url: str, **kwargs: Any) -> FakeResponse:
        calls.append({"url": url, **kwargs})
        return FakeResponse(200, _ok([{"inlineData": {"mimeType": "image/png", "data": "QUJD"}}]))

    monkeypatch.setattr(ai_edit.requests, "post", fake_post)
    uri = ai_edit.request_edit("secret", "add a hat", _image())
    assert uri == "data:image/png;base64,QUJD"
    assert AI_EDIT_MODEL in calls[0]["url"]
    assert calls[0]["params"] == {"key": "secret"}
    assert calls[0]["json"]["contents"][0]["parts"][0]["text"] == "add a hat"


def test_request_edit_requires_key_and_prompt(qapp: QApplication) -> None:
    with pytest.raises(RemoteEditError):
        ai_edit.request_edit("", "prompt", _image())
    with pytest.raises(RemoteEditError):
        ai_edit.request_edit("key", "   ", _image())


def test_request_edit_network_error(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url: str, **kwargs: Any) -> FakeResponse:
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(ai_edit.requests, "post", fake_post)
    with pytest.raises(RemoteEditError) as excinfo:
        ai_edit.request_edit("key", "prompt", _image())
    assert excinfo.value.reason.startswith("Network error")


def test_request_edit_non_json_error(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        ai_edit.requests, "post", lambda url, **kw: FakeResponse(502, ValueError("no json"))
    )
    with pytest.raises(RemoteEditError) as excinfo:
        ai_edit.request_edit("key", "prompt", _image())
    assert excinfo.value.reason == "HTTP Error: 502"


def test_worker_reports_success_and_failure(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ai_edit, "request_edit", lambda *a, **kw: "data:image/png;base64,QUJD")
    ok: list[tuple] = []
    worker = AiEditWorker(1, "key", "prompt", _image())
    worker.signals.succeeded.connect(lambda *args: ok.append(args))
    worker.run()
    assert ok == [(1, "data:image/png;base64,QUJD")]

    def boom(*args: Any, **kwargs: Any) -> str:
        raise RemoteEditError("Request blocked: SAFETY")

    monkeypatch.setattr(ai_edit, "request_edit", boom)
    failed: list[tuple] = []
    worker = AiEditWorker(2, "key", "prompt", _image())
    worker.signals.failed.connect(lambda *args: failed.append(args))
    worker.run()
    assert failed == [(2, "Request blocked: SAFETY")]


def test_worker_reports_malformed_response(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        ai_edit.requests, "post", lambda url, **kw: FakeResponse(200, {"candidates": ["oops"]})
    )
    failed: list[tuple] = []
    worker = AiEditWorker(3, "key", "prompt", _image())
    worker.signals.failed.connect(lambda *args: failed.append(args))
    worker.run()
    assert failed == [(3, "Invalid response: Malformed candidate.")]


def test_worker_reports_unexpected_errors(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args: Any, **kwargs: Any) -> str:
        raise RuntimeError("unexpected")

    monkeypatch.setattr(ai_edit, "request_edit", boom)
    failed: list[tuple] = []
    worker = AiEditWorker(4, "key", "prompt", _image())
    worker.signals.failed.connect(lambda *args: failed.append(args))
    worker.run()
    assert failed == [(4, "Unexpected error while processing the response.")]
