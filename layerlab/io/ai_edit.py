"""Remote image edit — send an image and a prompt, get an edited image back."""

from __future__ import annotations

import base64
import logging
from typing import Any

import requests
from PyQt6.QtCore import QObject, QRunnable, pyqtSignal, pyqtSlot
from PyQt6.QtGui import QImage

from layerlab.config.constants import AI_EDIT_MODEL, AI_EDIT_TIMEOUT, AI_EDIT_URL
from layerlab.core import image_ops
from layerlab.core.errors import RemoteEditError

log = logging.getLogger(__name__)


def build_request(prompt: str, mime: str, data_b64: str) -> dict[str, Any]:
    return {
        "contents": [
            {
                "parts": [
                    {"text": prompt},
                    {"inline_data": {"mime_type": mime, "data": data_b64}},
                ]
            }
        ]
    }


def parse_response(status: int, payload: Any) -> tuple[str, str]:
    """Extract ``(mime_type, base64_data)`` from a generateContent response.

    Raises :class:`RemoteEditError` with a user-facing reason for every
    failure shape the service produces, including bodies of the wrong shape.
    """
    data = payload if isinstance(payload, dict) else {}
    if not 200 <= status < 300:
        error = data.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        raise RemoteEditError(str(message) if message else f"HTTP Error: {status}")

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        feedback = data.get("promptFeedback")
        block = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block:
            raise RemoteEditError(f"Request blocked: {block}")
        raise RemoteEditError("API returned no candidates in its response.")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise RemoteEditError("Invalid response: Malformed candidate.")
    finish = candidate.get("finishReason")
    if finish and finish != "STOP":
        raise RemoteEditError(f"Generation failed. Reason: {finish}")

    content = candidate.get("content")
    parts = (content.get("parts") if isinstance(content, dict) else None) or []
    if not isinstance(parts, list) or not parts:
        raise RemoteEditError("Invalid response: No content parts found.")
    if not all(isinstance(part, dict) for part in parts):
        raise RemoteEditError("Invalid response: Malformed content part.")

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            return inline.get("mimeType") or inline.get("mime_type") or "image/png", inline["data"]

    text = next((part["text"] for part in parts if part.get("text")), None)
    if text:
        raise RemoteEditError(f'AI returned text: "{text}"')
    raise RemoteEditError("AI did not return an image.")


def request_edit(
    api_key: str,
    prompt: str,
    image: QImage,
    *,
    model: str = AI_EDIT_MODEL,
    timeout: float = AI_EDIT_TIMEOUT,
) -> str:
    """POST *image* with *prompt* and return the edited image as a data URI."""
    if not api_key.strip():
        raise RemoteEditError("Please set your API key in Preferences.")
    if not prompt.strip():
        raise RemoteEditError("Please enter a prompt.")

    body = build_request(prompt, "image/png", base64.b64encode(image_ops.encode_png(image)).decode("ascii"))
    url = AI_EDIT_URL.format(model=model)
    log.info("requesting remote edit (%dx%d)", image.width(), image.height())
    try:
        resp = requests.post(url, params={"key": api_key}, json=body, timeout=timeout)
    except requests.RequestException as exc:
        raise RemoteEditError(f"Network error: {exc}") from exc
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    mime, data = parse_response(resp.status_code, payload)
    return f"data:{mime};base64,{data}"


class _AiEditWorkerSignals(QObject):
    succeeded = pyqtSignal(int, str)
    failed = pyqtSignal(int, str)


class AiEditWorker(QRunnable):
    """Run :func:`request_edit` on the thread pool."""

    def __init__(self, token: int, api_key: str, prompt: str, image: QImage) -> None:
        super().__init__()
        self.token = token
        self.api_key = api_key
        self.prompt = prompt
        self.image = image.copy()
        self.signals = _AiEditWorkerSignals()

    @pyqtSlot()
    def run(self) -> None:
        try:
            uri = request_edit(self.api_key, self.prompt, self.image)
        except RemoteEditError as exc:
            log.warning("remote edit failed: %s", exc.reason)
            self.signals.failed.emit(self.token, exc.reason)
            return
        except Exception:
            log.exception("remote edit %d crashed", self.token)
            self.signals.failed.emit(self.token, "Unexpected error while processing the response.")
            return
        self.signals.succeeded.emit(self.token, uri)
