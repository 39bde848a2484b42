"""Line-oriented JSON command loop.

Each input line is a request ``{"action": str, "data": object, "id": str}``
and produces exactly one response line::

    {"success": bool, "data": object|null, "error": str|null,
     "error_kind": str|null, "id": str|null}

Requests execute one at a time on a worker thread so responses come back in
request order while the intake loop keeps reading.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import IO, Any, Callable, Dict, Mapping, Optional

from . import __version__
from .exceptions import PdfGraftError, ValidationError
from .merge import PdfMerger
from .metadata import get_pdf_info, validate_pdf
from .split import PdfSplitter
from .types import MergeRequest, SplitRequest

LOGGER = logging.getLogger("pdfgraft.service")

Handler = Callable[[Mapping[str, Any]], Dict[str, Any]]


def _file_argument(data: Mapping[str, Any]) -> str:
    path = data.get("file")
    if not isinstance(path, str) or not path.strip():
        raise ValidationError("file must be a non-empty string")
    return path


def handle_merge(data: Mapping[str, Any]) -> Dict[str, Any]:
    return PdfMerger().merge(MergeRequest.from_mapping(data)).to_dict()


def handle_split(data: Mapping[str, Any]) -> Dict[str, Any]:
    return PdfSplitter().split(SplitRequest.from_mapping(data)).to_dict()


def handle_validate(data: Mapping[str, Any]) -> Dict[str, Any]:
    extract = data.get("extract_metadata", True)
    if not isinstance(extract, bool):
        raise ValidationError("extract_metadata must be a boolean")
    return validate_pdf(_file_argument(data), extract_metadata=extract).to_dict()


def handle_get_metadata(data: Mapping[str, Any]) -> Dict[str, Any]:
    return get_pdf_info(_file_argument(data)).to_dict()


def handle_health_check(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {"status": "ok", "version": __version__}


ACTIONS: Dict[str, Handler] = {
    "merge": handle_merge,
    "split": handle_split,
    "validate": handle_validate,
    "get_metadata": handle_get_metadata,
    "health_check": handle_health_check,
}


@dataclass
class CommandResponse:
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def failure(cls, exc: PdfGraftError, request_id: Optional[str] = None) -> "CommandResponse":
        return cls(success=False, error=exc.message, error_kind=exc.kind, id=request_id)

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)


def dispatch(action: str, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Run *action* with *data*; unknown actions raise :class:`ValidationError`."""

    handler = ACTIONS.get(action)
    if handler is None:
        raise ValidationError(f"Unknown action: {action}")
    return handler(data)


def handle_line(line: str) -> CommandResponse:
    """Decode one request line, run it and build its response."""

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        return CommandResponse.failure(ValidationError(f"Invalid JSON: {exc.msg}"))

    if not isinstance(payload, dict):
        return CommandResponse.failure(ValidationError("Request must be a JSON object"))

    request_id = payload.get("id")
    if request_id is not None and not isinstance(request_id, str):
        request_id = str(request_id)
    action = payload.get("action")
    data = payload.get("data")
    if data is None:
        data = {}

    try:
        if not isinstance(action, str):
            raise ValidationError("action must be a string")
        if not isinstance(data, dict):
            raise ValidationError("data must be an object")
        LOGGER.info("Handling action %s (id=%s)", action, request_id)
        result = dispatch(action, data)
    except PdfGraftError as exc:
        LOGGER.warning("Action %s failed: %s", action, exc.message)
        return CommandResponse.failure(exc, request_id)
    except Exception as exc:  # keep serving after an unexpected failure
        LOGGER.exception("Unexpected failure while handling action %s", action)
        return CommandResponse(
            success=False, error=str(exc) or type(exc).__name__, error_kind="internal", id=request_id
        )
    return CommandResponse(success=True, data=result, id=request_id)


class CommandLoop:
    """Read request lines from *input_stream* and answer on *output_stream*."""

    def __init__(self, input_stream: IO[str], output_stream: IO[str]) -> None:
        self.input_stream = input_stream
        self.output_stream = output_stream
        self._lock = threading.Lock()

    def _emit(self, future: "Future[CommandResponse]") -> None:
        response = future.result()
        with self._lock:
            self.output_stream.write(response.to_json() + "\n")
            self.output_stream.flush()

    def run(self) -> int:
        """Serve until end of input and return the number of requests handled."""

        handled = 0
        LOGGER.info("pdfgraft %s command loop started", __version__)
        # One worker keeps execution and responses in request order.
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdfgraft-worker") as executor:
            for line in self.input_stream:
                if not line.strip():
                    continue
                future = executor.submit(handle_line, line)
                future.add_done_callback(self._emit)
                handled += 1
        LOGGER.info("Command loop finished after %d request(s)", handled)
        return handled


__all__ = [
    "ACTIONS",
    "CommandLoop",
    "CommandResponse",
    "dispatch",
    "handle_line",
]
