from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from pdfgraft import __version__, service
from pdfgraft.exceptions import ValidationError
from pdfgraft.service import CommandLoop, CommandResponse, dispatch, handle_line


def _request(action: str, data: object = None, request_id: object = None) -> str:
    payload = {"action": action}
    if data is not None:
        payload["data"] = data
    if request_id is not None:
        payload["id"] = request_id
    return json.dumps(payload)


def test_health_check() -> None:
    response = handle_line(_request("health_check", request_id="h1"))

    assert response.success
    assert response.data == {"status": "ok", "version": __version__}
    assert response.id == "h1"


@pytest.mark.parametrize("line", ["{not json", "[1, 2]", '"merge"'])
def test_malformed_requests(line: str) -> None:
    response = handle_line(line)

    assert not response.success
    assert response.error_kind == "validation"
    assert response.id is None


def test_unknown_action_keeps_request_id() -> None:
    response = handle_line(_request("compress", {}, request_id=7))

    assert not response.success
    assert response.error_kind == "validation"
    assert response.id == "7"
    with pytest.raises(ValidationError):
        dispatch("compress", {})


def test_non_object_data_is_rejected() -> None:
    response = handle_line(_request("health_check", ["x"]))

    assert response.error_kind == "validation"


def test_merge_request(tmp_path: Path, sample_pdfs: list) -> None:
    output = tmp_path / "merged.pdf"
    line = _request(
        "merge",
        {"files": [str(path) for path in sample_pdfs], "output": str(output), "config": {"keep_bookmarks": False}},
        request_id="m1",
    )

    response = handle_line(line)

    assert response.success, response.error
    assert response.data["total_pages"] == 8
    assert response.data["output_path"] == str(output)
    assert output.exists()


def test_split_request_with_bad_range(tmp_path: Path, sample_pdf: Path) -> None:
    line = _request(
        "split",
        {"file": str(sample_pdf), "ranges": "3-1", "output_dir": str(tmp_path / "out")},
    )

    response = handle_line(line)

    assert not response.success
    assert response.error_kind == "invalid_page_range"


def test_split_request_missing_ranges(tmp_path: Path, sample_pdf: Path) -> None:
    response = handle_line(_request("split", {"file": str(sample_pdf), "output_dir": str(tmp_path)}))

    assert response.error_kind == "validation"


def test_missing_file_error_kind(tmp_path: Path) -> None:
    response = handle_line(_request("get_metadata", {"file": str(tmp_path / "missing.pdf")}))

    assert not response.success
    assert response.error_kind == "file_not_found"


def test_validate_and_metadata_requests(sample_pdf: Path) -> None:
    validated = handle_line(_request("validate", {"file": str(sample_pdf), "extract_metadata": False}))
    metadata = handle_line(_request("get_metadata", {"file": str(sample_pdf)}))

    assert validated.data["is_valid"]
    assert validated.data["metadata"] is None
    assert metadata.data["page_count"] == 10
    assert metadata.data["title"] == "Sample"


def test_unexpected_errors_are_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(data: object) -> dict:
        raise RuntimeError("boom")

    monkeypatch.setitem(service.ACTIONS, "health_check", explode)

    response = handle_line(_request("health_check", request_id="x"))

    assert not response.success
    assert response.error_kind == "internal"
    assert response.error == "boom"


def test_command_loop_answers_in_request_order(sample_pdf: Path) -> None:
    lines = [
        _request("health_check", request_id="1"),
        "",
        _request("get_metadata", {"file": str(sample_pdf)}, request_id="2"),
        "oops",
        _request("validate", {"file": str(sample_pdf)}, request_id="3"),
    ]
    output = io.StringIO()

    handled = CommandLoop(io.StringIO("\n".join(lines) + "\n"), output).run()

    responses = [json.loads(line) for line in output.getvalue().splitlines()]
    assert handled == 4
    assert [response["id"] for response in responses] == ["1", "2", None, "3"]
    assert [response["success"] for response in responses] == [True, True, False, True]
    assert set(responses[0]) == {"success", "data", "error", "error_kind", "id"}


def test_response_serialization() -> None:
    response = CommandResponse.failure(ValidationError("bad input"), "r")

    assert json.loads(response.to_json()) == {
        "success": False,
        "data": None,
        "error": "bad input",
        "error_kind": "validation",
        "id": "r",
    }
