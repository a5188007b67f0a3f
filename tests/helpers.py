"""Test doubles shared by unit and integration tests."""

from typing import Any

import httpx

MATRIX_DATA = {
    "resultType": "matrix",
    "result": [
        {
            "metric": {"SrcK8S_Name": "client", "DstK8S_Name": "server"},
            "values": [[1000, "12"], [1060, "13.5"]],
        },
        {
            "metric": {"SrcK8S_Name": "db", "DstK8S_Name": "server"},
            "values": [[1000, "3"]],
        },
    ],
}


class RecordingBackend:
    """httpx mock handler that records requests and replays a canned reply."""

    def __init__(
        self,
        status_code: int = 200,
        body: bytes | dict[str, Any] | list[Any] = b"{}",
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, bytes):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


def prometheus_success(data: Any, warnings: list[str] | None = None) -> dict[str, Any]:
    """A Prometheus API success envelope."""
    body: dict[str, Any] = {"status": "success", "data": data}
    if warnings:
        body["warnings"] = warnings
    return body


def prometheus_error(error_type: str, error: str) -> dict[str, Any]:
    """A Prometheus API error envelope."""
    return {"status": "error", "errorType": error_type, "error": error}
