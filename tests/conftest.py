"""Shared helpers for the client tests."""

import os
import sys
from typing import Any, Callable, List

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from resilient_http import HttpClient, HttpxTransport, TransportFailure, TransportRequest, TransportResponse

BASE_URL = "https://api.example.com"


def make_client(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> HttpClient:
    """Client whose httpx transport is answered by `handler`."""
    mock_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    transport = HttpxTransport(base_url=BASE_URL, client=mock_client)
    return HttpClient(BASE_URL, transport=transport, **kwargs)


class ScriptedTransport:
    """Transport that plays back a list of responses and exceptions in order."""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.requests: List[TransportRequest] = []
        self.closed = False

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if callable(outcome):
            outcome = outcome(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


def http_failure(request: TransportRequest, status: int, body: Any = None, headers=None, status_text: str = "") -> TransportFailure:
    """Failure as an error status would produce it."""
    return TransportFailure(
        f"Request failed with status code {status}",
        request=request,
        response=TransportResponse(status=status, status_text=status_text, headers=headers or {}, body=body),
    )


@pytest.fixture
def request_stub() -> TransportRequest:
    return TransportRequest(method="GET", url="/test", base_url=BASE_URL)
