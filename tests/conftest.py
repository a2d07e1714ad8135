"""
Shared fixtures: scripted position providers and a recording fake upstream.
"""
from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
import pytest

from checkin_relay.config import Settings
from checkin_relay.models import GeoPoint
from checkin_relay.services.location import PositionOptions

UPSTREAM_URL = "https://upstream.example.com/checkin"
PROXY_URL = "http://proxy.test"


class ScriptedProvider:
    """Plays back one outcome per call: a GeoPoint is returned, an exception raised."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls: List[PositionOptions] = []

    async def get_current_position(self, options: PositionOptions) -> GeoPoint:
        self.calls.append(options)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingUpstream:
    """httpx transport that records requests and answers with a canned response."""

    def __init__(self, status_code: int = 200, json_body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self.json_body = json_body
        self.text = text
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body if self.json_body is not None else {})

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def sao_paulo_point() -> GeoPoint:
    return GeoPoint(latitude=-23.55, longitude=-46.63)


@pytest.fixture
def valid_body() -> dict:
    return {
        "NR_PLACA": "ABC1234",
        "DT_POSICAO": "19/10/2026 11:00:00",
        "NR_LATITUDE": "-23.55",
        "NR_LONGITUDE": "-46.63",
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(upstream_url=UPSTREAM_URL, proxy_url=PROXY_URL)
