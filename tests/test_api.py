"""
HTTP-level tests for the check-in proxy, including the end-to-end flows
from the submitter through the proxy to a fake upstream.
"""
from datetime import datetime, timezone

import httpx
import pytest

from checkin_relay.config import Settings
from checkin_relay.main import create_app
from checkin_relay.services.location import PositionError, PositionErrorCode
from checkin_relay.services.relay import CheckInRelay
from checkin_relay.services.submitter import CheckInSubmitter, LocationFailed, UpstreamRejected

from conftest import PROXY_URL, UPSTREAM_URL, RecordingUpstream, ScriptedProvider


def build_app(upstream: RecordingUpstream, upstream_url=UPSTREAM_URL):
    settings = Settings(upstream_url=upstream_url, proxy_url=PROXY_URL)
    relay = CheckInRelay(settings.upstream_url, transport=upstream.transport)
    return create_app(settings, relay=relay)


def proxy_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=PROXY_URL)


class TestPostCheckIn:
    async def test_success_envelope(self, valid_body):
        upstream = RecordingUpstream(json_body={"id": 42})

        async with proxy_client(build_app(upstream)) as client:
            resp = await client.post("/api/postCheckIn", json=valid_body)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "coamoResponse": {"id": 42}}

    async def test_null_upstream_answer_is_kept(self, valid_body):
        """Should report an upstream JSON null instead of dropping the field."""
        upstream = RecordingUpstream(text="null")

        async with proxy_client(build_app(upstream)) as client:
            resp = await client.post("/api/postCheckIn", json=valid_body)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "coamoResponse": None}

    async def test_invalid_payload(self, valid_body):
        upstream = RecordingUpstream()
        body = dict(valid_body, NR_PLACA="")

        async with proxy_client(build_app(upstream)) as client:
            resp = await client.post("/api/postCheckIn", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Payload inválido"}
        assert upstream.requests == []

    async def test_upstream_error(self, valid_body):
        upstream = RecordingUpstream(status_code=401, text="token expirado")

        async with proxy_client(build_app(upstream)) as client:
            resp = await client.post("/api/postCheckIn", json=valid_body)

        assert resp.status_code == 502
        assert resp.json() == {
            "success": False,
            "message": "Erro na API da Coamo",
            "status": 401,
            "details": "token expirado",
        }

    async def test_malformed_json_is_internal_error(self):
        upstream = RecordingUpstream()

        async with proxy_client(build_app(upstream)) as client:
            resp = await client.post(
                "/api/postCheckIn", content=b"{not json", headers={"content-type": "application/json"}
            )

        body = resp.json()
        assert resp.status_code == 500
        assert body["success"] is False
        assert "error" in body
        assert upstream.requests == []

    async def test_authorization_passthrough(self, valid_body):
        upstream = RecordingUpstream()

        async with proxy_client(build_app(upstream)) as client:
            await client.post("/api/postCheckIn", json=valid_body, headers={"Authorization": "Token abc.def"})
            await client.post("/api/postCheckIn", json=valid_body)

        assert upstream.requests[0].headers["authorization"] == "Token abc.def"
        assert "authorization" not in upstream.requests[1].headers

    async def test_ping(self):
        async with proxy_client(build_app(RecordingUpstream())) as client:
            resp = await client.get("/ping")

        assert resp.json() == {"status": "ok"}


class TestEndToEnd:
    """Submitter -> proxy app -> fake upstream."""

    async def test_scenario_successful_check_in(self, sao_paulo_point):
        upstream = RecordingUpstream(json_body={"id": 42})
        app = build_app(upstream)
        submitter = CheckInSubmitter(
            PROXY_URL,
            ScriptedProvider(sao_paulo_point),
            transport=httpx.ASGITransport(app=app),
            clock=lambda: datetime(2026, 10, 19, 14, 0, 0, tzinfo=timezone.utc),
        )

        result = await submitter.submit(" abc-1234 ")

        assert result["success"] is True
        assert result["coamoResponse"]["id"] == 42
        assert upstream.last_json == {
            "NR_PLACA": "ABC1234",
            "DT_POSICAO": "19/10/2026 11:00:00",
            "NR_LATITUDE": "-23.55",
            "NR_LONGITUDE": "-46.63",
        }

    async def test_scenario_missing_upstream_configuration(self, sao_paulo_point):
        upstream = RecordingUpstream()
        app = build_app(upstream, upstream_url=None)
        submitter = CheckInSubmitter(
            PROXY_URL, ScriptedProvider(sao_paulo_point), transport=httpx.ASGITransport(app=app)
        )

        with pytest.raises(UpstreamRejected) as exc:
            await submitter.submit("ABC1234")

        assert exc.value.status_code == 500
        assert "COAMO_API_URL não configurada" in exc.value.body
        assert upstream.requests == []

    async def test_scenario_permission_denied(self):
        upstream = RecordingUpstream()
        app = build_app(upstream)
        provider = ScriptedProvider(
            PositionError(PositionErrorCode.PERMISSION_DENIED),
            PositionError(PositionErrorCode.PERMISSION_DENIED),
        )
        submitter = CheckInSubmitter(PROXY_URL, provider, transport=httpx.ASGITransport(app=app))

        with pytest.raises(LocationFailed) as exc:
            await submitter.submit("ABC1234")

        assert exc.value.message == "Permissão de localização negada."
        assert upstream.requests == []

    async def test_credential_reaches_upstream(self, sao_paulo_point):
        upstream = RecordingUpstream(json_body={"id": 1})
        app = build_app(upstream)
        submitter = CheckInSubmitter(
            PROXY_URL,
            ScriptedProvider(sao_paulo_point),
            require_credential=True,
            transport=httpx.ASGITransport(app=app),
        )

        await submitter.submit("ABC1234", "opaque-token")

        assert upstream.requests[0].headers["authorization"] == "Bearer opaque-token"
