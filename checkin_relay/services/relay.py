# checkin_relay/services/relay.py
import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..models import CheckInPayload

logger = logging.getLogger("uvicorn.error")


class RelayError(Exception):
    status_code = 500
    message = "Erro interno no proxy de check-in"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class InvalidPayload(RelayError):
    status_code = 400
    message = "Payload inválido"


class Misconfigured(RelayError):
    status_code = 500
    message = "COAMO_API_URL não configurada"


class UpstreamError(RelayError):
    status_code = 502
    message = "Erro na API da Coamo"

    def __init__(self, upstream_status: int, body: str):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__()


class RelayInternalError(RelayError):
    status_code = 500

    def __init__(self, error: str):
        self.error = error
        super().__init__()


def parse_json_or_raw(text: str) -> Any:
    """Upstream does not always answer with JSON; keep the text when it doesn't."""
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


class CheckInRelay:
    """
    Forwards a check-in to the upstream API. One outbound call per request,
    no retries, no state kept between requests.
    """

    def __init__(
        self,
        upstream_url: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.upstream_url = upstream_url
        self.timeout = timeout
        self._transport = transport

    async def relay(self, body: Any, auth_header: Optional[str] = None) -> Any:
        try:
            payload = self._validate(body)

            if not self.upstream_url:
                logger.error("COAMO_API_URL not set, refusing check-in for %s", payload.vehicle_plate)
                raise Misconfigured()

            return await self._forward(payload, auth_header)
        except RelayError:
            raise
        except Exception as e:
            logger.exception("check-in relay unexpected error")
            raise RelayInternalError(str(e) or e.__class__.__name__) from e

    def _validate(self, body: Any) -> CheckInPayload:
        if not isinstance(body, dict):
            raise InvalidPayload()
        try:
            return CheckInPayload.model_validate(body)
        except ValidationError as e:
            missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            logger.warning("invalid check-in payload, bad fields: %s", ", ".join(missing))
            raise InvalidPayload() from e

    async def _forward(self, payload: CheckInPayload, auth_header: Optional[str]) -> Any:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if auth_header is not None:
            headers["Authorization"] = auth_header

        wire = payload.to_wire()
        logger.info(
            "relaying check-in plate=%s at=%s lat=%s lon=%s",
            wire["NR_PLACA"], wire["DT_POSICAO"], wire["NR_LATITUDE"], wire["NR_LONGITUDE"],
        )

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.upstream_url, json=wire, headers=headers)

        text = resp.text
        data = parse_json_or_raw(text)

        if not resp.is_success:
            logger.warning("upstream rejected check-in for %s with %s", wire["NR_PLACA"], resp.status_code)
            raise UpstreamError(resp.status_code, text)

        return data
