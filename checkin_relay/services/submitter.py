# checkin_relay/services/submitter.py
import logging
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from ..models import CheckInPayload, GeoPoint
from ..utils.timestamps import current_local_timestamp
from ..utils.validators import format_coordinate, is_blank, looks_like_plate, normalize_plate
from .location import LocationUnavailable, PositionProvider, acquire_location
from .relay import parse_json_or_raw

logger = logging.getLogger("uvicorn.error")

CHECKIN_PATH = "/api/postCheckIn"


class SubmissionError(Exception):
    message = "Erro no check-in"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class MissingPlate(SubmissionError):
    message = "Por favor, informe a placa do veículo"


class MissingCredential(SubmissionError):
    message = "Por favor, informe o token de acesso"


class LocationFailed(SubmissionError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class UpstreamRejected(SubmissionError):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Falha na API: {status_code} {body}")


class ProxyUnreachable(SubmissionError):
    pass


def build_payload(plate: str, point: GeoPoint, timestamp: str) -> CheckInPayload:
    # the model rejects any blank field, nothing is defaulted
    return CheckInPayload(
        vehicle_plate=normalize_plate(plate),
        position_timestamp=timestamp,
        latitude=format_coordinate(point.latitude),
        longitude=format_coordinate(point.longitude),
    )


class CheckInSubmitter:
    """
    Client side of a check-in: validate input, resolve the position,
    post once to the proxy.

    require_credential switches between the two deployment modes; the flow
    is the same, only an absent credential becomes an input error.
    """

    def __init__(
        self,
        proxy_url: str,
        provider: Optional[PositionProvider],
        require_credential: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.endpoint = proxy_url.rstrip("/") + CHECKIN_PATH
        self.provider = provider
        self.require_credential = require_credential
        self.timeout = timeout
        self._transport = transport
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings,
        provider: Optional[PositionProvider],
        proxy_url: Optional[str] = None,
        require_credential: bool = False,
        **kwargs,
    ) -> "CheckInSubmitter":
        # explicit arguments only tighten or redirect what the settings say
        return cls(
            proxy_url or settings.proxy_url,
            provider,
            require_credential=require_credential or settings.require_credential,
            timeout=settings.submit_timeout,
            **kwargs,
        )

    async def submit(self, plate: str, credential: Optional[str] = None) -> Any:
        plate = normalize_plate(plate)
        if not plate:
            raise MissingPlate()
        if is_blank(credential):
            if self.require_credential:
                raise MissingCredential()
            credential = None
        if not looks_like_plate(plate):
            logger.info("plate %s does not follow the usual layout, sending as typed", plate)

        try:
            point = await acquire_location(self.provider)
        except LocationUnavailable as e:
            raise LocationFailed(e.reason) from e

        now = self._clock() if self._clock else None
        payload = build_payload(plate, point, current_local_timestamp(now))

        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.endpoint, json=payload.to_wire(), headers=headers)
        except httpx.TimeoutException as e:
            raise ProxyUnreachable("Tempo esgotado ao enviar o check-in") from e
        except httpx.TransportError as e:
            raise ProxyUnreachable(f"Não foi possível contatar o servidor: {e}") from e

        if not resp.is_success:
            raise UpstreamRejected(resp.status_code, resp.text)

        return parse_json_or_raw(resp.text)
