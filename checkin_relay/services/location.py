# checkin_relay/services/location.py
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from ..models import GeoPoint

logger = logging.getLogger("uvicorn.error")


class PositionErrorCode(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


# operator-facing text, one per failure cause
POSITION_ERROR_MESSAGES = {
    PositionErrorCode.PERMISSION_DENIED: "Permissão de localização negada.",
    PositionErrorCode.POSITION_UNAVAILABLE: "Serviço de localização indisponível.",
    PositionErrorCode.TIMEOUT: "Tempo esgotado para obter a localização.",
    PositionErrorCode.UNSUPPORTED: "Geolocalização não é suportada neste dispositivo.",
    PositionErrorCode.UNKNOWN: "Erro ao obter localização.",
}


class PositionError(Exception):
    """Raised by a position provider with the classified cause."""

    def __init__(self, code: PositionErrorCode, detail: str = ""):
        self.code = PositionErrorCode(code)
        self.detail = detail
        super().__init__(detail or self.code.value)


class LocationUnavailable(Exception):
    def __init__(self, code: PositionErrorCode):
        self.code = PositionErrorCode(code)
        self.reason = POSITION_ERROR_MESSAGES[self.code]
        super().__init__(self.reason)


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool
    timeout: float  # seconds
    maximum_age: float  # seconds, 0 means a fresh fix only


class LocationTier(Enum):
    PRECISE = PositionOptions(enable_high_accuracy=True, timeout=12.0, maximum_age=0.0)
    DEGRADED = PositionOptions(enable_high_accuracy=False, timeout=25.0, maximum_age=5 * 60.0)

    @property
    def options(self) -> PositionOptions:
        return self.value


class PositionProvider(Protocol):
    async def get_current_position(self, options: PositionOptions) -> GeoPoint:
        ...


class FixedPositionProvider:
    """Provider for a host that already knows where it is (CLI, kiosks)."""

    def __init__(self, latitude: float, longitude: float):
        self.point = GeoPoint(latitude=latitude, longitude=longitude)

    async def get_current_position(self, options: PositionOptions) -> GeoPoint:
        return self.point


async def get_position_once(provider: PositionProvider, options: PositionOptions, label: str = "") -> GeoPoint:
    """
    Ask the provider for a single fix with the given options.
    The deadline is enforced here as well, whatever the provider does with it.
    """
    try:
        return await asyncio.wait_for(provider.get_current_position(options), timeout=options.timeout)
    except PositionError as e:
        raise LocationUnavailable(e.code) from e
    except asyncio.TimeoutError as e:
        raise LocationUnavailable(PositionErrorCode.TIMEOUT) from e
    except Exception as e:
        logger.exception("position provider failed on %s tier", label or "unnamed")
        raise LocationUnavailable(PositionErrorCode.UNKNOWN) from e


async def acquire_location(
    provider: Optional[PositionProvider],
    precise: PositionOptions = LocationTier.PRECISE.options,
    degraded: PositionOptions = LocationTier.DEGRADED.options,
) -> GeoPoint:
    """
    Precise fix first; if that fails for any reason, one degraded attempt.
    Only the degraded attempt's failure reaches the caller.
    """
    if provider is None:
        raise LocationUnavailable(PositionErrorCode.UNSUPPORTED)

    try:
        return await get_position_once(provider, precise, "precise")
    except LocationUnavailable as e:
        logger.info("precise fix failed (%s), trying degraded fix", e.code.value)

    return await get_position_once(provider, degraded, "degraded")
