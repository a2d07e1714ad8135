# checkin_relay/models.py
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils.validators import format_coordinate, is_blank


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class CheckInPayload(BaseModel):
    # upstream field names are part of the wire contract
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    vehicle_plate: str = Field(..., alias="NR_PLACA", description="Vehicle plate, e.g. 'ABC1234'")
    position_timestamp: str = Field(..., alias="DT_POSICAO", description="DD/MM/YYYY HH:MM:SS, America/Sao_Paulo")
    latitude: str = Field(..., alias="NR_LATITUDE")
    longitude: str = Field(..., alias="NR_LONGITUDE")

    @field_validator("vehicle_plate", "position_timestamp", "latitude", "longitude", mode="before")
    @classmethod
    def _numbers_as_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float):
            return format_coordinate(v)
        return v

    @field_validator("vehicle_plate", "position_timestamp", "latitude", "longitude")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if is_blank(v):
            raise ValueError("must not be empty")
        return v

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class CheckInResponse(BaseModel):
    success: bool
    coamoResponse: Optional[Any] = None
    message: Optional[str] = None
    status: Optional[int] = None
    details: Optional[str] = None
    error: Optional[str] = None

    def to_body(self) -> dict:
        body = self.model_dump(exclude_none=True)
        if self.success:
            # upstream may legitimately answer null
            body["coamoResponse"] = self.coamoResponse
        return body
