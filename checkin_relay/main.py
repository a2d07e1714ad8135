# checkin_relay/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .models import CheckInResponse
from .services.relay import CheckInRelay, RelayError, RelayInternalError, UpstreamError

logger = logging.getLogger("uvicorn.error")


def _error_response(err: RelayError) -> JSONResponse:
    body = CheckInResponse(success=False, message=err.message)
    if isinstance(err, UpstreamError):
        body.status = err.upstream_status
        body.details = err.body
    elif isinstance(err, RelayInternalError):
        body.error = err.error
    return JSONResponse(status_code=err.status_code, content=body.to_body())


def create_app(settings: Optional[Settings] = None, relay: Optional[CheckInRelay] = None) -> FastAPI:
    if settings is None:
        settings = Settings.from_env()
    if relay is None:
        relay = CheckInRelay(settings.upstream_url, timeout=settings.upstream_timeout)

    app = FastAPI(title="Vehicle Check-in Relay")
    app.state.settings = settings
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ----------------- Endpoints -----------------

    @app.get("/ping")
    def ping():
        return {"status": "ok"}

    @app.post("/api/postCheckIn")
    async def post_check_in(request: Request):
        relay: CheckInRelay = request.app.state.relay
        auth_header = request.headers.get("authorization")

        try:
            body = await request.json()
        except ValueError as e:
            logger.warning("check-in body is not valid JSON: %s", e)
            return _error_response(RelayInternalError(f"Invalid JSON body: {e}"))

        try:
            data = await relay.relay(body, auth_header)
        except RelayError as e:
            return _error_response(e)

        return JSONResponse(status_code=200, content=CheckInResponse(success=True, coamoResponse=data).to_body())

    return app


app = create_app()
