# checkin_relay/cli.py
import argparse
import asyncio
import json
import logging
import sys

from .config import Settings
from .services.location import FixedPositionProvider
from .services.submitter import CheckInSubmitter, SubmissionError
from .utils.validators import normalize_plate

logger = logging.getLogger("uvicorn.error")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="checkin",
        description="Vehicle check-in relay"
    )
    parser.add_argument(
        "-e", "--env-file", type=str,
        help="Path to a .env file with the service configuration",
        default=None
    )
    parser.add_argument(
        "-l", "--logger-level",
        choices=["debug", "info", "warning", "error"],
        help="Set the logger level",
        default="info"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the check-in proxy")
    serve.add_argument("--host", type=str, default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    submit = sub.add_parser("submit", help="Send one check-in through the proxy")
    submit.add_argument("-p", "--plate", type=str, required=True, help="Vehicle plate, e.g. ABC1234")
    submit.add_argument("--lat", type=float, help="Latitude of the current position")
    submit.add_argument("--lon", type=float, help="Longitude of the current position")
    submit.add_argument("-t", "--token", type=str, help="Access token forwarded as a bearer credential")
    submit.add_argument("-u", "--proxy-url", type=str, help="Base URL of the check-in proxy")
    submit.add_argument(
        "--require-token", action="store_true",
        help="Refuse to submit without a token"
    )

    return parser.parse_args(argv)


def _serve(settings: Settings, args) -> int:
    import uvicorn

    from .main import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return 0


def _submit(settings: Settings, args) -> int:
    if (args.lat is None) != (args.lon is None):
        print("Erro no check-in: informe --lat e --lon juntos", file=sys.stderr)
        return 2

    # without coordinates this host has no way to locate itself
    provider = None
    if args.lat is not None:
        provider = FixedPositionProvider(args.lat, args.lon)

    submitter = CheckInSubmitter.from_settings(
        settings,
        provider,
        proxy_url=args.proxy_url,
        require_credential=args.require_token,
    )

    logger.info("submitting check-in via %s", submitter.endpoint)
    try:
        result = asyncio.run(submitter.submit(args.plate, args.token))
    except SubmissionError as e:
        print(f"Erro no check-in: {e.message}", file=sys.stderr)
        return 1

    print(f"Check-in realizado! Placa {normalize_plate(args.plate)} registrada com sucesso")
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.logger_level.upper()))
    settings = Settings.from_env(args.env_file)

    if args.command == "serve":
        return _serve(settings, args)
    return _submit(settings, args)


if __name__ == "__main__":
    sys.exit(main())
