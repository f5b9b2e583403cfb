#!/usr/bin/env python3
"""
OTPLink - detect one-time passwords in SMS and forward them.

Main entry point for the application.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from otplink import __version__
from otplink.core.exceptions import OTPLinkError
from otplink.core.logger import setup_structured_logging
from otplink.core.settings import AppSettings, get_settings
from otplink.models.otp_record import OTPRecord
from otplink.services.otp_service import OTPService, create_otp_service
from otplink.services.sms import JsonInboxSource, SmsListener, StaticPermissionProvider

logger = logging.getLogger(__name__)


def setup_signal_handlers(shutdown_event: asyncio.Event) -> None:
    """
    Set ``shutdown_event`` on SIGINT/SIGTERM.

    A second signal exits immediately.
    """
    loop = asyncio.get_running_loop()

    def handle_signal(signum, frame):
        if shutdown_event.is_set():
            logger.warning("Second signal received, forcing exit")
            sys.exit(1)
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        loop.call_soon_threadsafe(shutdown_event.set)

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


def _print_record(record: OTPRecord) -> None:
    status = f"forwarded via {record.forwarding_method.value}" if record.forwarding_method else (
        "forwarded" if record.forwarded else "not forwarded"
    )
    print(f"{record.id}  {record.otp:<10} {record.sender:<20} {status}")


def _parse_value(raw: str) -> Any:
    """Interpret a ``config set`` value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


async def run_listen_mode(service: OTPService, settings: AppSettings, args) -> int:
    """Poll the inbox file until interrupted."""
    inbox = args.inbox or settings.inbox_file
    if inbox is None:
        logger.error("No inbox file given (use --inbox or OTPLINK_INBOX_FILE)")
        return 2

    async def announce(record: OTPRecord) -> None:
        _print_record(record)

    listener = SmsListener(
        JsonInboxSource(inbox),
        service,
        permission_provider=StaticPermissionProvider(),
        poll_interval=settings.poll_interval_seconds,
        heartbeat_interval=settings.heartbeat_interval_seconds,
        on_otp=announce,
    )

    shutdown_event = asyncio.Event()
    setup_signal_handlers(shutdown_event)

    if not await listener.start():
        return 1
    try:
        await shutdown_event.wait()
    finally:
        await listener.stop()
    return 0


async def run_web_mode(service: OTPService, settings: AppSettings, args) -> int:
    """Serve the HTTP surface, optionally with the inbox listener."""
    import uvicorn

    from otplink.web import create_app

    listener: Optional[SmsListener] = None
    inbox = args.inbox or settings.inbox_file
    if inbox is not None:
        listener = SmsListener(
            JsonInboxSource(inbox),
            service,
            poll_interval=settings.poll_interval_seconds,
            heartbeat_interval=settings.heartbeat_interval_seconds,
        )

    app = create_app(service, listener=listener)
    config_uvicorn = uvicorn.Config(
        app,
        host=args.host or settings.web_host,
        port=args.port or settings.web_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config_uvicorn)
    await server.serve()
    return 0


async def cmd_process(service: OTPService, settings: AppSettings, args) -> int:
    record = await service.handle_sms(args.sender, args.message)
    if record is None:
        print("No new OTP found")
        return 1
    _print_record(record)
    return 0


async def cmd_forward(service: OTPService, settings: AppSettings, args) -> int:
    forwarded = await service.forward_now(args.record_id)
    print("Forwarded" if forwarded else "Forwarding failed")
    return 0 if forwarded else 1


async def cmd_history(service: OTPService, settings: AppSettings, args) -> int:
    records = await service.list_records()
    if args.json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return 0
    if not records:
        print("No OTPs recorded")
    for record in records:
        _print_record(record)
    return 0


async def cmd_clear(service: OTPService, settings: AppSettings, args) -> int:
    await service.clear_records()
    print("History cleared")
    return 0


async def cmd_config(service: OTPService, settings: AppSettings, args) -> int:
    if args.config_command == "set":
        config = await service.update_config({args.key: _parse_value(args.value)})
    else:
        config = await service.get_config()

    data = config.to_dict()
    if not args.show_secrets and data["emailSettings"].get("password"):
        data["emailSettings"]["password"] = "********"
    print(json.dumps(data, indent=2))
    return 0


async def cmd_keywords(service: OTPService, settings: AppSettings, args) -> int:
    if args.keywords_command == "add":
        keywords = await service.add_keyword(args.keyword)
    elif args.keywords_command == "remove":
        keywords = await service.remove_keyword(args.keyword)
    elif args.keywords_command == "reset":
        keywords = await service.reset_keywords()
    else:
        keywords = (await service.get_config()).keywords
    print(", ".join(keywords))
    return 0


async def cmd_test(service: OTPService, settings: AppSettings, args) -> int:
    record = service.test_detection(args.message)
    if record is None:
        print("No OTP detected")
        return 1
    print(f"Detected OTP: {record.otp}")
    return 0


COMMANDS: Dict[str, Callable] = {
    "listen": run_listen_mode,
    "serve": run_web_mode,
    "process": cmd_process,
    "forward": cmd_forward,
    "history": cmd_history,
    "clear": cmd_clear,
    "config": cmd_config,
    "keywords": cmd_keywords,
    "test": cmd_test,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="otplink", description="OTPLink - detect OTPs in SMS and forward them"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: OTPLINK_LOG_LEVEL)",
    )
    parser.add_argument("--data-dir", default=None, help="Directory for stored state")

    sub = parser.add_subparsers(dest="command", required=True)

    listen = sub.add_parser("listen", help="Poll an inbox file and forward new OTPs")
    listen.add_argument("--inbox", default=None, help="JSON inbox file to poll")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--inbox", default=None, help="Also poll this JSON inbox file")

    process = sub.add_parser("process", help="Handle one SMS as if it was just received")
    process.add_argument("message")
    process.add_argument("--sender", default=None)

    forward = sub.add_parser("forward", help="Forward a stored OTP now")
    forward.add_argument("record_id")

    history = sub.add_parser("history", help="Show OTP history, newest first")
    history.add_argument("--json", action="store_true", help="Print stored JSON")

    sub.add_parser("clear", help="Clear OTP history")

    config = sub.add_parser("config", help="Show or change configuration")
    config.add_argument("--show-secrets", action="store_true")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show")
    config_set = config_sub.add_parser("set", help="Set a key, e.g. webhookUrl or emailSettings")
    config_set.add_argument("key")
    config_set.add_argument("value", help="JSON value or plain string")

    keywords = sub.add_parser("keywords", help="Manage detection keywords")
    keywords_sub = keywords.add_subparsers(dest="keywords_command", required=True)
    keywords_sub.add_parser("list")
    keywords_sub.add_parser("add").add_argument("keyword")
    keywords_sub.add_parser("remove").add_argument("keyword")
    keywords_sub.add_parser("reset")

    test = sub.add_parser("test", help="Run detection on a message with default settings")
    test.add_argument("message")

    return parser


async def run(args: argparse.Namespace, settings: AppSettings) -> int:
    service = create_otp_service(settings)
    try:
        return await COMMANDS[args.command](service, settings, args)
    except OTPLinkError as e:
        logger.error(f"{e.__class__.__name__}: {e.message}")
        return 1


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()

    settings = get_settings()
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir)
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_structured_logging(
        settings.log_level, json_format=settings.json_logging, log_dir=settings.log_dir
    )

    try:
        sys.exit(asyncio.run(run(args, settings)))
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
