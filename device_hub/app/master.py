import argparse
import asyncio
import os
import signal
from pathlib import Path
from typing import Optional

from device_hub.core.api import HubServer
from device_hub.core.hub import Hub, HubConfig, OverflowPolicy
from device_hub.core.logging_config import configure_logging
from device_hub.core.logging_utils import get_module_logger
from device_hub.core.paths import CONFIG_PATH, HUB_LOG_FILE


logger = get_module_logger(__name__)

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a number") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. Unset flags fall back to the config file."""
    parser = argparse.ArgumentParser(
        description="Device hub - rendezvous relay between controller, camera and actuator"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help=f"Config file (default: {CONFIG_PATH})"
    )

    parser.add_argument("--host", type=str, default=None, help="Interface to bind (default: 0.0.0.0)")

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (default: $PORT, then config, then 8080)"
    )

    parser.add_argument(
        "--registration-timeout",
        type=_positive_float,
        default=None,
        help="Seconds a new connection has to register (default: 45)"
    )

    parser.add_argument(
        "--queue-policy",
        choices=[policy.value for policy in OverflowPolicy],
        default=None,
        help="What to do when an outbound queue is full"
    )

    parser.add_argument("--tls-cert", type=Path, default=None, help="TLS certificate (PEM)")
    parser.add_argument("--tls-key", type=Path, default=None, help="TLS private key (PEM)")

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        nargs="?",
        const=HUB_LOG_FILE,
        default=None,
        help=f"Write a rotating log file (bare flag: {HUB_LOG_FILE})"
    )

    parser.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=None,
        help="Log to console"
    )

    parser.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Verbose HTTP error responses"
    )

    return parser.parse_args(argv)


def apply_cli_overrides(config: HubConfig, args: argparse.Namespace) -> HubConfig:
    """Command-line flags take precedence over config file values."""
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.registration_timeout is not None:
        config.registration_timeout = args.registration_timeout
    if args.queue_policy:
        config.queue_overflow_policy = OverflowPolicy(args.queue_policy)
    if args.tls_cert:
        config.tls_cert = args.tls_cert
    if args.tls_key:
        config.tls_key = args.tls_key
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file
    if args.console_output is not None:
        config.console_output = args.console_output
    return config


async def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    config = apply_cli_overrides(await HubConfig.load(args.config, env=os.environ), args)

    configure_logging(
        config.log_level,
        force=True,
        console=config.console_output,
        log_file=config.log_file,
    )
    logger.info("Config: %s", args.config if args.config.exists() else "defaults (no config file)")

    hub = Hub(config)
    server = HubServer(hub, debug=args.debug)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler; Ctrl+C still raises.
            pass

    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()
