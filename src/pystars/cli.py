"""
Command-Line Interface - STARS terminal client

Connects to a STARS server, optionally sends lines, prints received
messages and can stay in callback mode printing every message until
interrupted.

Usage:
    python -m pystars --node term1 --host 127.0.0.1 --keyword stars --listen
    python -m pystars --config stars.yaml --send "term2 flushdatatome" --receive 1
    python -m pystars --help
"""

import sys
import time
import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from pystars.core.error_formatting import format_error, log_error
from pystars.core.errors import StarsError
from pystars.core.stars_connection import StarsConnection
from pystars.models.connection import DEFAULT_PORT, DEFAULT_TIMEOUT, ConnectionConfig
from pystars.models.message import StarsMessage
from pystars.services.configuration_service import ConfigurationService

# How often the listen loop checks connection liveness
LISTEN_POLL_SECONDS = 0.2


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="pystars",
        description="STARS protocol terminal client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --node term1 --host 127.0.0.1 --keyword stars --listen
  %(prog)s --config stars.yaml --send "System hello" --receive 1
        """
    )

    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file")
    parser.add_argument("--node", type=str, default=None,
                        help="Node name to register as")
    parser.add_argument("--host", type=str, default=None,
                        help="STARS server host")
    parser.add_argument("--port", type=int, default=None,
                        help=f"STARS server port (default: {DEFAULT_PORT})")

    credentials = parser.add_mutually_exclusive_group()
    credentials.add_argument("--keyword", type=str, default=None,
                             help="Inline keyword list, space separated")
    credentials.add_argument("--key-file", type=str, default=None,
                             help="Keyword file, one keyword per line (default: <node>.key)")

    parser.add_argument("--timeout", type=float, default=None,
                        help=f"Receive timeout in seconds, 0 for no limit (default: {DEFAULT_TIMEOUT})")

    parser.add_argument("--send", action="append", default=[], metavar="TEXT",
                        help="Line to send after connecting (repeatable)")
    parser.add_argument("--receive", type=int, default=0, metavar="N",
                        help="Receive and print N messages synchronously")
    parser.add_argument("--listen", action="store_true",
                        help="Print every message in callback mode until interrupted")

    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: WARNING)"
    )

    return parser.parse_args(args)


def validate_args(args: argparse.Namespace) -> bool:
    """Validate parsed command-line arguments.

    Returns:
        True if arguments are valid, False otherwise
    """
    if args.config is None and (not args.node or not args.host):
        print("Error: --node and --host are required unless --config is given",
              file=sys.stderr)
        return False

    if args.port is not None and not (1 <= args.port <= 65535):
        print(f"Error: Port must be between 1 and 65535, got {args.port}", file=sys.stderr)
        return False

    if args.timeout is not None and args.timeout < 0:
        print(f"Error: Timeout must not be negative, got {args.timeout}", file=sys.stderr)
        return False

    if args.receive < 0:
        print(f"Error: --receive must not be negative, got {args.receive}", file=sys.stderr)
        return False

    return True


def setup_logging(level: str):
    """Configure application logging.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), None)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_config(args: argparse.Namespace) -> ConnectionConfig:
    """Combine the optional config file with command-line overrides.

    Raises:
        ConfigError: If the config file cannot be loaded
    """
    if args.config:
        config = ConfigurationService().load_connection_config(args.config)
    else:
        config = ConnectionConfig(node_name=args.node, host=args.host)

    overrides = {}
    if args.node:
        overrides['node_name'] = args.node
    if args.host:
        overrides['host'] = args.host
    if args.port is not None:
        overrides['port'] = args.port
    if args.timeout is not None:
        overrides['timeout'] = args.timeout
    if args.keyword is not None:
        overrides['keyword'] = args.keyword
        overrides['key_file'] = None
    elif args.key_file is not None:
        overrides['key_file'] = args.key_file
        overrides['keyword'] = ""

    return replace(config, **overrides) if overrides else config


def print_message(message: StarsMessage) -> None:
    print(message.wire_form, flush=True)


def run_session(connection: StarsConnection, args: argparse.Namespace) -> None:
    """Connect, send, receive and optionally listen on one connection."""
    connection.connect()

    for line in args.send:
        connection.send(line)

    for _ in range(args.receive):
        print_message(connection.receive())

    if args.listen:
        connection.subscribe(print_message)
        connection.enable_callback_mode()
        try:
            while connection.is_connected():
                time.sleep(LISTEN_POLL_SECONDS)
        except KeyboardInterrupt:
            logging.getLogger(__name__).info("Interrupted, disconnecting")
        else:
            print("Connection closed by server", file=sys.stderr)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the STARS terminal client.

    Returns:
        Exit code (0 = success, 1 = STARS error, 2 = invalid arguments)
    """
    parsed_args = parse_args(args)
    setup_logging(parsed_args.log_level)

    logger = logging.getLogger(__name__)

    if not validate_args(parsed_args):
        return 2

    try:
        config = build_config(parsed_args)
        logger.debug(f"Configuration: node={config.node_name}, host={config.host}, port={config.port}")
        with StarsConnection.from_config(config) as connection:
            run_session(connection, parsed_args)
    except StarsError as e:
        log_error(e, level=logging.DEBUG)
        print(f"Error: {format_error(e)}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
