"""Command-line interface."""

import argparse
import logging
import signal
import sys

from epos_relay.config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_RECEIPT_WIDTH, config
from epos_relay.logging_config import setup_logging
from epos_relay.printer import new_printer
from epos_relay.server import run_server
from epos_relay.transport import ConnectionType

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epos-relay",
        description="Epson ePOS Printer Proxy - Receive ePOS requests and print to a thermal printer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --proto USB --printer /dev/usb/lp0          USB device file (Linux)
  %(prog)s --proto TCP --printer 192.168.1.87:9100     Network printer
  %(prog)s --proto TCP --printer 192.168.1.87 --secure HTTPS with self-signed cert
  %(prog)s --proto USB --printer /dev/usb/lp1 -p 9000  Use port 9000
        """,
    )

    parser.add_argument(
        "--printer",
        required=True,
        metavar="CONN",
        help="Printer connection string: device path (USB) or host:port (TCP)",
    )

    parser.add_argument(
        "--proto",
        required=True,
        choices=[t.value for t in ConnectionType],
        help="Printer protocol",
    )

    parser.add_argument(
        "--receipt-width",
        type=int,
        default=DEFAULT_RECEIPT_WIDTH,
        metavar="PX",
        help=f"Receipt width in pixels (default: {DEFAULT_RECEIPT_WIDTH})",
    )

    parser.add_argument(
        "-H",
        "--host",
        default=DEFAULT_HOST,
        metavar="ADDR",
        help=f"Server bind address (default: {DEFAULT_HOST})",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_PORT,
        metavar="PORT",
        help=f"Server port (default: {DEFAULT_PORT})",
    )

    parser.add_argument(
        "--secure",
        action="store_true",
        help="Enable HTTPS with self-signed certificate",
    )

    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (default: $EPOS_RELAY_LOG_LEVEL or INFO)",
    )

    return parser


def install_shutdown_handlers(printer):
    """Close the printer and exit on SIGINT/SIGTERM."""

    def shutdown(signum, frame):
        logger.info("Shutting down gracefully...")
        try:
            printer.close()
        except Exception as e:
            logger.error(f"Error closing printer connection: {e}")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


def main(argv=None):
    """Main entry point with CLI argument parsing."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    # Store config globally
    config["host"] = args.host
    config["printer"] = args.printer
    config["proto"] = args.proto

    printer = new_printer(args.printer, args.receipt_width, ConnectionType(args.proto))
    install_shutdown_handlers(printer)

    run_server(args.host, args.port, args.secure, printer)


if __name__ == "__main__":
    main()
