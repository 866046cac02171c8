"""HTTP server and request handler for ePOS requests."""

import logging
import platform
import ssl
from http.server import BaseHTTPRequestHandler, HTTPServer

from epos_relay.certs import generate_self_signed_cert
from epos_relay.config import CERT_FILE, KEY_FILE, config
from epos_relay.errors import ParseError
from epos_relay.parser import Cut, Image, Pulse, parse

logger = logging.getLogger(__name__)

# EPSON ePOS response format
EPOS_RESPONSE = b"""<?xml version="1.0" encoding="utf-8"?>
<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/">
<s:Body>
<response success="true" code="" status="123456" battery="0"/>
</s:Body>
</s:Envelope>"""

_FAILURE_LABELS = {
    Image: "print image",
    Pulse: "kick drawer",
    Cut: "cut",
}


class PrinterProxy(BaseHTTPRequestHandler):
    """HTTP request handler for Epson ePOS print requests.

    The printer is taken from ``self.server.printer``.
    """

    def send_cors_headers(self):
        """Send CORS headers for all responses."""
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def send_text(self, status: int, message: str):
        body = (message + "\n").encode("utf-8")
        self.send_response(status)
        self.send_cors_headers()
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_OPTIONS(self):
        """Handle CORS preflight request."""
        self.send_response(200)
        self.send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        self.send_text(405, "Only POST requests are allowed")

    do_PUT = do_DELETE = do_PATCH = do_GET

    def do_POST(self):
        """Handle POST requests - print jobs."""
        content_length = int(self.headers.get("Content-Length") or 0)
        post_data = self.rfile.read(content_length) if content_length > 0 else b""

        logger.info(f"Received {len(post_data)} bytes on {self.path} from {self.headers.get('Origin')}")

        if not post_data:
            self.send_text(400, "Empty request body")
            return

        try:
            document = parse(post_data)
        except ParseError as e:
            logger.warning(f"Rejected request: {e}")
            self.send_text(400, f"Failed to parse XML: {e}")
            return

        printer = self.server.printer
        for instruction in document:
            try:
                printer.execute(instruction)
            except Exception as e:
                label = _FAILURE_LABELS.get(type(instruction), "execute instruction")
                logger.exception(f"Failed to {label}")
                self.send_text(500, f"Failed to {label}: {e}")
                return

        logger.info(f"Executed {len(document)} instruction(s)")

        self.send_response(200)
        self.send_cors_headers()
        self.send_header("Content-Type", "text/xml; charset=utf-8")
        self.send_header("Content-Length", str(len(EPOS_RESPONSE)))
        self.end_headers()
        self.wfile.write(EPOS_RESPONSE)

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


def create_server(host: str, port: int, printer, secure: bool = False) -> HTTPServer:
    """Bind the proxy server, optionally wrapped in TLS."""
    httpd = HTTPServer((host, port), PrinterProxy)
    httpd.printer = printer

    if secure:
        generate_self_signed_cert()
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(CERT_FILE, KEY_FILE)
        httpd.socket = context.wrap_socket(httpd.socket, server_side=True)

    return httpd


def run_server(host: str, port: int, secure: bool, printer):
    """Start the printer proxy server."""
    httpd = create_server(host, port, printer, secure)
    protocol = "https" if secure else "http"

    print("")
    print("=" * 50)
    print("  epos-relay - Epson ePOS Printer Proxy")
    print("=" * 50)
    print(f"  Protocol : {protocol.upper()}")
    print(f"  Address  : {host}:{port}")
    print(f"  Printer  : {config.get('printer')} ({config.get('proto')})")
    print(f"  Platform : {platform.system()}")
    print("=" * 50)
    print(f"  URL: {protocol}://{host}:{port}")
    if secure:
        print("")
        print("  Note: Visit the URL in your browser and accept")
        print("  the self-signed certificate before printing.")
    print("=" * 50)
    print("")

    try:
        httpd.serve_forever()
    finally:
        httpd.server_close()
