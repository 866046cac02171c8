"""SSL certificate generation."""

import logging
import os
import subprocess

from epos_relay.config import CERT_FILE, DEFAULT_HOST, KEY_FILE, config

logger = logging.getLogger(__name__)


def generate_self_signed_cert(cert_file: str = CERT_FILE, key_file: str = KEY_FILE) -> bool:
    """Generate a self-signed certificate for HTTPS unless one exists."""
    if os.path.exists(cert_file) and os.path.exists(key_file):
        logger.info(f"Using existing certificates: {cert_file}, {key_file}")
        return False

    logger.info("Generating self-signed SSL certificate...")

    host = config.get("host") or DEFAULT_HOST
    san = "IP:127.0.0.1,DNS:localhost"
    if host not in ("127.0.0.1", "localhost", "0.0.0.0"):
        san += f",IP:{host}" if host.replace(".", "").isdigit() else f",DNS:{host}"

    cmd = [
        "openssl", "req", "-x509",
        "-newkey", "ec", "-pkeyopt", "ec_paramgen_curve:prime256v1",
        "-keyout", key_file, "-out", cert_file,
        "-days", "365", "-nodes",
        "-subj", "/O=Epson Proxy",
        "-addext", f"subjectAltName={san}",
    ]
    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.returncode != 0:
        # Fallback for older OpenSSL without -addext
        logger.warning(f"openssl failed ({result.stderr.strip()}), retrying without SAN")
        cmd = [
            "openssl", "req", "-x509", "-newkey", "rsa:2048",
            "-keyout", key_file, "-out", cert_file,
            "-days", "365", "-nodes", "-subj", f"/CN={host}",
        ]
        subprocess.run(cmd, capture_output=True, check=True)

    logger.info("SSL certificate generated successfully")
    return True
