#!/usr/bin/env python3
"""
epos-relay - Epson ePOS Printer Proxy

Receives Epson ePOS requests over HTTP/HTTPS and prints them via a connected
thermal receipt printer.
"""

from epos_relay.cli import main

if __name__ == "__main__":
    main()
