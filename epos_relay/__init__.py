"""epos-relay: Epson ePOS XML to ESC/POS printer relay."""

__version__ = "0.2.0"
