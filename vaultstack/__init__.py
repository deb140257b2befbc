"""Track gold and foreign currency holdings with live prices."""

__version__ = "0.1.0"
