"""seedwatch — peer-to-peer transfer session client."""

__version__ = "0.1.0"
