"""User account management service with peer rating."""

__version__ = "1.0.0"
