"""Errors raised by cert generation, storage and staleness checks.

Nothing here is retried internally. `retryable` only hints to the caller
(e.g. a daemon deciding to regenerate on a corrupt pair).
"""
from __future__ import annotations
from typing import Optional


class CertError(Exception):
    """Parent of every error in this package."""

    retryable: bool = False


class InvalidAddress(CertError, ValueError):
    def __init__(self, address: str):
        super().__init__(f"invalid IP address: {address!r}")
        self.address = address


class InvalidParameter(CertError, ValueError):
    """Bad identity parameter (empty common name, non-positive validity, unknown key type)."""


class GenerationError(CertError):
    """Key generation or signing failed inside cryptography."""


class PersistenceError(CertError):
    # a failed write means the pair on disk can't be trusted
    retryable = True

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class NotFound(CertError, FileNotFoundError):
    def __init__(self, path: str):
        super().__init__(f"no such file: {path}")
        self.path = path


class ParseError(CertError):
    """Corrupt cert/key, or the key doesn't belong to the cert."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
