"""Read/write a cert + key pair as two PEM files.

No caching and no module state: every load re-reads both files. Callers that
save and load the same paths concurrently have to serialize that themselves.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Tuple, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from .errors import NotFound, ParseError, PersistenceError
from .record import CertificateRecord, KeyPair

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

KEY_FILE_MODE = 0o600

# cryptography parses extensions and the public key lazily, these surface on first access
CERT_PARSE_ERRORS = (ValueError, x509.DuplicateExtension, x509.UnsupportedGeneralNameType, UnsupportedAlgorithm)


def _write(path: Path, data: bytes, mode: int = 0o644) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # created with its final mode so the key is never world-readable, even briefly
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as f:
            # O_CREAT's mode is ignored for a file that already exists
            os.fchmod(f.fileno(), mode)
            f.write(data)
    except OSError as e:
        raise PersistenceError(f"could not write {path}: {e}", path=str(path)) from e


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise NotFound(str(path)) from e
    except OSError as e:
        # unreadable counts as unusable, same as corrupt
        raise ParseError(f"could not read {path}: {e}", path=str(path)) from e


def save(record: CertificateRecord, key_pair: KeyPair, cert_path: PathLike, key_path: PathLike) -> None:
    """Write the cert then the key. If this raises, don't trust whatever is on disk."""
    cert_path, key_path = Path(cert_path), Path(key_path)
    key_pem = key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    _write(cert_path, record.pem)
    _write(key_path, key_pem, KEY_FILE_MODE)
    log.info("wrote cert to %s and key to %s", cert_path, key_path)


def load(cert_path: PathLike, key_path: PathLike) -> Tuple[KeyPair, CertificateRecord]:
    cert_path, key_path = Path(cert_path), Path(key_path)
    cert_pem = _read(cert_path)
    key_pem = _read(key_path)

    try:
        record = CertificateRecord.from_pem(cert_pem)
    except CERT_PARSE_ERRORS as e:
        raise ParseError(f"could not parse certificate {cert_path}: {e}", path=str(cert_path)) from e

    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ParseError(f"could not parse private key {key_path}: {e}", path=str(key_path)) from e
    if not isinstance(key, (ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey)):
        raise ParseError(f"unsupported key type {type(key).__name__} in {key_path}", path=str(key_path))

    key_pair = KeyPair.from_private_key(key)
    try:
        matches = key_pair.matches(record.certificate)
    except CERT_PARSE_ERRORS as e:
        raise ParseError(f"could not read public key of {cert_path}: {e}", path=str(cert_path)) from e
    if not matches:
        raise ParseError(f"private key {key_path} does not match certificate {cert_path}", path=str(key_path))

    log.debug("loaded cert %r from %s", record.common_name, cert_path)
    return key_pair, record
