# Entry points used by the CLI and the RPC server: generate+save, load, staleness, auto-refresh
from __future__ import annotations
import logging
import socket
from datetime import timedelta
from pathlib import Path
from typing import Iterable, List, Tuple

from . import store
from .errors import NotFound, ParseError, PersistenceError
from .generate import generate
from .outdated import is_outdated as _is_outdated
from .record import CertificateRecord, KeyPair
from .store import PathLike

log = logging.getLogger(__name__)

# Names the RPC interface always answers on, unless autofill is disabled
DEFAULT_IPS = ("127.0.0.1", "::1")
DEFAULT_DNS = ("localhost", "unix", "unixpacket", "bufconn")


def default_sans() -> Tuple[List[str], List[str]]:
    dns = list(DEFAULT_DNS)
    host = socket.gethostname()
    if host:
        dns.insert(0, host)
    return list(DEFAULT_IPS), dns


def desired_sans(extra_ips: Iterable[str], extra_dns: Iterable[str], disable_autofill: bool = False) -> Tuple[List[str], List[str]]:
    """Merge the defaults with the configured extras.

    Use this for both generating and checking, otherwise a freshly generated
    cert would look outdated right away.
    """
    ips, dns = ([], []) if disable_autofill else default_sans()
    return ips + list(extra_ips), dns + list(extra_dns)


def gen_cert_pair(
    common_name: str,
    cert_path: PathLike,
    key_path: PathLike,
    extra_ips: Iterable[str],
    extra_dns: Iterable[str],
    validity: timedelta,
    *,
    key_type: str = "ec",
) -> CertificateRecord:
    """Generate a self-signed pair for exactly these SANs and write it to disk."""
    key_pair, record = generate(common_name, extra_ips, extra_dns, validity, key_type=key_type)
    store.save(record, key_pair, cert_path, key_path)
    return record


def load_cert(cert_path: PathLike, key_path: PathLike) -> Tuple[KeyPair, CertificateRecord]:
    return store.load(cert_path, key_path)


def is_outdated(record: CertificateRecord, ips: Iterable[str], dns: Iterable[str]) -> bool:
    return _is_outdated(record, ips, dns)


def _remove_pair(cert_path: PathLike, key_path: PathLike) -> None:
    for p in (Path(cert_path), Path(key_path)):
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"could not remove {p}: {e}", path=str(p)) from e


def ensure_cert(
    cert_path: PathLike,
    key_path: PathLike,
    *,
    common_name: str,
    ips: Iterable[str],
    dns: Iterable[str],
    validity: timedelta,
    key_type: str = "ec",
    refresh: bool = True,
) -> Tuple[KeyPair, CertificateRecord, bool]:
    """Load the pair, regenerating it when missing.

    With refresh on, a corrupt, outdated or expired pair is also replaced.
    Returns (key_pair, record, regenerated).
    """
    ips, dns = list(ips), list(dns)
    reason = None
    try:
        key_pair, record = store.load(cert_path, key_path)
    except NotFound:
        reason = "missing"
    except ParseError as e:
        if not refresh:
            raise
        reason = f"unreadable ({e})"
    else:
        if not refresh:
            return key_pair, record, False
        if is_outdated(record, ips, dns):
            reason = "outdated"
        elif record.is_expired():
            reason = "expired"
        else:
            return key_pair, record, False

    log.info("regenerating TLS pair at %s: %s", cert_path, reason)
    # generate first: bad parameters must not cost us the pair already on disk
    key_pair, record = generate(common_name, ips, dns, validity, key_type=key_type)
    _remove_pair(cert_path, key_path)
    store.save(record, key_pair, cert_path, key_path)
    return key_pair, record, True
