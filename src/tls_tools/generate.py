"""Build a fresh key pair and a self-signed cert whose SANs are exactly the requested ones."""
from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Tuple

from cryptography import x509
from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .errors import GenerationError, InvalidParameter
from .record import CertificateRecord, KeyPair, PrivateKey, parse_ips

log = logging.getLogger(__name__)

# not_before is pushed back this much so clients with a skewed clock still accept the cert
BACKDATE_MARGIN = timedelta(hours=24)

ORGANIZATION = "tls-tools autogenerated cert"
KEY_TYPES = ("ec", "rsa")
RSA_KEY_SIZE = 2048


def _new_key(key_type: str) -> PrivateKey:
    if key_type == "ec":
        return ec.generate_private_key(ec.SECP256R1())
    return rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)


def _dns_entries(dns_names: Iterable[str]) -> List[x509.DNSName]:
    entries = []
    for name in sorted(set(dns_names)):
        if not name:
            raise InvalidParameter("DNS names must be non-empty")
        try:
            entries.append(x509.DNSName(name))
        except ValueError as e:
            # cryptography wants A-labels (punycode) for IDNs
            raise InvalidParameter(f"invalid DNS name {name!r}: {e}") from e
    return entries


def generate(
    common_name: str,
    ip_addresses: Iterable[str],
    dns_names: Iterable[str],
    validity: timedelta,
    *,
    key_type: str = "ec",
) -> Tuple[KeyPair, CertificateRecord]:
    """Create a key pair and a self-signed certificate for it.

    SAN entries are deduplicated and written in sorted order, so two calls
    with the same inputs give certs whose SAN sets compare equal (keys and
    serials still differ). Nothing is written to disk here.
    """
    if not common_name:
        raise InvalidParameter("common name must be non-empty")
    # cert times have second precision, anything shorter can't satisfy not_after > not_before
    if validity < timedelta(seconds=1):
        raise InvalidParameter(f"validity must be positive, got {validity}")
    if key_type not in KEY_TYPES:
        raise InvalidParameter(f"unknown key type {key_type!r}, expected one of {KEY_TYPES}")

    ips = parse_ips(ip_addresses)
    dns = _dns_entries(dns_names)
    san_entries: List[x509.GeneralName] = [
        x509.IPAddress(ip) for ip in sorted(ips, key=lambda ip: (ip.version, int(ip)))
    ]
    san_entries.extend(dns)

    not_before = datetime.now(timezone.utc).replace(microsecond=0) - BACKDATE_MARGIN
    not_after = not_before + validity

    try:
        key = _new_key(key_type)
        name = x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ])
        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            # self-signed and trusted directly by clients, so it acts as its own CA
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        )
        if san_entries:
            builder = builder.add_extension(x509.SubjectAlternativeName(san_entries), critical=False)
        cert = builder.sign(private_key=key, algorithm=hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm, InternalError) as e:
        raise GenerationError(f"could not generate certificate: {e}") from e

    log.info("generated %s cert %r valid until %s (%d IPs, %d DNS names)",
             key_type, common_name, not_after.isoformat(), len(ips), len(dns))
    return KeyPair.from_private_key(key), CertificateRecord.from_certificate(cert)
