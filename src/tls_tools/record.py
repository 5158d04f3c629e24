from __future__ import annotations
import ipaddress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from .errors import InvalidAddress

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
PrivateKey = Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey]


def parse_ips(values: Iterable[str]) -> FrozenSet[IPAddress]:
    # parsed objects, so "::1" and "0:0:0:0:0:0:0:1" collapse to one entry
    out = set()
    for raw in values:
        try:
            ip = ipaddress.ip_address(raw)
        except ValueError as e:
            raise InvalidAddress(str(raw)) from e
        # x509 IPAddress has no room for a zone, "fe80::1%eth0" would come back as "fe80::1"
        if getattr(ip, "scope_id", None):
            raise InvalidAddress(str(raw))
        out.add(ip)
    return frozenset(out)


# Only lives between generate -> save, or after a load. Never written without its cert.
@dataclass(frozen=True)
class KeyPair:
    private_key: PrivateKey
    public_key: PublicKey

    @classmethod
    def from_private_key(cls, key: PrivateKey) -> "KeyPair":
        return cls(private_key=key, public_key=key.public_key())

    def matches(self, cert: x509.Certificate) -> bool:
        """True if `cert` was issued for this pair's public key."""
        fmt = serialization.PublicFormat.SubjectPublicKeyInfo
        ours = self.public_key.public_bytes(serialization.Encoding.DER, fmt)
        theirs = cert.public_key().public_bytes(serialization.Encoding.DER, fmt)
        return ours == theirs


# Frozen on purpose: a stale record gets replaced wholesale, never patched
@dataclass(frozen=True)
class CertificateRecord:
    common_name: str
    not_before: datetime
    not_after: datetime
    ip_addresses: FrozenSet[IPAddress]
    dns_names: FrozenSet[str]
    serial_number: int
    pem: bytes = field(repr=False)
    certificate: x509.Certificate = field(repr=False, compare=False)

    @classmethod
    def from_certificate(cls, cert: x509.Certificate) -> "CertificateRecord":
        """Build a record from a parsed certificate, collapsing SANs into sets.

        A cert without a SAN extension yields two empty sets.
        """
        cn_attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        common_name = str(cn_attrs[0].value) if cn_attrs else ""

        try:
            san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            ips: FrozenSet[IPAddress] = frozenset()
            dns: FrozenSet[str] = frozenset()
        else:
            ips = frozenset(san.get_values_for_type(x509.IPAddress))
            dns = frozenset(san.get_values_for_type(x509.DNSName))

        return cls(
            common_name=common_name,
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            ip_addresses=ips,
            dns_names=dns,
            serial_number=cert.serial_number,
            pem=cert.public_bytes(serialization.Encoding.PEM),
            certificate=cert,
        )

    @classmethod
    def from_pem(cls, data: bytes) -> "CertificateRecord":
        return cls.from_certificate(x509.load_pem_x509_certificate(data))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.not_after

    def to_dict(self) -> dict:
        # sorted so the output is stable for json/show
        return {
            "common_name": self.common_name,
            "serial_number": format(self.serial_number, "x"),
            "not_before": self.not_before.isoformat(),
            "not_after": self.not_after.isoformat(),
            "ip_addresses": sorted(str(ip) for ip in self.ip_addresses),
            "dns_names": sorted(self.dns_names),
        }
