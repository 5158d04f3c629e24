"""Decide whether a certificate's SANs still match what we want to advertise.

Both sides are turned into sets before comparing, so order and duplicates
never matter. The match must be exact for IPs *and* DNS names: an extra
entry on either side counts as outdated, same as a missing one.
"""
from __future__ import annotations
import logging
from typing import FrozenSet, Iterable, NamedTuple

from .record import CertificateRecord, IPAddress, parse_ips

log = logging.getLogger(__name__)


class SanDiff(NamedTuple):
    missing_ips: FrozenSet[IPAddress]   # wanted but not in the cert
    extra_ips: FrozenSet[IPAddress]     # in the cert but not wanted
    missing_dns: FrozenSet[str]
    extra_dns: FrozenSet[str]

    @property
    def empty(self) -> bool:
        return not (self.missing_ips or self.extra_ips or self.missing_dns or self.extra_dns)


def san_diff(record: CertificateRecord, desired_ips: Iterable[str], desired_dns: Iterable[str]) -> SanDiff:
    want_ips = parse_ips(desired_ips)
    want_dns = frozenset(desired_dns)
    return SanDiff(
        missing_ips=want_ips - record.ip_addresses,
        extra_ips=record.ip_addresses - want_ips,
        missing_dns=want_dns - record.dns_names,
        extra_dns=record.dns_names - want_dns,
    )


def is_outdated(record: CertificateRecord, desired_ips: Iterable[str], desired_dns: Iterable[str]) -> bool:
    """Return True if the record's SAN sets differ from the desired ones.

    Raises InvalidAddress if any desired IP doesn't parse. No I/O.
    """
    want_ips = parse_ips(desired_ips)
    want_dns = frozenset(desired_dns)

    outdated = want_ips != record.ip_addresses or want_dns != record.dns_names
    if outdated:
        log.debug("cert %s is outdated (ips=%s dns=%s)", record.common_name,
                  sorted(map(str, want_ips)), sorted(want_dns))
    return outdated
