"""Service translation table kept by the node network manager."""

from __future__ import annotations

import enum
import ipaddress
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_MIN_NAME_LEN = 1
_MAX_NAME_LEN = 10


class ServiceIpType(enum.IntEnum):
    """Kind of a service address."""

    INSTANCE_NUMBER = 0
    CLOSEST = 1
    ROUND_ROBIN = 2


def _coerce_ip(value: Union[str, IPAddress, None]) -> Optional[IPAddress]:
    if value is None or isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _normalize(ip: IPAddress) -> IPAddress:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _same_ip(a: Optional[IPAddress], b: Optional[IPAddress]) -> bool:
    """Compare addresses, treating IPv4 and IPv4-mapped IPv6 forms as equal."""
    if a is None or b is None:
        return False
    return _normalize(a) == _normalize(b)


@dataclass
class ServiceIP:
    """One service address of a table entry."""

    ip_type: ServiceIpType = ServiceIpType.INSTANCE_NUMBER
    address: Optional[IPAddress] = None
    address_v6: Optional[IPAddress] = None

    def __post_init__(self) -> None:
        self.ip_type = ServiceIpType(self.ip_type)
        self.address = _coerce_ip(self.address)
        self.address_v6 = _coerce_ip(self.address_v6)

    def matches(self, ip: Optional[IPAddress]) -> bool:
        return _same_ip(self.address, ip) or _same_ip(self.address_v6, ip)


@dataclass
class TableEntry:
    """Translation of a service instance to its node and namespace addresses."""

    job_name: str = ""
    appname: str = ""
    appns: str = ""
    servicename: str = ""
    servicenamespace: str = ""
    instancenumber: int = 0
    cluster: int = 0
    nodeip: Optional[IPAddress] = None
    nodeport: int = 0
    nsip: Optional[IPAddress] = None
    nsipv6: Optional[IPAddress] = None
    service_ip: list[ServiceIP] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.nodeip = _coerce_ip(self.nodeip)
        self.nsip = _coerce_ip(self.nsip)
        self.nsipv6 = _coerce_ip(self.nsipv6)

    def has_ns_ip(self, ip: Optional[IPAddress]) -> bool:
        return _same_ip(self.nsip, ip) or _same_ip(self.nsipv6, ip)


class InvalidEntryError(ValueError):
    """Raised when an entry fails the table's sanity checks."""


class EntryNotFoundError(LookupError):
    """Raised when no entry matches a removal request."""


def _name_ok(value: str) -> bool:
    return _MIN_NAME_LEN <= len(value.encode("utf-8")) <= _MAX_NAME_LEN


class TableManager:
    """Thread-safe list of translation entries."""

    def __init__(self) -> None:
        self._table: list[TableEntry] = []
        self._lock = threading.RLock()

    def entries(self) -> list[TableEntry]:
        """Return a snapshot of the current entries, in table order."""
        with self._lock:
            return list(self._table)

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def add(self, entry: TableEntry) -> None:
        if not self.is_valid(entry):
            raise InvalidEntryError("InvalidEntry")
        with self._lock:
            self._table.append(entry)

    def is_valid(self, entry: TableEntry) -> bool:
        """Sanity-check an entry before insertion."""
        checks = (
            (_name_ok(entry.appname), f"wrong appname: {entry.appname}"),
            (_name_ok(entry.appns), f"wrong appns: {entry.appns}"),
            (_name_ok(entry.servicename), f"wrong servicename: {entry.servicename}"),
            (_name_ok(entry.servicenamespace), f"wrong servicens: {entry.servicenamespace}"),
            (entry.instancenumber >= 0, "wrong instancenumber"),
            (entry.cluster >= 0, "wrong cluster"),
            (entry.nodeip is not None, "wrong nodeip"),
            (entry.nsip is not None, "wrong nsip"),
            (entry.nsipv6 is not None, "wrong nsipv6"),
            (len(entry.service_ip) >= 1, "wrong serviceip"),
        )
        for ok, reason in checks:
            if not ok:
                logger.warning("TranslationTable: Invalid Entry, %s", reason)
                return False
        return True

    def _remove_at(self, index: int) -> None:
        logger.debug("Removing from TableManager: %s", self._table[index])
        self._table[index] = self._table[-1]
        self._table.pop()

    def remove_by_nsip(self, nsip: Union[str, IPAddress]) -> None:
        """Remove the first entry whose IPv4 or IPv6 namespace address matches."""
        ip = _coerce_ip(nsip)
        with self._lock:
            logger.debug("Remove by Nsip tableManager: %s", self._table)
            for index, entry in enumerate(self._table):
                if entry.has_ns_ip(ip):
                    self._remove_at(index)
                    return
        raise EntryNotFoundError("entry not found")

    def remove_by_job_name(self, job_name: str) -> None:
        """Remove every entry of the given job."""
        with self._lock:
            index = 0
            while index < len(self._table):
                if self._table[index].job_name == job_name:
                    self._remove_at(index)
                else:
                    index += 1

    def search_by_service_ip(self, ip: Union[str, IPAddress]) -> list[TableEntry]:
        """Entries having a service address equal to ``ip``, once per matching address."""
        target = _coerce_ip(ip)
        with self._lock:
            return [
                entry
                for entry in self._table
                for service in entry.service_ip
                if service.matches(target)
            ]

    def search_by_ns_ip(self, ip: Union[str, IPAddress]) -> Optional[TableEntry]:
        """The first entry with the given namespace address, or None."""
        target = _coerce_ip(ip)
        with self._lock:
            return next((entry for entry in self._table if entry.has_ns_ip(target)), None)

    def search_by_job_name(self, job_name: str) -> list[TableEntry]:
        with self._lock:
            return [entry for entry in self._table if entry.job_name == job_name]


def is_namespace_still_valid(nsip: Union[str, IPAddress], table: Iterable[TableEntry]) -> bool:
    """Whether any entry in ``table`` still uses the namespace address ``nsip``."""
    target = _coerce_ip(nsip)
    return any(entry.has_ns_ip(target) for entry in table)