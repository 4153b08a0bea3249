"""Scoped libvirt connection and domain handles for virt-probe."""

from __future__ import annotations

from typing import Optional

try:
    import libvirt  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"libvirt python bindings not available: {exc}") from exc

from virtprobe.exceptions import ProbeError
from virtprobe.utils import Reporter


class HypervisorConnection:
    """Exclusively owned ``virConnect`` that is closed exactly once.

    Use as a context manager so the connection is released on every exit
    path. ``close()`` may be called any number of times; only the first call
    reaches libvirt.
    """

    def __init__(self, conn: "libvirt.virConnect", reporter: Reporter) -> None:
        self._conn: Optional[libvirt.virConnect] = conn
        self.reporter = reporter

    @classmethod
    def open(cls, uri: str, reporter: Reporter, read_only: bool = False) -> "HypervisorConnection":
        reporter.log("INFO", f"Attempting to connect to hypervisor: '{uri}'")
        opener = libvirt.openReadOnly if read_only else libvirt.open
        try:
            conn = opener(uri)
        except libvirt.libvirtError as exc:
            raise ProbeError(f"No connection to hypervisor: {exc}") from exc
        if conn is None:
            raise ProbeError(f"No connection to hypervisor: failed to open {uri}")
        return cls(conn, reporter)

    @property
    def closed(self) -> bool:
        return self._conn is None

    @property
    def conn(self) -> "libvirt.virConnect":
        if self._conn is None:
            raise ProbeError("libvirt connection already closed")
        return self._conn

    def close(self) -> int:
        """Close the connection; repeated calls return 0 without touching libvirt."""
        if self._conn is None:
            return 0
        conn, self._conn = self._conn, None
        try:
            result = conn.close()
        except libvirt.libvirtError as exc:
            raise ProbeError(f"Failed to disconnect from hypervisor: {exc}") from exc
        if result > 0:
            self.reporter.log("WARN", f"Connection closed with {result} outstanding reference(s)")
        self.reporter.log("INFO", "Disconnected from hypervisor")
        return result

    def __enter__(self) -> "HypervisorConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class DomainHandle:
    """Exclusively owned ``virDomain`` with idempotent release."""

    def __init__(self, domain: "libvirt.virDomain", name: str) -> None:
        self._domain: Optional[libvirt.virDomain] = domain
        self.name = name

    @property
    def released(self) -> bool:
        return self._domain is None

    @property
    def domain(self) -> "libvirt.virDomain":
        if self._domain is None:
            raise ProbeError(f"Domain handle for {self.name} already released")
        return self._domain

    def destroy(self) -> bool:
        """Stop the guest if it is running. Returns True when it was running."""
        try:
            if not self.domain.isActive():
                return False
            self.domain.destroy()
        except libvirt.libvirtError as exc:
            raise ProbeError(f"Failed to destroy domain {self.name}: {exc}") from exc
        return True

    def undefine(self) -> None:
        try:
            self.domain.undefine()
        except libvirt.libvirtError as exc:
            raise ProbeError(f"Failed to undefine domain {self.name}: {exc}") from exc

    def release(self) -> bool:
        """Drop the handle; the bindings free it once unreferenced. True on first call only."""
        if self._domain is None:
            return False
        self._domain = None
        return True

    def __enter__(self) -> "DomainHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


def lookup_domain(connection: HypervisorConnection, name: str) -> Optional[DomainHandle]:
    try:
        domain = connection.conn.lookupByName(name)
    except libvirt.libvirtError:
        return None
    if domain is None:
        return None
    return DomainHandle(domain, name)


def define_domain(connection: HypervisorConnection, xml: str, name: str) -> DomainHandle:
    try:
        domain = connection.conn.defineXML(xml)
    except libvirt.libvirtError as exc:
        raise ProbeError(f"Failed to define domain {name}: {exc}") from exc
    if domain is None:
        raise ProbeError(f"Failed to define domain {name}")
    return DomainHandle(domain, name)
