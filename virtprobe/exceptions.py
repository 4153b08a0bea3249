"""Custom exceptions for virt-probe."""


class ProbeError(RuntimeError):
    """Raised when a libvirt call or a configuration step fails."""
