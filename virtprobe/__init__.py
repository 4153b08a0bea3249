"""virt-probe package."""

__all__ = [
    "cli",
    "config",
    "connection",
    "constants",
    "domain_xml",
    "exceptions",
    "models",
    "probe",
    "utils",
]
