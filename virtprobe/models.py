"""Data models for virt-probe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from virtprobe.constants import (
    DEFAULT_ARCH,
    DEFAULT_DISK_PATH,
    DEFAULT_GUEST_NAME,
    DEFAULT_MAC,
    DEFAULT_MEMORY_KIB,
    DEFAULT_NETWORK,
    DEFAULT_VCPUS,
    SUPPORTED_ARCHES,
)
from virtprobe.utils import decompose_version


@dataclass
class HypervisorInfo:
    uri: str
    hv_type: str
    version: int

    @property
    def major(self) -> int:
        return decompose_version(self.version)[0]

    @property
    def minor(self) -> int:
        return decompose_version(self.version)[1]

    @property
    def release(self) -> int:
        return decompose_version(self.version)[2]

    @property
    def version_string(self) -> str:
        return "{}.{}.{}".format(*decompose_version(self.version))


@dataclass
class DomainSummary:
    id: int
    name: str
    active: bool


@dataclass
class DomainRuntimeInfo:
    state: int
    max_memory: int  # KiB
    memory: int  # KiB
    vcpus: int
    cpu_time: int  # nanoseconds


@dataclass
class DomainTuning:
    memory: Dict[str, int] = field(default_factory=dict)
    numa_nodeset: str = ""
    numa_mode: Optional[int] = None
    scheduler_type: str = ""
    scheduler: Dict[str, int] = field(default_factory=dict)


@dataclass
class DiskConfig:
    source: str
    target: str = "hda"
    driver_type: str = "raw"
    device: str = "disk"


@dataclass
class NicConfig:
    type: str = "network"
    source: str = DEFAULT_NETWORK
    mac_address: Optional[str] = DEFAULT_MAC
    model: str = "virtio"


@dataclass
class GraphicsConfig:
    type: str = "vnc"
    port: int = -1
    autoport: bool = True


@dataclass
class GuestConfig:
    """Structured description of the guest submitted to defineXML."""

    name: str = DEFAULT_GUEST_NAME
    domain_type: str = "qemu"
    memory_kib: int = DEFAULT_MEMORY_KIB
    vcpus: int = DEFAULT_VCPUS
    arch: str = DEFAULT_ARCH
    machine: str = SUPPORTED_ARCHES[DEFAULT_ARCH]["machine"]
    features: Tuple[str, ...] = ("acpi", "apic")
    boot_device: Optional[str] = "hd"
    # Direct kernel boot replaces boot_device when set
    kernel: Optional[str] = None
    initrd: Optional[str] = None
    cmdline: Optional[str] = None
    emulator: str = SUPPORTED_ARCHES[DEFAULT_ARCH]["emulator"]
    disks: List[DiskConfig] = field(default_factory=lambda: [DiskConfig(source=DEFAULT_DISK_PATH)])
    nics: List[NicConfig] = field(default_factory=lambda: [NicConfig()])
    graphics: Optional[GraphicsConfig] = field(default_factory=GraphicsConfig)
    serial_console: bool = False


@dataclass
class ReportOptions:
    """Optional reporting behaviour layered on top of the base flow."""

    domain_info: bool = True
    tuning: bool = False
    cleanup_existing: bool = False
    read_only: bool = False
