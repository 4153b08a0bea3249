"""Global constants and defaults for virt-probe."""

from __future__ import annotations

import os
import re

LIBVIRT_URI = os.environ.get("LIBVIRT_URI", "qemu:///system")
TRUTHY = {"1", "true", "yes", "on"}
MAC_ADDRESS_RE = re.compile(r"^[0-9a-f]{2}(:[0-9a-f]{2}){5}$")

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

# virConnectGetVersion encodes major * 1,000,000 + minor * 1,000 + release
VERSION_MAJOR_DIVISOR = 1000000
VERSION_MINOR_DIVISOR = 1000

# VIR_DOMAIN_MEMORY_PARAM_UNLIMITED
MEMORY_PARAM_UNLIMITED = 9007199254740991

DOMAIN_STATES = {
    0: "no state",
    1: "running",
    2: "blocked",
    3: "paused",
    4: "shutting down",
    5: "shut off",
    6: "crashed",
    7: "pmsuspended",
}

NUMA_MODES = {
    0: "strict",
    1: "preferred",
    2: "interleave",
    3: "restrictive",
}

# Scheduler parameters printed in this order when present
SCHEDULER_FIELDS = (
    "cpu_shares",
    "vcpu_period",
    "vcpu_quota",
    "emulator_period",
    "emulator_quota",
    "global_period",
    "global_quota",
    "iothread_period",
    "iothread_quota",
)

MEMORY_FIELDS = ("hard_limit", "soft_limit", "swap_hard_limit", "min_guarantee")

SUPPORTED_ARCHES = {
    "x86_64": {"machine": "pc-i440fx-2.9", "emulator": "/usr/bin/qemu-system-x86_64"},
    "i686": {"machine": "pc", "emulator": "/usr/bin/qemu-system-i386"},
    "aarch64": {"machine": "virt", "emulator": "/usr/bin/qemu-system-aarch64"},
    "riscv64": {"machine": "virt", "emulator": "/usr/bin/qemu-system-riscv64"},
}

DOMAIN_TYPES = {"qemu", "kvm"}
FEATURES = {"acpi", "apic", "pae", "hap", "vmport", "smm", "gic", "pvspinlock"}
BOOT_DEVICES = {"hd", "cdrom", "network", "fd"}
GRAPHICS_TYPES = {"vnc", "spice", "none"}
NIC_TYPES = {"network", "bridge", "user"}
SUPPORTED_NETWORK_MODELS = {"virtio", "e1000", "e1000e", "rtl8139"}

DEFAULT_GUEST_NAME = "virtprobe-guest"
DEFAULT_MEMORY_KIB = 524288
DEFAULT_VCPUS = 2
DEFAULT_ARCH = "x86_64"
DEFAULT_DISK_PATH = "/var/lib/libvirt/images/virtprobe-guest.img"
DEFAULT_MAC = "52:54:00:12:34:56"
DEFAULT_NETWORK = "default"
