"""Guest configuration loading and environment variable parsing for virt-probe."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from virtprobe.constants import (
    _LOG_VERBOSE,
    BOOT_DEVICES,
    DOMAIN_TYPES,
    FEATURES,
    GRAPHICS_TYPES,
    MAC_ADDRESS_RE,
    NIC_TYPES,
    SUPPORTED_ARCHES,
    SUPPORTED_NETWORK_MODELS,
)
from virtprobe.exceptions import ProbeError
from virtprobe.models import DiskConfig, GraphicsConfig, GuestConfig, NicConfig
from virtprobe.utils import get_env, get_env_bool, parse_int, parse_int_env


def is_verbose_env() -> bool:
    return _LOG_VERBOSE or get_env_bool("LOG_VERBOSE", False)


def _text(mapping: Dict[str, Any], key: str, default: str) -> str:
    """String value of ``key``; a missing key or an empty YAML value yields ``default``."""
    value = mapping.get(key)
    if value is None:
        return default
    return str(value)


def read_guest_document(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise ProbeError(f"Guest config missing: {config_path}")
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProbeError(f"Cannot read guest config {config_path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ProbeError(f"Invalid guest config {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProbeError(f"Guest config {config_path} must be a mapping")
    guest = data.get("guest")
    if guest is None:
        return {}
    if not isinstance(guest, dict):
        raise ProbeError(f"'guest' in {config_path} must be a mapping")
    return guest


def _parse_disks(raw: Any) -> List[DiskConfig]:
    if not isinstance(raw, list):
        raise ProbeError("guest.disks must be a list")
    disks = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("source"):
            raise ProbeError(f"guest.disks[{idx}] needs a 'source' path")
        disks.append(
            DiskConfig(
                source=str(item["source"]),
                target=_text(item, "target", f"hd{chr(ord('a') + idx)}"),
                driver_type=_text(item, "format", "raw"),
                device=_text(item, "device", "disk"),
            )
        )
    return disks


def _parse_nics(raw: Any) -> List[NicConfig]:
    if not isinstance(raw, list):
        raise ProbeError("guest.nics must be a list")
    nics = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ProbeError(f"guest.nics[{idx}] must be a mapping")
        defaults = NicConfig()
        mac = item.get("mac", defaults.mac_address)
        nics.append(
            NicConfig(
                type=_text(item, "type", defaults.type).lower(),
                source=_text(item, "source", defaults.source),
                mac_address=str(mac).lower() if mac else None,
                model=_text(item, "model", defaults.model).lower(),
            )
        )
    return nics


def _parse_graphics(raw: Any) -> Optional[GraphicsConfig]:
    if raw is None or raw is False:
        return None
    if isinstance(raw, str):
        kind = raw.strip().lower()
        return None if kind == "none" else GraphicsConfig(type=kind)
    if isinstance(raw, dict):
        kind = _text(raw, "type", "vnc").lower()
        if kind == "none":
            return None
        port = parse_int("guest.graphics.port", raw.get("port", -1), min_val=-1, max_val=65535)
        return GraphicsConfig(type=kind, port=port, autoport=port == -1)
    raise ProbeError("guest.graphics must be a string or a mapping")


def _parse_features(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise ProbeError("guest.features must be a list")
    return tuple(str(f).strip().lower() for f in raw)


def _apply_document(guest: GuestConfig, doc: Dict[str, Any]) -> None:
    if doc.get("name") is not None:
        guest.name = str(doc["name"]).strip()
    if doc.get("type") is not None:
        guest.domain_type = str(doc["type"]).lower()
    if "memory_kib" in doc:
        guest.memory_kib = parse_int("guest.memory_kib", doc["memory_kib"])
    elif "memory_mib" in doc:
        guest.memory_kib = parse_int("guest.memory_mib", doc["memory_mib"]) * 1024
    if "vcpus" in doc:
        guest.vcpus = parse_int("guest.vcpus", doc["vcpus"])
    if doc.get("arch") is not None:
        guest.arch = str(doc["arch"]).lower()
        profile = SUPPORTED_ARCHES.get(guest.arch)
        if profile is None:
            raise ProbeError(
                f"Unsupported arch '{guest.arch}'. Supported: {', '.join(sorted(SUPPORTED_ARCHES))}"
            )
        guest.machine = profile["machine"]
        guest.emulator = profile["emulator"]
    if doc.get("machine") is not None:
        guest.machine = str(doc["machine"])
    if doc.get("emulator") is not None:
        guest.emulator = str(doc["emulator"])
    if "features" in doc:
        guest.features = _parse_features(doc["features"])
    if "kernel" in doc:
        guest.kernel = doc["kernel"] or None
        if guest.kernel:
            guest.boot_device = None
    if "initrd" in doc:
        guest.initrd = doc["initrd"] or None
    if "cmdline" in doc:
        guest.cmdline = doc["cmdline"] or None
    if "boot" in doc:
        guest.boot_device = str(doc["boot"]).lower() if doc["boot"] else None
    if "disks" in doc:
        guest.disks = _parse_disks(doc["disks"] or [])
    if "nics" in doc:
        guest.nics = _parse_nics(doc["nics"] or [])
    if "graphics" in doc:
        guest.graphics = _parse_graphics(doc["graphics"])
    if "serial" in doc:
        guest.serial_console = bool(doc["serial"])


def validate_guest_config(guest: GuestConfig) -> None:
    if not guest.name:
        raise ProbeError("Guest name must not be empty")
    if guest.domain_type not in DOMAIN_TYPES:
        raise ProbeError(f"Unsupported domain type '{guest.domain_type}'")
    if guest.arch not in SUPPORTED_ARCHES:
        raise ProbeError(f"Unsupported arch '{guest.arch}'")
    if guest.boot_device is None and not guest.kernel:
        raise ProbeError("Guest needs either a boot device or a kernel path")
    if guest.boot_device is not None and guest.boot_device not in BOOT_DEVICES:
        raise ProbeError(
            f"Invalid boot device '{guest.boot_device}'. Valid: {', '.join(sorted(BOOT_DEVICES))}"
        )
    for feature in guest.features:
        if feature not in FEATURES:
            raise ProbeError(f"Unsupported feature '{feature}'. Valid: {', '.join(sorted(FEATURES))}")
    for nic in guest.nics:
        if nic.type not in NIC_TYPES:
            raise ProbeError(f"Unsupported NIC type '{nic.type}'")
        if nic.model not in SUPPORTED_NETWORK_MODELS:
            raise ProbeError(f"Unsupported NIC model '{nic.model}'")
        if nic.mac_address and not MAC_ADDRESS_RE.match(nic.mac_address):
            raise ProbeError(f"Invalid MAC address '{nic.mac_address}'")
    if guest.graphics is not None and guest.graphics.type not in GRAPHICS_TYPES:
        raise ProbeError(f"Unsupported graphics type '{guest.graphics.type}'")


def load_guest_config(config_path: Optional[Path] = None, name: Optional[str] = None) -> GuestConfig:
    """Build the guest descriptor: defaults, then YAML file, then environment, then ``name``."""
    guest = GuestConfig()
    if config_path is not None:
        _apply_document(guest, read_guest_document(config_path))

    env_name = get_env("GUEST_NAME")
    if env_name and env_name.strip():
        guest.name = env_name.strip()
    if get_env("MEMORY") is not None:
        guest.memory_kib = parse_int_env("MEMORY", "512") * 1024
    if get_env("CPUS") is not None:
        guest.vcpus = parse_int_env("CPUS", "2")
    if name:
        guest.name = name.strip()

    validate_guest_config(guest)
    return guest
