"""Tests for virtprobe.config module."""

from __future__ import annotations

import textwrap

import pytest

from virtprobe.config import is_verbose_env, load_guest_config
from virtprobe.constants import DEFAULT_GUEST_NAME
from virtprobe.domain_xml import render_domain_xml
from virtprobe.exceptions import ProbeError


def _write(tmp_path, body: str):
    path = tmp_path / "guest.yaml"
    path.write_text(textwrap.dedent(body))
    return path


class TestDefaults:
    def test_builtin_guest(self):
        guest = load_guest_config()
        assert guest.name == DEFAULT_GUEST_NAME
        assert guest.domain_type == "qemu"
        assert guest.memory_kib == 524288
        assert guest.vcpus == 2
        assert guest.machine == "pc-i440fx-2.9"
        assert guest.boot_device == "hd"
        assert guest.nics[0].mac_address == "52:54:00:12:34:56"
        assert guest.graphics is not None and guest.graphics.autoport

    def test_name_argument_wins(self, monkeypatch):
        monkeypatch.setenv("GUEST_NAME", "from-env")
        assert load_guest_config(name="from-cli").name == "from-cli"


class TestYamlDocument:
    def test_overlay(self, tmp_path):
        path = _write(
            tmp_path,
            """
            guest:
              name: custom
              memory_mib: 1024
              vcpus: 4
              arch: aarch64
              graphics: none
              serial: true
              nics:
                - type: bridge
                  source: br0
                  mac: "52:54:00:AA:BB:CC"
                  model: e1000
            """,
        )
        guest = load_guest_config(path)
        assert guest.name == "custom"
        assert guest.memory_kib == 1024 * 1024
        assert guest.vcpus == 4
        assert guest.machine == "virt"
        assert guest.emulator == "/usr/bin/qemu-system-aarch64"
        assert guest.graphics is None
        assert guest.serial_console is True
        assert guest.nics[0].source == "br0"
        assert guest.nics[0].mac_address == "52:54:00:aa:bb:cc"

    def test_kernel_replaces_boot_device(self, tmp_path):
        path = _write(
            tmp_path,
            """
            guest:
              kernel: /boot/vmlinuz
              cmdline: console=ttyS0
              disks: []
            """,
        )
        guest = load_guest_config(path)
        assert guest.kernel == "/boot/vmlinuz"
        assert guest.boot_device is None
        assert guest.disks == []

    def test_graphics_mapping_with_port(self, tmp_path):
        path = _write(tmp_path, "guest:\n  graphics: {type: spice, port: 5930}\n")
        graphics = load_guest_config(path).graphics
        assert graphics.type == "spice"
        assert graphics.port == 5930
        assert graphics.autoport is False

    def test_empty_file_keeps_defaults(self, tmp_path):
        path = _write(tmp_path, "")
        assert load_guest_config(path).name == DEFAULT_GUEST_NAME

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProbeError, match="Guest config missing"):
            load_guest_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "guest: [unclosed\n")
        with pytest.raises(ProbeError, match="Invalid guest config"):
            load_guest_config(path)

    def test_non_mapping_guest(self, tmp_path):
        path = _write(tmp_path, "guest: [a, b]\n")
        with pytest.raises(ProbeError, match="must be a mapping"):
            load_guest_config(path)

    def test_directory_path(self, tmp_path):
        with pytest.raises(ProbeError, match="Cannot read guest config"):
            load_guest_config(tmp_path)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "guest.yaml"
        path.write_bytes(b"\xff\xfe guest:\n")
        with pytest.raises(ProbeError, match="Cannot read guest config"):
            load_guest_config(path)

    def test_null_values_keep_defaults(self, tmp_path):
        path = _write(
            tmp_path,
            """
            guest:
              name:
              disks:
                - source: /var/lib/libvirt/images/a.img
                  target:
                  format:
            """,
        )
        guest = load_guest_config(path)
        assert guest.name == DEFAULT_GUEST_NAME
        assert guest.disks[0].target == "hda"
        assert guest.disks[0].driver_type == "raw"

    def test_null_guest_section(self, tmp_path):
        path = _write(tmp_path, "guest:\n")
        assert load_guest_config(path).name == DEFAULT_GUEST_NAME

    def test_single_feature_string(self, tmp_path):
        path = _write(tmp_path, "guest:\n  features: acpi\n")
        guest = load_guest_config(path)
        assert guest.features == ("acpi",)
        assert "<acpi/>" in render_domain_xml(guest)
        assert "<a/>" not in render_domain_xml(guest)

    def test_feature_list(self, tmp_path):
        path = _write(tmp_path, "guest:\n  features: [ACPI, pae]\n")
        assert load_guest_config(path).features == ("acpi", "pae")


class TestValidation:
    @pytest.mark.parametrize(
        "body, message",
        [
            ("guest:\n  arch: sparc\n", "Unsupported arch"),
            ("guest:\n  type: xen\n", "Unsupported domain type"),
            ("guest:\n  boot: floppy\n", "Invalid boot device"),
            ("guest:\n  boot: null\n", "either a boot device or a kernel path"),
            ("guest:\n  vcpus: 0\n", "guest.vcpus must be >= 1"),
            ("guest:\n  nics: [{mac: 'zz:zz'}]\n", "Invalid MAC address"),
            ("guest:\n  nics: [{model: ne2k}]\n", "Unsupported NIC model"),
            ("guest:\n  disks: [{target: hdb}]\n", "needs a 'source' path"),
            ("guest:\n  features: [acpi, \"not a tag\"]\n", "Unsupported feature"),
            ("guest:\n  features: [bogus]\n", "Unsupported feature .bogus."),
            ("guest:\n  features: {acpi: true}\n", "guest.features must be a list"),
        ],
    )
    def test_rejects(self, tmp_path, body, message):
        with pytest.raises(ProbeError, match=message):
            load_guest_config(_write(tmp_path, body))


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GUEST_NAME", " env-guest ")
        monkeypatch.setenv("MEMORY", "2048")
        monkeypatch.setenv("CPUS", "3")
        guest = load_guest_config()
        assert guest.name == "env-guest"
        assert guest.memory_kib == 2048 * 1024
        assert guest.vcpus == 3

    def test_invalid_memory_env(self, monkeypatch):
        monkeypatch.setenv("MEMORY", "lots")
        with pytest.raises(ProbeError, match="MEMORY must be an integer"):
            load_guest_config()

    def test_verbose_env(self, monkeypatch):
        monkeypatch.setenv("LOG_VERBOSE", "yes")
        assert is_verbose_env() is True
