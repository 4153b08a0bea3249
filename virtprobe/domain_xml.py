"""Domain XML generation for virt-probe."""

from __future__ import annotations

from xml.etree.ElementTree import Element, SubElement, tostring

from virtprobe.models import GuestConfig


def _element_to_str(root: Element) -> str:
    """Serialize an ElementTree element to a pretty-printed XML string without declaration."""
    from xml.dom.minidom import parseString

    raw = tostring(root, encoding="unicode")
    return parseString(raw).documentElement.toprettyxml(indent="  ").strip()


def render_domain_xml(guest: GuestConfig) -> str:
    """Render the libvirt domain definition for ``guest``."""
    domain = Element("domain", type=guest.domain_type)

    SubElement(domain, "name").text = guest.name
    SubElement(domain, "memory", unit="KiB").text = str(guest.memory_kib)
    SubElement(domain, "vcpu", placement="static").text = str(guest.vcpus)

    if guest.features:
        features_el = SubElement(domain, "features")
        for feature in guest.features:
            SubElement(features_el, feature)

    # <os>
    os_el = SubElement(domain, "os")
    SubElement(os_el, "type", arch=guest.arch, machine=guest.machine).text = "hvm"
    if guest.kernel:
        SubElement(os_el, "kernel").text = guest.kernel
        if guest.initrd:
            SubElement(os_el, "initrd").text = guest.initrd
        if guest.cmdline:
            SubElement(os_el, "cmdline").text = guest.cmdline
    elif guest.boot_device:
        SubElement(os_el, "boot", dev=guest.boot_device)

    # <devices>
    devices = SubElement(domain, "devices")
    SubElement(devices, "emulator").text = guest.emulator

    for disk in guest.disks:
        disk_el = SubElement(devices, "disk", type="file", device=disk.device)
        SubElement(disk_el, "driver", name="qemu", type=disk.driver_type)
        SubElement(disk_el, "source", file=disk.source)
        SubElement(disk_el, "target", dev=disk.target)

    for nic in guest.nics:
        iface = SubElement(devices, "interface", type=nic.type)
        if nic.mac_address:
            SubElement(iface, "mac", address=nic.mac_address)
        if nic.type == "network":
            SubElement(iface, "source", network=nic.source)
        elif nic.type == "bridge":
            SubElement(iface, "source", bridge=nic.source)
        SubElement(iface, "model", type=nic.model)

    if guest.graphics is not None:
        attrs = {"type": guest.graphics.type, "port": str(guest.graphics.port)}
        if guest.graphics.autoport:
            attrs["autoport"] = "yes"
        SubElement(devices, "graphics", attrs)

    if guest.serial_console:
        serial = SubElement(devices, "serial", type="pty")
        SubElement(serial, "target", port="0")
        console = SubElement(devices, "console", type="pty")
        SubElement(console, "target", type="serial", port="0")

    return _element_to_str(domain)
