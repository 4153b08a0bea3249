"""Shared test fixtures: fake libvirt connections and domains."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import libvirt
import pytest

from virtprobe.connection import HypervisorConnection
from virtprobe.models import GuestConfig
from virtprobe.utils import Reporter

# Environment variables read by load_guest_config() and cli.main()
_ENV_VARS = [
    "GUEST_NAME",
    "GUEST_CONFIG",
    "MEMORY",
    "CPUS",
    "LOG_VERBOSE",
    "LIBVIRT_URI",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)


def make_domain(dom_id=1, name="vm1", active=True, info=None) -> MagicMock:
    """Return a MagicMock shaped like a libvirt.virDomain."""
    dom = MagicMock()
    dom.ID.return_value = dom_id
    dom.name.return_value = name
    dom.isActive.return_value = 1 if active else 0
    dom.info.return_value = info or [1, 1048576, 524288, 2, 123456789]
    dom.memoryParameters.return_value = {
        "hard_limit": 9007199254740991,
        "soft_limit": 9007199254740991,
        "swap_hard_limit": 9007199254740991,
    }
    dom.numaParameters.return_value = {"numa_nodeset": "0-1", "numa_mode": 0}
    dom.schedulerType.return_value = ["posix", 9]
    dom.schedulerParametersFlags.return_value = {
        "cpu_shares": 1024,
        "vcpu_period": 100000,
        "vcpu_quota": -1,
        "emulator_period": 100000,
        "emulator_quota": -1,
    }
    return dom


@pytest.fixture
def domains():
    return [
        make_domain(1, "running-vm", active=True),
        make_domain(-1, "stopped-vm", active=False, info=[5, 2097152, 0, 4, 0]),
    ]


@pytest.fixture
def fake_conn(domains) -> MagicMock:
    """Return a MagicMock shaped like a libvirt.virConnect with no guest named like the default."""
    conn = MagicMock()
    conn.getURI.return_value = "qemu:///system"
    conn.getType.return_value = "QEMU"
    conn.getVersion.return_value = 2008000
    conn.getLibVersion.return_value = 8000000
    conn.numOfDomains.return_value = 1
    conn.numOfDefinedDomains.return_value = 1
    conn.listAllDomains.return_value = domains
    conn.lookupByName.side_effect = libvirt.libvirtError("Domain not found")
    conn.defineXML.return_value = make_domain(-1, "virtprobe-guest", active=False)
    conn.close.return_value = 0
    return conn


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(verbose=True, colour=False, stream=io.StringIO())


@pytest.fixture
def connection(fake_conn, reporter) -> HypervisorConnection:
    return HypervisorConnection(fake_conn, reporter)


@pytest.fixture
def guest() -> GuestConfig:
    return GuestConfig()


def output(reporter: Reporter) -> str:
    return reporter.stream.getvalue()
