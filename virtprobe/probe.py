"""Hypervisor and domain reporting flow for virt-probe."""

from __future__ import annotations

from typing import List, Optional

try:
    import libvirt  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"libvirt python bindings not available: {exc}") from exc

from virtprobe.connection import HypervisorConnection, define_domain, lookup_domain
from virtprobe.constants import (
    DOMAIN_STATES,
    MEMORY_FIELDS,
    NUMA_MODES,
    SCHEDULER_FIELDS,
)
from virtprobe.domain_xml import render_domain_xml
from virtprobe.exceptions import ProbeError
from virtprobe.models import (
    DomainRuntimeInfo,
    DomainSummary,
    DomainTuning,
    GuestConfig,
    HypervisorInfo,
    ReportOptions,
)
from virtprobe.utils import Reporter, decompose_version, format_kib

# One listing call for both sets; separate list calls race against domains
# being started or stopped in between.
LIST_ALL_FLAGS = libvirt.VIR_CONNECT_LIST_DOMAINS_ACTIVE | libvirt.VIR_CONNECT_LIST_DOMAINS_INACTIVE


def show_hypervisor_info(connection: HypervisorConnection, reporter: Reporter) -> HypervisorInfo:
    conn = connection.conn
    try:
        uri = conn.getURI()
    except libvirt.libvirtError as exc:
        raise ProbeError(f"Failed to get URI for hypervisor connection: {exc}") from exc
    reporter.log("INFO", f"Connected to hypervisor at '{uri}'")

    try:
        hv_type = conn.getType()
        version = conn.getVersion()
    except libvirt.libvirtError as exc:
        raise ProbeError(f"Failed to show hypervisor info: {exc}") from exc

    info = HypervisorInfo(uri=uri, hv_type=hv_type, version=version)
    reporter.log("INFO", f"Hypervisor: '{info.hv_type}' version: {info.version_string}")

    try:
        lib_version = conn.getLibVersion()
    except libvirt.libvirtError:
        reporter.log("DEBUG", "libvirt library version unavailable")
    else:
        major, minor, release = decompose_version(lib_version)
        reporter.log("DEBUG", f"libvirt version: {major}.{minor}.{release}")
    return info


def _summarize(domain) -> DomainSummary:
    """Identity of a listed domain; lookups that fail fall back to placeholders."""
    try:
        dom_id = domain.ID()
    except libvirt.libvirtError:
        dom_id = 0
    try:
        name = domain.name()
    except libvirt.libvirtError:
        name = "no-name"
    try:
        active = bool(domain.isActive())
    except libvirt.libvirtError:
        active = False
    return DomainSummary(id=dom_id, name=name, active=active)


def get_runtime_info(domain) -> DomainRuntimeInfo:
    state, max_mem, memory, vcpus, cpu_time = domain.info()
    return DomainRuntimeInfo(state=state, max_memory=max_mem, memory=memory, vcpus=vcpus, cpu_time=cpu_time)


def get_tuning(domain) -> DomainTuning:
    flags = libvirt.VIR_DOMAIN_AFFECT_CURRENT
    tuning = DomainTuning()
    tuning.memory = dict(domain.memoryParameters(flags))
    numa = domain.numaParameters(flags)
    tuning.numa_nodeset = numa.get("numa_nodeset", "")
    tuning.numa_mode = numa.get("numa_mode")
    sched_type = domain.schedulerType()
    tuning.scheduler_type = sched_type[0] if isinstance(sched_type, (list, tuple)) else str(sched_type)
    tuning.scheduler = dict(domain.schedulerParametersFlags(flags))
    return tuning


def report_runtime_info(info: DomainRuntimeInfo, reporter: Reporter) -> None:
    state_name = DOMAIN_STATES.get(info.state, "unknown")
    reporter.log("INFO", "Domain info:")
    reporter.log("INFO", f"    State: {state_name} ({info.state})")
    reporter.log("INFO", f"    Max Memory: {info.max_memory}")
    reporter.log("INFO", f"    Memory: {info.memory}")
    reporter.log("INFO", f"    CPUs: {info.vcpus}")
    reporter.log("INFO", f"    CPU Time: {info.cpu_time}")


def report_tuning(tuning: DomainTuning, reporter: Reporter) -> None:
    reporter.log("INFO", "Memory tuning:")
    for key in MEMORY_FIELDS:
        if key in tuning.memory:
            reporter.log("INFO", f"    {key}: {format_kib(tuning.memory[key])}")
    mode = NUMA_MODES.get(tuning.numa_mode, "unknown") if tuning.numa_mode is not None else "unset"
    reporter.log("INFO", f"NUMA: nodeset='{tuning.numa_nodeset}' mode={mode}")
    reporter.log("INFO", f"Scheduler: {tuning.scheduler_type}")
    for key in SCHEDULER_FIELDS:
        if key in tuning.scheduler:
            reporter.log("INFO", f"    {key}: {tuning.scheduler[key]}")


def show_domains(
    connection: HypervisorConnection,
    reporter: Reporter,
    options: Optional[ReportOptions] = None,
) -> List[DomainSummary]:
    options = options or ReportOptions()
    conn = connection.conn
    try:
        num_active = conn.numOfDomains()
        num_inactive = conn.numOfDefinedDomains()
        reporter.log("INFO", f"There are {num_active} active and {num_inactive} inactive domains")
        domains = conn.listAllDomains(LIST_ALL_FLAGS)
    except libvirt.libvirtError as exc:
        raise ProbeError(f"Failed to show domains info: {exc}") from exc

    summaries = []
    for domain in domains:
        summary = _summarize(domain)
        summaries.append(summary)
        reporter.log("INFO", f"ID: {summary.id}, Name: {summary.name}, Active: {summary.active}")
        if options.domain_info:
            try:
                report_runtime_info(get_runtime_info(domain), reporter)
            except libvirt.libvirtError as exc:
                reporter.log("WARN", f"Could not read info for {summary.name}: {exc}")
        if options.tuning:
            try:
                report_tuning(get_tuning(domain), reporter)
            except libvirt.libvirtError as exc:
                reporter.log("WARN", f"Could not read tuning parameters for {summary.name}: {exc}")
    return summaries


def ensure_domain(
    connection: HypervisorConnection,
    guest: GuestConfig,
    reporter: Reporter,
    options: Optional[ReportOptions] = None,
) -> bool:
    """Define ``guest`` unless a domain with its name exists. Returns True when defined."""
    options = options or ReportOptions()
    existing = lookup_domain(connection, guest.name)
    if existing is not None:
        with existing:
            reporter.log("INFO", f"Domain {guest.name} already defined")
            if options.cleanup_existing:
                if existing.destroy():
                    reporter.log("INFO", f"Destroyed running domain {guest.name}")
                existing.undefine()
                reporter.log("SUCCESS", f"Undefined domain {guest.name}")
        return False

    reporter.log("INFO", f"Defining {guest.domain_type} domain {guest.name}")
    xml = render_domain_xml(guest)
    reporter.log("DEBUG", f"Domain XML:\n{xml}")
    with define_domain(connection, xml, guest.name):
        reporter.log("SUCCESS", f"Defined domain {guest.name}")
    return True


def run(
    uri: str,
    guest: GuestConfig,
    reporter: Reporter,
    options: Optional[ReportOptions] = None,
) -> int:
    options = options or ReportOptions()
    with HypervisorConnection.open(uri, reporter, read_only=options.read_only) as connection:
        show_hypervisor_info(connection, reporter)
        show_domains(connection, reporter, options)
        if options.read_only:
            reporter.log("INFO", "Read-only connection; skipping domain definition")
        else:
            ensure_domain(connection, guest, reporter, options)
    return 0
