"""CLI entry points for virt-probe."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from virtprobe import probe
from virtprobe.config import is_verbose_env, load_guest_config
from virtprobe.constants import LIBVIRT_URI
from virtprobe.domain_xml import render_domain_xml
from virtprobe.exceptions import ProbeError
from virtprobe.models import ReportOptions
from virtprobe.utils import Reporter, get_env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Print hypervisor and domain information, then define a guest if it is missing"
    )
    parser.add_argument(
        "uri",
        nargs="?",
        default=None,
        help=f"libvirt connection URI, e.g. qemu:///system (default: $LIBVIRT_URI or {LIBVIRT_URI})",
    )
    parser.add_argument(
        "--domain-info",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Print state, memory and CPU info for each domain",
    )
    parser.add_argument("--tuning", action="store_true", help="Print memory, NUMA and scheduler tuning per domain")
    parser.add_argument(
        "--cleanup-existing",
        action="store_true",
        help="Destroy and undefine the guest when it is already defined",
    )
    parser.add_argument("--read-only", action="store_true", help="Open a read-only connection and skip definition")
    parser.add_argument("--guest-config", type=Path, default=None, metavar="PATH", help="YAML guest description")
    parser.add_argument("--guest-name", default=None, metavar="NAME", help="Override the guest name")
    parser.add_argument("--show-xml", action="store_true", help="Print the guest domain XML and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug output")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument("--log-file", type=Path, default=None, metavar="PATH", help="Also append output to PATH")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    verbose = args.verbose or is_verbose_env()
    colour = False if args.no_color else None
    try:
        reporter = Reporter(verbose=verbose, colour=colour, log_file=args.log_file)
    except ProbeError as exc:
        Reporter(verbose=verbose, colour=colour).log("ERROR", str(exc))
        return 1

    config_path = args.guest_config
    if config_path is None:
        env_path = get_env("GUEST_CONFIG")
        if env_path:
            config_path = Path(env_path)

    try:
        guest = load_guest_config(config_path, name=args.guest_name)
    except ProbeError as exc:
        reporter.log("ERROR", str(exc))
        return 1

    if args.show_xml:
        print(render_domain_xml(guest))
        return 0

    options = ReportOptions(
        domain_info=args.domain_info,
        tuning=args.tuning,
        cleanup_existing=args.cleanup_existing,
        read_only=args.read_only,
    )
    uri = args.uri or get_env("LIBVIRT_URI") or LIBVIRT_URI

    try:
        return probe.run(uri, guest, reporter, options)
    except ProbeError as exc:
        reporter.log("ERROR", str(exc))
        return 1
    except Exception as exc:
        reporter.log("ERROR", f"Unexpected error: {exc}")
        import traceback

        traceback.print_exc()
        return 1
