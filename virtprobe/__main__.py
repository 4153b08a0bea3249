"""Module entry point for ``python -m virtprobe``."""

from virtprobe.cli import main

raise SystemExit(main())
