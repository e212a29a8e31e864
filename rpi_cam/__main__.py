"""Allow ``python -m rpi_cam`` to run the command-line interface."""

from __future__ import annotations

import sys

from rpi_cam.cli.main import main


if __name__ == "__main__":
    sys.exit(main())
