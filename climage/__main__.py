"""Run the command line with ``python -m climage``."""

import sys

from .cli import main

sys.exit(main())
