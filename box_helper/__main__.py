"""Allow running box with ``python -m box_helper``."""

import sys

from box_helper.cli.main import main


sys.exit(main())
