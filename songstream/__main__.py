"""Allow ``python -m songstream``."""

import sys

from songstream.cli import main

sys.exit(main())
