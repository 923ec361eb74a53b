"""Allow ``python -m hansl_lint``."""

import sys

from hansl_lint.cli import main

if __name__ == "__main__":
    sys.exit(main())
