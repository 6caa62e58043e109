"""Entry point for `python -m intellisuggest`."""

import sys

from intellisuggest.shell import main

if __name__ == "__main__":
    sys.exit(main())
