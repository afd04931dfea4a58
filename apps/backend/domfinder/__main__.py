"""domfinder module entry point"""

import sys

from domfinder.cli import main


if __name__ == "__main__":
    sys.exit(main())
