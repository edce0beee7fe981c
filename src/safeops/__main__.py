import sys

from safeops.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
