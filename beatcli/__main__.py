import sys

from beatcli.app import main

if __name__ == "__main__":
    sys.exit(main())
