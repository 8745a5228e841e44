import sys

from parcel_mcp.cli import main

if __name__ == "__main__":
    sys.exit(main())
