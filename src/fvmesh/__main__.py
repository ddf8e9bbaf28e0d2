"""Main entry point for running fvmesh as a module."""

import sys

if __name__ == "__main__":
    from fvmesh.cli.app import main
    sys.exit(main())
