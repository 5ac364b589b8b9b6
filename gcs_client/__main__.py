"""Module entry point for the Cloud Storage command line client."""
import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
