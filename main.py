"""Static file, directory listing and CGI server."""

import sys

from fileserver.cli import main

if __name__ == "__main__":
    sys.exit(main())
