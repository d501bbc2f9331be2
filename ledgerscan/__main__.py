"""Main entry point when executing ledgerscan as a package.

This allows running the package using python -m ledgerscan.
"""

from ledgerscan.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
