"""Main entry point when executing mpesapy as a package.

This allows running the package using python -m mpesapy.
"""

from mpesapy.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
