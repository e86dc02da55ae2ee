"""Entry point for running objectgraph as a module.

This module allows objectgraph to be run as a Python module using the -m flag:
    python -m objectgraph

It serves as the main entry point for the objectgraph command-line interface.
"""

from . import cli

if __name__ == "__main__":
    cli._main()
