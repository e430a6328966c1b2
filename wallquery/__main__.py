"""
__main__.py

This file adds support for running wallquery as a python module (python -m wallquery) as well as
through the "wallquery" console script.
"""

from wallquery.cli import cli


def main():
    cli(prog_name="wallquery")


if __name__ == "__main__":
    main()
