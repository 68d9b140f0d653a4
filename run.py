"""
Development runner: starts the viewer straight from a source checkout.

Puts 'src' on sys.path so 'explodeview' imports without installing.

Usage:
    $ python run.py [asset] [--debug]
"""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from explodeview.__main__ import run

if __name__ == "__main__":
    sys.exit(run())
