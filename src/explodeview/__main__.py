"""
Run with: python -m explodeview [asset] [--debug] [--log-file FILE]
"""
import argparse
import logging
import sys

from explodeview.logging_config import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="explodeview", description="3D asset viewer with exploded views.")
    parser.add_argument("asset", nargs="?", help="Asset file to open on start (.glb, .gltf, .obj, ...)")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    return parser.parse_args(argv)


def run(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # Qt is imported only once logging is configured.
    from explodeview.app.main import main
    return main(args.asset)


if __name__ == "__main__":
    sys.exit(run())
