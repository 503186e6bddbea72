#!/usr/bin/env python3
"""
LED Dudes - command-line entry point

Usage:
  python run.py CONFIG [-d] [-s] [-v]

  -d, --dummy            simulate the strip in the terminal
  -s, --ignore-schedule  start immediately, ignore schedule windows
  -v, --verbose          debug logging

SIGINT / SIGTERM request a shutdown: the current frame finishes, the strip
is turned off, and the process exits.
"""

import argparse
import logging
import signal
import sys

from config_loader import load_show_config
from strip_errors import ConfigError
from strip_show import StripShow
from tick_runner import ShutdownToken

logger = logging.getLogger("led_dudes")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(verbose: bool = False):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="led-dudes",
        description="Animate an addressable LED strip with blended waveform emitters",
    )
    parser.add_argument("config", help="path to a YAML or JSON config file")
    parser.add_argument("-d", "--dummy", action="store_true",
                        help="run a terminal-simulated dummy LED strip instead of the real thing")
    parser.add_argument("-s", "--ignore-schedule", action="store_true",
                        help="disable schedule checking")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="debug logging")
    return parser


def install_signal_handlers(token: ShutdownToken):
    def _request_shutdown(signum, _frame):
        name = signal.Signals(signum).name
        logger.info(f"Caught {name}, exiting")
        token.request(name)

    for signum in (signal.SIGTERM, signal.SIGINT):
        signal.signal(signum, _request_shutdown)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_show_config(args.config)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return 2

    token = ShutdownToken()
    try:
        show = StripShow(
            config,
            dummy_mode=args.dummy,
            ignore_schedule=args.ignore_schedule,
            shutdown_token=token,
        )
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return 2
    except ImportError as e:
        logger.error(f"❌ LED driver library missing: {e} (install the 'hardware' extra or use --dummy)")
        return 2

    install_signal_handlers(token)
    try:
        show.run_forever()
    except Exception:
        logger.exception("❌ LED dudes crashed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
