#!/usr/bin/env python3
"""
runner.py - Command line entry point

Usage:
    assure tests/login.assure
    assure tests/login.assure --headed --timeout 20 -v

Exit codes:
    0  all commands passed (or no script given: usage printed)
    1  a command failed, the file is missing, has the wrong extension,
       or contains no commands
    2  the browser could not be launched or connected to
"""

import argparse
import asyncio
import logging
import os
import sys

from .config import LOG_LEVEL, SCRIPT_EXTENSION, EngineConfig
from .errors import ConnectionFailed, LaunchError
from .executor import execute
from .script import parse
from .session import open_session

logger = logging.getLogger(__name__)

# === EXIT CODES ===
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_LAUNCH_FAILED = 2


async def run_commands(commands, config: EngineConfig) -> int:
    """Launch a browser, run `commands`, always clean up. Returns an exit code."""
    logger.info("🌐 Launching browser...")
    try:
        async with open_session(config) as session:
            try:
                await execute(commands, session)
            finally:
                logger.info("🧹 Cleaning up...")
    except (LaunchError, ConnectionFailed) as e:
        logger.error(f"❌ Browser unavailable: {e}")
        return EXIT_LAUNCH_FAILED
    except Exception as e:
        logger.error(f"❌ TEST FAILED: {e}")
        return EXIT_ERROR

    logger.info("✅ TEST COMPLETED SUCCESSFULLY")
    return EXIT_OK


def load_script(path):
    """Read and parse a script file. Returns (commands, error message)."""
    if not path.endswith(SCRIPT_EXTENSION):
        return None, f"Test file must have {SCRIPT_EXTENSION} extension: {path}"
    if not os.path.isfile(path):
        return None, f"Test file not found: {path}"

    try:
        with open(path, "r", encoding="utf-8") as f:
            commands = parse(f.read())
    except UnicodeDecodeError:
        return None, f"Test file is not valid UTF-8: {path}"
    if not commands:
        return None, "No commands found in test file"
    return commands, None


def build_parser():
    parser = argparse.ArgumentParser(prog="assure", description="Run an .assure browser test script")
    parser.add_argument("script", nargs="?", help=f"path to a {SCRIPT_EXTENSION} file")
    parser.add_argument("--headed", action="store_true", help="show the browser window")
    parser.add_argument("--timeout", type=float, help="element / text / URL wait budget in seconds")
    parser.add_argument("--port", type=int, help="remote debugging port")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL.upper(),
        format='%(asctime)s [ASSURE] %(levelname)s: %(message)s'
    )

    if not args.script:
        parser.print_help()
        return EXIT_OK

    commands, error = load_script(args.script)
    if error:
        logger.error(f"❌ {error}")
        return EXIT_ERROR

    logger.info(f"📄 {args.script}: {len(commands)} commands")

    overrides = {}
    if args.headed:
        overrides["headless"] = False
    if args.timeout is not None:
        overrides.update(element_timeout=args.timeout, text_timeout=args.timeout, url_timeout=args.timeout)
    if args.port is not None:
        overrides["port"] = args.port
    config = EngineConfig.from_env(**overrides)

    return asyncio.run(run_commands(commands, config))


if __name__ == "__main__":
    sys.exit(main())
