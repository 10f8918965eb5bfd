"""
Command line front end for the bitcoind regtest fixture.

Usage:
    bitcoind-regtest start [options]
    bitcoind-regtest stop [options]
    bitcoind-regtest remove [options]
    bitcoind-regtest status [options]

Examples:
    bitcoind-regtest start
    bitcoind-regtest start --container-name test-node --image bitcoin/bitcoin:29.1
    bitcoind-regtest stop --container-name test-node
    bitcoind-regtest status --show-config
"""

import argparse
import sys
from typing import Callable, Dict, List, Optional, Type

import colorama
from colorama import Fore, Style

from .bitcoind import Bitcoind
from .config import load_config
from .errors import (
    BitcoindError,
    CreateFailed,
    DaemonUnavailable,
    ImageHashMismatch,
    PullFailed,
    RemoveFailed,
    StartFailed,
    StopFailed,
)
from .logging_config import setup_logging
from .validation import ValidationError

colorama.init(autoreset=True)

EXIT_CODES: Dict[Type[BitcoindError], int] = {
    DaemonUnavailable: 20,
    PullFailed: 21,
    CreateFailed: 22,
    StartFailed: 23,
    StopFailed: 24,
    RemoveFailed: 25,
    ImageHashMismatch: 26,
}


def print_colored(message: str, color: str = Fore.WHITE, bright: bool = False) -> None:
    """Print a colored message to stdout."""
    prefix = Style.BRIGHT if bright else ""
    print(f"{prefix}{color}{message}{Style.RESET_ALL}")


def exit_code_for(error: BitcoindError) -> int:
    for error_type, code in EXIT_CODES.items():
        if isinstance(error, error_type):
            return code
    return 1


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="bitcoind-regtest",
        description="Manage a bitcoind regtest node running in Docker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  Settings can be configured via command line arguments, environment variables,
  or .env files. Precedence: CLI args > env vars > .env files > defaults.

  Common .env file settings:
    BTC_CONTAINER_NAME=bitcoin-regtest
    BTC_IMAGE=bitcoin/bitcoin:29.1
    BTC_RPC_USER=foo
    BTC_RPC_PASSWORD=rpcpassword
    BTC_LOG_LEVEL=INFO
        """
    )

    parser.add_argument(
        "command",
        choices=["start", "stop", "remove", "status"],
        help="Lifecycle operation to perform"
    )

    parser.add_argument(
        "-n", "--container-name",
        help="Name of the bitcoind container"
    )

    parser.add_argument(
        "-i", "--image",
        help="Docker image reference (repository:tag)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level logging)"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors"
    )

    parser.add_argument(
        "--log-file",
        help="Path to log file for detailed logging"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level"
    )

    parser.add_argument(
        "--config",
        help="Path to .env configuration file to load"
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show the effective configuration before running the command"
    )

    args = parser.parse_args(argv)

    if args.config:
        from .config import config_manager
        config_manager.load_from_env_file(args.config)

    return args


def run_status(node: Bitcoind) -> int:
    state = node.refresh_state()
    print_colored(f"{node.container_name}: {state.value}", Fore.CYAN)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point of the command line front end."""
    args = parse_arguments(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        print_colored(f"[CONFIG ERROR] {e}", Fore.RED)
        sys.exit(1)

    logger = setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        verbose=config.verbose,
        quiet=config.quiet
    )

    if args.show_config and not config.quiet:
        from .config import config_manager
        print_colored(config_manager.get_summary(), Fore.WHITE)
        print()

    try:
        node = Bitcoind.from_config(config.bitcoind)
    except ValidationError as e:
        print_colored(f"[CONFIG ERROR] {e}", Fore.RED)
        sys.exit(1)

    operations: Dict[str, Callable[[], Optional[int]]] = {
        "start": node.start,
        "stop": node.stop,
        "remove": node.remove,
        "status": lambda: run_status(node),
    }

    try:
        logger.debug(f"Running command: {args.command}")
        operations[args.command]()
    except BitcoindError as e:
        logger.error(f"{args.command} failed: {e}")
        print_colored(f"[ERROR] {e}", Fore.RED)
        sys.exit(exit_code_for(e))
    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user (KeyboardInterrupt)")
        print_colored("\n[INTERRUPTED] Operation cancelled by user", Fore.YELLOW)
        sys.exit(130)

    if args.command != "status" and not config.quiet:
        print_colored(f"[OK] {args.command} {node.container_name}", Fore.GREEN)
    sys.exit(0)
