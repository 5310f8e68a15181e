"""CLI entry point for MAC list management, standalone-capable.

Examples:
  # Add two addresses to the whitelist (any case, ':' or '-' separators)
  macfilter --mode whitelist --add aa-bb-cc-dd-ee-ff 11:22:33:44:55:66

  # Bulk import, one MAC per line
  macfilter --mode blacklist --file rogue_devices.txt

  # Show what would be sent to iptables for eth0 VLAN 10
  macfilter --interface eth0 --vlan 10 --mode whitelist --verify

  # Apply, then later re-apply the same interface/VLAN/mode
  macfilter --interface eth0 --vlan 10 --mode whitelist --apply
  macfilter --existing
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import NoReturn

from loguru import logger
from pydantic import ValidationError
from tabulate import tabulate

from macfilter import __version__, configure_logging
from macfilter.exceptions import ConfigError, MacFilterError
from macfilter.models import AppliedConfig, FilterMode
from macfilter.projector import RuleProjector
from macfilter.store import DEFAULT_DATA_DIR, ListStore

ENV_DATA_DIR = "MACFILTER_DATA_DIR"


def _vlan_id(value: str) -> int:
    try:
        vlan = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid VLAN id: {value!r}") from None
    if not 1 <= vlan <= 4094:
        raise argparse.ArgumentTypeError(f"VLAN id must be between 1 and 4094, got {vlan}")
    return vlan


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for MAC list management."""
    parser = argparse.ArgumentParser(
        prog="macfilter",
        description="Manage MAC whitelists/blacklists per interface or VLAN and apply them with iptables",
    )
    parser.add_argument("-i", "--interface", help="Network interface (e.g. eth0)")
    parser.add_argument("-v", "--vlan", type=_vlan_id, help="VLAN id (1-4094), rules go to <interface>.<vlan>")
    parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in FilterMode],
        help="List to operate on",
    )
    parser.add_argument("-a", "--add", nargs="+", metavar="MAC", help="Add one or more MACs")
    parser.add_argument("-r", "--remove", nargs="+", metavar="MAC", help="Remove one or more MACs")
    parser.add_argument(
        "-f",
        "--file",
        action="append",
        metavar="PATH",
        help="Add MACs from a file, one per line (repeatable)",
    )
    parser.add_argument("-l", "--list", action="store_true", help="List the stored MACs")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("-p", "--apply", action="store_true", help="Apply the rules with iptables")
    action.add_argument("-V", "--verify", action="store_true", help="Print the iptables commands without applying")
    parser.add_argument(
        "-e",
        "--existing",
        action="store_true",
        help="Use the last applied interface/VLAN/mode (implies --apply unless --verify)",
    )
    parser.add_argument(
        "-d",
        "--data-dir",
        type=Path,
        default=Path(os.getenv(ENV_DATA_DIR, str(DEFAULT_DATA_DIR))),
        help=f"Directory holding the lists and config (default: ${ENV_DATA_DIR} or {DEFAULT_DATA_DIR})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _print_startup_banner(data_dir: Path) -> None:
    rows = [["version", __version__], ["data dir", str(data_dir)]]
    logger.opt(raw=True).debug("\n{}\n", tabulate(rows, tablefmt="mixed_grid"))


def _format_lists(lists: dict[FilterMode, list[str]]) -> str:
    """Render both lists as plain-text tables."""
    sections: list[str] = []
    for mode, macs in lists.items():
        if macs:
            body = tabulate(
                [[i, mac] for i, mac in enumerate(macs, 1)],
                headers=["#", "MAC address"],
                tablefmt="simple",
            )
        else:
            body = "  (empty)"
        sections.append(f"{mode.value.capitalize()}:\n{body}")
    return "\n\n".join(sections)


def _usage_error(parser: argparse.ArgumentParser, message: str) -> NoReturn:
    logger.error(message)
    parser.print_help(sys.stderr)
    sys.exit(1)


def _resolve_config(parsed: argparse.Namespace, parser: argparse.ArgumentParser, store: ListStore) -> AppliedConfig:
    """Merge explicit flags over the saved configuration (with --existing)."""
    saved = None
    if parsed.existing:
        saved = store.load_config()
        if saved is None:
            raise ConfigError(
                f"No saved configuration in {store.config_path}; apply once with --interface and --mode first"
            )

    interface = parsed.interface or (saved.interface if saved else None)
    mode = parsed.mode or (saved.mode if saved else None)
    vlan = parsed.vlan if parsed.vlan is not None else (saved.vlan if saved else None)
    if not interface or not mode:
        _usage_error(parser, "--interface and --mode are required to apply or verify rules")

    try:
        return AppliedConfig(interface=interface, vlan=vlan, mode=mode)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def main(args: list[str] | None = None) -> None:
    """Main entry point for the macfilter CLI."""
    parser = build_parser()
    parsed = parser.parse_args(args)

    configure_logging("DEBUG" if parsed.verbose else "INFO")
    _print_startup_banner(parsed.data_dir)

    changes_list = bool(parsed.add or parsed.remove or parsed.file)
    wants_rules = parsed.apply or parsed.verify or parsed.existing
    if not (changes_list or parsed.list or wants_rules):
        parser.print_help()
        sys.exit(1)

    store = ListStore(parsed.data_dir)

    try:
        if changes_list:
            if not parsed.mode:
                _usage_error(parser, "--mode is required to add or remove addresses")
            mode = FilterMode(parsed.mode)
            if parsed.add:
                store.add_many(mode, parsed.add)
            for path in parsed.file or []:
                try:
                    store.add_from_file(mode, path)
                except FileNotFoundError as e:
                    logger.error(str(e))
            if parsed.remove:
                store.remove_many(mode, parsed.remove)

        if parsed.list:
            print(_format_lists(store.lists()))

        if wants_rules:
            config = _resolve_config(parsed, parser, store)
            store.ensure_files()
            projector = RuleProjector()
            projector.apply(
                config.mode,
                config.interface,
                config.vlan,
                store.list(config.mode),
                dry_run=parsed.verify,
            )
            if not parsed.verify:
                store.save_config(config)
    except MacFilterError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.error(f"Cannot access {parsed.data_dir}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
