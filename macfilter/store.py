"""File-backed storage for the MAC lists and the last applied configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from loguru import logger
from pydantic import ValidationError

from macfilter._util import _read_entries
from macfilter.exceptions import ConfigError, InvalidMACError
from macfilter.mac import is_valid_mac, normalize_mac
from macfilter.models import AppliedConfig, BatchResult, FilterMode

DEFAULT_DATA_DIR = Path("/var/lib/macfilter")
CONFIG_FILENAME = "macfilter.conf"
CONFIG_KEYS = ("INTERFACE", "VLAN", "MODE")


def _write_lines(path: Path, lines: list[str]) -> None:
    """Replace *path* with *lines* via a temporary file in the same directory."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text("".join(line + "\n" for line in lines))
    os.replace(tmp, path)


class ListStore:
    """Whitelist, blacklist and applied configuration inside one data directory.

    Each list is a text file with one canonical MAC per line. Entries read
    back from disk are normalized and deduplicated; lines that do not parse
    are logged and skipped rather than failing the whole list.
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR) -> None:
        self.data_dir = Path(data_dir)
        self.config_path = self.data_dir / CONFIG_FILENAME

    def path_for(self, mode: FilterMode) -> Path:
        return self.data_dir / mode.filename

    def ensure_files(self) -> None:
        """Create the data directory and empty list files if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for mode in FilterMode:
            self.path_for(mode).touch(exist_ok=True)

    # ── address lists ─────────────────────────────────────────────────

    def list(self, mode: FilterMode) -> list[str]:
        """Return the canonical MACs stored for *mode*."""
        path = self.path_for(mode)
        if not path.exists():
            return []

        entries: list[str] = []
        seen: set[str] = set()
        for raw in _read_entries(path):
            try:
                mac = normalize_mac(raw)
            except InvalidMACError:
                logger.warning(f"Ignoring invalid entry {raw!r} in {path}")
                continue
            if mac not in seen:
                seen.add(mac)
                entries.append(mac)
        return entries

    def lists(self) -> dict[FilterMode, list[str]]:
        return {mode: self.list(mode) for mode in FilterMode}

    def add(self, mode: FilterMode, mac: str) -> bool:
        """Add *mac* to the *mode* list.

        Returns:
            True if the address was added, False if it was already present.

        Raises:
            InvalidMACError: If *mac* is not a valid MAC address.
        """
        canonical = normalize_mac(mac)
        if canonical in self.list(mode):
            logger.info(f"MAC {canonical} is already in the {mode.value}")
            return False

        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(mode)
        prefix = ""
        if path.exists() and path.stat().st_size > 0:
            with open(path, "rb") as f:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    prefix = "\n"
        with open(path, "a") as f:
            f.write(f"{prefix}{canonical}\n")
        logger.info(f"MAC {canonical} added to the {mode.value}")
        return True

    def remove(self, mode: FilterMode, mac: str) -> bool:
        """Remove *mac* from the *mode* list.

        Returns:
            True if the address was removed, False if it was not listed.

        Raises:
            InvalidMACError: If *mac* is not a valid MAC address.
        """
        canonical = normalize_mac(mac)
        path = self.path_for(mode)
        lines = path.read_text().splitlines() if path.exists() else []
        kept = [line for line in lines if not (is_valid_mac(line) and normalize_mac(line) == canonical)]

        if len(kept) == len(lines):
            logger.info(f"MAC {canonical} is not in the {mode.value}")
            return False

        _write_lines(path, kept)
        logger.info(f"MAC {canonical} removed from the {mode.value}")
        return True

    def add_many(self, mode: FilterMode, macs: Iterable[str]) -> BatchResult:
        """Add each of *macs*; invalid entries are reported and skipped."""
        result = BatchResult()
        for mac in macs:
            try:
                if self.add(mode, mac):
                    result.changed.append(normalize_mac(mac))
                else:
                    result.unchanged.append(normalize_mac(mac))
            except InvalidMACError as e:
                logger.error(str(e))
                result.invalid.append(mac)
        return result

    def remove_many(self, mode: FilterMode, macs: Iterable[str]) -> BatchResult:
        """Remove each of *macs*; invalid entries are reported and skipped."""
        result = BatchResult()
        for mac in macs:
            try:
                if self.remove(mode, mac):
                    result.changed.append(normalize_mac(mac))
                else:
                    result.unchanged.append(normalize_mac(mac))
            except InvalidMACError as e:
                logger.error(str(e))
                result.invalid.append(mac)
        return result

    def add_from_file(self, mode: FilterMode, path: Path | str) -> BatchResult:
        """Add every MAC listed in *path* (one per line, ``#`` comments allowed).

        Raises:
            FileNotFoundError: If *path* does not exist.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        entries = _read_entries(path)
        logger.info(f"Importing {len(entries)} entries from {path} into the {mode.value}")
        return self.add_many(mode, entries)

    # ── applied configuration ─────────────────────────────────────────

    def load_config(self) -> AppliedConfig | None:
        """Return the last applied configuration, or None if never saved.

        Raises:
            ConfigError: If the file exists but cannot be parsed.
        """
        path = self.config_path
        if not path.exists():
            return None

        values: dict[str, str | None] = {}
        for line in _read_entries(path):
            if "=" not in line:
                raise ConfigError(f"{path}: malformed line {line!r} (expected KEY=VALUE)")
            key, value = line.split("=", 1)
            key = key.strip().upper()
            if key not in CONFIG_KEYS:
                logger.warning(f"{path}: ignoring unknown key {key}")
                continue
            values[key.lower()] = value.strip().strip("\"'") or None

        try:
            return AppliedConfig.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    def save_config(self, config: AppliedConfig) -> None:
        """Persist *config* as KEY=VALUE lines."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        _write_lines(
            self.config_path,
            [
                "# last configuration applied by macfilter",
                f"INTERFACE={config.interface}",
                f"VLAN={config.vlan if config.vlan is not None else ''}",
                f"MODE={config.mode.value}",
            ],
        )
        logger.debug(f"Configuration saved to {self.config_path}")
