"""Firewall backends that execute rule-management commands."""

from __future__ import annotations

import shutil
import subprocess
from abc import ABC, abstractmethod

from loguru import logger

from macfilter.exceptions import FirewallError, FirewallNotFoundError
from macfilter.models import FirewallCommand

IPTABLES_BINARY = "iptables"
DEFAULT_TIMEOUT = 10

# iptables exit status for "rule does not exist" (-C / -D); 2 and 4 are real errors
RC_NO_MATCH = 1


class BaseFirewall(ABC):
    """Abstract base class for packet-filter engines."""

    binary: str = IPTABLES_BINARY

    @abstractmethod
    def run(self, command: FirewallCommand) -> bool:
        """Execute *command*.

        Returns:
            True on success, False if a tolerant command did not match a rule.

        Raises:
            FirewallError: If the command fails for any other reason.
        """

    @abstractmethod
    def rules(self, chain: str) -> list[FirewallCommand]:
        """Return the interface/MAC rules currently installed in *chain*.

        Rules using matches other than ``-i`` and ``-m mac`` are left out.
        """

    def exists(self, command: FirewallCommand) -> bool:
        """Check whether the rule described by *command* is already installed."""
        return self.run(command.as_check())


class IptablesFirewall(BaseFirewall):
    """Run commands through the local ``iptables`` binary.

    The binary is resolved on ``PATH`` when the backend is created, so a
    missing installation is reported before any rule is touched. Every call
    passes ``-w`` so iptables waits for the xtables lock instead of failing.
    """

    def __init__(self, binary: str = IPTABLES_BINARY, timeout: int = DEFAULT_TIMEOUT):
        path = shutil.which(binary)
        if path is None:
            raise FirewallNotFoundError(f"{binary} is not installed. Please install it first.")
        self.binary = binary
        self.path = path
        self.timeout = timeout

    def _exec(self, args: list[str], label: str) -> subprocess.CompletedProcess:
        cmd = [self.path, "-w", *args]
        logger.debug(f"Running: {label}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise FirewallError(f"{label} timed out after {self.timeout}s") from e
        except OSError as e:
            raise FirewallError(f"Could not execute {self.binary}: {e}") from e

    def run(self, command: FirewallCommand) -> bool:
        label = command.render(self.binary)
        result = self._exec(command.to_args(), label)

        if result.returncode == 0:
            return True
        if command.tolerant and result.returncode == RC_NO_MATCH:
            logger.debug(f"{label} -> no matching rule")
            return False
        raise FirewallError(
            f"{label} failed (rc={result.returncode}): {result.stderr.strip() or 'no error output'}",
            returncode=result.returncode,
        )

    def rules(self, chain: str) -> list[FirewallCommand]:
        label = f"{self.binary} -S {chain}"
        result = self._exec(["-S", chain], label)
        if result.returncode != 0:
            raise FirewallError(
                f"{label} failed (rc={result.returncode}): {result.stderr.strip() or 'no error output'}",
                returncode=result.returncode,
            )
        parsed = (FirewallCommand.from_rule_spec(line) for line in result.stdout.splitlines())
        return [rule for rule in parsed if rule is not None]
