"""Projection of a MAC list onto FORWARD-chain rules."""

from __future__ import annotations

from typing import Iterable

from loguru import logger
from pydantic import ValidationError

from macfilter.exceptions import ConfigError, FirewallError
from macfilter.firewall import BaseFirewall, IptablesFirewall
from macfilter.mac import normalize_mac
from macfilter.models import (
    DEFAULT_CHAIN,
    AppliedConfig,
    FilterMode,
    FirewallCommand,
    RuleOperation,
    RuleTarget,
)

# Upper bound on repeated deletes of one default rule
MAX_STALE_DELETES = 64


class RuleProjector:
    """Turn a mode plus an address list into an ordered iptables command sequence.

    The sequence for one interface is always:

    1. delete any default ``ACCEPT`` / ``DROP`` rule left by an earlier run,
    2. insert one rule per address (``ACCEPT`` for a whitelist, ``DROP`` for
       a blacklist),
    3. append the inverse catch-all rule.

    Args:
        firewall: Backend used to execute commands. Created on first
            non-dry-run apply when omitted.
        chain: Chain the rules live in.
    """

    def __init__(self, firewall: BaseFirewall | None = None, chain: str = DEFAULT_CHAIN) -> None:
        self.firewall = firewall
        self.chain = chain

    def project(
        self,
        mode: FilterMode,
        interface: str,
        vlan: int | None,
        addresses: Iterable[str],
    ) -> list[FirewallCommand]:
        """Return the commands that install *addresses* in *mode* on the interface.

        Raises:
            ConfigError: If the mode, interface name or VLAN id is invalid.
            InvalidMACError: If an address cannot be normalized.
        """
        try:
            config = AppliedConfig(interface=interface, vlan=vlan, mode=mode)
        except ValidationError as e:
            raise ConfigError(f"Invalid interface settings: {e}") from e
        in_interface = config.in_interface

        commands = [
            FirewallCommand(
                operation=RuleOperation.DELETE,
                in_interface=in_interface,
                target=target,
                chain=self.chain,
                tolerant=True,
            )
            for target in (RuleTarget.ACCEPT, RuleTarget.DROP)
        ]

        seen: set[str] = set()
        for address in addresses:
            mac = normalize_mac(address)
            if mac in seen:
                continue
            seen.add(mac)
            commands.append(
                FirewallCommand(
                    operation=RuleOperation.INSERT,
                    in_interface=in_interface,
                    mac_source=mac,
                    target=config.mode.rule_target,
                    chain=self.chain,
                )
            )

        commands.append(
            FirewallCommand(
                operation=RuleOperation.APPEND,
                in_interface=in_interface,
                target=config.mode.default_target,
                chain=self.chain,
            )
        )
        return commands

    def apply(
        self,
        mode: FilterMode,
        interface: str,
        vlan: int | None,
        addresses: Iterable[str],
        dry_run: bool = False,
    ) -> list[FirewallCommand]:
        """Install (or, with *dry_run*, print) the rules for *addresses*.

        A dry run never touches the firewall backend and prints only the
        projected sequence. A real run also reconciles the chain with the
        list: every stale copy of the default rules is removed, per-address
        rules on the interface for MACs no longer listed (or listed with the
        other target) are deleted, and per-address rules that are already
        present are not inserted again. Applying the same list twice leaves
        one copy of each rule.

        Returns:
            The commands printed (dry run) or actually executed.

        Raises:
            ConfigError: If the mode, interface name or VLAN id is invalid.
            FirewallNotFoundError: If no backend was given and iptables is missing.
            FirewallError: If a command fails.
        """
        commands = self.project(mode, interface, vlan, addresses)
        mode = FilterMode(mode)
        in_interface = commands[0].in_interface

        if dry_run:
            logger.info(f"Verifying rules for interface {in_interface} in {mode.value} mode")
            binary = self.firewall.binary if self.firewall is not None else "iptables"
            for command in commands:
                print(command.render(binary))
            logger.info("Verification complete. No rules were applied.")
            return commands

        if self.firewall is None:
            self.firewall = IptablesFirewall()
        firewall = self.firewall

        logger.info(f"Applying rules for interface {in_interface} in {mode.value} mode")
        deletes = [c for c in commands if c.operation is RuleOperation.DELETE]
        installs = [c for c in commands if c.operation is not RuleOperation.DELETE]

        executed: list[FirewallCommand] = []
        try:
            for command in deletes:
                removed = 0
                while removed < MAX_STALE_DELETES and firewall.run(command):
                    removed += 1
                if removed:
                    logger.debug(f"Removed {removed}x {command.render(firewall.binary)}")
                    executed.append(command)

            executed.extend(self._remove_unlisted(firewall, in_interface, installs))
            for command in installs:
                if command.mac_source and firewall.exists(command):
                    logger.debug(f"Already present: {command.render(firewall.binary)}")
                    continue
                firewall.run(command)
                executed.append(command)
        except FirewallError:
            logger.error(
                f"Interface {in_interface} may be left without a default rule; "
                f"re-run the apply once the firewall error is resolved"
            )
            raise

        logger.info(f"Rules applied successfully for interface {in_interface} in {mode.value} mode")
        return executed

    def _remove_unlisted(
        self, firewall: BaseFirewall, in_interface: str, installs: list[FirewallCommand]
    ) -> list[FirewallCommand]:
        """Delete per-address rules on *in_interface* that *installs* does not contain."""
        wanted = {(c.mac_source, c.target) for c in installs if c.mac_source}
        removed: list[FirewallCommand] = []
        for rule in firewall.rules(self.chain):
            if rule.in_interface != in_interface or not rule.mac_source:
                continue
            if (rule.mac_source, rule.target) in wanted:
                continue
            stale = rule.as_delete()
            if firewall.run(stale):
                logger.info(f"Removed rule for unlisted address: {stale.render(firewall.binary)}")
                removed.append(stale)
        return removed
