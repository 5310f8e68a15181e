"""Shared fixtures for the macfilter test suite."""

from __future__ import annotations

import pytest
from loguru import logger

from macfilter.firewall import BaseFirewall
from macfilter.models import FirewallCommand, RuleOperation, RuleTarget
from macfilter.store import ListStore


class FakeFirewall(BaseFirewall):
    """In-memory chain that honours -I/-A/-D/-C like iptables does."""

    def __init__(self, installed: list[tuple] | None = None) -> None:
        self.installed: list[tuple] = list(installed or [])
        self.calls: list[FirewallCommand] = []

    @staticmethod
    def key(command: FirewallCommand) -> tuple:
        return (command.chain, command.in_interface, command.mac_source, command.target.value)

    def run(self, command: FirewallCommand) -> bool:
        self.calls.append(command)
        key = self.key(command)
        if command.operation is RuleOperation.CHECK:
            return key in self.installed
        if command.operation is RuleOperation.DELETE:
            if key in self.installed:
                self.installed.remove(key)
                return True
            return False
        if command.operation is RuleOperation.INSERT:
            self.installed.insert(0, key)
        else:
            self.installed.append(key)
        return True

    def rules(self, chain: str) -> list[FirewallCommand]:
        return [
            FirewallCommand(
                operation=RuleOperation.APPEND,
                chain=rule_chain,
                in_interface=in_interface,
                mac_source=mac_source,
                target=RuleTarget(target),
            )
            for rule_chain, in_interface, mac_source, target in self.installed
            if rule_chain == chain
        ]


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Keep loguru quiet and undo what configure_logging() changes."""
    monkeypatch.setenv("LOGURU_LEVEL", "WARNING")
    yield
    logger.remove()
    logger.disable("macfilter")


@pytest.fixture()
def store(tmp_path):
    """ListStore rooted in a fresh temporary directory."""
    return ListStore(tmp_path / "data")


@pytest.fixture()
def fake_firewall():
    """Factory fixture returning a FakeFirewall with optional pre-installed rules."""

    def _make(installed: list[tuple] | None = None) -> FakeFirewall:
        return FakeFirewall(installed)

    return _make
