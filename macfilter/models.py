"""Pydantic models and enums for MAC lists and firewall rules."""

from __future__ import annotations

import shlex
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from macfilter._util import _validate_interface_name
from macfilter.exceptions import InvalidMACError
from macfilter.mac import normalize_mac

DEFAULT_CHAIN = "FORWARD"


class RuleTarget(str, Enum):
    ACCEPT = "ACCEPT"
    DROP = "DROP"


class RuleOperation(str, Enum):
    INSERT = "-I"
    APPEND = "-A"
    DELETE = "-D"
    CHECK = "-C"


class FilterMode(str, Enum):
    """Which list drives the rules, and what happens to everyone else."""

    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"

    @property
    def rule_target(self) -> RuleTarget:
        """Target for packets from a listed MAC."""
        return RuleTarget.ACCEPT if self is FilterMode.WHITELIST else RuleTarget.DROP

    @property
    def default_target(self) -> RuleTarget:
        """Catch-all target for packets from unlisted MACs."""
        return RuleTarget.DROP if self is FilterMode.WHITELIST else RuleTarget.ACCEPT

    @property
    def filename(self) -> str:
        return f"{self.value}.txt"


def compose_interface(interface: str, vlan: int | None = None) -> str:
    """Return ``interface`` or ``interface.vlan`` when a VLAN is given."""
    return f"{interface}.{vlan}" if vlan is not None else interface


class AppliedConfig(BaseModel):
    """The interface/VLAN/mode triple last applied to the firewall."""

    interface: str
    vlan: Optional[int] = Field(default=None, ge=1, le=4094)
    mode: FilterMode

    @field_validator("interface")
    @classmethod
    def _check_interface(cls, value: str) -> str:
        if not _validate_interface_name(value):
            raise ValueError(f"invalid interface name: {value!r}")
        return value

    @property
    def in_interface(self) -> str:
        return compose_interface(self.interface, self.vlan)


class BatchResult(BaseModel):
    """Outcome of a multi-address add or remove."""

    changed: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    invalid: list[str] = Field(default_factory=list)


class FirewallCommand(BaseModel):
    """One iptables rule-management command against a chain."""

    operation: RuleOperation
    in_interface: str
    target: RuleTarget
    mac_source: Optional[str] = None
    chain: str = DEFAULT_CHAIN
    tolerant: bool = False  # a missing rule is not an error (deletes)

    def to_args(self) -> list[str]:
        """Return the argv tail passed to the firewall binary."""
        args = [self.operation.value, self.chain, "-i", self.in_interface]
        if self.mac_source:
            args.extend(["-m", "mac", "--mac-source", self.mac_source])
        args.extend(["-j", self.target.value])
        return args

    def as_check(self) -> FirewallCommand:
        """Return the ``-C`` check for the same rule."""
        return self.model_copy(update={"operation": RuleOperation.CHECK, "tolerant": True})

    def render(self, binary: str = "iptables") -> str:
        """Return the command as a copy-pasteable shell line."""
        return shlex.join([binary, *self.to_args()])

    def as_delete(self) -> FirewallCommand:
        """Return the tolerant ``-D`` for the same rule."""
        return self.model_copy(update={"operation": RuleOperation.DELETE, "tolerant": True})

    @classmethod
    def from_rule_spec(cls, line: str) -> FirewallCommand | None:
        """Parse one ``iptables -S`` line such as
        ``-A FORWARD -i eth0.10 -m mac --mac-source AA:BB:CC:DD:EE:FF -j DROP``.

        Returns None for policies, chain headers and rules carrying any
        other match or target.
        """
        tokens = shlex.split(line)
        if len(tokens) not in (6, 10) or tokens[0] != "-A" or tokens[2] != "-i" or tokens[-2] != "-j":
            return None
        if tokens[-1] not in (RuleTarget.ACCEPT.value, RuleTarget.DROP.value):
            return None

        mac_source = None
        if len(tokens) == 10:
            if tokens[4:7] != ["-m", "mac", "--mac-source"]:
                return None
            try:
                mac_source = normalize_mac(tokens[7])
            except InvalidMACError:
                return None

        return cls(
            operation=RuleOperation.APPEND,
            chain=tokens[1],
            in_interface=tokens[3],
            mac_source=mac_source,
            target=RuleTarget(tokens[-1]),
        )
