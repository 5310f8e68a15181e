"""Exception hierarchy for MAC list management."""


class MacFilterError(Exception):
    """Base exception for all macfilter errors."""


class InvalidMACError(MacFilterError, ValueError):
    """A string could not be parsed as a MAC address."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid MAC address: {value!r}")


class ConfigError(MacFilterError):
    """Interface, VLAN or mode settings are missing or invalid."""


class FirewallError(MacFilterError):
    """A firewall command failed."""

    def __init__(self, message: str, returncode: int | None = None):
        self.returncode = returncode
        super().__init__(message)


class FirewallNotFoundError(FirewallError):
    """The firewall binary is not installed or not on PATH."""
