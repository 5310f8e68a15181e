"""MAC address allow/deny lists projected onto iptables.

Keeps a whitelist and a blacklist of MAC addresses on disk and turns the
selected list into FORWARD-chain rules for one interface or VLAN.
"""

__version__ = "0.1.0"

import os
import sys
from typing import Any, Callable, Dict

from loguru import logger as glogger

glogger.disable(__name__)


def _loguru_skiplog_filter(record: dict) -> bool:  # type: ignore[type-arg]
    """Filter function to hide records with ``extra['skiplog']`` set."""
    return not record.get("extra", {}).get("skiplog", False)


def configure_logging(
    level: str = "INFO",
    loguru_filter: Callable[[Dict[str, Any]], bool] = _loguru_skiplog_filter,
) -> None:
    """Configure a default ``loguru`` sink with a convenient format and filter."""
    os.environ["LOGURU_LEVEL"] = os.getenv("LOGURU_LEVEL", level)
    glogger.remove()
    logger_fmt: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    glogger.add(sys.stderr, level=os.getenv("LOGURU_LEVEL"), format=logger_fmt, filter=loguru_filter)  # type: ignore[arg-type]
    glogger.configure(extra={"skiplog": False})
    glogger.enable(__name__)


from macfilter.exceptions import (  # noqa: E402
    ConfigError,
    FirewallError,
    FirewallNotFoundError,
    InvalidMACError,
    MacFilterError,
)
from macfilter.firewall import BaseFirewall, IptablesFirewall  # noqa: E402
from macfilter.mac import is_valid_mac, normalize_mac  # noqa: E402
from macfilter.models import AppliedConfig, FilterMode, FirewallCommand  # noqa: E402
from macfilter.projector import RuleProjector  # noqa: E402
from macfilter.store import BatchResult, ListStore  # noqa: E402

__all__ = [
    "glogger",
    "configure_logging",
    "normalize_mac",
    "is_valid_mac",
    "FilterMode",
    "AppliedConfig",
    "FirewallCommand",
    "BatchResult",
    "ListStore",
    "RuleProjector",
    "BaseFirewall",
    "IptablesFirewall",
    "MacFilterError",
    "InvalidMACError",
    "ConfigError",
    "FirewallError",
    "FirewallNotFoundError",
]
