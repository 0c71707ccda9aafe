from .logger import setup_logging, get_logger, poller_logger, ledger_logger, api_logger
from .utcnow import utcnow, snapshot_now, race_date

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "poller_logger",
    "ledger_logger",
    "api_logger",

    # Clock
    "utcnow",
    "snapshot_now",
    "race_date",
]
