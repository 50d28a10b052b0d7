"""
Centralized logging configuration for the bond auction.

Provides colored console output and separate loggers for each subsystem
(auction, clearing, settlement, tokens, storage, encryption). Records
logged through an auction logger carry the auction they belong to, so
interleaved output from several auctions stays attributable.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

NO_AUCTION = "-"
CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(auction)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(auction)s %(message)s"


class AuctionContextFilter(logging.Filter):
    """Give records logged outside any auction a placeholder auction field."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "auction"):
            record.auction = NO_AUCTION
        return True


class BondAuctionLogger:
    """Centralized logger for bond auction components"""

    _initialized = False

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        force: bool = False,
    ):
        """
        Setup logging configuration.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_dir: Also write bondauction.log here when given
            force: Reconfigure even if logging was already set up
        """
        if cls._initialized and not force:
            return

        root_logger = logging.getLogger("bondauction")
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.addFilter(AuctionContextFilter())
        console_handler.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        root_logger.addHandler(console_handler)

        if log_dir:
            path = Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path / "bondauction.log")
            file_handler.setLevel(level)
            file_handler.addFilter(AuctionContextFilter())
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'auction', 'clearing', 'tokens')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"bondauction.{name}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return BondAuctionLogger.get_logger(name)


def get_auction_logger(name: str, auction_id: bytes) -> logging.LoggerAdapter:
    """Subsystem logger that tags every record with the auction id."""
    return logging.LoggerAdapter(get_logger(name), {"auction": auction_id.hex()[:8]})


def setup_logging(level: int = logging.INFO, log_dir: Optional[str] = None, force: bool = False):
    """Setup logging configuration"""
    BondAuctionLogger.setup(level=level, log_dir=log_dir, force=force)
