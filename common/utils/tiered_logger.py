"""
Tiered logging system for the instrument drivers.

Provides three output tiers:
- Tier 1 (user): status hook for the calling application, plain language
- Tier 2 (info): Console output, device IDs and command timing
- Tier 3 (debug): Log file only, raw commands and return codes

Debug console mode promotes debug messages to the console.
"""

import logging
from pathlib import Path
from typing import Optional, Callable, List, Dict
from logging.handlers import RotatingFileHandler

from common.config import get_log_dir


class TieredLogger:
    """
    Tiered logging for instrument drivers.

    Routes messages to appropriate outputs based on audience:
    - user(): status callback, plain language
    - info(): Console, brief technical info
    - debug(): File only (or console in debug console mode)

    Usage:
        logger = TieredLogger("lockin")
        logger.user("Auto-ranging the lock-in...")
        logger.info("SR830 connected on COM15")
        logger.debug("-> SNAP?1,2,3,4,5,6")
    """

    _instances: Dict[str, 'TieredLogger'] = {}
    _debug_console_mode: bool = False

    def __init__(
        self,
        name: str,
        log_dir: Optional[Path] = None,
        status_callback: Optional[Callable[[str], None]] = None,
        error_callback: Optional[Callable[[str, str, List[str], List[str]], None]] = None
    ):
        """
        Initialize the tiered logger.

        Args:
            name: Logger name (e.g., "lockin", "positioner")
            log_dir: Directory for the rotating debug log (None disables file output)
            status_callback: Callback for user-tier messages
            error_callback: Callback for error reports (title, message, causes, actions)
        """
        self.name = name
        self.log_dir = Path(log_dir) if log_dir else None
        self.status_callback = status_callback
        self.error_callback = error_callback

        self._setup_logging()

        TieredLogger._instances[name] = self

    def _setup_logging(self) -> None:
        """Configure Python logging handlers."""
        self._logger = logging.getLogger(f"instruments.{self.name}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.handlers.clear()

        # Console handler (INFO level by default)
        self._console_handler = logging.StreamHandler()
        self._console_handler.setLevel(
            logging.DEBUG if TieredLogger._debug_console_mode else logging.INFO
        )
        console_format = logging.Formatter(
            '%(asctime)s %(message)s',
            datefmt='%H:%M:%S'
        )
        self._console_handler.setFormatter(console_format)
        self._logger.addHandler(self._console_handler)

        if self.log_dir is None:
            return

        # File handler (DEBUG level, with rotation)
        log_file = self.log_dir / f"{self.name}_debug.log"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=5*1024*1024,  # 5 MB
                backupCount=3
            )
        except OSError as e:
            self._logger.warning(f"File logging disabled, cannot open {log_file}: {e}")
            return
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_format)
        self._logger.addHandler(file_handler)

    @classmethod
    def get_logger(cls, name: str, log_dir: Optional[Path] = None) -> 'TieredLogger':
        """Get or create a logger instance by name."""
        if name not in cls._instances:
            cls._instances[name] = TieredLogger(name, log_dir=log_dir)
        return cls._instances[name]

    @classmethod
    def set_debug_console_mode(cls, enabled: bool) -> None:
        """Enable or disable debug messages on the console for all loggers."""
        cls._debug_console_mode = enabled
        for logger in cls._instances.values():
            if enabled:
                logger._console_handler.setLevel(logging.DEBUG)
            else:
                logger._console_handler.setLevel(logging.INFO)

    @classmethod
    def is_debug_console_mode(cls) -> bool:
        """Check if debug console mode is enabled."""
        return cls._debug_console_mode

    def set_status_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set callback for user-tier status messages."""
        self.status_callback = callback

    def set_error_callback(
        self,
        callback: Optional[Callable[[str, str, List[str], List[str]], None]]
    ) -> None:
        """Set callback for error reports."""
        self.error_callback = callback

    # -------------------------------------------------------------------------
    # Tier 1: User-facing messages
    # -------------------------------------------------------------------------

    def user(self, message: str) -> None:
        """
        Log a user-facing status message.

        Forwarded to the status callback when one is registered.

        Args:
            message: Plain-language status message
        """
        self._logger.info(f"[USER] {message}")

        if self.status_callback:
            self.status_callback(message)

    def user_error(
        self,
        title: str,
        message: str,
        causes: Optional[List[str]] = None,
        actions: Optional[List[str]] = None
    ) -> None:
        """
        Report an error with actionable guidance.

        Args:
            title: Short error title
            message: Explanation of what went wrong
            causes: List of possible causes
            actions: List of suggested actions
        """
        causes = causes or []
        actions = actions or []

        self._logger.error(f"{title}: {message}")
        for cause in causes:
            self._logger.error(f"  Possible cause: {cause}")
        for action in actions:
            self._logger.error(f"  Suggested action: {action}")

        if self.error_callback:
            self.error_callback(title, message, causes, actions)

    # -------------------------------------------------------------------------
    # Tier 2: Console messages
    # -------------------------------------------------------------------------

    def info(self, message: str) -> None:
        """Log an informational message to console and file."""
        self._logger.info(message)

    def warning(self, message: str) -> None:
        """
        Log a warning message.

        Used for recoverable conditions: clamped arguments, forced servo
        changes, overload recovery.
        """
        self._logger.warning(message)

    def error(self, message: str) -> None:
        """Log a technical error message."""
        self._logger.error(message)

    # -------------------------------------------------------------------------
    # Tier 3: Debug messages
    # -------------------------------------------------------------------------

    def debug(self, message: str) -> None:
        """
        Log a debug message.

        Only visible in the log file, or on the console in debug console mode.
        Use for raw commands, replies and library return codes.
        """
        self._logger.debug(message)


# Convenience function for getting a logger
def get_logger(name: str) -> TieredLogger:
    """Get or create a TieredLogger instance writing to the configured log_dir."""
    return TieredLogger.get_logger(name, log_dir=get_log_dir())
