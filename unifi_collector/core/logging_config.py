"""Logging setup for the UniFi collector."""

import logging
import os
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingConfigurator:
    """Configures the root logger once per process."""

    @staticmethod
    def level_for(debug: bool = False, quiet: bool = False, log_level: Optional[str] = None) -> str:
        """Pick a level name from the debug/quiet settings.

        An explicit log_level wins; otherwise debug gives DEBUG, quiet gives
        WARNING and the default is INFO.
        """
        if log_level:
            return log_level.upper()
        if debug:
            return 'DEBUG'
        if quiet:
            return 'WARNING'
        return 'INFO'

    @staticmethod
    def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None) -> None:
        """Set up logging. DEBUG also enables writer debug output files.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional path to log file. If None, logs to console only.

        Raises:
            ValueError: log_level is not a logging level name
        """
        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            logging.basicConfig(
                level=level,
                format=LOG_FORMAT,
                handlers=[
                    logging.FileHandler(log_file),
                    logging.StreamHandler()  # Also keep console output
                ]
            )
        else:
            logging.basicConfig(level=level, format=LOG_FORMAT)

        # urllib3 logs every connection at DEBUG
        if level <= logging.DEBUG:
            logging.getLogger('urllib3').setLevel(logging.INFO)
