import logging
import os


class Logger:
    """Utility class for standardized logging configuration."""

    LEVEL_ENV_VAR = "IDEATR_LOG_LEVEL"

    @staticmethod
    def get(name: str) -> logging.Logger:
        """
        Get a standardized logger for the application.
        Configures logging with basic setup if not already configured.
        The root level comes from IDEATR_LOG_LEVEL (default INFO).
        """
        if not logging.getLogger().hasHandlers():
            level_name = os.environ.get(Logger.LEVEL_ENV_VAR, "INFO").upper()
            level = getattr(logging, level_name, logging.INFO)
            logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        return logging.getLogger(name)
