from src.shared.logger import Logger

logger = Logger.get("ideatr.notifications")


class LoggingNotifier:
    """Notifier for headless hosts: user-facing messages go to the log."""

    def notify(self, message: str) -> None:
        logger.info(message)
