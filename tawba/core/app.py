from typing import Any, Dict, Optional
import logging
import os
import sys

from .config import Config
from .db import init_db


class TawbaApp:
    """Wires config, logging, the database, and the tracker/prayer-times services."""

    def __init__(self, config_path: Optional[str] = None, db_url: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()

        # Initialize database before services so tables exist
        init_db(self.config.data, db_url=db_url)

        from tawba.tracker.service import TrackerService
        self.tracker = TrackerService()
        self.tracker.initialize()

        self.prayer_backend = None
        self._create_prayer_backend()

    def _create_prayer_backend(self) -> None:
        from tawba.prayer_times.prayer_base import PrayerTimesError, create_backend

        try:
            self.prayer_backend = create_backend(self.config.section("prayer_times"))
        except PrayerTimesError as e:
            self.logger.warning(f"Prayer times disabled: {e}")
            self.prayer_backend = None

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        logging_config = self.config.section("logging")
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        log_file = logging_config.get("file")
        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        self.logger.info("Tawba starting up")

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Apply a reloaded config: log level and prayer times backend"""
        level = str((new_config.get("logging") or {}).get("level", "INFO")).upper()
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))
        self._create_prayer_backend()
        self.logger.info("Configuration applied")

    def run(self) -> None:
        """Serve the HTTP API until interrupted"""
        from tawba.api.server import run_api_server

        self.config.watch()
        try:
            run_api_server(self)
        finally:
            self.config.cleanup()
