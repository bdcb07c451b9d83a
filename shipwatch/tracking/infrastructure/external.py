"""
Tracking External Integrations
===============================

- YAML board configuration with watchdog hot reload
- APScheduler job sweeping idle entity state
"""

import threading
from pathlib import Path
from typing import Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from shipwatch.core import ConfigurationException
from shipwatch.shared.infrastructure.logging import get_logger
from shipwatch.tracking.domain import MonitorConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for board config file changes."""

    def __init__(self, config_manager: "BoardConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("Board config file changed", extra={"path": event.src_path})
            self.config_manager.reload()


class BoardConfigManager:
    """
    Thread-safe board configuration with hot reload.

    A missing file means the built-in boards. A file that fails to parse
    is fatal on the first load and ignored (old config kept) on reload.
    """

    def __init__(self):
        self._config: Optional[MonitorConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> MonitorConfig:
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(f"Invalid board configuration {self._path}: {e}")

        with self._lock:
            self._config = config
        logger.info(
            "Board configuration loaded",
            extra={"path": str(self._path), "boards": [b.name for b in config.boards]}
        )
        return config

    def _load_from_file(self, path: Path) -> MonitorConfig:
        if not path.exists():
            logger.warning("Board config file not found, using built-in boards", extra={"path": str(path)})
            return MonitorConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return MonitorConfig(**data)

    def reload(self) -> bool:
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error("Failed to reload board config", extra={"error": str(e)})
            return False

        with self._lock:
            self._config = new_config
        logger.info("Board configuration reloaded")
        return True

    def start_watching(self) -> None:
        """Watch the config file; skipped when it does not exist or inotify is unavailable."""
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("Board config file doesn't exist, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.resolve().parent), recursive=False)
            self._observer.start()
            logger.info("Started watching board config", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> MonitorConfig:
        with self._lock:
            if self._config is None:
                raise RuntimeError("Board configuration not loaded")
            return self._config


class SweepScheduler:
    """APScheduler wrapper running the state sweep on an interval."""

    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable) -> None:
        if self._running:
            logger.warning("Sweep scheduler already running")
            return
        if self.interval_seconds <= 0:
            logger.info("State sweeping disabled")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="state_sweep",
            name="Idle State Sweep",
            misfire_grace_time=60,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info("Sweep scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
