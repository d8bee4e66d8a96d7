"""
MultiLaunch service facade.

Wires the scanner, registry, detector and launch chain together from
configuration and exposes the operations a presentation layer needs.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import List, Optional

from loguru import logger

from .core.config import MultiLaunchConfig, config, resolve_data_path
from .core.errors import ApplicationNotFoundError, LaunchFailedError, describe_exception
from .system.detector import RunningInstanceDetector
from .system.favorites import FavoritesManager, SQLiteKeyValueStore
from .system.launcher import LaunchChain
from .system.models import AllMechanismsFailed, ApplicationDescriptor, LaunchResult, LaunchSuccess
from .system.registry import ApplicationRegistry
from .system.scanner import DirectoryScanner


class MultiLaunchService:
    """
    Collaborator-facing API.

    Usage:
        with MultiLaunchService() as service:
            service.refresh().result()
            for app in service.list_applications("term"):
                service.launch(app)
    """

    def __init__(
        self,
        settings: Optional[MultiLaunchConfig] = None,
        scanner: Optional[DirectoryScanner] = None,
        detector: Optional[RunningInstanceDetector] = None,
        chain: Optional[LaunchChain] = None,
        registry: Optional[ApplicationRegistry] = None,
        favorites: Optional[FavoritesManager] = None,
    ):
        self.settings = settings or config()
        self.scanner = scanner or DirectoryScanner.from_config(self.settings.scanner)
        self.detector = detector or RunningInstanceDetector(package_suffix=self.settings.scanner.package_suffix)
        self.chain = chain or LaunchChain(self.detector, settings=self.settings.launcher)
        self.registry = registry or ApplicationRegistry(self.scanner)
        self._favorites = favorites

    @property
    def favorites(self) -> FavoritesManager:
        """Favorites manager, opened lazily on first use."""
        if self._favorites is None:
            db_path = resolve_data_path(self.settings, self.settings.favorites.db_path)
            self._favorites = FavoritesManager(SQLiteKeyValueStore(db_path), key=self.settings.favorites.key)
        return self._favorites

    def list_applications(self, filter_text: str = "") -> List[ApplicationDescriptor]:
        return self.registry.filtered(filter_text)

    def refresh(self) -> Future:
        return self.registry.refresh()

    def is_loading(self) -> bool:
        return self.registry.is_loading

    def find(self, query: str) -> Optional[ApplicationDescriptor]:
        return self.registry.find(query)

    def is_running(self, bundle_identifier: str) -> bool:
        return self.detector.is_running(bundle_identifier)

    def launch(self, descriptor: ApplicationDescriptor) -> Future:
        """Fire-and-forget launch; the future resolves to a LaunchResult."""
        future = self.chain.launch(descriptor)
        future.add_done_callback(self._log_result)
        return future

    def launch_sync(self, descriptor: ApplicationDescriptor) -> LaunchResult:
        return self.chain.run(descriptor)

    def require(self, query: str) -> ApplicationDescriptor:
        """Like find(), but raises ApplicationNotFoundError on no match."""
        app = self.registry.find(query)
        if app is None:
            raise ApplicationNotFoundError(query)
        return app

    def launch_or_raise(self, descriptor: ApplicationDescriptor) -> LaunchSuccess:
        """Launch synchronously, raising LaunchFailedError on terminal failure."""
        result = self.launch_sync(descriptor)
        if isinstance(result, AllMechanismsFailed):
            raise LaunchFailedError(
                descriptor.name,
                [m.value for m in result.attempted_mechanisms],
                result.last_error,
            )
        return result

    @staticmethod
    def _log_result(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(describe_exception("Launch task crashed", error))

    def close(self) -> None:
        self.registry.shutdown()
        self.chain.shutdown()

    def __enter__(self) -> "MultiLaunchService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
