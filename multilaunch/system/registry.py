"""
In-memory registry of discovered applications.

The registry owns the current descriptor list, the free-text filter and the
loading flag. Scans run on a background executor; their results are handed
back through a dispatcher and installed under a lock, which is the only
place the descriptor list changes. Every refresh takes the next value of a
monotonic generation counter and a result is installed only if its
generation is newer than the one currently installed.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from .models import ApplicationDescriptor
from .scanner import DirectoryScanner

Dispatcher = Callable[[Callable[[], None]], None]


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


def filter_applications(
    apps: Sequence[ApplicationDescriptor],
    text: Optional[str],
) -> List[ApplicationDescriptor]:
    """
    Filter descriptors by name or bundle identifier.

    Matching is a case-insensitive substring test. Source order is kept.
    An empty filter returns every descriptor.
    """
    needle = (text or "").casefold()
    if not needle:
        return list(apps)
    return [
        app for app in apps
        if needle in app.name.casefold() or needle in app.bundle_identifier.casefold()
    ]


class ApplicationRegistry:
    """
    Query-able collection of discovered applications.

    Features:
    - Non-blocking refresh on a worker thread
    - Stale scan results discarded by generation
    - Pure filtered view
    """

    def __init__(
        self,
        scanner: DirectoryScanner,
        executor: Optional[ThreadPoolExecutor] = None,
        dispatch: Optional[Dispatcher] = None,
    ):
        """
        Initialize the registry.

        Args:
            scanner: Scanner used by refresh().
            executor: Executor for background scans. One is created if omitted.
            dispatch: Runs the installation step on the caller's preferred
                thread (e.g. a UI main loop). Defaults to running inline on
                the worker thread.
        """
        self.scanner = scanner
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="multilaunch-scan")
        self._dispatch = dispatch or _run_inline

        self._lock = threading.Lock()
        self._applications: Tuple[ApplicationDescriptor, ...] = ()
        self._filter_text = ""
        self._is_loading = False
        self._requested_generation = 0
        self._installed_generation = 0
        self._pending: Optional[Future] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def applications(self) -> Tuple[ApplicationDescriptor, ...]:
        return self._applications

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def filter_text(self) -> str:
        return self._filter_text

    @property
    def generation(self) -> int:
        """Generation of the currently installed result (0 before any scan)."""
        return self._installed_generation

    def set_filter(self, text: Optional[str]) -> None:
        self._filter_text = text or ""

    def filtered(self, text: Optional[str] = None) -> List[ApplicationDescriptor]:
        """Descriptors matching text, or the stored filter when text is None."""
        return filter_applications(self._applications, self._filter_text if text is None else text)

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh(self) -> Future:
        """
        Start a background scan and return immediately.

        Returns:
            Future resolving to the scanned list once the installation step
            has run (whether or not the result was kept).
        """
        with self._lock:
            self._requested_generation += 1
            generation = self._requested_generation
            self._is_loading = True

        logger.debug(f"Refresh requested (generation {generation})")
        installed: Future = Future()
        self._pending = installed
        scan = self._executor.submit(self.scanner.scan)
        scan.add_done_callback(lambda f: self._dispatch(lambda: self._complete(generation, f, installed)))
        return installed

    def _complete(self, generation: int, scan: Future, installed: Future) -> None:
        error: Optional[BaseException] = None
        try:
            apps = scan.result()
        except Exception as e:
            logger.error(f"Scan generation {generation} failed: {e}")
            apps = None
            error = e

        try:
            self._install(generation, apps)
        finally:
            if error is not None:
                installed.set_exception(error)
            else:
                installed.set_result(apps)

    def _install(self, generation: int, apps: Optional[List[ApplicationDescriptor]]) -> None:
        with self._lock:
            if apps is not None:
                if generation > self._installed_generation:
                    self._applications = tuple(apps)
                    self._installed_generation = generation
                    logger.info(f"Installed {len(apps)} applications (generation {generation})")
                else:
                    logger.debug(
                        f"Discarding stale scan generation {generation} "
                        f"(installed {self._installed_generation})"
                    )
            if generation == self._requested_generation:
                self._is_loading = False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the most recent refresh has been installed.

        Returns:
            False if the timeout expired first.
        """
        pending = self._pending
        if pending is None:
            return True
        done, _ = wait_futures([pending], timeout=timeout)
        return bool(done)

    # =========================================================================
    # Lookup
    # =========================================================================

    def find(self, query: str) -> Optional[ApplicationDescriptor]:
        """
        Find a descriptor by bundle identifier, display name or path.

        Exact bundle identifier wins, then case-insensitive name, then path.
        """
        query = (query or "").strip()
        if not query:
            return None

        apps = self._applications
        for app in apps:
            if app.bundle_identifier and app.bundle_identifier == query:
                return app

        folded = query.casefold()
        for app in apps:
            if app.name.casefold() == folded:
                return app

        for app in apps:
            if app.path == query or app.path.rstrip("/") == query.rstrip("/"):
                return app
        return None

    def shutdown(self) -> None:
        """Stop the owned executor without waiting for a running scan."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)
