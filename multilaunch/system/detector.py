"""
Running-instance detection.

Answers "is an application with this bundle identifier running right now?".
On macOS with PyObjC installed the workspace's running-application list is
used; otherwise the process table is read through psutil and each
executable is mapped back to its enclosing application bundle.

The answer is a point-in-time snapshot. An application can start or exit
between the check and whatever the caller does next.
"""

from __future__ import annotations

import plistlib
import threading
from pathlib import Path
from typing import Dict, Optional, Set
from xml.parsers.expat import ExpatError

import psutil
from loguru import logger

from ..core.errors import describe_exception

try:
    from AppKit import NSWorkspace
    APPKIT_AVAILABLE = True
except ImportError:
    NSWorkspace = None
    APPKIT_AVAILABLE = False


def bundle_root_for(executable: str, package_suffix: str = ".app") -> Optional[Path]:
    """
    Outermost application bundle that contains an executable path.

    /Applications/Foo.app/Contents/MacOS/Foo -> /Applications/Foo.app
    """
    if not executable:
        return None
    found = None
    # helper apps live inside their host bundle; the host wins
    for parent in [Path(executable), *Path(executable).parents]:
        if parent.name.endswith(package_suffix):
            found = parent
    return found


def read_bundle_identifier(bundle: Path) -> str:
    """CFBundleIdentifier from a bundle's Info.plist, or empty string."""
    try:
        with open(bundle / "Contents" / "Info.plist", "rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ExpatError, ValueError):
        return ""
    except Exception as e:
        # plistlib lets some malformed values escape as other errors
        logger.debug(describe_exception(f"Unreadable Info.plist in {bundle}", e))
        return ""
    value = info.get("CFBundleIdentifier") if isinstance(info, dict) else None
    return value if isinstance(value, str) else ""


class RunningInstanceDetector:
    """
    Tests whether an application is among the running processes.

    Features:
    - Exact bundle-identifier matching
    - AppKit workspace query when available
    - psutil process-table fallback with per-bundle identifier cache
    """

    def __init__(self, use_appkit: Optional[bool] = None, package_suffix: str = ".app"):
        """
        Initialize the detector.

        Args:
            use_appkit: Force (True) or disable (False) the AppKit backend.
                Defaults to using it when PyObjC is importable.
            package_suffix: Bundle suffix used when mapping executables.
        """
        self.use_appkit = APPKIT_AVAILABLE if use_appkit is None else (use_appkit and APPKIT_AVAILABLE)
        self.package_suffix = package_suffix
        self._bundle_ids: Dict[str, str] = {}
        self._cache_lock = threading.Lock()

    def is_running(self, bundle_identifier: str) -> bool:
        """
        Check whether an application with the given identifier is running.

        Args:
            bundle_identifier: Reverse-DNS identifier. Empty never matches.

        Returns:
            True if a running application reports exactly this identifier.
        """
        bundle_identifier = (bundle_identifier or "").strip()
        if not bundle_identifier:
            return False

        running = bundle_identifier in self.running_bundle_identifiers()
        logger.debug(f"{bundle_identifier} running: {running}")
        return running

    def running_bundle_identifiers(self) -> Set[str]:
        """Bundle identifiers of all currently running applications."""
        try:
            if self.use_appkit:
                return self._appkit_identifiers()
            return self._process_identifiers()
        except Exception as e:
            logger.warning(f"Could not query running applications: {e}")
            return set()

    def _appkit_identifiers(self) -> Set[str]:
        workspace = NSWorkspace.sharedWorkspace()
        ids = set()
        for app in workspace.runningApplications():
            ident = app.bundleIdentifier()
            if ident:
                ids.add(str(ident))
        return ids

    def _process_identifiers(self) -> Set[str]:
        ids = set()
        for proc in psutil.process_iter(["exe"]):
            try:
                exe = proc.info.get("exe")
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            bundle = bundle_root_for(exe or "", self.package_suffix)
            if bundle is None:
                continue
            ident = self._bundle_identifier(bundle)
            if ident:
                ids.add(ident)
        return ids

    def _bundle_identifier(self, bundle: Path) -> str:
        key = str(bundle)
        with self._cache_lock:
            if key in self._bundle_ids:
                return self._bundle_ids[key]
        ident = read_bundle_identifier(bundle)
        with self._cache_lock:
            self._bundle_ids[key] = ident
        return ident
