"""Application discovery and launching for MultiLaunch."""

from .detector import APPKIT_AVAILABLE, RunningInstanceDetector
from .favorites import (
    FavoritesManager,
    InMemoryKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
)
from .launcher import (
    NOT_RUNNING_PLAN,
    RUNNING_PLAN,
    WORKSPACE_API_AVAILABLE,
    LaunchChain,
    build_mechanisms,
)
from .models import (
    AllMechanismsFailed,
    ApplicationDescriptor,
    LaunchMechanismName,
    LaunchOutcome,
    LaunchResult,
    LaunchSuccess,
)
from .registry import ApplicationRegistry, filter_applications
from .scanner import DirectoryScanner, sort_applications

__all__ = [
    # Discovery
    "ApplicationDescriptor",
    "DirectoryScanner",
    "sort_applications",
    "ApplicationRegistry",
    "filter_applications",
    # Detection
    "APPKIT_AVAILABLE",
    "RunningInstanceDetector",
    # Launching
    "WORKSPACE_API_AVAILABLE",
    "LaunchChain",
    "build_mechanisms",
    "NOT_RUNNING_PLAN",
    "RUNNING_PLAN",
    "LaunchMechanismName",
    "LaunchOutcome",
    "LaunchResult",
    "LaunchSuccess",
    "AllMechanismsFailed",
    # Favorites
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "FavoritesManager",
]
