"""
MultiLaunch - open more than one instance of a desktop application
===================================================================

Discovers installed application bundles and launches additional,
independent instances even when the OS would focus the running one.

Modules:
- core: Configuration, logging and error messages
- system: Scanner, registry, running-instance detector, launch chain, favorites
- service: Facade used by the CLI or any other front end
"""

__version__ = "1.0.0"
__author__ = "MultiLaunch Project"

from .service import MultiLaunchService
from .system.models import (
    AllMechanismsFailed,
    ApplicationDescriptor,
    LaunchMechanismName,
    LaunchResult,
    LaunchSuccess,
)

__all__ = [
    "__version__",
    "MultiLaunchService",
    "ApplicationDescriptor",
    "LaunchMechanismName",
    "LaunchResult",
    "LaunchSuccess",
    "AllMechanismsFailed",
]
