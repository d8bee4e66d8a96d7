"""
Centralized Error Handling for MultiLaunch.

Provides:
- Exception types raised at the CLI and configuration boundary
- User-friendly error messages with guidance
"""

from typing import Dict, Optional, Sequence


class MultiLaunchError(Exception):
    """Base class for MultiLaunch errors."""
    pass


class ConfigurationError(MultiLaunchError):
    """Raised when the configuration file or environment is invalid."""
    pass


class ApplicationNotFoundError(MultiLaunchError):
    """Raised when a query matches no discovered application."""

    def __init__(self, query: str):
        super().__init__(f"No application matches '{query}'")
        self.query = query


class LaunchFailedError(MultiLaunchError):
    """Raised by callers that want an exception for a terminal launch failure."""

    def __init__(self, name: str, attempted: Sequence[str], last_error: Optional[str] = None):
        tried = ", ".join(attempted) or "none"
        super().__init__(f"Could not launch {name} (tried: {tried}): {last_error or 'unknown error'}")
        self.name = name
        self.attempted = tuple(attempted)
        self.last_error = last_error


# User-friendly error messages with guidance
ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "app_not_found": {
        "short": "Application not found",
        "detailed": """No installed application matched your query.

Please check:
1. The name or bundle identifier is spelled correctly
2. The application lives in one of the scanned folders
3. Extra folders are listed under scanner.roots in your settings.yaml

Run 'multilaunch list' to see everything that was discovered.""",
    },
    "launch_failed": {
        "short": "Launch failed",
        "detailed": """Every launch mechanism failed for this application.

Please check:
1. The application bundle is still installed and not damaged
2. /usr/bin/open and /bin/bash are available
3. PyObjC is installed if you rely on the workspace mechanism:
   pip install pyobjc-framework-Cocoa

Rerun with MULTILAUNCH_LOG_LEVEL=DEBUG for the full attempt log.""",
    },
    "appkit_unavailable": {
        "short": "AppKit unavailable",
        "detailed": """The macOS workspace API is not available.

PyObjC is required for the NSWorkspace launch mechanism and for
running-application detection through AppKit. To enable:
   pip install pyobjc-framework-Cocoa

Process-table detection through psutil is used in the meantime.""",
    },
    "invalid_config": {
        "short": "Invalid configuration",
        "detailed": """The configuration could not be loaded.

Please check your settings.yaml (or the file named by MULTILAUNCH_CONFIG)
for YAML syntax errors and unknown values.""",
    },
}


def get_error_message(error_key: str, detailed: bool = False) -> str:
    """
    Get user-friendly error message.

    Args:
        error_key: Key for the error type
        detailed: Whether to return detailed message with guidance

    Returns:
        User-friendly error message
    """
    if error_key not in ERROR_MESSAGES:
        return f"An error occurred: {error_key}"

    msg = ERROR_MESSAGES[error_key]
    return msg["detailed"] if detailed else msg["short"]


def describe_exception(context: str, error: BaseException) -> str:
    """Render an exception as a single log-friendly line."""
    kind = error.__class__.__name__
    text = str(error).strip()
    return f"{context}: {kind}: {text}" if text else f"{context}: {kind}"
