"""
Data models for application discovery and launching.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

DEFAULT_EXECUTABLE_SUBDIR = "Contents/MacOS"


def new_descriptor_id() -> str:
    """Process-local identifier for a freshly discovered application."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ApplicationDescriptor:
    """One discovered application bundle."""
    name: str
    path: str
    bundle_identifier: str = ""
    version: Optional[str] = None
    icon: Optional[Any] = field(default=None, compare=False, hash=False, repr=False)
    id: str = field(default_factory=new_descriptor_id, compare=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("ApplicationDescriptor.name must not be empty")

    @property
    def has_icon(self) -> bool:
        return self.icon is not None

    def executable_path(self, subdir: str = DEFAULT_EXECUTABLE_SUBDIR) -> Path:
        """Expected main executable inside the bundle."""
        return Path(self.path) / subdir / self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "bundle_identifier": self.bundle_identifier,
            "path": self.path,
            "version": self.version,
            "has_icon": self.has_icon,
        }


class LaunchMechanismName(Enum):
    """OS-level launch mechanisms, in chain order."""
    DIRECT = "direct"
    SHELL_OPEN_NEW = "shell_open_new"
    WORKSPACE_OPEN_NEW = "workspace_open_new"
    OPEN_COMMAND_NEW = "open_command_new"
    DIRECT_FALLBACK = "direct_fallback"


@dataclass(frozen=True)
class LaunchOutcome:
    """Result of a single mechanism attempt."""
    mechanism: LaunchMechanismName
    success: bool
    error: Optional[str] = None
    pid: Optional[int] = None

    @classmethod
    def ok(cls, mechanism: LaunchMechanismName, pid: Optional[int] = None) -> "LaunchOutcome":
        return cls(mechanism=mechanism, success=True, pid=pid)

    @classmethod
    def failed(cls, mechanism: LaunchMechanismName, error: str) -> "LaunchOutcome":
        return cls(mechanism=mechanism, success=False, error=error)


@dataclass(frozen=True)
class LaunchSuccess:
    """A launch that some mechanism completed."""
    descriptor: ApplicationDescriptor
    mechanism: LaunchMechanismName
    attempted_mechanisms: Tuple[LaunchMechanismName, ...]
    pid: Optional[int] = None

    success = True

    @property
    def message(self) -> str:
        return f"Launched {self.descriptor.name} via {self.mechanism.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "application": self.descriptor.name,
            "mechanism": self.mechanism.value,
            "attempted": [m.value for m in self.attempted_mechanisms],
            "pid": self.pid,
        }


@dataclass(frozen=True)
class AllMechanismsFailed:
    """Every planned mechanism was tried once and none succeeded."""
    descriptor: ApplicationDescriptor
    attempted_mechanisms: Tuple[LaunchMechanismName, ...]
    last_error: Optional[str] = None

    success = False

    @property
    def message(self) -> str:
        tried = ", ".join(m.value for m in self.attempted_mechanisms) or "none"
        return f"Failed to launch {self.descriptor.name} (tried: {tried}): {self.last_error or 'unknown error'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "application": self.descriptor.name,
            "attempted": [m.value for m in self.attempted_mechanisms],
            "last_error": self.last_error,
        }


LaunchResult = Union[LaunchSuccess, AllMechanismsFailed]
