"""
Directory scanner for installed application bundles.

Walks a fixed, ordered set of root folders, opens every entry that looks
like an application bundle and turns its Info.plist into an
ApplicationDescriptor. Individual failures never abort a scan: an
unreadable folder contributes nothing, a broken bundle is skipped and a
missing icon just leaves the descriptor without one.
"""

from __future__ import annotations

import os
import plistlib
import unicodedata
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from xml.parsers.expat import ExpatError

from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..core.errors import describe_exception
from .models import ApplicationDescriptor

INFO_PLIST = Path("Contents") / "Info.plist"
RESOURCES_DIR = Path("Contents") / "Resources"

NAME_KEYS = ("CFBundleName", "CFBundleDisplayName")


def sort_key(name: str) -> Tuple[str, str]:
    """
    Collation key for display names.

    Case- and accent-insensitive first ("Éclair" sorts with "eclair"), then
    the case-folded name so the order is total. Independent of the process
    locale.
    """
    folded = unicodedata.normalize("NFKC", name).casefold()
    base = "".join(ch for ch in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(ch))
    return base, folded


def sort_applications(apps: Iterable[ApplicationDescriptor]) -> List[ApplicationDescriptor]:
    """Return descriptors ordered ascending by display name."""
    return sorted(apps, key=lambda app: sort_key(app.name))


def _string_value(info: Dict[str, Any], key: str) -> Optional[str]:
    value = info.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class DirectoryScanner:
    """
    Scans root folders for application bundles.

    Features:
    - Ordered, configurable roots
    - Info.plist metadata extraction
    - Optional icon decoding through Pillow
    """

    def __init__(
        self,
        roots: Sequence[Path | str],
        package_suffix: str = ".app",
        icon_extension: str = "icns",
        load_icons: bool = True,
    ):
        """
        Initialize the scanner.

        Args:
            roots: Folders to scan, in order. Only immediate children are examined.
            package_suffix: Name suffix that marks an application bundle.
            icon_extension: Extension tried when CFBundleIconFile has none.
            load_icons: Decode icon files into images.
        """
        self.roots = [Path(os.path.expanduser(str(r))) for r in roots]
        self.package_suffix = package_suffix
        self.icon_extension = icon_extension.lstrip(".")
        self.load_icons = load_icons

    @classmethod
    def from_config(cls, cfg) -> "DirectoryScanner":
        """Build a scanner from a ScannerConfig section."""
        return cls(
            roots=cfg.root_paths(),
            package_suffix=cfg.package_suffix,
            icon_extension=cfg.icon_extension,
            load_icons=cfg.load_icons,
        )

    def scan(self) -> List[ApplicationDescriptor]:
        """
        Discover all applications under the configured roots.

        Returns:
            A fresh list of descriptors sorted by display name.
        """
        apps: List[ApplicationDescriptor] = []

        for root in self.roots:
            for entry in self._list_candidates(root):
                try:
                    descriptor = self.read_bundle(entry)
                except Exception as e:
                    logger.warning(describe_exception(f"Skipping {entry}", e))
                    continue
                if descriptor is not None:
                    apps.append(descriptor)

        apps = sort_applications(apps)
        logger.info(f"Scan found {len(apps)} applications in {len(self.roots)} roots")
        return apps

    def _list_candidates(self, root: Path) -> List[Path]:
        """Immediate children of root that carry the package suffix."""
        try:
            names = sorted(os.listdir(root))
        except OSError as e:
            logger.debug(f"Skipping unreadable root {root}: {e}")
            return []

        return [root / name for name in names if name.endswith(self.package_suffix)]

    def read_bundle(self, bundle_path: Path) -> Optional[ApplicationDescriptor]:
        """
        Open a single bundle and build its descriptor.

        Returns:
            The descriptor, or None when the entry is not a valid bundle.
        """
        info = self._read_info(bundle_path)
        if info is None:
            return None

        name = self._display_name(info, bundle_path)
        bundle_identifier = _string_value(info, "CFBundleIdentifier") or ""
        version = _string_value(info, "CFBundleShortVersionString")
        icon = self._load_icon(info, bundle_path) if self.load_icons else None

        return ApplicationDescriptor(
            name=name,
            path=str(bundle_path.absolute()),
            bundle_identifier=bundle_identifier,
            version=version,
            icon=icon,
        )

    def _read_info(self, bundle_path: Path) -> Optional[Dict[str, Any]]:
        if not bundle_path.is_dir():
            logger.debug(f"Not a bundle directory: {bundle_path}")
            return None

        plist_path = bundle_path / INFO_PLIST
        try:
            with open(plist_path, "rb") as f:
                info = plistlib.load(f)
        except (OSError, plistlib.InvalidFileException, ExpatError, ValueError) as e:
            logger.debug(f"Skipping {bundle_path}: cannot read Info.plist ({e})")
            return None

        if not isinstance(info, dict):
            logger.debug(f"Skipping {bundle_path}: Info.plist is not a dictionary")
            return None
        return info

    def _display_name(self, info: Dict[str, Any], bundle_path: Path) -> str:
        for key in NAME_KEYS:
            value = _string_value(info, key)
            if value:
                return value

        stem = bundle_path.name
        if stem.endswith(self.package_suffix):
            stem = stem[: -len(self.package_suffix)]
        return stem or bundle_path.name

    def _icon_path(self, info: Dict[str, Any], bundle_path: Path) -> Optional[Path]:
        icon_file = _string_value(info, "CFBundleIconFile")
        if not icon_file:
            return None

        resources = bundle_path / RESOURCES_DIR
        candidates = [resources / icon_file]
        if not Path(icon_file).suffix:
            candidates.append(resources / f"{icon_file}.{self.icon_extension}")

        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def _load_icon(self, info: Dict[str, Any], bundle_path: Path):
        icon_path = self._icon_path(info, bundle_path)
        if icon_path is None:
            return None

        try:
            with Image.open(icon_path) as img:
                img.load()
                return img.copy()
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logger.debug(f"Could not decode icon {icon_path}: {e}")
            return None
