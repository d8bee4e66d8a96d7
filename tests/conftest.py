"""
Shared fixtures: fake application bundles on disk.
"""

import plistlib
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent))

# Well-formed XML whose <date> plistlib fails to decode
BAD_DATE_PLIST = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<plist version="1.0"><dict>'
    b'<key>CFBundleName</key><string>Bad</string>'
    b'<key>CFBundleIdentifier</key><string>com.example.bad</string>'
    b'<key>Built</key><date>not-a-date</date>'
    b'</dict></plist>\n'
)


def write_bundle(
    root: Path,
    filename: str,
    info: Optional[Dict[str, Any]] = None,
    icon_name: Optional[str] = None,
    icon_bytes: Optional[bytes] = None,
    executable: Optional[str] = None,
) -> Path:
    """
    Create a minimal application bundle.

    Args:
        root: Folder the bundle is created in.
        filename: Bundle folder name, e.g. "Safari.app".
        info: Info.plist contents. None writes no Info.plist at all.
        icon_name: File name under Contents/Resources to write an icon to.
        icon_bytes: Raw icon bytes. A real PNG is written when omitted.
        executable: Name of an empty file to create under Contents/MacOS.
    """
    bundle = root / filename
    contents = bundle / "Contents"
    contents.mkdir(parents=True, exist_ok=True)

    if info is not None:
        with open(contents / "Info.plist", "wb") as f:
            plistlib.dump(info, f)

    if icon_name:
        resources = contents / "Resources"
        resources.mkdir(exist_ok=True)
        target = resources / icon_name
        if icon_bytes is None:
            Image.new("RGBA", (16, 16), (255, 0, 0, 255)).save(target, format="PNG")
        else:
            target.write_bytes(icon_bytes)

    if executable:
        macos = contents / "MacOS"
        macos.mkdir(exist_ok=True)
        (macos / executable).write_text("#!/bin/sh\n")

    return bundle


@pytest.fixture
def apps_root(tmp_path):
    """Empty folder standing in for /Applications."""
    root = tmp_path / "Applications"
    root.mkdir()
    return root


@pytest.fixture
def make_bundle(apps_root):
    """Factory creating bundles inside apps_root."""
    def factory(filename: str, info: Optional[Dict[str, Any]] = None, **kwargs) -> Path:
        return write_bundle(apps_root, filename, info, **kwargs)
    return factory
