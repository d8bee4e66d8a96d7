"""
Unit tests for the directory scanner.

Tests:
- Metadata extraction and name fallbacks
- Skipping of invalid entries and unreadable roots
- Icon lookup and decoding
- Sort order
"""

from pathlib import Path

import pytest

from conftest import BAD_DATE_PLIST, write_bundle
from multilaunch.system.models import ApplicationDescriptor
from multilaunch.system.scanner import DirectoryScanner, sort_applications


def names(apps):
    return [a.name for a in apps]


class TestMetadata:
    """Tests for Info.plist extraction."""

    def test_full_metadata(self, apps_root, make_bundle):
        """Test name, bundle id and version are read."""
        make_bundle("Safari.app", {
            "CFBundleName": "Safari",
            "CFBundleIdentifier": "com.apple.Safari",
            "CFBundleShortVersionString": "17.1",
        })

        apps = DirectoryScanner([apps_root]).scan()

        assert len(apps) == 1
        app = apps[0]
        assert app.name == "Safari"
        assert app.bundle_identifier == "com.apple.Safari"
        assert app.version == "17.1"
        assert app.path == str((apps_root / "Safari.app").absolute())
        assert app.path.endswith(".app")
        assert app.icon is None

    def test_display_name_used_when_bundle_name_missing(self, apps_root, make_bundle):
        """Test CFBundleDisplayName is the second choice."""
        make_bundle("x.app", {"CFBundleDisplayName": "Display", "CFBundleIdentifier": "a.b"})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Display"]

    def test_bundle_name_preferred_over_display_name(self, apps_root, make_bundle):
        """Test CFBundleName wins over CFBundleDisplayName."""
        make_bundle("x.app", {"CFBundleName": "Internal", "CFBundleDisplayName": "Display"})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Internal"]

    def test_filename_fallback(self, apps_root, make_bundle):
        """Test the suffix-stripped folder name is used without name keys."""
        make_bundle("Calculator.app", {"CFBundleIdentifier": "com.apple.calculator"})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Calculator"]

    def test_blank_name_falls_back(self, apps_root, make_bundle):
        """Test whitespace-only names are treated as missing."""
        make_bundle("Notes.app", {"CFBundleName": "   "})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Notes"]
        assert all(a.name for a in apps)

    def test_missing_identifier_is_empty(self, apps_root, make_bundle):
        """Test bundle identifier defaults to an empty string."""
        make_bundle("Tool.app", {"CFBundleName": "Tool"})

        app = DirectoryScanner([apps_root]).scan()[0]
        assert app.bundle_identifier == ""
        assert app.version is None

    def test_non_string_values_ignored(self, apps_root, make_bundle):
        """Test non-string plist values do not leak into descriptors."""
        make_bundle("Odd.app", {"CFBundleName": 42, "CFBundleIdentifier": ["x"]})

        app = DirectoryScanner([apps_root]).scan()[0]
        assert app.name == "Odd"
        assert app.bundle_identifier == ""


class TestSkipping:
    """Tests for entries that must be dropped silently."""

    def test_missing_root(self, tmp_path):
        """Test a root that does not exist yields nothing."""
        apps = DirectoryScanner([tmp_path / "nope"]).scan()
        assert apps == []

    def test_root_is_a_file(self, tmp_path):
        """Test a root that is a file yields nothing."""
        f = tmp_path / "file"
        f.write_text("x")
        assert DirectoryScanner([f]).scan() == []

    def test_bundle_without_info_plist(self, apps_root, make_bundle):
        """Test bundles without Info.plist are skipped."""
        make_bundle("Broken.app", None)
        make_bundle("Good.app", {"CFBundleName": "Good"})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Good"]

    def test_corrupt_info_plist(self, apps_root):
        """Test an unparsable Info.plist skips the entry."""
        bundle = apps_root / "Corrupt.app" / "Contents"
        bundle.mkdir(parents=True)
        (bundle / "Info.plist").write_text("<plist><dict><key>oops")

        assert DirectoryScanner([apps_root]).scan() == []

    def test_plist_that_is_not_a_dict(self, apps_root):
        """Test a plist whose root is not a dictionary is skipped."""
        import plistlib
        contents = apps_root / "List.app" / "Contents"
        contents.mkdir(parents=True)
        with open(contents / "Info.plist", "wb") as f:
            plistlib.dump(["a", "b"], f)

        assert DirectoryScanner([apps_root]).scan() == []

    def test_malformed_plist_value_skips_only_that_bundle(self, apps_root, make_bundle):
        """Test a plist value plistlib cannot decode drops that bundle, not the scan."""
        contents = apps_root / "Bad.app" / "Contents"
        contents.mkdir(parents=True)
        (contents / "Info.plist").write_bytes(BAD_DATE_PLIST)
        make_bundle("Good.app", {"CFBundleName": "Good"})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Good"]

    def test_non_bundle_entries_ignored(self, apps_root, make_bundle):
        """Test entries without the suffix and plain files are ignored."""
        make_bundle("Real.app", {"CFBundleName": "Real"})
        (apps_root / "README.txt").write_text("hi")
        (apps_root / "Folder").mkdir()
        (apps_root / "Fake.app").write_text("not a directory")

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Real"]

    def test_only_immediate_children(self, apps_root, make_bundle):
        """Test nested bundles are not discovered."""
        nested = apps_root / "Utilities"
        nested.mkdir()
        write_bundle(nested, "Deep.app", {"CFBundleName": "Deep"})

        assert DirectoryScanner([apps_root]).scan() == []

    def test_custom_suffix(self, apps_root, make_bundle):
        """Test the package suffix is configurable."""
        make_bundle("Thing.bundle", {"CFBundleName": "Thing"})
        make_bundle("Other.app", {"CFBundleName": "Other"})

        apps = DirectoryScanner([apps_root], package_suffix=".bundle").scan()
        assert names(apps) == ["Thing"]


class TestIcons:
    """Tests for icon lookup and decoding."""

    def test_icon_with_extension(self, apps_root, make_bundle):
        """Test an icon named with its extension is decoded."""
        make_bundle("Pic.app", {"CFBundleName": "Pic", "CFBundleIconFile": "AppIcon.png"}, icon_name="AppIcon.png")

        app = DirectoryScanner([apps_root]).scan()[0]
        assert app.icon is not None
        assert app.icon.size == (16, 16)
        assert app.to_dict()["has_icon"] is True

    def test_icon_default_extension(self, apps_root, make_bundle):
        """Test the default extension is tried when none is declared."""
        make_bundle("Pic.app", {"CFBundleName": "Pic", "CFBundleIconFile": "AppIcon"}, icon_name="AppIcon.png")

        app = DirectoryScanner([apps_root], icon_extension="png").scan()[0]
        assert app.icon is not None

    def test_missing_icon_file(self, apps_root, make_bundle):
        """Test a declared but absent icon gives no icon."""
        make_bundle("Pic.app", {"CFBundleName": "Pic", "CFBundleIconFile": "Missing"})

        app = DirectoryScanner([apps_root]).scan()[0]
        assert app.icon is None

    def test_undecodable_icon(self, apps_root, make_bundle):
        """Test garbage icon data gives no icon but keeps the app."""
        make_bundle(
            "Pic.app",
            {"CFBundleName": "Pic", "CFBundleIconFile": "AppIcon.icns"},
            icon_name="AppIcon.icns",
            icon_bytes=b"definitely not an image",
        )

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Pic"]
        assert apps[0].icon is None

    def test_icons_disabled(self, apps_root, make_bundle):
        """Test load_icons=False skips decoding."""
        make_bundle("Pic.app", {"CFBundleName": "Pic", "CFBundleIconFile": "AppIcon.png"}, icon_name="AppIcon.png")

        app = DirectoryScanner([apps_root], load_icons=False).scan()[0]
        assert app.icon is None


class TestOrdering:
    """Tests for scan result ordering."""

    def test_case_insensitive_sort(self, apps_root, make_bundle):
        """Test names sort ascending ignoring case."""
        for n in ["zed", "Albert", "bravo"]:
            make_bundle(f"{n}.app", {"CFBundleName": n})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["Albert", "bravo", "zed"]

    def test_accented_names_sort_with_their_base_letter(self, apps_root, make_bundle):
        """Test accents do not push a name after unaccented ones."""
        for n in ["zed", "Éclair", "apple"]:
            make_bundle(f"{n}.app", {"CFBundleName": n})

        apps = DirectoryScanner([apps_root]).scan()
        assert names(apps) == ["apple", "Éclair", "zed"]

    def test_sort_ignores_process_locale(self):
        """Test the helper orders accented names without any setlocale call."""
        apps = [ApplicationDescriptor(name=n, path=f"/A/{n}.app") for n in ["zed", "Éclair", "apple", "eclair"]]
        assert names(sort_applications(apps)) == ["apple", "eclair", "Éclair", "zed"]

    def test_sort_across_roots(self, tmp_path):
        """Test results from several roots are merged before sorting."""
        first = tmp_path / "a"
        second = tmp_path / "b"
        first.mkdir()
        second.mkdir()
        write_bundle(first, "Mail.app", {"CFBundleName": "Mail"})
        write_bundle(second, "Books.app", {"CFBundleName": "Books"})

        apps = DirectoryScanner([first, second]).scan()
        assert names(apps) == ["Books", "Mail"]

    def test_sort_applications_helper(self):
        """Test the standalone sort helper."""
        apps = [ApplicationDescriptor(name=n, path=f"/A/{n}.app") for n in ["b", "C", "a"]]
        assert names(sort_applications(apps)) == ["a", "b", "C"]

    def test_ids_are_unique_per_scan(self, apps_root, make_bundle):
        """Test every descriptor gets its own id and rescans issue new ones."""
        make_bundle("One.app", {"CFBundleName": "One"})
        make_bundle("Two.app", {"CFBundleName": "Two"})
        scanner = DirectoryScanner([apps_root])

        first = scanner.scan()
        second = scanner.scan()

        assert len({a.id for a in first}) == 2
        assert {a.id for a in first}.isdisjoint({a.id for a in second})
        assert first == second


class TestDescriptor:
    """Tests for ApplicationDescriptor."""

    def test_empty_name_rejected(self):
        """Test a descriptor cannot have an empty name."""
        with pytest.raises(ValueError):
            ApplicationDescriptor(name="", path="/Applications/x.app")

    def test_executable_path(self):
        """Test the expected executable location."""
        app = ApplicationDescriptor(name="Safari", path="/Applications/Safari.app")
        assert app.executable_path() == Path("/Applications/Safari.app/Contents/MacOS/Safari")
        assert app.executable_path("bin") == Path("/Applications/Safari.app/bin/Safari")

    def test_immutable(self):
        """Test descriptors are frozen."""
        app = ApplicationDescriptor(name="Safari", path="/Applications/Safari.app")
        with pytest.raises(Exception):
            app.name = "Other"
