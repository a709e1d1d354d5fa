"""Tests for version parsing and severity classification."""

import pytest

from novascan.versions import (
    SemVer,
    UpdateSeverity,
    calculate_severity,
    meets_min_severity,
    parse_semver,
    version_severity,
)


class TestParseSemver:
    """Tests for semver parsing."""

    def test_parse_standard_version(self):
        assert parse_semver("1.23.4") == SemVer(1, 23, 4, "")

    def test_parse_with_v_prefix(self):
        assert parse_semver("v1.23.4") == SemVer(1, 23, 4, "")

    def test_parse_with_prerelease(self):
        assert parse_semver("1.0.0-alpha") == SemVer(1, 0, 0, "alpha")

    def test_parse_with_build_metadata(self):
        assert parse_semver("1.2.3-rc.1+build.5") == SemVer(1, 2, 3, "rc.1")

    def test_parse_major_minor_only(self):
        assert parse_semver("15.0") == SemVer(15, 0, 0, "")

    def test_parse_major_only(self):
        assert parse_semver("7") == SemVer(7, 0, 0, "")

    @pytest.mark.parametrize("version", ["latest", "invalid", "", "1.2.3.4", "stable-alpine"])
    def test_parse_invalid(self, version):
        assert parse_semver(version) is None


class TestCalculateSeverity:
    """Tests for severity between parsed versions."""

    @pytest.mark.parametrize(
        "current,latest,expected",
        [
            ("1.0.0", "2.0.0", UpdateSeverity.CRITICAL),
            ("1.0.0", "1.1.0", UpdateSeverity.MAJOR),
            ("1.0.0", "1.0.1", UpdateSeverity.MINOR),
            ("1.0.0", "1.0.0", UpdateSeverity.NONE),
            ("1.5.3", "3.0.0", UpdateSeverity.CRITICAL),
            ("1.0.0", "1.2.3", UpdateSeverity.MAJOR),
        ],
    )
    def test_severity(self, current, latest, expected):
        assert calculate_severity(parse_semver(current), parse_semver(latest)) == expected

    @pytest.mark.parametrize("current", ["1.0.0", "1.9.9", "1.99.0", "0.0.1"])
    def test_major_bump_is_critical_regardless_of_minor_and_patch(self, current):
        assert version_severity(current, "2.0.0") == UpdateSeverity.CRITICAL

    def test_lower_latest_is_none(self):
        assert version_severity("2.3.4", "2.3.1") == UpdateSeverity.NONE


class TestMeetsMinSeverity:
    """Tests for the severity gate."""

    @pytest.mark.parametrize(
        "threshold,latest,expected",
        [
            ("minor", "1.0.1", True),
            ("minor", "1.1.0", True),
            ("minor", "2.0.0", True),
            ("major", "1.0.1", False),
            ("major", "1.1.0", True),
            ("major", "2.0.0", True),
            ("critical", "1.0.1", False),
            ("critical", "1.1.0", False),
            ("critical", "2.0.0", True),
        ],
    )
    def test_thresholds(self, threshold, latest, expected):
        level = UpdateSeverity.from_threshold(threshold)
        assert meets_min_severity("1.0.0", latest, level) is expected

    @pytest.mark.parametrize("threshold", ["minor", "major", "critical"])
    def test_unparsable_versions_always_pass(self, threshold):
        level = UpdateSeverity.from_threshold(threshold)
        assert meets_min_severity("invalid", "1.0.0", level) is True
        assert meets_min_severity("1.0.0", "latest", level) is True

    def test_no_difference_fails_minor(self):
        assert meets_min_severity("1.0.0", "1.0.0", UpdateSeverity.MINOR) is False


class TestThreshold:
    """Tests for threshold name mapping."""

    def test_known_names(self):
        assert UpdateSeverity.from_threshold("minor") == UpdateSeverity.MINOR
        assert UpdateSeverity.from_threshold("major") == UpdateSeverity.MAJOR
        assert UpdateSeverity.from_threshold("critical") == UpdateSeverity.CRITICAL

    @pytest.mark.parametrize("name", ["", None, "urgent", "patch"])
    def test_unknown_falls_back_to_minor(self, name):
        assert UpdateSeverity.from_threshold(name) == UpdateSeverity.MINOR
