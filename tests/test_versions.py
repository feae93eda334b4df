"""Tests for release_flow.versions."""

from __future__ import annotations

import pytest
import semver

from release_flow.models import VersionType
from release_flow.versions import (
    InvalidVersionError,
    bump_version,
    coerce_version,
    parse_version,
)


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_two_part_version(self) -> None:
        v = parse_version("1.2")
        assert (v.major, v.minor, v.patch) == (1, 2, 0)

    def test_single_part_version(self) -> None:
        v = parse_version("5")
        assert (v.major, v.minor, v.patch) == (5, 0, 0)

    @pytest.mark.parametrize(
        "version_str", ["0.4.0rc1", "0.4.0.dev3", "0.4.0-rc.1", "0.4.0+local", "0.4.0.post1"]
    )
    def test_pre_release_segments_dropped(self, version_str: str) -> None:
        assert parse_version(version_str) == semver.Version(0, 4, 0)

    def test_invalid_version(self) -> None:
        with pytest.raises(InvalidVersionError) as excinfo:
            parse_version("not-a-version")
        assert excinfo.value.version_str == "not-a-version"


class TestCoerceVersion:
    def test_prefixed_tag(self) -> None:
        assert coerce_version("v5.0.4") == semver.Version(5, 0, 4)

    def test_partial_version_in_text(self) -> None:
        assert coerce_version("release-2.1") == semver.Version(2, 1, 0)

    def test_no_version(self) -> None:
        assert coerce_version("nightly") is None

    def test_orders_numerically(self) -> None:
        assert coerce_version("v10.0.0") > coerce_version("v9.9.9")


class TestBumpVersion:
    def test_patch(self) -> None:
        assert bump_version("1.2.3", VersionType.PATCH) == "1.2.4"

    def test_minor_resets_patch(self) -> None:
        assert bump_version("1.2.3", VersionType.MINOR) == "1.3.0"

    def test_major_resets_minor_and_patch(self) -> None:
        assert bump_version("1.2.3", VersionType.MAJOR) == "2.0.0"

    def test_none_keeps_version(self) -> None:
        assert bump_version("1.2.3", VersionType.NONE) == "1.2.3"

    def test_incomplete_version(self) -> None:
        assert bump_version("1.0", VersionType.MINOR) == "1.1.0"

    def test_bump_high_patch(self) -> None:
        assert bump_version("1.0.99", VersionType.PATCH) == "1.0.100"

    def test_bump_from_pre_release(self) -> None:
        assert bump_version("0.4.0rc1", VersionType.MINOR) == "0.5.0"
        assert bump_version("0.4.0rc1", VersionType.PATCH) == "0.4.1"

    def test_none_keeps_pre_release(self) -> None:
        assert bump_version("0.4.0rc1", VersionType.NONE) == "0.4.0rc1"
