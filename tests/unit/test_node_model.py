"""Unit tests for OS parsing and merging."""

import pytest

from depgraph.models.node import OperatingSystem, merge_os


@pytest.mark.unit
class TestOperatingSystemParse:
    """Test cases for OperatingSystem.parse."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Linux", OperatingSystem.LINUX),
            ("linux", OperatingSystem.LINUX),
            (" WINDOWS ", OperatingSystem.WINDOWS),
            ("mac", OperatingSystem.MAC),
            ("Unknown", OperatingSystem.UNKNOWN),
        ],
    )
    def test_known_values(self, raw, expected):
        """Test parsing is case-insensitive."""
        assert OperatingSystem.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["FreeBSD", "", None, 42, "Lin ux"])
    def test_unrecognized_maps_to_unknown(self, raw):
        """Test anything unrecognized parses to Unknown instead of failing."""
        assert OperatingSystem.parse(raw) is OperatingSystem.UNKNOWN

    def test_member_passthrough(self):
        """Test an enum member parses to itself."""
        assert OperatingSystem.parse(OperatingSystem.MAC) is OperatingSystem.MAC


@pytest.mark.unit
class TestMergeOs:
    """Test cases for merge_os."""

    def test_unknown_never_overwrites_known(self):
        assert merge_os(OperatingSystem.LINUX, OperatingSystem.UNKNOWN) is OperatingSystem.LINUX

    def test_known_overwrites_unknown(self):
        assert merge_os(OperatingSystem.UNKNOWN, OperatingSystem.MAC) is OperatingSystem.MAC

    def test_incoming_known_wins(self):
        assert merge_os(OperatingSystem.LINUX, OperatingSystem.WINDOWS) is OperatingSystem.WINDOWS

    def test_sequence_ends_at_last_known(self):
        """Test [Unknown, Linux, Unknown, Windows] ends at Windows."""
        current = OperatingSystem.UNKNOWN
        seen = []
        for incoming in (
            OperatingSystem.UNKNOWN,
            OperatingSystem.LINUX,
            OperatingSystem.UNKNOWN,
            OperatingSystem.WINDOWS,
        ):
            current = merge_os(current, incoming)
            seen.append(current)

        assert current is OperatingSystem.WINDOWS
        # Once known, never back to Unknown
        assert seen[1:] == [
            OperatingSystem.LINUX,
            OperatingSystem.LINUX,
            OperatingSystem.WINDOWS,
        ]
