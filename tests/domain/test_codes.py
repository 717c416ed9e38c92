"""Tests for code formatting, the prefix registry and outline codes."""

import pytest

from wbs_kernel.domain.codes import (
    DEFAULT_PREFIXES,
    CodePrefix,
    PrefixRegistry,
    format_code,
    outline_code,
)
from wbs_kernel.exceptions import InvalidPrefixError, OutOfRangeError


class TestFormatCode:

    def test_zero_padded(self):
        assert format_code("ISS", 3, 3) == "ISS-003"
        assert format_code("DIS", 7, 4) == "DIS-0007"

    def test_wider_numbers_not_truncated(self):
        assert format_code("REQ", 12345, 3) == "REQ-12345"

    def test_prefix_format(self):
        assert CodePrefix("REQ", 3, "requirement").format(14) == "REQ-014"


class TestCodePrefix:

    @pytest.mark.parametrize("prefix", ["iss", "I", "ISS1", "TOOLONGPREFIX", ""])
    def test_invalid_prefix(self, prefix):
        with pytest.raises(InvalidPrefixError):
            CodePrefix(prefix, 3)

    def test_width_must_be_positive(self):
        with pytest.raises(OutOfRangeError):
            CodePrefix("ISS", 0)


class TestPrefixRegistry:

    def test_defaults(self):
        registry = PrefixRegistry()
        assert registry.prefixes == ("DIS", "ISS", "REQ")
        assert registry.get("DIS").width == 4
        assert "ISS" in registry
        assert "XYZ" not in registry

    def test_unknown_prefix(self):
        with pytest.raises(InvalidPrefixError) as exc_info:
            PrefixRegistry().get("XYZ")
        assert exc_info.value.code == "INVALID_PREFIX"
        assert "ISS" in str(exc_info.value)

    def test_duplicate_prefix_rejected(self):
        with pytest.raises(ValueError):
            PrefixRegistry([*DEFAULT_PREFIXES, CodePrefix("ISS", 5)])

    def test_custom_registry(self):
        registry = PrefixRegistry([CodePrefix("RSK", 2, "risk")])
        assert registry.prefixes == ("RSK",)
        with pytest.raises(InvalidPrefixError):
            registry.get("ISS")


class TestOutlineCode:

    def test_top_level(self):
        assert outline_code("", 3) == "3"

    def test_nested(self):
        assert outline_code("1.2", 4) == "1.2.4"
