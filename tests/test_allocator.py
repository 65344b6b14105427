"""
Tests for slug validation and join code generation.
"""

from __future__ import annotations

import pytest

from app.core import config
from app.features.organizations.allocator import (
    JOIN_CODE_ALPHABET,
    MAX_SLUG_LENGTH,
    RESERVED_SLUGS,
    generate_join_code,
    is_valid_slug,
    normalize_join_code,
    slug_format_error,
    suggest_slug,
)


class TestSlugFormat:

    @pytest.mark.parametrize("slug", ["lsm-bahari", "lsm-bahari-2", "abc", "a1b2c3", "x" * MAX_SLUG_LENGTH])
    def test_valid(self, slug):
        assert is_valid_slug(slug)

    @pytest.mark.parametrize(
        "slug",
        [
            "lsm-bahari!",
            "ab",
            "LSM-Bahari",
            "-bahari",
            "bahari-",
            "lsm--bahari",
            "lsm bahari",
            "x" * (MAX_SLUG_LENGTH + 1),
            "",
        ],
    )
    def test_invalid(self, slug):
        assert not is_valid_slug(slug)

    def test_reserved_slugs_rejected(self):
        assert "dashboard" in RESERVED_SLUGS
        assert slug_format_error("dashboard") == "This slug is reserved"

    def test_length_reason(self):
        assert "3-50" in slug_format_error("ab")


class TestSuggestSlug:

    def test_basic(self):
        assert suggest_slug("LSM Bahari!") == "lsm-bahari"

    def test_collapses_and_trims(self):
        assert suggest_slug("  --Yayasan   Hijau & Biru--  ") == "yayasan-hijau-biru"

    def test_truncates_without_trailing_hyphen(self):
        slug = suggest_slug("a" * 49 + " bcd")
        assert len(slug) <= MAX_SLUG_LENGTH
        assert not slug.endswith("-")
        assert is_valid_slug(slug)


class TestJoinCode:

    def test_length_and_alphabet(self):
        code = generate_join_code()
        assert len(code) == config.JOIN_CODE_LENGTH
        assert set(code) <= set(JOIN_CODE_ALPHABET)

    def test_alphabet_has_no_lookalikes(self):
        for char in "01OI":
            assert char not in JOIN_CODE_ALPHABET

    def test_codes_vary(self):
        assert len({generate_join_code() for _ in range(20)}) > 1

    def test_normalize(self):
        assert normalize_join_code("  abcd2345 ") == "ABCD2345"
