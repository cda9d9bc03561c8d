"""Tests for vaultlinker.exclusion — per-line zones and do-not-back-populate patterns."""

from __future__ import annotations

import pytest

from vaultlinker.exclusion import collect_exclusion_zones, compile_do_not_back_populate, overlaps_zone
from vaultlinker.models import LinkSpan


class TestCollectExclusionZones:
    def test_link_spans_for_this_line_only(self):
        spans = [LinkSpan(1, 0, 5, "[[a]]"), LinkSpan(2, 3, 8, "[[b]]")]
        assert collect_exclusion_zones("[[a]] text", 1, spans) == [(0, 5)]

    def test_markdown_link(self):
        line = "see [docs](https://x.io) now"
        assert collect_exclusion_zones(line, 1) == [(4, 24)]

    def test_inline_code(self):
        assert collect_exclusion_zones("run `make all` now", 1) == [(4, 14)]

    def test_sorted_by_start(self):
        line = "`code` then [link](url)"
        spans = [LinkSpan(1, 20, 23, "x")]
        zones = collect_exclusion_zones(line, 1, spans)
        assert zones == sorted(zones)
        assert zones[0] == (0, 6)

    def test_no_zones(self):
        assert collect_exclusion_zones("plain text", 1) == []


class TestOverlapsZone:
    def test_inside(self):
        assert overlaps_zone(2, 4, [(0, 5)])

    def test_partial_overlap(self):
        assert overlaps_zone(4, 8, [(0, 5)])

    def test_adjacent_is_not_overlap(self):
        assert not overlaps_zone(5, 8, [(0, 5)])
        assert not overlaps_zone(0, 3, [(3, 6)])

    def test_empty_zones(self):
        assert not overlaps_zone(0, 3, [])


class TestCompileDoNotBackPopulate:
    def test_case_insensitive_whole_word(self):
        (pattern,) = compile_do_not_back_populate(["Bill"])
        assert pattern.search("pay the BILL today")
        assert not pattern.search("billing cycle")

    def test_special_characters_escaped(self):
        (pattern,) = compile_do_not_back_populate(["a.b"])
        assert pattern.search("x a.b y")
        assert not pattern.search("x axb y")

    @pytest.mark.parametrize("bad", ["", "   ", None, 3])
    def test_empty_or_non_string_rejected(self, bad):
        with pytest.raises(ValueError, match="index 0"):
            compile_do_not_back_populate([bad])
