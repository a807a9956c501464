"""
Tests for the access level hierarchy.
"""
import itertools

import pytest

from access_control.core.exceptions import UnknownAccessLevelError
from access_control.core.levels import (
    AccessLevel, coerce_level, max_level, parse_level, rank, satisfies,
)

ALL_LEVELS = list(AccessLevel)


class TestRank:

    def test_ranks_follow_none_read_edit_create(self):
        assert [rank(level) for level in ALL_LEVELS] == [0, 1, 2, 3]

    def test_max_level_is_create(self):
        assert max_level() is AccessLevel.CREATE


class TestSatisfies:

    def test_matches_rank_comparison_for_every_pair(self):
        for have, need in itertools.product(ALL_LEVELS, repeat=2):
            assert satisfies(have, need) == (rank(have) >= rank(need))

    def test_reflexive(self):
        for level in ALL_LEVELS:
            assert satisfies(level, level)

    def test_transitive(self):
        for a, b, c in itertools.product(ALL_LEVELS, repeat=3):
            if satisfies(a, b) and satisfies(b, c):
                assert satisfies(a, c)

    def test_none_satisfies_only_none(self):
        assert satisfies(AccessLevel.NONE, AccessLevel.NONE)
        assert not satisfies(AccessLevel.NONE, AccessLevel.READ)


class TestParsing:

    @pytest.mark.parametrize("value", ["none", "read", "edit", "create"])
    def test_parse_accepts_canonical_tokens(self, value):
        assert parse_level(value).value == value

    def test_parse_passes_enum_through(self):
        assert parse_level(AccessLevel.EDIT) is AccessLevel.EDIT

    @pytest.mark.parametrize("value", ["view", "READ", "", "delete", None, 1])
    def test_parse_rejects_anything_else(self, value):
        with pytest.raises(UnknownAccessLevelError):
            parse_level(value)

    def test_coerce_fails_closed_on_unknown_value(self, caplog):
        assert coerce_level("view") is AccessLevel.NONE
        assert "not recognised" in caplog.text

    def test_coerce_treats_missing_as_none(self):
        assert coerce_level(None) is AccessLevel.NONE

    def test_coerce_keeps_valid_values(self):
        assert coerce_level("create") is AccessLevel.CREATE
