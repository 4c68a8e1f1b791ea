"""
Tests for the index record: parsing, caching, and mutation.
"""

from __future__ import annotations

import os
from uuid import UUID, uuid4

import pytest

from uupass.errors import (
    DuplicateIdentifierError,
    IndexFormatError,
    NoIndexError,
    PathCollisionError,
)
from uupass.index import (
    Index,
    parse_index,
    serialize_index,
    to_forward_map,
    to_reverse_map,
)

A = UUID("11111111-1111-4111-8111-111111111111")
B = UUID("22222222-2222-4222-8222-222222222222")


class TestIndexCodec:
    """Tests for parse_index / serialize_index."""

    def test_parse_lines(self):
        raw = f"{A} web/github\n{B} mail/personal\n"
        assert parse_index(raw) == [(A, "web/github"), (B, "mail/personal")]

    def test_path_may_contain_spaces(self):
        assert parse_index(f"{A} bank/my main account\n") == [(A, "bank/my main account")]

    def test_blank_lines_are_skipped(self):
        assert parse_index(f"\n{A} x\n\n") == [(A, "x")]

    def test_missing_separator(self):
        with pytest.raises(IndexFormatError):
            parse_index(f"{A}\n")

    def test_bad_uuid(self):
        with pytest.raises(IndexFormatError):
            parse_index("nope web/github\n")

    def test_crlf_line_endings(self):
        assert parse_index(f"{A} a\r\n{B} b\r\n") == [(A, "a"), (B, "b")]

    def test_unicode_separators_stay_inside_paths(self):
        items = [(A, "notes/page\x0cbreak"), (B, "x\x85y\u2028z\x1eq")]
        assert parse_index(serialize_index(items)) == items

    def test_serialize(self):
        assert serialize_index([(A, "a"), (B, "b/c")]) == f"{A} a\n{B} b/c\n"

    def test_maps(self):
        items = [(A, "a"), (B, "b")]
        assert to_forward_map(items) == {A: "a", B: "b"}
        assert to_reverse_map(items) == {"a": A, "b": B}


class TestIndex:
    """Tests for the cached Index object."""

    def test_missing_index(self, store, config):
        with pytest.raises(NoIndexError):
            Index(store, config).get()

    def test_insert_and_lookup(self, index):
        index.insert(A, "web/github")
        assert index.get() == [(A, "web/github")]
        assert index.path_of(A) == "web/github"
        assert index.identifier_of("web/github") == A

    def test_get_returns_a_copy(self, index):
        index.insert(A, "a")
        index.get().clear()
        assert index.get() == [(A, "a")]

    def test_sorted_by_path_without_history(self, index):
        index.write([(A, "zeta"), (B, "Alpha")])
        assert [path for _, path in index.get()] == ["Alpha", "zeta"]

    def test_most_used_first(self, index):
        index.write([(A, "alpha"), (B, "beta")])
        index.touch(B)
        index.touch(B)
        index.touch(A)
        index.invalidate()
        assert index.get()[0] == (B, "beta")

    def test_write_invalidates_cache(self, index):
        index.insert(A, "a")
        assert index.get() == [(A, "a")]
        index.write([(B, "b")])
        assert index.get() == [(B, "b")]

    def test_external_change_is_picked_up(self, index, store):
        index.insert(A, "a")
        index.get()
        path = store.path_of(index.record_name)
        path.write_text(f"{B} b\n", encoding="utf-8")
        # force a distinct mtime even on coarse filesystems
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        assert index.get() == [(B, "b")]

    def test_remove_deletes_record(self, index, add_entry, store):
        entry = add_entry("web/github")
        index.remove(entry.uuid)
        assert index.get() == []
        assert not store.exists(f"uuids/{entry.uuid}")

    def test_move(self, index):
        index.insert(A, "a")
        index.insert(B, "b")
        index.move(A, "c")
        assert to_forward_map(index.get()) == {A: "c", B: "b"}

    def test_insert_rejects_collision(self, index):
        index.insert(A, "a")
        with pytest.raises(PathCollisionError):
            index.insert(uuid4(), "a")

    def test_insert_rejects_known_identifier(self, index):
        index.insert(A, "a")
        with pytest.raises(DuplicateIdentifierError):
            index.insert(A, "b")
        assert index.get() == [(A, "a")]

    def test_move_rejects_collision(self, index):
        index.insert(A, "a")
        index.insert(B, "b")
        with pytest.raises(PathCollisionError):
            index.move(A, "b")
        assert index.path_of(A) == "a"

    def test_move_onto_own_path_is_allowed(self, index):
        index.insert(A, "a")
        index.move(A, "a")
        assert index.get() == [(A, "a")]
