# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.core.types_core import (
	FLOAT,
	INT,
	NULL,
	STR,
	Nullable,
	Union,
	comparable,
	lub,
	nullable,
	strip_null,
	union,
)


def test_nested_nullable_collapses() -> None:
	assert nullable(nullable(INT)) == nullable(INT) == Nullable(INT)
	assert nullable(NULL) == NULL
	assert nullable(union(INT, NULL)) == Nullable(INT)


def test_union_flattens_and_deduplicates() -> None:
	flat = union(union(INT, STR), union(STR, FLOAT))
	assert isinstance(flat, Union)
	assert all(not isinstance(m, Union) for m in flat.members)
	assert sorted(m.render() for m in flat.members) == ["float", "int", "str"]
	assert union(INT, INT) == INT


def test_null_member_lifts_to_nullable() -> None:
	t = union(INT, nullable(STR))
	assert isinstance(t, Nullable)
	assert t.render() == "(int | str)?"
	assert strip_null(t) == union(INT, STR)


def test_lub_of_numbers_widens_to_float() -> None:
	assert lub([INT, FLOAT]) == FLOAT
	assert lub([INT, NULL]) == nullable(INT)
	assert lub([STR, STR]) == STR


def test_comparable_ignores_nullability_only() -> None:
	assert comparable(nullable(INT), INT)
	assert comparable(NULL, nullable(STR))
	assert comparable(NULL, NULL)
	assert not comparable(INT, STR)
	assert not comparable(INT, FLOAT)
