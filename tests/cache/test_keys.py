"""Unit tests for canonical call rendering and key hashing."""
from __future__ import annotations

import functools
import re
from collections import OrderedDict, namedtuple
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from modelcache.cache.keys import CIRCULAR, CacheKey, canonical_form, canonicalize, hash_key


class Op(Enum):
    """Stand-in for an ORM's symbolic comparison operators."""

    lte = "lte"
    gte = "gte"


class Fn:
    """Stand-in for an ORM SQL function call object."""

    def __init__(self, name, *args):
        self.fn = name
        self.args = args


class Slotted:
    __slots__ = ("a", "b")

    def __init__(self, a, b):
        self.a = a
        self.b = b


@dataclass
class Where:
    column: str
    value: int


Point = namedtuple("Point", "x y")


def version_query(now_fn):
    return {
        "where": {
            "config": "07d54b5c-78d0-4315-9ffc-581a4afa6f6d",
            "start_date": {Op.lte: now_fn},
        },
        "order": [["major", "DESC"], ["minor", "DESC"], ["patch", "DESC"]],
    }


class TestDeterminism:
    """Same call descriptor, same key."""

    def test_repeated_invocations_are_equal(self):
        query = version_query(Fn("NOW"))
        first = canonicalize("Version", "find_all", (query,))
        assert all(canonicalize("Version", "find_all", (query,)) == first for _ in range(5))

    def test_independently_built_arguments_are_equal(self):
        a = canonicalize("Version", "find_all", (version_query(Fn("NOW")),))
        b = canonicalize("Version", "find_all", (version_query(Fn("NOW")),))
        assert a == b
        assert hash_key(a) == hash_key(b)

    def test_distinct_orm_queries_get_distinct_hashes(self):
        queries = [
            version_query(Fn("NOW")),
            version_query(Fn("NOW-XXX")),
            {**version_query(None), "where": {"config": "07d54b5c-78d0-4315-9ffc-581a4afa6f6d", "start_date": {}}},
        ]
        hashes = {CacheKey.build("Version", "find_all", (q,)).digest for q in queries}
        hashes_again = {CacheKey.build("Version", "find_all", (q,)).digest for q in queries}
        assert len(hashes) == len(queries)
        assert hashes == hashes_again

    def test_namespace_and_operation_are_part_of_the_key(self):
        args = ({"where": {"id": 1}},)
        keys = {
            CacheKey.build("User", "find_one", args).digest,
            CacheKey.build("Page", "find_one", args).digest,
            CacheKey.build("User", "find_all", args).digest,
        }
        assert len(keys) == 3

    def test_keyword_order_does_not_matter(self):
        a = canonicalize("User", "find_all", (), {"limit": 10, "offset": 5})
        b = canonicalize("User", "find_all", (), {"offset": 5, "limit": 10})
        assert a == b

    def test_positional_and_keyword_calls_differ(self):
        assert canonicalize("User", "find_one", (1,)) != canonicalize("User", "find_one", (), {"pk": 1})


class TestCallables:
    """Callables are rendered by stable tags, never by identity."""

    def test_equivalent_lambdas_built_per_call_are_equal(self):
        def make_predicate():
            return lambda row: row["active"]

        first, second = make_predicate(), make_predicate()
        assert first is not second
        assert canonical_form({"filter": first}) == canonical_form({"filter": second})

    def test_different_functions_differ(self):
        def active(row):
            return row["active"]

        def inactive(row):
            return not row["active"]

        assert canonical_form([active]) != canonical_form([inactive])

    def test_builtins_and_classes_are_tagged(self):
        rendered = canonical_form([len, str.upper, Fn])
        assert "<builtin len>" in rendered
        assert "<class " in rendered and "Fn>" in rendered
        assert "0x" not in rendered

    def test_closures_render_captured_values(self):
        """Predicates from one factory differ exactly when their captures differ."""

        def older_than(age):
            return lambda row: row["age"] > age

        assert canonical_form({"filter": older_than(18)}) != canonical_form({"filter": older_than(65)})
        assert canonical_form({"filter": older_than(18)}) == canonical_form({"filter": older_than(18)})
        assert "age=18" in canonical_form(older_than(18))

    def test_defaults_are_rendered(self):
        def limited(limit):
            def query(rows, n=limit, *, order=("id",)):
                return rows[:n]

            return query

        assert canonical_form(limited(10)) != canonical_form(limited(20))
        assert canonical_form(limited(10)) == canonical_form(limited(10))

    def test_recursive_closure_is_marked_circular(self):
        def make_walker():
            def walk(node):
                return [walk(child) for child in node]

            return walk

        assert CIRCULAR in canonical_form(make_walker())
        assert canonical_form(make_walker()) == canonical_form(make_walker())

    def test_bound_methods_render_their_instance(self):
        a = canonical_form(Fn("NOW").__init__)
        b = canonical_form(Fn("LATER").__init__)
        assert a != b
        assert a == canonical_form(Fn("NOW").__init__)
        assert a.startswith("<method ")
        assert "'NOW'" in a

    def test_bound_builtin_methods_render_their_owner(self):
        assert canonical_form("abc".startswith) != canonical_form("xyz".startswith)
        assert canonical_form("abc".startswith) == canonical_form("abc".startswith)

    def test_classmethods_and_modules_are_tagged(self):
        assert canonical_form(dict.fromkeys) == canonical_form(dict.fromkeys)
        assert canonical_form(re) == "<module re>"

    def test_partial_includes_bound_arguments(self):
        a = canonical_form(functools.partial(max, 1, key=abs))
        b = canonical_form(functools.partial(max, 2, key=abs))
        assert a != b
        assert a == canonical_form(functools.partial(max, 1, key=abs))


class TestValueKinds:
    """Rendering of containers, symbols and objects."""

    def test_enum_members_render_as_symbols(self):
        assert canonical_form(Op.lte) == f"<symbol {Op.__module__}.Op.lte>"
        assert canonical_form({Op.lte: 1}) != canonical_form({Op.gte: 1})

    def test_scalars_keep_their_type(self):
        assert canonical_form(1) != canonical_form("1")
        assert canonical_form(1) != canonical_form(1.0)
        assert canonical_form(True) == "True"
        assert canonical_form(None) == "None"

    def test_value_types_use_their_repr(self):
        value = [date(2024, 1, 2), datetime(2024, 1, 2, tzinfo=timezone.utc), Decimal("1.50")]
        assert canonical_form(value) == repr(value)

    def test_mapping_insertion_order_is_preserved(self):
        assert canonical_form({"a": 1, "b": 2}) != canonical_form({"b": 2, "a": 1})

    def test_mapping_types_are_distinguished(self):
        assert canonical_form(OrderedDict(a=1)) != canonical_form({"a": 1})

    def test_sets_are_sorted(self):
        assert canonical_form({3, 1, 2}) == canonical_form({2, 3, 1})
        assert canonical_form(frozenset({"x"})) != canonical_form({"x"})

    def test_list_and_tuple_differ(self):
        assert canonical_form([1, 2]) == "[1, 2]"
        assert canonical_form((1, 2)) == "(1, 2)"

    def test_namedtuple_and_dataclass_render_fields(self):
        assert "x=1, y=2" in canonical_form(Point(1, 2))
        assert "column='age', value=30" in canonical_form(Where("age", 30))

    def test_plain_and_slotted_objects_render_state(self):
        assert canonical_form(Fn("NOW")) != canonical_form(Fn("NOW-XXX"))
        assert canonical_form(Slotted(1, 2)) == canonical_form(Slotted(1, 2))
        assert canonical_form(Slotted(1, 2)) != canonical_form(Slotted(1, 3))

    def test_stateless_objects_render_as_class_tag(self):
        assert canonical_form(object()) == canonical_form(object()) == "<object>"


class TestUnboundedInput:
    """No truncation and no recursion limit."""

    def test_long_lists_are_not_truncated(self):
        a = list(range(20_000))
        b = list(range(20_000))
        b[-1] = -1
        assert canonical_form(a) != canonical_form(b)

    def test_deep_nesting_is_rendered_completely(self):
        deep = "leaf"
        for _ in range(5_000):
            deep = [deep]
        rendered = canonical_form(deep)
        assert rendered.count("[") == 5_000
        assert "'leaf'" in rendered

    def test_circular_references_are_marked(self):
        node = {"name": "root"}
        node["self"] = node
        rendered = canonical_form(node)
        assert CIRCULAR in rendered
        assert canonical_form(node) == rendered

    def test_shared_references_are_rendered_twice(self):
        shared = [1, 2]
        assert canonical_form([shared, shared]) == "[[1, 2], [1, 2]]"


class TestHashing:
    def test_digest_is_fixed_size_hex(self):
        for canonical in ("", "x", "y" * 100_000):
            assert re.fullmatch(r"[0-9a-f]{32}", hash_key(canonical))

    def test_cache_key_str_is_digest(self):
        key = CacheKey.build("User", "find_one", ({"where": {"username": "janedoe"}},))
        assert str(key) == key.digest == hash_key(key.canonical)
        assert key.namespace == "User"
        assert key.operation == "find_one"
