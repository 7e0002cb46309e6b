"""Tests for QueryCodec — query path serialization in both directions."""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime

import pytest

from restdriver.codec.filters import QueryCodec, TokenReader, split_path
from restdriver.domain.errors import (
    InvalidOperandError,
    InvalidOperatorError,
    InvalidOrderError,
    InvalidPathError,
    InvalidPrefixError,
    InvalidValueError,
    QuerySerializationError,
    TruncatedInputError,
    UnsupportedSerializationError,
)
from restdriver.domain.query import AnyRule, DecodedQuery, Limit, Operation, Query, RegExpLiteral
from restdriver.schema.registry import SchemaRegistry


class TestSplitPath:
    def test_strips_leading_markers(self) -> None:
        assert split_path("/query/limit/0/1") == ["query", "limit", "0", "1"]
        assert split_path("./query/limit/0/1") == ["query", "limit", "0", "1"]
        assert split_path("  query  ") == ["query"]

    def test_keeps_empty_tokens(self) -> None:
        assert split_path("query/pre/1/1/name/eq/") == ["query", "pre", "1", "1", "name", "eq", ""]

    def test_empty(self) -> None:
        assert split_path("") == []
        assert split_path("/") == []


class TestTokenReader:
    def test_pop_past_end_raises(self) -> None:
        reader = TokenReader(["a"])
        assert reader.pop("first") == "a"
        assert not reader
        with pytest.raises(TruncatedInputError, match="second"):
            reader.pop("second")

    def test_negative_count_raises(self) -> None:
        with pytest.raises(InvalidValueError):
            TokenReader(["-1"]).pop_count("count")

    def test_expect_wrong_prefix(self) -> None:
        with pytest.raises(InvalidPrefixError):
            TokenReader(["sort"]).expect("limit", "limits")


class TestEmptyQuery:
    def test_nothing_to_emit(self, codec: QueryCodec) -> None:
        assert codec.to_url("user") == ""
        assert codec.to_url("user", Query()) == ""
        assert codec.to_url("user", None, []) == ""

    def test_non_query_path_decodes_empty(self, codec: QueryCodec) -> None:
        assert codec.from_url("user", "") == DecodedQuery()
        assert codec.from_url("user", "users/42") == DecodedQuery()

    def test_bare_prefix(self, codec: QueryCodec) -> None:
        assert codec.from_url("user", "query") == DecodedQuery()


class TestSortAndLimit:
    def test_sort_then_limit(self, codec: QueryCodec) -> None:
        query = Query(sort={"age": "desc"}, limit=Limit(start=0, count=10))
        assert codec.to_url("user", query) == "query/sort/1/age/desc/limit/0/10"

    def test_decode_sort_then_limit(self, codec: QueryCodec) -> None:
        decoded = codec.from_url("user", "query/sort/1/age/desc/limit/0/10")
        assert decoded.sort == {"age": "desc"}
        assert decoded.limit == Limit(start=0, count=10)
        assert decoded.pre is None
        assert decoded.post is None
        assert decoded.fields == []

    def test_sort_keeps_insertion_order(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(sort={"name": "asc", "age": "desc"}))
        assert url == "query/sort/2/name/asc/age/desc"
        assert list(codec.from_url("user", url).sort or {}) == ["name", "age"]

    def test_invalid_order(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidOrderError):
            codec.to_url("user", Query(sort={"age": "up"}))
        with pytest.raises(InvalidOrderError):
            codec.from_url("user", "query/sort/1/age/up")

    def test_invalid_sort_path(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidPathError):
            codec.to_url("user", Query(sort={"height": "asc"}))
        with pytest.raises(InvalidPathError):
            codec.from_url("user", "query/sort/1/height/asc")

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("query/limit/5", Limit(start=5, count=0)),
            ("query/limit/abc/10", Limit(start=0, count=10)),
            ("query/limit/-4/10", Limit(start=0, count=10)),
            ("query/limit", Limit(start=0, count=0)),
        ],
    )
    def test_limit_is_lenient(self, codec: QueryCodec, url: str, expected: Limit) -> None:
        assert codec.from_url("user", url).limit == expected


class TestViewedFields:
    def test_fields(self, codec: QueryCodec) -> None:
        assert codec.to_url("user", None, ["name", "age"]) == "query/fields/2/name/age"
        assert codec.from_url("user", "query/fields/2/name/age").fields == ["name", "age"]

    def test_duplicates_keep_declared_count(self, codec: QueryCodec) -> None:
        assert codec.to_url("user", None, ["name", "name", "age"]) == "query/fields/3/name/age"

    def test_duplicate_output_is_truncated_on_decode(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", None, ["name", "name", "age"])
        with pytest.raises(TruncatedInputError):
            codec.from_url("user", url)

    def test_duplicate_count_swallows_next_section(self, codec: QueryCodec) -> None:
        # The surplus count consumes the next prefix as a field path.
        with pytest.raises(UnsupportedSerializationError):
            codec.from_url("user", "query/fields/3/name/age/limit/0/10")

    def test_duplicates_log_a_warning(
        self, codec: QueryCodec, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level("WARNING", logger="restdriver.codec.filters"):
            codec.to_url("user", None, ["age", "age"])
        assert "duplicates" in caplog.text

    def test_fields_come_first(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(limit=Limit(start=1, count=2)), ["name"])
        assert url == "query/fields/1/name/limit/1/2"


class TestMatchRules:
    def test_single_rule(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"eq": "Ann Lee"}}))
        assert url == "query/pre/1/1/name/eq/Ann%20Lee"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.kind == "single"
        assert decoded.pre.rules == [{"name": Operation(operator="eq", value="Ann Lee")}]

    def test_post_rule(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(post={"age": {"neq": 5}}))
        assert url == "query/post/1/1/age/neq/5"
        decoded = codec.from_url("user", url)
        assert decoded.pre is None
        assert decoded.post is not None
        assert decoded.post.rules[0]["age"].value == 5

    def test_alternatives(self, codec: QueryCodec) -> None:
        pre = [{"name": {"eq": "Ann"}}, {"age": {"lt": 30}, "active": {"eq": True}}]
        url = codec.to_url("user", Query(pre=pre))
        assert url == "query/pre/2/1/name/eq/Ann/2/age/lt/30/active/eq/1"
        decoded = codec.from_url("user", url)
        assert isinstance(decoded.pre, AnyRule)
        assert decoded.pre.rules[1]["age"].value == 30
        assert decoded.pre.rules[1]["active"].value is True

    def test_empty_alternatives_are_dropped(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre=[{"name": {"eq": "Ann"}}, {}]))
        assert url == "query/pre/1/1/name/eq/Ann"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.kind == "single"

    def test_empty_rule_emits_zero_count(self, codec: QueryCodec) -> None:
        assert codec.to_url("user", Query(pre={})) == "query/pre/0"
        assert codec.from_url("user", "query/pre/0").pre is None

    def test_between(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"age": {"between": [18, 65]}}))
        assert url == "query/pre/1/1/age/between/2/18/65"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["age"].value == [18, 65]

    def test_contain_encodes_each_item(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"contain": ("a b", "c")}}))
        assert url == "query/pre/1/1/name/contain/2/a%20b/c"

    def test_notcontain_empty_list(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"notcontain": []}}))
        assert url == "query/pre/1/1/name/notcontain/0"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["name"].value == []

    def test_nested_path(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"address.zip": {"gte": 75000}}))
        assert url == "query/pre/1/1/address.zip/gte/75000"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["address.zip"].value == 75000

    def test_date_value(self, codec: QueryCodec) -> None:
        when = datetime(2020, 1, 1, tzinfo=UTC)
        url = codec.to_url("user", Query(pre={"created": {"gte": when}}))
        assert url == "query/pre/1/1/created/gte/1577836800000"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["created"].value == when

    def test_calendar_date_is_midnight_utc(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"created": {"gte": date(2020, 1, 1)}}))
        assert url == "query/pre/1/1/created/gte/1577836800000"

    def test_whole_number_on_number_column(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"score": {"eq": 1.0}}))
        assert url == "query/pre/1/1/score/eq/1"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        value = decoded.pre.rules[0]["score"].value
        assert isinstance(value, float)
        assert value == 1.0

    def test_fractional_number_column(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"score": {"between": [0.5, 2.5]}}))
        assert url == "query/pre/1/1/score/between/2/0.5/2.5"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["score"].value == [0.5, 2.5]

    def test_large_and_small_numbers(self, codec: QueryCodec) -> None:
        url = codec.to_url(
            "user", Query(pre={"score": {"lt": 1e16}}, post={"score": {"gt": 1e-7}})
        )
        assert url == "query/pre/1/1/score/lt/10000000000000000/post/1/1/score/gt/1e-7"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.post is not None
        assert decoded.pre.rules[0]["score"].value == 1e16
        assert decoded.post.rules[0]["score"].value == 1e-7

    def test_non_finite_numbers(self, codec: QueryCodec) -> None:
        url = codec.to_url(
            "user", Query(pre={"score": {"gt": -math.inf}}, post={"score": {"neq": math.nan}})
        )
        assert url == "query/pre/1/1/score/gt/-Infinity/post/1/1/score/neq/NaN"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.post is not None
        assert decoded.pre.rules[0]["score"].value == -math.inf
        assert math.isnan(decoded.post.rules[0]["score"].value)

    def test_false_and_none_share_a_token(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"active": {"eq": False}, "nickname": {"eq": None}}))
        assert url == "query/pre/1/2/active/eq/0/nickname/eq/0"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["active"].value is False
        assert decoded.pre.rules[0]["nickname"].value is None

    def test_reserved_characters_in_values(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"eq": "a/b?c"}}))
        assert url == "query/pre/1/1/name/eq/a%2Fb%3Fc"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["name"].value == "a/b?c"

    def test_empty_string_value(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"eq": ""}}))
        assert url == "query/pre/1/1/name/eq/"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["name"].value == ""


class TestRegExp:
    def test_literal(self, codec: QueryCodec) -> None:
        regexp = RegExpLiteral(pattern="^A.*", flags="i")
        url = codec.to_url("user", Query(pre={"name": {"regexp": regexp}}))
        assert url == "query/pre/1/1/name/regexp/%5EA.*/i"
        decoded = codec.from_url("user", url)
        assert decoded.pre is not None
        assert decoded.pre.rules[0]["name"].value == regexp

    def test_compiled_pattern(self, codec: QueryCodec) -> None:
        compiled = re.compile("smith$", re.IGNORECASE | re.MULTILINE)
        url = codec.to_url("user", Query(pre={"name": {"regexp": compiled}}))
        assert url == "query/pre/1/1/name/regexp/smith%24/im"

    def test_pair(self, codec: QueryCodec) -> None:
        url = codec.to_url("user", Query(pre={"name": {"regexp": ["a+", ""]}}))
        assert url == "query/pre/1/1/name/regexp/a%2B/"

    def test_plain_string_rejected(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidOperandError):
            codec.to_url("user", Query(pre={"name": {"regexp": "^A"}}))

    def test_compile_roundtrip(self) -> None:
        assert RegExpLiteral(pattern="^a", flags="i").compile().match("Abc")


class TestErrors:
    def test_unknown_path(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidPathError):
            codec.to_url("user", Query(pre={"height": {"eq": 1}}))

    @pytest.mark.parametrize("path", ["address.street", "name.first", "address."])
    def test_unknown_nested_path(self, codec: QueryCodec, path: str) -> None:
        with pytest.raises(InvalidPathError):
            codec.to_url("user", Query(pre={path: {"eq": 1}}))

    def test_unknown_model(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidPathError):
            codec.to_url("ghost", Query(sort={"age": "asc"}))

    def test_unknown_operator(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidOperatorError):
            codec.to_url("user", Query(pre={"name": {"like": "x"}}))
        with pytest.raises(InvalidOperatorError):
            codec.from_url("user", "query/pre/1/1/name/like/x")

    def test_sequence_operator_needs_list(self, codec: QueryCodec) -> None:
        with pytest.raises(InvalidOperandError):
            codec.to_url("user", Query(pre={"age": {"between": 5}}))

    def test_operand_error_is_type_error(self) -> None:
        assert issubclass(InvalidOperandError, TypeError)

    def test_unsupported_section(self, codec: QueryCodec) -> None:
        with pytest.raises(UnsupportedSerializationError, match="Unsupported"):
            codec.from_url("user", "query/bogus/1")

    def test_trailing_slash_after_complete_section(self, codec: QueryCodec) -> None:
        # An empty token is only a value inside a section; here it is read as a prefix.
        with pytest.raises(UnsupportedSerializationError, match="Unsupported"):
            codec.from_url("user", "query/limit/0/10/")

    @pytest.mark.parametrize(
        "url",
        [
            "query/pre/1",
            "query/pre/1/1/name/eq",
            "query/pre/1/1/age/between/3/1/2",
            "query/pre/1/1/name/regexp/abc",
            "query/sort/2/age/desc",
            "query/fields/2/name",
        ],
    )
    def test_truncated(self, codec: QueryCodec, url: str) -> None:
        with pytest.raises(TruncatedInputError):
            codec.from_url("user", url)

    @pytest.mark.parametrize(
        "url",
        [
            "query/sort/x/age/desc",
            "query/sort/-1",
            "query/pre/1/1/name/eq/%FF",
            "query/pre/1/1/age/eq/old",
        ],
    )
    def test_invalid_values(self, codec: QueryCodec, url: str) -> None:
        with pytest.raises(InvalidValueError):
            codec.from_url("user", url)

    def test_all_errors_share_a_base(self, codec: QueryCodec) -> None:
        with pytest.raises(QuerySerializationError):
            codec.from_url("user", "query/bogus")
        assert issubclass(QuerySerializationError, ValueError)


class TestPublicSurface:
    def test_full_section_order(self, codec: QueryCodec) -> None:
        query = Query(
            pre={"age": {"gt": 1}},
            post={"name": {"eq": "x"}},
            sort={"name": "asc", "age": "desc"},
            limit=Limit(start=5, count=20),
        )
        url = codec.to_url("user", query, ["name"])
        assert url == (
            "query/fields/1/name/pre/1/1/age/gt/1/post/1/1/name/eq/x"
            "/sort/2/name/asc/age/desc/limit/5/20"
        )

    @pytest.mark.parametrize(
        "url",
        [
            "query/fields/2/name/address.city",
            "query/pre/2/1/name/eq/Ann/1/age/between/2/1/9/sort/1/age/asc",
            "query/post/1/1/name/regexp/%5Ea/i/limit/0/50",
        ],
    )
    def test_decoded_query_encodes_back(self, codec: QueryCodec, url: str) -> None:
        decoded = codec.from_url("user", url)
        assert codec.to_url("user", decoded, decoded.fields) == url

    def test_mapping_query(self, codec: QueryCodec) -> None:
        assert codec.to_url("user", {"sort": {"age": "asc"}}) == "query/sort/1/age/asc"

    def test_entity_instance_as_model(self, codec: QueryCodec, registry: SchemaRegistry) -> None:
        user = registry.get("user")
        assert codec.to_url(user, Query(sort={"age": "asc"})) == "query/sort/1/age/asc"

    def test_leading_slash_is_ignored(self, codec: QueryCodec) -> None:
        decoded = codec.from_url("user", "/query/limit/0/10")
        assert decoded.limit == Limit(start=0, count=10)

    def test_repeated_section_last_wins(self, codec: QueryCodec) -> None:
        decoded = codec.from_url("user", "query/limit/0/10/limit/10/10")
        assert decoded.limit == Limit(start=10, count=10)
