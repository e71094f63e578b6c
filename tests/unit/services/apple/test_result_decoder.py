"""Tests for osascript source-form parsing and decoding."""

from __future__ import annotations

import pytest

from services.apple.result_decoder import (
    ResponseNode,
    ResultDecodeError,
    ResultDecoder,
    as_list,
    as_text,
    as_text_list,
)


@pytest.fixture
def decoder() -> ResultDecoder:
    return ResultDecoder()


class TestDecodeRule:
    def test_node_with_items_is_a_list(self, decoder: ResultDecoder) -> None:
        node = ResponseNode(items=(ResponseNode(string_value="a"), ResponseNode(string_value="b")))
        assert decoder.decode(node) == ["a", "b"]

    def test_items_win_over_string_value(self, decoder: ResultDecoder) -> None:
        node = ResponseNode(items=(ResponseNode(string_value="x"),), string_value="ignored")
        assert decoder.decode(node) == ["x"]

    def test_string_value_is_a_string(self, decoder: ResultDecoder) -> None:
        assert decoder.decode(ResponseNode(string_value="hello")) == "hello"

    def test_empty_node_is_none(self, decoder: ResultDecoder) -> None:
        assert decoder.decode(ResponseNode()) is None

    def test_children_without_value_are_dropped(self, decoder: ResultDecoder) -> None:
        node = ResponseNode(items=(ResponseNode(string_value="a"), ResponseNode(), ResponseNode(string_value="c")))
        assert decoder.decode(node) == ["a", "c"]

    def test_nested_lists(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{{"a", "1"}, {"b", "2"}}') == [["a", "1"], ["b", "2"]]


class TestNoCoercion:
    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            ('"123"', "123"),
            ("123", "123"),
            ("2.5", "2.5"),
            ("true", "true"),
            ('"true"', "true"),
            ('""', ""),
        ],
    )
    def test_scalars_stay_strings(self, decoder: ResultDecoder, output: str, expected: str) -> None:
        assert decoder.decode_output(output) == expected

    def test_numbers_inside_lists_stay_strings(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{"Song", 215.5, 0, 1999}') == ["Song", "215.5", "0", "1999"]


class TestSourceFormParsing:
    def test_escapes(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('"say \\"hi\\" \\\\ now"') == 'say "hi" \\ now'

    def test_empty_output_is_none(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output("") is None
        assert decoder.decode_output("\n") is None

    def test_empty_list_is_none(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output("{}") is None

    def test_missing_value_is_dropped(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{"a", missing value, "b"}') == ["a", "b"]

    def test_record_keys_are_stripped(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{name:"Mix", |persistent id|:"ABC"}') == ["Mix", "ABC"]

    def test_date_literal_keeps_text(self, decoder: ResultDecoder) -> None:
        text = "Monday, January 1, 2024 at 10:00:00 AM"
        assert decoder.decode_output(f'date "{text}"') == text

    def test_object_specifier_is_kept_verbatim(self, decoder: ResultDecoder) -> None:
        output = 'user playlist id 42 of source id 64 of application "Music"'
        assert decoder.decode_output(output) == output

    def test_trailing_newline_is_ignored(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{"a"}\n') == ["a"]

    def test_name_containing_braces(self, decoder: ResultDecoder) -> None:
        assert decoder.decode_output('{"{weird}, name"}') == ["{weird}, name"]

    def test_tagged_library_listing(self, decoder: ResultDecoder) -> None:
        output = '{{"root", {{"Jan - 24", "AAA", ""}}}, {"folders", {{"2024", {}}}}}'
        assert decoder.decode_output(output) == [
            ["root", [["Jan - 24", "AAA", ""]]],
            ["folders", [["2024"]]],
        ]

    @pytest.mark.parametrize("output", ['{"a", "b"', '"unterminated', '{"a",}', 'x {'])
    def test_malformed_output_raises(self, decoder: ResultDecoder, output: str) -> None:
        with pytest.raises(ResultDecodeError):
            decoder.decode_output(output)


class TestFieldHelpers:
    def test_as_text_unwraps_single_item_list(self) -> None:
        assert as_text(["x"]) == "x"
        assert as_text("x") == "x"

    def test_as_text_rejects_multi_item_list(self) -> None:
        assert as_text(["a", "b"]) is None
        assert as_text(None) is None

    def test_as_list_treats_scalar_as_single_item(self) -> None:
        assert as_list("only") == ["only"]
        assert as_list(None) == []
        assert as_list(["a"]) == ["a"]

    def test_as_text_list_single_name(self) -> None:
        assert as_text_list("2024") == ["2024"]

    def test_as_text_list_empty_string_is_empty(self) -> None:
        assert as_text_list("") == []

    def test_as_text_list_skips_nested_records(self) -> None:
        assert as_text_list(["a", ["b", "c"], "d"]) == ["a", "d"]
