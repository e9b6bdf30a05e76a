"""Unit tests for token record parsing and normalization."""

import pytest

from tokengate.ownership.records import (
    FlatRecord,
    NestedRecord,
    StringIdRecord,
    StructuredTokenId,
    normalize_identifier,
    normalize_token_record,
    parse_token_record,
)


class TestNormalizeIdentifier:
    """Tests for normalize_identifier."""

    def test_adds_prefix_and_lowercases(self):
        assert normalize_identifier("ABC123") == "0xabc123"
        assert normalize_identifier("0xABC") == "0xabc"
        assert normalize_identifier("0XAbC") == "0xabc"

    def test_strips_whitespace(self):
        assert normalize_identifier("  0xabc \n") == "0xabc"

    @pytest.mark.parametrize("value", [None, "", "   ", 42, {"collection": "0x1"}, ["0x1"]])
    def test_non_strings_and_blanks_are_none(self, value):
        assert normalize_identifier(value) is None


class TestParseTokenRecord:
    """Tests for tagging raw payloads with their variant."""

    def test_string_token_data_id(self):
        record = parse_token_record({"token_data_id": "0xcreator::My Collection::Token #1"})
        assert isinstance(record, StringIdRecord)
        assert record.token_data_id == "0xcreator::My Collection::Token #1"

    def test_structured_token_data_id(self):
        record = parse_token_record(
            {"token_data_id": {"creator": "0xC", "collection": "Cats", "name": "Cat #1"}}
        )
        assert isinstance(record, NestedRecord)
        assert record.token_data_id == StructuredTokenId(creator="0xC", collection="Cats", name="Cat #1")

    def test_table_item_value_nests_id(self):
        """Token store items carry the structured id under id.token_data_id."""
        record = parse_token_record(
            {
                "amount": "1",
                "id": {
                    "token_data_id": {"creator": "0xC", "collection": "Cats", "name": "Cat #1"},
                    "property_version": "0",
                },
            }
        )
        assert isinstance(record, NestedRecord)
        assert record.token_data_id.collection == "Cats"

    def test_flat_record(self):
        record = parse_token_record({"collection": "0xabc", "creator": "0xdef"})
        assert isinstance(record, FlatRecord)
        assert record.attributes.collection == "0xabc"
        assert record.attributes.creator == "0xdef"

    @pytest.mark.parametrize("raw", [None, "not-a-record", 7, [], {}])
    def test_garbage_parses_to_empty_flat_record(self, raw):
        record = parse_token_record(raw)
        assert isinstance(record, FlatRecord)
        assert record.canonical().is_empty

    def test_wrong_types_at_every_level_are_tolerated(self):
        raw = {
            "token_data_id": 12,
            "collection": ["0xabc"],
            "current_token_data": {
                "collection_id": None,
                "token_data_id": "0xobject",
                "current_collection": "not-a-mapping",
            },
        }
        record = parse_token_record(raw)
        assert isinstance(record, FlatRecord)
        assert record.canonical().is_empty

    def test_structured_id_without_creator_or_collection_is_ignored(self):
        record = parse_token_record({"token_data_id": {"name": "Nameless"}})
        assert isinstance(record, FlatRecord)

    def test_parsed_record_passes_through(self):
        record = FlatRecord()
        assert parse_token_record(record) is record


class TestCanonicalToken:
    """Tests for reducing variants to canonical form."""

    def test_collection_ids_from_all_locations(self):
        token = normalize_token_record(
            {
                "collection_id": "0xA",
                "current_token_data": {
                    "collection_id": "0xB",
                    "current_collection": {"collection_id": "C"},
                },
            }
        )
        assert token.collection_ids == ("0xa", "0xb", "0xc")

    def test_flat_values_include_current_collection_fields(self):
        token = normalize_token_record(
            {
                "collection": "Cats",
                "current_token_data": {
                    "current_collection": {
                        "collection_name": "Dogs",
                        "creator_address": "0xD0D0",
                    },
                },
            }
        )
        assert token.flat_values == ("0xcats", "0xdogs", "0xd0d0")

    def test_structured_values_include_current_token_data_id(self):
        token = normalize_token_record(
            {
                "token_data_id": {"creator": "0x1", "collection": "Cats"},
                "current_token_data": {"token_data_id": {"creator": "0x2", "collection": "Dogs"}},
            }
        )
        assert token.structured_values == ("0xcats", "0x1", "0xdogs", "0x2")

    def test_string_id_segments(self):
        token = normalize_token_record({"token_data_id": "0xCreator::Cats::Cat #1"})
        assert token.segment_values == ("0xcreator", "0xcats")
        assert token.raw_ids == ("0xcreator::cats::cat #1",)

    def test_string_id_without_separator(self):
        token = normalize_token_record({"token_data_id": "0xdeadbeef"})
        assert token.segment_values == ("0xdeadbeef",)

    def test_duplicates_collapse(self):
        token = normalize_token_record(
            {"collection_id": "0xA", "current_token_data": {"collection_id": "0xa"}}
        )
        assert token.collection_ids == ("0xa",)
