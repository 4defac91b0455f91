"""
Tests for bank and index decoding.
"""
import json

import pytest

from conftest import CAT_TERM
from yomidb.data.banks import (
    TermEntry,
    decode_bank,
    decode_index,
    decode_kanji,
    decode_kanji_meta,
    decode_tag,
    decode_term,
    decode_term_meta,
)
from yomidb.errors import DecodeError


def _raw(value):
    return json.dumps(value, ensure_ascii=False).encode("utf-8")


class TestDecodeIndex:
    def test_required_fields(self):
        index = decode_index(_raw({"title": "JMdict", "revision": "jmdict4"}))
        assert index.title == "JMdict"
        assert index.revision == "jmdict4"
        assert index.format == 3
        assert index.sequenced is False

    def test_optional_fields(self):
        index = decode_index(
            _raw(
                {
                    "title": "Freq",
                    "revision": 2,
                    "version": 3,
                    "author": "someone",
                    "frequencyMode": "rank-based",
                    "sequenced": True,
                }
            )
        )
        assert index.revision == "2"
        assert index.author == "someone"
        assert index.frequency_mode == "rank-based"
        assert index.sequenced is True

    def test_byte_order_mark_is_ignored(self):
        raw = b"\xef\xbb\xbf" + _raw({"title": "T", "revision": "r"})
        assert decode_index(raw).title == "T"

    @pytest.mark.parametrize(
        "payload",
        [{"revision": "1"}, {"title": "T"}, {"title": "", "revision": "1"}, ["T", "1"]],
    )
    def test_missing_identity_is_rejected(self, payload):
        with pytest.raises(DecodeError):
            decode_index(_raw(payload))

    def test_invalid_json(self):
        with pytest.raises(DecodeError, match="index.json"):
            decode_index(b"{not json")

    @pytest.mark.parametrize(
        "field, value",
        [
            ("author", ["a", "b"]),
            ("url", 5),
            ("description", {"en": "x"}),
            ("attribution", True),
            ("frequencyMode", 1),
        ],
    )
    def test_metadata_must_be_text(self, field, value):
        payload = {"title": "T", "revision": "1", field: value}
        with pytest.raises(DecodeError, match=f"{field} must be a string"):
            decode_index(_raw(payload))


class TestDecodeTerm:
    def test_cat_example(self):
        entry = decode_term(CAT_TERM, "term_bank_1.json[0]")
        assert entry == TermEntry(
            term="猫",
            reading="ねこ",
            definition_tags=None,
            rules=None,
            score=100,
            glossary=[{"type": "text", "text": "cat"}],
            sequence=1,
            term_tags="n",
        )

    def test_tag_strings_are_stripped(self):
        entry = decode_term(["a", "b", " n  ", "v5 ", 0, ["x"], None, "   "], "t")
        assert entry.definition_tags == "n"
        assert entry.rules == "v5"
        assert entry.term_tags is None
        assert entry.sequence is None

    def test_wrong_arity(self):
        with pytest.raises(DecodeError, match="expected 8 fields, got 7"):
            decode_term(CAT_TERM[:7], "term_bank_1.json[3]")

    def test_non_numeric_score(self):
        bad = list(CAT_TERM)
        bad[4] = "lots"
        with pytest.raises(DecodeError, match="score"):
            decode_term(bad, "t")

    def test_glossary_must_be_array(self):
        bad = list(CAT_TERM)
        bad[5] = "cat"
        with pytest.raises(DecodeError, match="glossary"):
            decode_term(bad, "t")

    def test_term_must_be_string(self):
        bad = list(CAT_TERM)
        bad[0] = 5
        with pytest.raises(DecodeError, match="term must be a string"):
            decode_term(bad, "t")


class TestDecodeTermMeta:
    def test_frequency_number(self):
        entry = decode_term_meta(["猫", "freq", 120], "m")
        assert entry.mode == "freq"
        assert entry.reading is None
        assert entry.data == 120

    def test_frequency_with_reading(self):
        entry = decode_term_meta(["猫", "freq", {"reading": "ねこ", "frequency": 5}], "m")
        assert entry.reading == "ねこ"

    def test_pitch_requires_reading(self):
        entry = decode_term_meta(["猫", "pitch", {"reading": "ねこ", "pitches": []}], "m")
        assert entry.reading == "ねこ"
        with pytest.raises(DecodeError):
            decode_term_meta(["猫", "pitch", {"pitches": []}], "m")
        with pytest.raises(DecodeError):
            decode_term_meta(["猫", "pitch", 3], "m")

    def test_unknown_mode(self):
        with pytest.raises(DecodeError, match="unsupported term meta mode"):
            decode_term_meta(["猫", "ipa", {}], "m")


class TestOtherRecords:
    def test_tag(self):
        tag = decode_tag(["n", "partOfSpeech", -3, "noun", 0], "tag")
        assert tag.name == "n"
        assert tag.sort_order == -3

    def test_tag_arity(self):
        with pytest.raises(DecodeError):
            decode_tag(["n", "partOfSpeech", -3, "noun"], "tag")

    def test_kanji(self):
        kanji = decode_kanji(["猫", "ビョウ", "ねこ", "", ["cat"], {"strokes": "11"}], "k")
        assert kanji.meanings == ["cat"]
        assert kanji.stats == {"strokes": "11"}

    def test_kanji_meanings_must_be_strings(self):
        with pytest.raises(DecodeError, match="meanings"):
            decode_kanji(["猫", "", "", "", [1], {}], "k")

    def test_kanji_meta(self):
        entry = decode_kanji_meta(["猫", "freq", 1702], "km")
        assert entry.mode == "freq"
        assert entry.data == 1702

    def test_kanji_meta_unknown_mode(self):
        with pytest.raises(DecodeError, match="unsupported kanji meta mode"):
            decode_kanji_meta(["猫", "pitch", {}], "km")


class TestDecodeBank:
    def test_decodes_every_record(self):
        entries = decode_bank("term", _raw([CAT_TERM, CAT_TERM]), "term_bank_1.json")
        assert len(entries) == 2
        assert all(isinstance(e, TermEntry) for e in entries)

    def test_error_names_file_and_element(self):
        with pytest.raises(DecodeError, match=r"term_bank_2\.json\[1\]"):
            decode_bank("term", _raw([CAT_TERM, ["too", "short"]]), "term_bank_2.json")

    def test_top_level_must_be_array(self):
        with pytest.raises(DecodeError, match="top-level array"):
            decode_bank("tag", _raw({"n": 1}), "tag_bank_1.json")

    def test_malformed_json(self):
        with pytest.raises(DecodeError, match="invalid JSON"):
            decode_bank("term", b"[[1, 2", "term_bank_1.json")

    def test_empty_bank(self):
        assert decode_bank("kanji", b"[]", "kanji_bank_1.json") == []
