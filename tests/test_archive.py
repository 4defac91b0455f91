"""
Tests for archive enumeration.
"""
import pytest

from yomidb.data.archive import bank_counts, iter_bank_files, read_index
from yomidb.errors import DecodeError, NotFoundError


class TestReadIndex:
    def test_reads_index(self, sample_archive):
        index = read_index(sample_archive)
        assert index.title == "Sample"
        assert index.revision == "1"

    def test_missing_archive(self, tmp_path):
        with pytest.raises(NotFoundError):
            read_index(tmp_path / "missing.zip")

    def test_missing_index(self, make_archive):
        path = make_archive(index=None, files={"term_bank_1.json": []})
        with pytest.raises(NotFoundError, match="index.json"):
            read_index(path)

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / "broken.zip"
        path.write_bytes(b"this is not a zip file")
        with pytest.raises(DecodeError):
            read_index(path)


class TestIterBankFiles:
    def test_import_order(self, sample_archive):
        names = [bank.name for bank in iter_bank_files(sample_archive)]
        assert names == [
            "term_bank_1.json",
            "term_bank_2.json",
            "term_meta_bank_1.json",
            "tag_bank_1.json",
            "kanji_bank_1.json",
            "kanji_meta_bank_1.json",
        ]

    def test_numbering_is_numeric_not_lexical(self, make_archive):
        files = {f"term_bank_{n}.json": [] for n in range(1, 12)}
        path = make_archive(files=files)
        numbers = [bank.number for bank in iter_bank_files(path)]
        assert numbers == list(range(1, 12))

    def test_stops_at_first_gap(self, make_archive, capsys):
        path = make_archive(
            files={"term_bank_1.json": [], "term_bank_2.json": [], "term_bank_4.json": []}
        )
        names = [bank.name for bank in iter_bank_files(path)]
        assert names == ["term_bank_1.json", "term_bank_2.json"]
        assert "term_bank_4.json" in capsys.readouterr().out

    def test_unknown_entries_are_ignored(self, make_archive):
        path = make_archive(
            files={"term_bank_1.json": []},
            raw={"styles.css": b"body {}", "images/cat.png": b"\x89PNG"},
        )
        assert [bank.kind for bank in iter_bank_files(path)] == ["term"]

    def test_content_is_raw_bytes(self, make_archive):
        path = make_archive(raw={"tag_bank_1.json": b'[["n","pos",0,"noun",0]]'})
        (bank,) = list(iter_bank_files(path))
        assert bank.kind == "tag"
        assert bank.content == b'[["n","pos",0,"noun",0]]'

    def test_bank_counts(self, sample_archive):
        counts = bank_counts(sample_archive)
        assert counts["term"] == 2
        assert counts["tag"] == 1
        assert counts["kanji_meta"] == 1
