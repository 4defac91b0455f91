"""Shared test fixtures for yomidb."""

import json
import zipfile

import pytest

from yomidb.backends.sqlite import SqliteBackend
from yomidb.services.retry import BackoffPolicy

CAT_TERM = ["猫", "ねこ", None, "", "100", [{"type": "text", "text": "cat"}], 1, "n"]

SAMPLE_INDEX = {"title": "Sample", "revision": "1", "format": 3, "sequenced": True}


def write_archive(path, index=SAMPLE_INDEX, files=None, raw=None):
    """
    Write a dictionary zip.

    files maps member names to JSON-serializable payloads; raw maps member
    names to bytes written as-is. index=None leaves out index.json.
    """
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        if index is not None:
            zf.writestr("index.json", json.dumps(index, ensure_ascii=False))
        for name, payload in (files or {}).items():
            zf.writestr(name, json.dumps(payload, ensure_ascii=False))
        for name, content in (raw or {}).items():
            zf.writestr(name, content)
    return path


@pytest.fixture
def make_archive(tmp_path):
    """Factory writing archives into the test's temporary directory."""
    counter = {"n": 0}

    def _make(index=SAMPLE_INDEX, files=None, raw=None, name=None):
        counter["n"] += 1
        path = tmp_path / (name or f"dictionary_{counter['n']}.zip")
        return write_archive(path, index, files, raw)

    return _make


@pytest.fixture
def sample_archive(make_archive):
    """Archive with one of every bank kind."""
    return make_archive(
        files={
            "term_bank_1.json": [
                CAT_TERM,
                ["犬", "いぬ", "n", "", 50, [{"type": "text", "text": "dog"}], 2, ""],
            ],
            "term_bank_2.json": [
                ["ねこ", "ねこ", "n uk", "", 10, [{"type": "text", "text": "cat"}], 1, ""],
            ],
            "term_meta_bank_1.json": [
                ["猫", "freq", 120],
                ["猫", "pitch", {"reading": "ねこ", "pitches": [{"position": 1}]}],
            ],
            "tag_bank_1.json": [
                ["n", "partOfSpeech", -3, "noun", 0],
                ["uk", "archaism", 0, "usually kana", 0],
            ],
            "kanji_bank_1.json": [
                ["猫", "ビョウ", "ねこ", "jouyou", ["cat"], {"strokes": "11"}],
            ],
            "kanji_meta_bank_1.json": [["猫", "freq", 1702]],
        }
    )


@pytest.fixture
def backend():
    """In-memory embedded store."""
    with SqliteBackend(":memory:") as store:
        yield store


@pytest.fixture
def fast_policy():
    """Three attempts with no waiting."""
    return BackoffPolicy(max_attempts=3, base_delay=0.0, multiplier=2.0)
