"""
Decoders for the JSON files inside a Yomitan dictionary archive.

Each bank file holds a JSON array of fixed-shape positional records. Records
are decoded into typed dataclasses with arity and type checks; any deviation
raises DecodeError so a corrupt bank aborts the whole import rather than
producing a partially imported dictionary.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from yomidb.errors import DecodeError

TERM_META_MODES = ("freq", "pitch")
KANJI_META_MODES = ("freq",)


@dataclass(frozen=True)
class DictIndex:
    """Contents of index.json."""

    title: str
    revision: str
    format: int = 3
    sequenced: bool = False
    author: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    attribution: Optional[str] = None
    frequency_mode: Optional[str] = None


@dataclass(frozen=True)
class TermEntry:
    term: str
    reading: str
    definition_tags: Optional[str]
    rules: Optional[str]
    score: int
    glossary: List[Any]
    sequence: Optional[int]
    term_tags: Optional[str]


@dataclass(frozen=True)
class TermMetaEntry:
    term: str
    mode: str
    reading: Optional[str]
    data: Any


@dataclass(frozen=True)
class TagEntry:
    name: str
    category: Optional[str]
    sort_order: int
    notes: Optional[str]
    score: int


@dataclass(frozen=True)
class KanjiEntry:
    character: str
    onyomi: str
    kunyomi: str
    tags: str
    meanings: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class KanjiMetaEntry:
    kanji: str
    mode: str
    data: Any


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _fail(where: str, message: str) -> DecodeError:
    return DecodeError(f"{where}: {message}")


def _text(value: Any, name: str, where: str, optional: bool = False) -> Optional[str]:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise _fail(where, f"{name} must be a string, got {type(value).__name__}")
    return value


def _integer(value: Any, name: str, where: str, optional: bool = False) -> Optional[int]:
    """Accept ints, integral floats and numeric strings (e.g. "100")."""
    if value is None and optional:
        return None
    if isinstance(value, bool):
        raise _fail(where, f"{name} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise _fail(where, f"{name} must be an integer, got {value!r}")


def _tag_set(value: Any, name: str, where: str) -> Optional[str]:
    """Whitespace-joined tag/rule string; empty or blank means no set."""
    text = _text(value, name, where, optional=True)
    if text is None:
        return None
    text = text.strip()
    return text or None


def _record(value: Any, arity: int, where: str) -> list:
    if not isinstance(value, list):
        raise _fail(where, f"expected an array record, got {type(value).__name__}")
    if len(value) != arity:
        raise _fail(where, f"expected {arity} fields, got {len(value)}")
    return value


# ---------------------------------------------------------------------------
# Record decoders
# ---------------------------------------------------------------------------


def decode_term(value: Any, where: str) -> TermEntry:
    """Decode [term, reading, definitionTags, rules, score, glossary, sequence, termTags]."""
    term, reading, def_tags, rules, score, glossary, sequence, term_tags = _record(
        value, 8, where
    )
    if not isinstance(glossary, list):
        raise _fail(where, "glossary must be an array")
    return TermEntry(
        term=_text(term, "term", where),
        reading=_text(reading, "reading", where),
        definition_tags=_tag_set(def_tags, "definitionTags", where),
        rules=_tag_set(rules, "rules", where),
        score=_integer(score, "score", where),
        glossary=glossary,
        sequence=_integer(sequence, "sequence", where, optional=True),
        term_tags=_tag_set(term_tags, "termTags", where),
    )


def decode_term_meta(value: Any, where: str) -> TermMetaEntry:
    """Decode [term, mode, data], surfacing data.reading into its own field."""
    term, mode, data = _record(value, 3, where)
    mode = _text(mode, "mode", where)
    if mode not in TERM_META_MODES:
        raise _fail(where, f"unsupported term meta mode {mode!r}")

    reading = None
    if mode == "pitch":
        if not isinstance(data, dict):
            raise _fail(where, "pitch data must be an object")
        reading = _text(data.get("reading"), "pitch reading", where)
    elif isinstance(data, dict) and data.get("reading") is not None:
        reading = _text(data["reading"], "frequency reading", where)

    return TermMetaEntry(
        term=_text(term, "term", where), mode=mode, reading=reading, data=data
    )


def decode_tag(value: Any, where: str) -> TagEntry:
    """Decode [name, category, sortOrder, notes, score]."""
    name, category, sort_order, notes, score = _record(value, 5, where)
    return TagEntry(
        name=_text(name, "name", where),
        category=_text(category, "category", where, optional=True),
        sort_order=_integer(sort_order, "sortOrder", where),
        notes=_text(notes, "notes", where, optional=True),
        score=_integer(score, "score", where),
    )


def decode_kanji(value: Any, where: str) -> KanjiEntry:
    """Decode [character, onyomi, kunyomi, tags, meanings, stats]."""
    character, onyomi, kunyomi, tags, meanings, stats = _record(value, 6, where)
    if not isinstance(meanings, list) or not all(isinstance(m, str) for m in meanings):
        raise _fail(where, "meanings must be an array of strings")
    if not isinstance(stats, dict):
        raise _fail(where, "stats must be an object")
    return KanjiEntry(
        character=_text(character, "character", where),
        onyomi=_text(onyomi, "onyomi", where),
        kunyomi=_text(kunyomi, "kunyomi", where),
        tags=_text(tags, "tags", where),
        meanings=meanings,
        stats=stats,
    )


def decode_kanji_meta(value: Any, where: str) -> KanjiMetaEntry:
    """Decode [kanji, mode, data]."""
    kanji, mode, data = _record(value, 3, where)
    mode = _text(mode, "mode", where)
    if mode not in KANJI_META_MODES:
        raise _fail(where, f"unsupported kanji meta mode {mode!r}")
    return KanjiMetaEntry(kanji=_text(kanji, "kanji", where), mode=mode, data=data)


RECORD_DECODERS: Dict[str, Callable[[Any, str], Any]] = {
    "term": decode_term,
    "term_meta": decode_term_meta,
    "tag": decode_tag,
    "kanji": decode_kanji,
    "kanji_meta": decode_kanji_meta,
}


# ---------------------------------------------------------------------------
# File decoders
# ---------------------------------------------------------------------------


def load_json(raw: bytes, name: str) -> Any:
    """Parse a JSON payload, tolerating a UTF-8 byte order mark."""
    try:
        return json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"{name}: invalid JSON ({e})") from e


def decode_index(raw: bytes, name: str = "index.json") -> DictIndex:
    """Decode index.json; title and revision are required."""
    data = load_json(raw, name)
    if not isinstance(data, dict):
        raise DecodeError(f"{name}: expected an object")

    title = data.get("title")
    revision = data.get("revision")
    if isinstance(revision, (int, float)) and not isinstance(revision, bool):
        revision = str(revision)
    if not isinstance(title, str) or not title.strip():
        raise DecodeError(f"{name}: missing required field 'title'")
    if not isinstance(revision, str) or not revision.strip():
        raise DecodeError(f"{name}: missing required field 'revision'")

    fmt = data.get("format", data.get("version", 3))
    return DictIndex(
        title=title,
        revision=revision,
        format=_integer(fmt, "format", name),
        sequenced=bool(data.get("sequenced", False)),
        author=_text(data.get("author"), "author", name, optional=True),
        url=_text(data.get("url"), "url", name, optional=True),
        description=_text(data.get("description"), "description", name, optional=True),
        attribution=_text(data.get("attribution"), "attribution", name, optional=True),
        frequency_mode=_text(
            data.get("frequencyMode"), "frequencyMode", name, optional=True
        ),
    )


def decode_bank(kind: str, raw: bytes, name: str) -> list:
    """Decode one bank file into a list of typed records."""
    try:
        decoder = RECORD_DECODERS[kind]
    except KeyError:
        raise DecodeError(f"{name}: unknown bank kind {kind!r}") from None

    payload = load_json(raw, name)
    if not isinstance(payload, list):
        raise DecodeError(f"{name}: expected a top-level array")
    return [decoder(item, f"{name}[{i}]") for i, item in enumerate(payload)]
