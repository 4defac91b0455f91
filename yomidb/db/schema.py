"""
Embedded (SQLite) database schema for imported Yomitan dictionaries.

Design decisions:
1. Dictionaries table - one row per (title, revision), stamped on completion
2. Interned tables - glossaries by content hash, tag/rule strings by value
3. Per-dictionary tables - cascade on dictionary removal
4. Indexes - tuned for term/reading lookup ordered by score
"""

SCHEMA_VERSION = "2"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- One row per imported dictionary
CREATE TABLE IF NOT EXISTS dictionaries (
    id             INTEGER PRIMARY KEY,
    title          TEXT    NOT NULL,
    revision       TEXT    NOT NULL,
    format         INTEGER NOT NULL DEFAULT 3,
    author         TEXT,
    url            TEXT,
    description    TEXT,
    attribution    TEXT,
    frequency_mode TEXT,
    sequenced      INTEGER NOT NULL DEFAULT 0,
    is_bundled     INTEGER NOT NULL DEFAULT 0,
    sort_order     INTEGER NOT NULL DEFAULT 0,
    installed_at   TEXT    NOT NULL DEFAULT (datetime('now')),
    completed_at   TEXT,                     -- NULL until every bank is written

    CONSTRAINT dictionaries_identity_unique UNIQUE (title, revision)
);

-- Interned content, shared across dictionaries
CREATE TABLE IF NOT EXISTS glossaries (
    id      INTEGER PRIMARY KEY,
    hash    TEXT NOT NULL UNIQUE,            -- SHA-1 of canonical JSON
    content TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS def_tag_sets (
    id   INTEGER PRIMARY KEY,
    tags TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS term_tag_sets (
    id   INTEGER PRIMARY KEY,
    tags TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS rule_sets (
    id    INTEGER PRIMARY KEY,
    rules TEXT NOT NULL UNIQUE
);

-- Terms
CREATE TABLE IF NOT EXISTS terms (
    id           INTEGER PRIMARY KEY,
    dict_id      INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    term         TEXT    NOT NULL,
    reading      TEXT    NOT NULL,
    def_tags_id  INTEGER REFERENCES def_tag_sets(id),
    rules_id     INTEGER REFERENCES rule_sets(id),
    score        INTEGER NOT NULL DEFAULT 0,
    glossary_id  INTEGER NOT NULL REFERENCES glossaries(id),
    sequence     INTEGER,
    term_tags_id INTEGER REFERENCES term_tag_sets(id)
);

CREATE INDEX IF NOT EXISTS idx_terms_term    ON terms (term);
CREATE INDEX IF NOT EXISTS idx_terms_reading ON terms (reading);
CREATE INDEX IF NOT EXISTS idx_terms_lookup  ON terms (term, reading, score DESC);
CREATE INDEX IF NOT EXISTS idx_terms_seq     ON terms (dict_id, sequence)
    WHERE sequence IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_terms_dict    ON terms (dict_id);

-- Term metadata (frequency / pitch accent)
CREATE TABLE IF NOT EXISTS term_meta (
    id      INTEGER PRIMARY KEY,
    dict_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    term    TEXT    NOT NULL,
    mode    TEXT    NOT NULL CHECK (mode IN ('freq', 'pitch')),
    reading TEXT,
    data    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_term_meta_term ON term_meta (term, mode);
CREATE INDEX IF NOT EXISTS idx_term_meta_dict ON term_meta (dict_id);

-- Tags
CREATE TABLE IF NOT EXISTS tags (
    id         INTEGER PRIMARY KEY,
    dict_id    INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    name       TEXT    NOT NULL,
    category   TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    notes      TEXT,
    score      INTEGER NOT NULL DEFAULT 0,

    CONSTRAINT tags_dict_name_unique UNIQUE (dict_id, name)
);

CREATE INDEX IF NOT EXISTS idx_tags_name ON tags (name);

-- Kanji
CREATE TABLE IF NOT EXISTS kanji (
    id        INTEGER PRIMARY KEY,
    dict_id   INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    character TEXT    NOT NULL,
    onyomi    TEXT,
    kunyomi   TEXT,
    tags      TEXT,
    meanings  TEXT    NOT NULL DEFAULT '[]',
    stats     TEXT    NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_kanji_character ON kanji (character);
CREATE INDEX IF NOT EXISTS idx_kanji_dict      ON kanji (dict_id);

CREATE TABLE IF NOT EXISTS kanji_meta (
    id      INTEGER PRIMARY KEY,
    dict_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    kanji   TEXT    NOT NULL,
    mode    TEXT    NOT NULL,
    data    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_kanji_meta_kanji ON kanji_meta (kanji);
CREATE INDEX IF NOT EXISTS idx_kanji_meta_dict  ON kanji_meta (dict_id);
"""

# Insertable columns per bank table, in the order rows are built
TABLE_COLUMNS = {
    "terms": (
        "dict_id",
        "term",
        "reading",
        "def_tags_id",
        "rules_id",
        "score",
        "glossary_id",
        "sequence",
        "term_tags_id",
    ),
    "term_meta": ("dict_id", "term", "mode", "reading", "data"),
    "tags": ("dict_id", "name", "category", "sort_order", "notes", "score"),
    "kanji": (
        "dict_id",
        "character",
        "onyomi",
        "kunyomi",
        "tags",
        "meanings",
        "stats",
    ),
    "kanji_meta": ("dict_id", "kanji", "mode", "data"),
}

# Interned string tables and their value column
INTERN_TABLES = {
    "def_tag_sets": "tags",
    "term_tag_sets": "tags",
    "rule_sets": "rules",
}

# Tables where a duplicate key is skipped rather than treated as an error
IGNORE_DUPLICATES = {"tags": ("dict_id", "name")}

# Column identifying a row in constraint violation messages
ROW_KEY_COLUMN = {
    "terms": "term",
    "term_meta": "term",
    "tags": "name",
    "kanji": "character",
    "kanji_meta": "kanji",
}
