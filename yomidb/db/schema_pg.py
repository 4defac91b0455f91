"""
PostgreSQL-compatible schema for imported Yomitan dictionaries.

The {schema} placeholder is replaced with the configured DB_SCHEMA.
"""

POSTGRES_SCHEMA = """
CREATE SCHEMA IF NOT EXISTS {schema};

CREATE TABLE IF NOT EXISTS {schema}.dictionaries (
    id             BIGSERIAL    PRIMARY KEY,
    title          TEXT         NOT NULL,
    revision       TEXT         NOT NULL,
    format         INTEGER      NOT NULL DEFAULT 3,
    author         TEXT,
    url            TEXT,
    description    TEXT,
    attribution    TEXT,
    frequency_mode TEXT,
    sequenced      BOOLEAN      NOT NULL DEFAULT false,
    is_bundled     BOOLEAN      NOT NULL DEFAULT false,
    sort_order     INTEGER      NOT NULL DEFAULT 0,
    installed_at   TIMESTAMPTZ  NOT NULL DEFAULT now(),
    completed_at   TIMESTAMPTZ,

    CONSTRAINT dictionaries_identity_unique UNIQUE (title, revision)
);

CREATE TABLE IF NOT EXISTS {schema}.glossaries (
    id      BIGSERIAL  PRIMARY KEY,
    hash    TEXT       NOT NULL UNIQUE,
    content JSONB      NOT NULL
);

CREATE TABLE IF NOT EXISTS {schema}.def_tag_sets (
    id   BIGSERIAL  PRIMARY KEY,
    tags TEXT       NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS {schema}.term_tag_sets (
    id   BIGSERIAL  PRIMARY KEY,
    tags TEXT       NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS {schema}.rule_sets (
    id    BIGSERIAL  PRIMARY KEY,
    rules TEXT       NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS {schema}.terms (
    id           BIGSERIAL  PRIMARY KEY,
    dict_id      BIGINT     NOT NULL REFERENCES {schema}.dictionaries(id) ON DELETE CASCADE,
    term         TEXT       NOT NULL,
    reading      TEXT       NOT NULL,
    def_tags_id  BIGINT     REFERENCES {schema}.def_tag_sets(id),
    rules_id     BIGINT     REFERENCES {schema}.rule_sets(id),
    score        INTEGER    NOT NULL DEFAULT 0,
    glossary_id  BIGINT     NOT NULL REFERENCES {schema}.glossaries(id),
    sequence     BIGINT,
    term_tags_id BIGINT     REFERENCES {schema}.term_tag_sets(id)
);

CREATE INDEX IF NOT EXISTS idx_terms_term    ON {schema}.terms (term);
CREATE INDEX IF NOT EXISTS idx_terms_reading ON {schema}.terms (reading);
CREATE INDEX IF NOT EXISTS idx_terms_lookup  ON {schema}.terms (term, reading, score DESC);
CREATE INDEX IF NOT EXISTS idx_terms_seq     ON {schema}.terms (dict_id, sequence)
    WHERE sequence IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_terms_dict    ON {schema}.terms (dict_id);

CREATE TABLE IF NOT EXISTS {schema}.term_meta (
    id      BIGSERIAL  PRIMARY KEY,
    dict_id BIGINT     NOT NULL REFERENCES {schema}.dictionaries(id) ON DELETE CASCADE,
    term    TEXT       NOT NULL,
    mode    TEXT       NOT NULL CHECK (mode IN ('freq', 'pitch')),
    reading TEXT,
    data    JSONB      NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_term_meta_term ON {schema}.term_meta (term, mode);
CREATE INDEX IF NOT EXISTS idx_term_meta_dict ON {schema}.term_meta (dict_id);

CREATE TABLE IF NOT EXISTS {schema}.tags (
    id         BIGSERIAL  PRIMARY KEY,
    dict_id    BIGINT     NOT NULL REFERENCES {schema}.dictionaries(id) ON DELETE CASCADE,
    name       TEXT       NOT NULL,
    category   TEXT,
    sort_order INTEGER    NOT NULL DEFAULT 0,
    notes      TEXT,
    score      INTEGER    NOT NULL DEFAULT 0,

    CONSTRAINT tags_dict_name_unique UNIQUE (dict_id, name)
);

CREATE INDEX IF NOT EXISTS idx_tags_name ON {schema}.tags (name);

CREATE TABLE IF NOT EXISTS {schema}.kanji (
    id        BIGSERIAL  PRIMARY KEY,
    dict_id   BIGINT     NOT NULL REFERENCES {schema}.dictionaries(id) ON DELETE CASCADE,
    character TEXT       NOT NULL,
    onyomi    TEXT,
    kunyomi   TEXT,
    tags      TEXT,
    meanings  JSONB      NOT NULL DEFAULT '[]',
    stats     JSONB      NOT NULL DEFAULT '{{}}'
);

CREATE INDEX IF NOT EXISTS idx_kanji_character ON {schema}.kanji (character);
CREATE INDEX IF NOT EXISTS idx_kanji_dict      ON {schema}.kanji (dict_id);

CREATE TABLE IF NOT EXISTS {schema}.kanji_meta (
    id      BIGSERIAL  PRIMARY KEY,
    dict_id BIGINT     NOT NULL REFERENCES {schema}.dictionaries(id) ON DELETE CASCADE,
    kanji   TEXT       NOT NULL,
    mode    TEXT       NOT NULL,
    data    JSONB      NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_kanji_meta_kanji ON {schema}.kanji_meta (kanji);
CREATE INDEX IF NOT EXISTS idx_kanji_meta_dict  ON {schema}.kanji_meta (dict_id)
"""
