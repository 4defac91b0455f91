"""
Tests for the embedded SQLite backend.
"""
import pytest

from yomidb.backends.sqlite import SqliteBackend, insert_sql
from yomidb.data.banks import DictIndex
from yomidb.db.connection import get_db_connection
from yomidb.errors import ConstraintViolation, DatabaseError, StorageError


def _register(backend, title="Sample", revision="1"):
    return backend.register_dictionary(DictIndex(title=title, revision=revision), False)


class TestSchema:
    def test_tables_created(self, backend):
        tables = {
            row[0]
            for row in backend.conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
        }
        assert {
            "dictionaries",
            "glossaries",
            "def_tag_sets",
            "term_tag_sets",
            "rule_sets",
            "terms",
            "term_meta",
            "tags",
            "kanji",
            "kanji_meta",
            "schema_meta",
        } <= tables

    def test_foreign_keys_enabled(self, backend):
        assert backend.conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_reopen_existing_file(self, tmp_path):
        path = tmp_path / "store.db"
        with SqliteBackend(path) as first:
            _register(first)
        with SqliteBackend(path) as second:
            assert second.find_dictionary("Sample", "1") is not None

    def test_schema_version_mismatch(self, tmp_path):
        path = tmp_path / "old.db"
        SqliteBackend(path).close()
        conn = get_db_connection(path)
        conn.execute("UPDATE schema_meta SET value = '1' WHERE key = 'schema_version'")
        conn.close()
        with pytest.raises(DatabaseError, match="Incompatible schema version"):
            SqliteBackend(path)


class TestDictionaries:
    def test_register_returns_id(self, backend):
        dict_id = _register(backend)
        record = backend.find_dictionary("Sample", "1")
        assert record.id == dict_id
        assert record.completed is False

    def test_duplicate_identity_returns_none(self, backend):
        _register(backend)
        assert _register(backend) is None

    def test_exists_only_when_complete(self, backend):
        dict_id = _register(backend)
        assert not backend.dictionary_exists("Sample", "1")
        backend.mark_complete(dict_id)
        assert backend.dictionary_exists("Sample", "1")

    def test_same_title_new_revision(self, backend):
        _register(backend, revision="1")
        assert _register(backend, revision="2") is not None
        assert len(backend.list_dictionaries()) == 2

    def test_remove_cascades(self, backend):
        dict_id = _register(backend)
        glossary_id = backend.intern_glossary("abc", '["cat"]')
        backend.insert_batch(
            "terms", [(dict_id, "猫", "ねこ", None, None, 0, glossary_id, None, None)]
        )
        backend.insert_batch("tags", [(dict_id, "n", "pos", 0, "noun", 0)])

        backend.remove_dictionary(dict_id)

        assert backend.find_dictionary("Sample", "1") is None
        assert backend.conn.execute("SELECT COUNT(*) FROM terms").fetchone()[0] == 0
        assert backend.conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0] == 0
        # Interned content is shared and survives
        assert backend.conn.execute("SELECT COUNT(*) FROM glossaries").fetchone()[0] == 1


class TestInterning:
    def test_glossary_lookup_or_insert(self, backend):
        first = backend.intern_glossary("h1", '["cat"]')
        assert backend.intern_glossary("h1", '["cat"]') == first
        assert backend.intern_glossary("h2", '["dog"]') != first

    def test_string_tables_are_independent(self, backend):
        def_id = backend.intern_string("def_tag_sets", "n")
        term_id = backend.intern_string("term_tag_sets", "n")
        assert backend.intern_string("def_tag_sets", "n") == def_id
        assert backend.intern_string("term_tag_sets", "n") == term_id
        count = backend.conn.execute("SELECT COUNT(*) FROM def_tag_sets").fetchone()[0]
        assert count == 1


class TestInsertBatch:
    def test_returns_rows_written(self, backend):
        dict_id = _register(backend)
        rows = [(dict_id, "猫", "freq", None, "120"), (dict_id, "犬", "freq", None, "80")]
        assert backend.insert_batch("term_meta", rows) == 2

    def test_duplicate_tag_names_are_skipped(self, backend):
        dict_id = _register(backend)
        rows = [(dict_id, "n", "pos", 0, "noun", 0), (dict_id, "n", "pos", 1, "noun again", 0)]
        assert backend.insert_batch("tags", rows) == 1
        notes = backend.conn.execute("SELECT notes FROM tags").fetchone()[0]
        assert notes == "noun"

    def test_constraint_violation_names_table_and_value(self, backend):
        dict_id = _register(backend)
        rows = [(dict_id, "猫", "ねこ", None, None, 0, 9999, None, None)]
        with pytest.raises(ConstraintViolation) as excinfo:
            backend.insert_batch("terms", rows)
        assert excinfo.value.table == "terms"
        assert excinfo.value.value == "猫"

    def test_failed_batch_is_rolled_back(self, backend):
        dict_id = _register(backend)
        glossary_id = backend.intern_glossary("h", '["x"]')
        rows = [
            (dict_id, "猫", "ねこ", None, None, 0, glossary_id, None, None),
            (dict_id, "犬", "いぬ", None, None, 0, 9999, None, None),
        ]
        with pytest.raises(ConstraintViolation):
            backend.insert_batch("terms", rows)
        assert backend.conn.execute("SELECT COUNT(*) FROM terms").fetchone()[0] == 0

    def test_insert_sql(self):
        assert insert_sql("kanji_meta") == (
            "INSERT INTO kanji_meta (dict_id, kanji, mode, data) VALUES (?, ?, ?, ?)"
        )
        assert insert_sql("tags").endswith("ON CONFLICT (dict_id, name) DO NOTHING")


class TestTransaction:
    def test_rollback_on_error(self, backend):
        with pytest.raises(RuntimeError):
            with backend.transaction():
                _register(backend)
                raise RuntimeError("boom")
        assert backend.find_dictionary("Sample", "1") is None

    def test_nested_transaction_joins_outer(self, backend):
        with backend.transaction():
            dict_id = _register(backend)
            backend.insert_batch("tags", [(dict_id, "n", "pos", 0, "noun", 0)])
            assert backend.conn.in_transaction
        assert not backend.conn.in_transaction
        assert backend.conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0] == 1

    def test_finalize_on_file(self, tmp_path):
        with SqliteBackend(tmp_path / "store.db") as store:
            _register(store)
            store.finalize()
            assert store.find_dictionary("Sample", "1") is not None


class TestDriverErrors:
    def test_operational_error_becomes_storage_error(self, backend):
        dict_id = _register(backend)
        backend.conn.execute("DROP TABLE kanji_meta")
        with pytest.raises(StorageError, match="kanji_meta"):
            backend.insert_batch("kanji_meta", [(dict_id, "猫", "freq", "1")])
        assert not backend.conn.in_transaction

    def test_unsupported_value_becomes_storage_error(self, backend):
        with pytest.raises(StorageError, match="def_tag_sets"):
            backend.intern_string("def_tag_sets", ["n", "uk"])

    def test_store_still_usable_after_error(self, backend):
        backend.conn.execute("DROP TABLE kanji_meta")
        with pytest.raises(StorageError):
            backend.insert_batch("kanji_meta", [(1, "猫", "freq", "1")])
        assert _register(backend) is not None

    def test_directory_is_not_a_database(self, tmp_path):
        with pytest.raises(DatabaseError, match="Could not open"):
            SqliteBackend(tmp_path)
