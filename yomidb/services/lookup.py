"""
Read-side queries against an embedded dictionary store.
"""

import json
import re
import sqlite3
from typing import Any, Dict, List, Optional

STAT_TABLES = (
    "terms",
    "term_meta",
    "glossaries",
    "def_tag_sets",
    "term_tag_sets",
    "rule_sets",
    "tags",
    "kanji",
    "kanji_meta",
)


# Structured-content tags that end a line
BLOCK_TAGS = {"div", "ol", "ul", "li", "tr", "details", "summary"}


def extract_text(node: Any) -> str:
    """Flatten a structured-content node tree into plain text."""
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return "".join(extract_text(child) for child in node)
    if not isinstance(node, dict):
        return ""

    tag = node.get("tag")
    if tag == "br":
        return "\n"
    if tag == "img":
        return f"[{node['alt']}]" if node.get("alt") else "[image]"
    if "content" in node:
        inner = extract_text(node["content"])
        if tag in ("td", "th"):
            return inner + "\t"
        return inner + ("\n" if tag in BLOCK_TAGS else "")
    text = node.get("text")
    return text if isinstance(text, str) else ""


def render_glossary(item: Any) -> str:
    """Render one glossary item as readable text."""
    if isinstance(item, str):
        return item
    if isinstance(item, list):
        # [uninflected term, [rules]]
        return f"[deinflection: {item[0] if item else ''}]"
    if not isinstance(item, dict):
        return str(item)

    kind = item.get("type")
    if kind == "text":
        return item.get("text") or ""
    if kind == "image":
        return item.get("description") or item.get("alt") or f"[image: {item.get('path')}]"
    if kind == "structured-content":
        text = extract_text(item.get("content"))
        text = text.replace("\t\n", "\n")
        return re.sub(r"\n{3,}", "\n\n", text).strip()
    return json.dumps(item, ensure_ascii=False)


def lookup_terms(
    conn: sqlite3.Connection, term: str, reading: Optional[str] = None
) -> List[Dict]:
    """
    Find terms by surface form or reading.

    With only term given, rows whose term OR reading equals it match; with a
    reading, both must match. Results are ordered by dictionary sort order,
    then score (highest first). Only completed dictionaries are searched.
    """
    if reading is None:
        where = "(t.term = ? OR t.reading = ?)"
        params = (term, term)
    else:
        where = "t.term = ? AND t.reading = ?"
        params = (term, reading)

    rows = conn.execute(
        f"""
        SELECT
            t.term,
            t.reading,
            t.score,
            t.sequence,
            g.content  AS glossary,
            dt.tags    AS definition_tags,
            tt.tags    AS term_tags,
            r.rules    AS rules,
            d.title    AS dict_title,
            d.id       AS dict_id
        FROM terms t
        JOIN  dictionaries  d  ON d.id  = t.dict_id
        JOIN  glossaries    g  ON g.id  = t.glossary_id
        LEFT JOIN def_tag_sets  dt ON dt.id = t.def_tags_id
        LEFT JOIN term_tag_sets tt ON tt.id = t.term_tags_id
        LEFT JOIN rule_sets      r ON r.id  = t.rules_id
        WHERE {where} AND d.completed_at IS NOT NULL
        ORDER BY d.sort_order, t.score DESC, t.id
        """,
        params,
    ).fetchall()

    results = []
    for row in rows:
        result = dict(row)
        result["glossary"] = json.loads(row["glossary"])
        results.append(result)
    return results


def lookup_term_meta(conn: sqlite3.Connection, term: str) -> List[Dict]:
    """Frequency and pitch-accent metadata for a term."""
    rows = conn.execute(
        """
        SELECT m.term, m.mode, m.reading, m.data, d.title AS dict_title
        FROM term_meta m
        JOIN dictionaries d ON d.id = m.dict_id
        WHERE m.term = ? AND d.completed_at IS NOT NULL
        ORDER BY m.mode, m.id
        """,
        (term,),
    ).fetchall()
    return [dict(row, data=json.loads(row["data"])) for row in rows]


def lookup_kanji(conn: sqlite3.Connection, character: str) -> List[Dict]:
    rows = conn.execute(
        """
        SELECT k.character, k.onyomi, k.kunyomi, k.tags, k.meanings, k.stats,
               d.title AS dict_title
        FROM kanji k
        JOIN dictionaries d ON d.id = k.dict_id
        WHERE k.character = ? AND d.completed_at IS NOT NULL
        ORDER BY d.sort_order
        """,
        (character,),
    ).fetchall()
    return [
        dict(row, meanings=json.loads(row["meanings"]), stats=json.loads(row["stats"]))
        for row in rows
    ]


def dictionary_summary(conn: sqlite3.Connection) -> List[Dict]:
    """Installed dictionaries with per-dictionary row counts."""
    rows = conn.execute(
        """
        SELECT
            d.id, d.title, d.revision, d.is_bundled, d.installed_at,
            d.completed_at IS NOT NULL AS completed,
            (SELECT COUNT(*) FROM terms      WHERE dict_id = d.id) AS terms,
            (SELECT COUNT(*) FROM term_meta  WHERE dict_id = d.id) AS term_meta,
            (SELECT COUNT(*) FROM tags       WHERE dict_id = d.id) AS tags,
            (SELECT COUNT(*) FROM kanji      WHERE dict_id = d.id) AS kanji,
            (SELECT COUNT(*) FROM kanji_meta WHERE dict_id = d.id) AS kanji_meta
        FROM dictionaries d
        ORDER BY d.sort_order, d.id
        """
    ).fetchall()
    return [dict(row) for row in rows]


def table_counts(conn: sqlite3.Connection) -> Dict[str, int]:
    return {
        table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        for table in STAT_TABLES
    }


def glossary_stats(conn: sqlite3.Connection) -> Dict[str, float]:
    """Size breakdown of stored glossary content, in bytes."""
    row = conn.execute(
        """
        SELECT
            COUNT(*)                      AS total,
            COALESCE(SUM(LENGTH(content)), 0) AS total_bytes,
            COALESCE(AVG(LENGTH(content)), 0) AS avg_bytes,
            COALESCE(MAX(LENGTH(content)), 0) AS max_bytes
        FROM glossaries
        """
    ).fetchone()
    return dict(row)
