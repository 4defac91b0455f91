"""
Lazy reader for Yomitan dictionary archives.

Bank files are enumerated per kind as <prefix>_1.json, <prefix>_2.json, ...
until the first missing number, and read one entry at a time so only a single
bank's bytes are held in memory.
"""

import re
import zipfile
import zlib
from dataclasses import dataclass
from itertools import count
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

from yomidb.data.banks import DictIndex, decode_index
from yomidb.errors import DecodeError, NotFoundError

INDEX_NAME = "index.json"

# (kind, file prefix) in import order
BANK_KINDS: List[Tuple[str, str]] = [
    ("term", "term_bank"),
    ("term_meta", "term_meta_bank"),
    ("tag", "tag_bank"),
    ("kanji", "kanji_bank"),
    ("kanji_meta", "kanji_meta_bank"),
]

BANK_PATTERN = re.compile(
    r"^(term_bank|term_meta_bank|tag_bank|kanji_bank|kanji_meta_bank)_(\d+)\.json$"
)


@dataclass
class BankFile:
    kind: str
    number: int
    name: str
    content: bytes


def _open_archive(archive_path: Union[str, Path]) -> zipfile.ZipFile:
    path = Path(archive_path)
    if not path.is_file():
        raise NotFoundError(f"Archive not found: {path}")
    try:
        return zipfile.ZipFile(path, "r")
    except zipfile.BadZipFile as e:
        raise DecodeError(f"Not a valid zip archive: {path} ({e})") from e


def _read_member(zip_file: zipfile.ZipFile, name: str) -> bytes:
    try:
        return zip_file.read(name)
    except (zipfile.BadZipFile, zlib.error) as e:
        raise DecodeError(f"Corrupt archive entry {name}: {e}") from e


def read_index(archive_path: Union[str, Path]) -> DictIndex:
    """Read and decode index.json ahead of the main bank pass."""
    with _open_archive(archive_path) as zip_file:
        if INDEX_NAME not in zip_file.namelist():
            raise NotFoundError(f"Missing {INDEX_NAME} in {archive_path}")
        return decode_index(_read_member(zip_file, INDEX_NAME), INDEX_NAME)


def _contiguous(names: set, prefix: str) -> List[str]:
    found = []
    for n in count(1):
        name = f"{prefix}_{n}.json"
        if name not in names:
            break
        found.append(name)
    return found


def bank_counts(archive_path: Union[str, Path]) -> Dict[str, int]:
    """Number of contiguous bank files per kind."""
    with _open_archive(archive_path) as zip_file:
        names = set(zip_file.namelist())
    return {kind: len(_contiguous(names, prefix)) for kind, prefix in BANK_KINDS}


def iter_bank_files(archive_path: Union[str, Path]) -> Iterator[BankFile]:
    """
    Yield bank files in import order, one entry's bytes at a time.

    The iterator is single-pass: the archive is closed once it is exhausted
    (or garbage collected).
    """
    with _open_archive(archive_path) as zip_file:
        names = set(zip_file.namelist())

        for kind, prefix in BANK_KINDS:
            members = _contiguous(names, prefix)
            for number, name in enumerate(members, start=1):
                yield BankFile(kind, number, name, _read_member(zip_file, name))

            # Bank numbers past a gap are not part of the enumeration
            for name in sorted(names):
                match = BANK_PATTERN.match(name)
                if match and match.group(1) == prefix and name not in members:
                    print(f"  Skipping {name}: bank numbering is not contiguous")
