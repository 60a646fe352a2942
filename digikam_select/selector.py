"""
Selection of images from a digiKam database.

The database is opened read-only, queried once and closed again before any
file is materialized.
"""

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from .config import Options, Verbosity
from .exceptions import DataAccessError

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ('Images', 'ImageTags', 'ImageInformation', 'Tags', 'Albums', 'AlbumRoots')

BASE_QUERY = """
    SELECT DISTINCT r.specificPath AS root, a.relativePath AS path, i.name AS name
    FROM Images i
    LEFT JOIN ImageTags it ON it.imageid = i.id
    LEFT JOIN ImageInformation ii ON ii.imageid = i.id
    LEFT JOIN Tags t ON it.tagid = t.id
    LEFT JOIN Albums a ON i.album = a.id
    LEFT JOIN AlbumRoots r ON a.albumRoot = r.id
    WHERE r.specificPath != '' AND a.relativePath != ''"""

ORDER_CLAUSE = " ORDER BY root, path, name"


@dataclass(frozen=True)
class FileRecord:
    """One matched image: album root, album path below the root, file name."""
    root: str
    relative_path: str
    name: str

    @property
    def album_path(self) -> str:
        """Relative path without the leading/trailing slashes digiKam stores."""
        return (self.relative_path or "").strip('/')

    @property
    def source_path(self) -> Path:
        return Path(self.root) / self.album_path / self.name

    def target_path(self, output_dir: Path, albums: bool = True) -> Path:
        if albums:
            return Path(output_dir) / self.album_path / self.name
        return Path(output_dir) / self.name


def build_query(options: Options) -> Tuple[str, List]:
    """
    Build the selection query for the active filters.

    Each active filter adds one predicate, joined with AND. Inactive filters
    add nothing.

    Returns:
        (sql, parameters)
    """
    predicates: List[str] = []
    params: List = []

    if options.tags:
        tags = sorted(options.tags)
        placeholders = ", ".join("?" for _ in tags)
        predicates.append(f"( t.name IN ({placeholders}) )")
        params.extend(tags)

    if options.min_rating > 0:
        predicates.append("( ii.rating >= ? )")
        params.append(options.min_rating)

    if options.album:
        # instr() instead of LIKE: LIKE ignores case for ASCII
        predicates.append("( instr(a.relativePath, ?) > 0 )")
        params.append(options.album)

    sql = BASE_QUERY
    if predicates:
        sql += " AND " + " AND ".join(predicates)
    sql += ORDER_CLAUSE
    return sql, params


class PhotoSelector:
    """Runs the selection query against a digiKam database."""

    def __init__(self, options: Options):
        self.options = options
        self.db_path = Path(options.input_db)

    def _connect(self) -> sqlite3.Connection:
        """Open the database read-only."""
        if not self.db_path.is_file():
            raise DataAccessError(f"digiKam database not found: {self.db_path}")
        try:
            return sqlite3.connect(f"{self.db_path.absolute().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise DataAccessError(f"Failed to open digiKam database {self.db_path}: {e}")

    def _check_schema(self, conn: sqlite3.Connection) -> None:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        present = {row[0] for row in rows}
        missing = [table for table in REQUIRED_TABLES if table not in present]
        if missing:
            raise DataAccessError(
                f"{self.db_path} is not a digiKam database (missing tables: {', '.join(missing)})"
            )

    def select(self) -> List[FileRecord]:
        """
        Return the matching images, ordered and without duplicates.

        Raises:
            DataAccessError: If the database cannot be opened or queried
        """
        sql, params = build_query(self.options)
        logger.debug(f"Selection query: {' '.join(sql.split())}")
        logger.debug(f"Query parameters: {params}")

        try:
            with closing(self._connect()) as conn:
                self._check_schema(conn)
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise DataAccessError(f"Query against {self.db_path} failed: {e}")

        records = [FileRecord(root=root, relative_path=path, name=name)
                   for root, path, name in rows]
        logger.info(f"Found {len(records):,} matching images.")

        if self.options.verbosity >= Verbosity.DEBUG:
            for record in records:
                logger.debug(f"- {record}")

        return records
