"""Shared fixtures for digikam-select tests."""

import os
import sqlite3
from pathlib import Path

import pytest

from digikam_select.config import Options, TransferMode, Verbosity


SCHEMA = """
CREATE TABLE AlbumRoots (id INTEGER PRIMARY KEY, label TEXT, status INTEGER NOT NULL,
                         type INTEGER NOT NULL, identifier TEXT, specificPath TEXT);
CREATE TABLE Albums (id INTEGER PRIMARY KEY, albumRoot INTEGER NOT NULL,
                     relativePath TEXT NOT NULL, date DATE, caption TEXT);
CREATE TABLE Images (id INTEGER PRIMARY KEY, album INTEGER, name TEXT NOT NULL,
                     status INTEGER NOT NULL, category INTEGER NOT NULL);
CREATE TABLE ImageInformation (imageid INTEGER PRIMARY KEY, rating INTEGER,
                               creationDate DATETIME, format TEXT);
CREATE TABLE Tags (id INTEGER PRIMARY KEY, pid INTEGER, name TEXT NOT NULL);
CREATE TABLE ImageTags (imageid INTEGER NOT NULL, tagid INTEGER NOT NULL,
                        UNIQUE (imageid, tagid));
"""

# (id, album, name, rating or None for no ImageInformation row, tags)
IMAGES = [
    (1, 1, 'beach.jpg', 5, ['vacation', 'sea']),
    (2, 1, 'sunset.JPG', 3, ['vacation']),
    (3, 2, 'kitchen.png', 1, ['home']),
    (4, 2, 'cat.jpg', None, []),
    (5, 3, 'scan.tif', 4, ['Vacation']),
    (6, 4, 'ghost.jpg', 5, ['vacation']),    # album root without path
    (7, 5, 'orphan.jpg', 5, ['vacation']),   # album without relative path
    (8, 1, 'missing.jpg', 4, ['vacation']),  # in the database, not on disk
    (9, 2, 'dog.jpg', -1, ['home']),         # digiKam's "no rating"
]

ON_DISK = {
    '2017/Holiday/beach.jpg': b'beach-jpeg-bytes',
    '2017/Holiday/sunset.JPG': b'sunset-jpeg-bytes',
    '2018/Home/kitchen.png': b'kitchen-png-bytes',
    '2018/Home/cat.jpg': b'cat-jpeg-bytes',
    '2018/Home/dog.jpg': b'dog-jpeg-bytes',
    'scan.tif': b'scan-tiff-bytes',
}


def build_digikam_db(db_path: Path, collection: Path) -> Path:
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.executemany(
            "INSERT INTO AlbumRoots (id, label, status, type, identifier, specificPath) "
            "VALUES (?, ?, 0, 1, ?, ?)",
            [(1, 'Pictures', 'volumeid:?path=/', str(collection)),
             (2, 'Unmounted', 'volumeid:?uuid=1234', '')],
        )
        conn.executemany(
            "INSERT INTO Albums (id, albumRoot, relativePath) VALUES (?, ?, ?)",
            [(1, 1, '/2017/Holiday'), (2, 1, '/2018/Home'), (3, 1, '/'),
             (4, 2, '/Lost'), (5, 1, '')],
        )
        tag_ids = {}
        for image_id, album, name, rating, tags in IMAGES:
            conn.execute(
                "INSERT INTO Images (id, album, name, status, category) VALUES (?, ?, ?, 1, 1)",
                (image_id, album, name),
            )
            if rating is not None:
                conn.execute(
                    "INSERT INTO ImageInformation (imageid, rating) VALUES (?, ?)",
                    (image_id, rating),
                )
            for tag in tags:
                if tag not in tag_ids:
                    tag_ids[tag] = len(tag_ids) + 1
                    conn.execute("INSERT INTO Tags (id, pid, name) VALUES (?, 0, ?)",
                                 (tag_ids[tag], tag))
                conn.execute("INSERT INTO ImageTags (imageid, tagid) VALUES (?, ?)",
                             (image_id, tag_ids[tag]))
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def collection(tmp_path):
    """Album root with the image files that exist on disk."""
    root = tmp_path / 'collection'
    for relative, content in ON_DISK.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def digikam_db(tmp_path, collection):
    """digiKam-like database pointing at the collection fixture."""
    return build_digikam_db(tmp_path / 'digikam4.db', collection)


@pytest.fixture
def output_dir(tmp_path):
    out = tmp_path / 'output'
    out.mkdir()
    return out


@pytest.fixture
def make_options(digikam_db, output_dir):
    """Factory fixture: Options for the test database and output dir."""

    def _make(**overrides):
        values = {
            'input_db': digikam_db,
            'output_dir': output_dir,
            'mode': TransferMode.COPY,
            'verbosity': Verbosity.NORMAL,
        }
        values.update(overrides)
        return Options(**values)

    return _make


@pytest.fixture
def snapshot():
    """Factory fixture: map of every entry below a directory to its state."""

    def _snapshot(directory: Path):
        state = {}
        for path in sorted(directory.rglob('*')):
            key = str(path.relative_to(directory))
            if path.is_symlink():
                state[key] = ('link', os.readlink(path))
            elif path.is_dir():
                state[key] = ('dir', None)
            else:
                stat = path.stat()
                state[key] = ('file', path.read_bytes(), stat.st_mtime_ns, stat.st_ino)
        return state

    return _snapshot
