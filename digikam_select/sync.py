"""Sync pass: remove output files that are no longer part of the selection."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Set

from .config import Options
from .materializer import ask_operator
from .selector import FileRecord
from .utils import cleanup_empty_directories, find_files

logger = logging.getLogger(__name__)


class OutputSynchronizer:
    """Deletes files under the output directory that the selection does not produce."""

    def __init__(self, options: Options, confirm: Callable[[str], bool] = ask_operator):
        self.options = options
        self.output_dir = Path(options.output_dir)
        self.confirm = confirm

    def expected_targets(self, records: Iterable[FileRecord]) -> Set[Path]:
        """Target path of every record, materialized this run or not."""
        return {r.target_path(self.output_dir, self.options.albums) for r in records}

    def sync(self, records: Iterable[FileRecord]) -> Dict[str, Any]:
        """
        Remove every file or symlink below the output directory that is not
        an expected target, then drop directories left empty.

        Returns dict with sync results.
        """
        dry_run = self.options.dry_run
        expected = self.expected_targets(records)

        results: Dict[str, Any] = {
            'dry_run': dry_run,
            'deleted_files': 0,
            'kept_files': 0,
            'failed_files': 0,
            'removed_directories': 0,
            'errors': [],
        }

        logger.info(f"{'DRY RUN: ' if dry_run else ''}Syncing {self.output_dir} "
                    f"against {len(expected):,} selected files")

        for path in sorted(find_files(self.output_dir)):
            if path in expected:
                results['kept_files'] += 1
                continue

            if dry_run:
                logger.info(f"  DRY RUN: would delete {path}")
                results['deleted_files'] += 1
                continue

            if self.options.interactive and not self.confirm(f"Delete {path}?"):
                logger.info(f"  Keeping {path}, declined by operator")
                results['kept_files'] += 1
                continue

            try:
                path.unlink()
                logger.info(f"  Deleted {path}")
                results['deleted_files'] += 1
            except OSError as e:
                msg = f"Failed to delete {path}: {e}"
                logger.error(msg)
                results['errors'].append(msg)
                results['failed_files'] += 1

        if not dry_run:
            results['removed_directories'] = cleanup_empty_directories(self.output_dir)

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Sync complete: "
            f"{results['deleted_files']:,} deleted, {results['kept_files']:,} kept, "
            f"{results['failed_files']:,} failed"
        )
        return results
