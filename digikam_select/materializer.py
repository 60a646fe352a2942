"""Materialization of selected images into the output tree."""

import errno
import logging
import os
import shutil
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import click
from tqdm import tqdm

from .config import Options, TransferMode, Verbosity
from .converter import ImageConverter, ImageMagickConverter
from .exceptions import (
    ConversionError,
    CrossDeviceLinkError,
    MaterializeError,
    SourceUnavailableError,
    TargetConflictError,
    TargetWriteError,
)
from .selector import FileRecord
from .utils import (
    ensure_directory,
    find_files,
    format_bytes,
    get_available_space,
    get_file_size,
    is_jpeg,
    is_readable_file,
    path_exists,
    total_size,
)

logger = logging.getLogger(__name__)

MATERIALIZED = 'materialized'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass
class MaterializeStats:
    """Counters for one materialization run."""
    total: int = 0
    materialized: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_written: int = 0
    errors: List[str] = field(default_factory=list)


def ask_operator(message: str) -> bool:
    """Block until the operator answers; there is no timeout."""
    return click.confirm(message, default=True)


class FileMaterializer:
    """Copies, links or converts selected images into the output directory."""

    def __init__(
        self,
        options: Options,
        converter: Optional[ImageConverter] = None,
        confirm: Callable[[str], bool] = ask_operator,
    ):
        self.options = options
        self.output_dir = Path(options.output_dir)
        self.confirm = confirm
        if converter is None and options.mode is TransferMode.CONVERT:
            converter = ImageMagickConverter(options.convert_bin or 'convert')
        self.converter = converter

    def target_for(self, record: FileRecord) -> Path:
        return record.target_path(self.output_dir, self.options.albums)

    def materialize_all(self, records: Sequence[FileRecord]) -> Dict[str, Any]:
        """
        Materialize every record; a failing file never stops the run.

        Returns dict with materialization results.
        """
        dry_run = self.options.dry_run
        stats = MaterializeStats(total=len(records))

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Processing {stats.total:,} files "
            f"(mode={self.options.mode.value}, albums={self.options.albums}, "
            f"force={self.options.force})"
        )
        self._preflight(records)

        quiet = self.options.verbosity is Verbosity.QUIET
        with tqdm(records, desc="Materializing", unit="files", disable=not quiet) as pbar:
            for record in pbar:
                status = self._process(record, stats)
                if status == MATERIALIZED:
                    stats.materialized += 1
                elif status == SKIPPED:
                    stats.skipped += 1
                else:
                    stats.failed += 1

        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Materialization complete: "
            f"{stats.materialized:,} {'planned' if dry_run else 'materialized'}, "
            f"{stats.skipped:,} skipped, {stats.failed:,} failed, "
            f"{format_bytes(stats.bytes_written)}"
        )

        return {
            'dry_run': dry_run,
            'mode': self.options.mode.value,
            'total_files': stats.total,
            'materialized_files': stats.materialized,
            'skipped_files': stats.skipped,
            'failed_files': stats.failed,
            'bytes_written': stats.bytes_written,
            'errors': stats.errors,
        }

    def _process(self, record: FileRecord, stats: MaterializeStats) -> str:
        if self.options.verbosity >= Verbosity.VERBOSE:
            logger.debug(f"- {record}")
        try:
            return self.materialize(record, stats)
        except TargetConflictError as e:
            logger.info(f"  Skipping {e.source}, {e}")
            return SKIPPED
        except MaterializeError as e:
            msg = f"{type(e).__name__}: {e}"
            logger.error(msg)
            stats.errors.append(msg)
            return FAILED

    def materialize(self, record: FileRecord, stats: MaterializeStats) -> str:
        """
        Produce the target for a single record.

        Returns:
            MATERIALIZED or SKIPPED

        Raises:
            MaterializeError: Any per-file failure
        """
        source = record.source_path
        if not is_readable_file(source):
            raise SourceUnavailableError(
                f"File {source} is not readable or doesn't exist", source=source
            )

        target = self.target_for(record)
        mode = self.options.mode
        exists = path_exists(target)

        if self.options.dry_run:
            note = ""
            if exists:
                note = " (overwrite)" if self.options.force else " (target exists)"
            logger.info(f"  DRY RUN: would {mode.value} {source} => {target}{note}")
            return MATERIALIZED

        logger.debug(f"  {mode.value} {source}\t=> {target}")

        if exists and not self.options.force:
            raise TargetConflictError(f"{target} exists", source=source, target=target)

        # Operator confirms before any forced delete
        if self.options.interactive and not self.confirm(f"{mode.value} {source} => {target}?"):
            logger.info(f"  Skipping {source}, declined by operator")
            return SKIPPED

        if exists:
            self._remove_existing(source, target)

        target_dir = target.parent
        if not target_dir.is_dir() and not ensure_directory(target_dir):
            raise TargetWriteError(
                f"Cannot create directory {target_dir}", source=source, target=target
            )

        self._transfer(source, target)
        if mode in (TransferMode.COPY, TransferMode.CONVERT):
            stats.bytes_written += get_file_size(target)
        return MATERIALIZED

    def _remove_existing(self, source: Path, target: Path) -> None:
        if target.is_dir() and not target.is_symlink():
            raise TargetConflictError(
                f"{target} is a directory", source=source, target=target
            )
        logger.debug(f"  Overwriting {target}")
        try:
            target.unlink()
        except OSError as e:
            raise TargetWriteError(
                f"Cannot remove existing {target}: {e}", source=source, target=target
            )

    def _transfer(self, source: Path, target: Path) -> None:
        mode = self.options.mode
        try:
            if mode is TransferMode.COPY:
                shutil.copy2(source, target)
            elif mode is TransferMode.SYMLINK:
                os.symlink(source, target)
            elif mode is TransferMode.HARDLINK:
                self._hardlink(source, target)
            elif mode is TransferMode.CONVERT:
                self._convert(source, target)
        except OSError as e:
            if mode in (TransferMode.COPY, TransferMode.CONVERT):
                self._discard_partial(target)
            raise TargetWriteError(
                f"Failed to {mode.value} {source} -> {target}: {e}",
                source=source, target=target,
            )

    def _hardlink(self, source: Path, target: Path) -> None:
        try:
            os.link(source, target)
        except OSError as e:
            if e.errno == errno.EXDEV:
                raise CrossDeviceLinkError(
                    f"Cannot hard link {source} -> {target} across filesystems",
                    source=source, target=target,
                )
            raise

    def _convert(self, source: Path, target: Path) -> None:
        if not is_jpeg(source.name):
            logger.info(f"  Copying, not converting {source}")
            shutil.copy2(source, target)
            return

        result = self.converter.convert(source, self.options.convert_args, target)
        if not result.ok:
            self._discard_partial(target)
            raise ConversionError(
                f"Conversion of {source} failed (exit {result.returncode}): {result.stderr}",
                source=source, target=target,
            )
        if not target.is_file():
            raise ConversionError(
                f"Conversion of {source} produced no output at {target}",
                source=source, target=target,
            )

    def _discard_partial(self, target: Path) -> None:
        """Remove a half-written target so the next run retries the file."""
        if not path_exists(target):
            return
        try:
            target.unlink()
            logger.debug(f"  Removed incomplete {target}")
        except OSError as e:
            logger.warning(f"Could not remove incomplete {target}: {e}")

    def _preflight(self, records: Sequence[FileRecord]) -> None:
        """Warn about problems that will show up as skipped or failed files."""
        if not self.options.albums:
            names = Counter(r.name for r in records)
            clashes = sorted(name for name, count in names.items() if count > 1)
            for name in clashes:
                logger.warning(
                    f"{names[name]} selected images share the name {name}; "
                    "without album folders only one can be kept"
                )

        if not (self.options.force or self.options.sync):
            if any(True for _ in find_files(self.output_dir)):
                logger.info(
                    f"Output directory {self.output_dir} is not empty; "
                    "existing targets will be skipped (use --force or --sync)"
                )

        if self.options.dry_run or self.options.mode not in (TransferMode.COPY, TransferMode.CONVERT):
            return
        needed = total_size(r.source_path for r in records)
        available = get_available_space(self.output_dir)
        if needed > available:
            logger.warning(
                f"Selected files need {format_bytes(needed)}, "
                f"only {format_bytes(available)} free in {self.output_dir}"
            )
        else:
            logger.debug(
                f"Space check OK: need {format_bytes(needed)}, have {format_bytes(available)}"
            )
