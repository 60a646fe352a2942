"""Run summaries for digikam-select."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .config import Options
from .utils import format_bytes

logger = logging.getLogger(__name__)


class RunReporter:
    """Generates the end-of-run summary."""

    def __init__(self, options: Options):
        self.options = options

    def generate_summary_report(self, results: Dict[str, Any],
                                sync_results: Optional[Dict[str, Any]] = None) -> str:
        """
        Generate human-readable summary report.

        Args:
            results: Results from FileMaterializer.materialize_all
            sync_results: Results from OutputSynchronizer.sync, if it ran

        Returns:
            Formatted summary report
        """
        options = self.options
        dry_run = results.get('dry_run', False)

        report = []
        report.append("=" * 50)
        report.append("DIGIKAM SELECT SUMMARY")
        report.append("=" * 50)
        report.append(f"Completed: {results.get('timestamp', 'Unknown')}")
        report.append(f"Mode: {'DRY RUN' if dry_run else 'LIVE RUN'} ({results.get('mode', options.mode.value)})")
        report.append(f"Database: {options.input_db}")
        report.append(f"Output: {options.output_dir}")
        report.append("")

        report.append("=== SELECTION ===")
        report.append(f"Tags: {', '.join(sorted(options.tags)) if options.tags else 'any'}")
        report.append(f"Minimum rating: {options.min_rating}")
        report.append(f"Album filter: {options.album or 'none'}")
        report.append(f"Album folders: {'yes' if options.albums else 'no'}")
        report.append("")

        report.append("=== FILES ===")
        verb = "Planned" if dry_run else "Materialized"
        report.append(f"Selected: {results.get('total_files', 0):,}")
        report.append(f"{verb}: {results.get('materialized_files', 0):,}")
        report.append(f"Skipped: {results.get('skipped_files', 0):,}")
        report.append(f"Failed: {results.get('failed_files', 0):,}")
        report.append(f"Written: {format_bytes(results.get('bytes_written', 0))}")
        report.append("")

        if sync_results is not None:
            report.append("=== SYNC ===")
            report.append(f"Deleted: {sync_results.get('deleted_files', 0):,}")
            report.append(f"Kept: {sync_results.get('kept_files', 0):,}")
            report.append(f"Failed: {sync_results.get('failed_files', 0):,}")
            report.append(f"Empty directories removed: {sync_results.get('removed_directories', 0):,}")
            report.append("")

        errors = list(results.get('errors', []))
        if sync_results:
            errors.extend(sync_results.get('errors', []))
        if errors:
            report.append("=== ERRORS ENCOUNTERED ===")
            for error in errors:
                report.append(f"- {error}")
            report.append("")

        status = "COMPLETE" if not errors else "COMPLETED WITH ISSUES"
        report.append(f"STATUS: {status}")

        return "\n".join(report)

    def save_report(self, results: Dict[str, Any], filename: str,
                    sync_results: Optional[Dict[str, Any]] = None) -> str:
        """
        Save the summary report to a file.

        Returns:
            Path to saved report file
        """
        report_file = Path(filename)
        report_file.parent.mkdir(parents=True, exist_ok=True)

        report_file.write_text(self.generate_summary_report(results, sync_results), encoding='utf-8')
        logger.info(f"Report saved: {report_file}")
        return str(report_file)
