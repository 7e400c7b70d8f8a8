"""
CLI Reporter Module
===================

Provides rich terminal output for scan results and deletion runs using
the Rich library.

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from cloud_sweeper.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report(classified, scan_result)
>>> reporter.print_run_summary(execution_report)

Features
--------
- **Tables**: Resources with colored recommendations and costs
- **Attempts**: One colored line per decided deletion attempt
- **Panels**: Bordered panels for headers and summaries

See Also
--------
CSVReporter : For data export and the deletion input.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cloud_sweeper.cleaners.executor import ExecutionReport
from cloud_sweeper.cleaners.models import DeletionAttempt, ExecutorOptions, Outcome
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ensure_utc,
    utcnow,
)
from cloud_sweeper.core.region_manager import MultiRegionScanResult
from cloud_sweeper.reporters.csv_reporter import count_by_disposition, estimated_savings

# Module logger
logger = logging.getLogger(__name__)

DISPOSITION_STYLES = {
    Disposition.DELETE: "red",
    Disposition.REVIEW: "yellow",
    Disposition.KEEP: "green",
    Disposition.IGNORE: "dim",
}

OUTCOME_STYLES = {
    Outcome.SUCCEEDED: "green",
    Outcome.DRY_RUN_SIMULATED: "cyan",
    Outcome.SKIPPED: "yellow",
    Outcome.FAILED: "red",
}


class CLIReporter:
    """
    Reporter for displaying results in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    show_all : bool, default=False
        List KEEP and IGNORE resources too. By default only DELETE and
        REVIEW resources are listed; all are counted.
    as_of : datetime, optional
        Reference time for the Age column. Defaults to now.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report(classified, scan_result)

    Following a deletion run:

    >>> executor = DeletionExecutor(..., progress_callback=reporter.print_attempt)
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        show_all: bool = False,
        as_of: Optional[datetime] = None,
    ) -> None:
        self.console = console or Console()
        self.show_all = show_all
        self.as_of = ensure_utc(as_of) or utcnow()
        logger.debug("Initialized CLIReporter")

    # =========================================================================
    # Scan Report
    # =========================================================================

    def report(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult] = None,
    ) -> None:
        """
        Display classified resources with a summary.

        Parameters
        ----------
        classified : sequence of ClassifiedResource
            Records with their verdicts, in report order.
        result : MultiRegionScanResult, optional
            Scan the records came from; supplies regions and errors.
        """
        regions = result.regions_scanned if result is not None else sorted(
            {item.record.region for item in classified}
        )
        self._print_header("Unused Resource Report", regions)
        self._print_summary(classified, result)

        shown = [
            item
            for item in classified
            if self.show_all
            or item.verdict.disposition in (Disposition.DELETE, Disposition.REVIEW)
        ]
        if shown:
            self._print_resources_table(shown)
        else:
            self.console.print("\n[green]No unused resources found.[/green]")

        if result is not None and result.errors:
            self._print_errors(result.errors)

    def _print_header(self, title: str, regions: List[str]) -> None:
        region_text = (
            ", ".join(regions) if len(regions) <= 5
            else f"{len(regions)} regions"
        )

        header_text = Text()
        header_text.append(f"\n{title}\n", style="bold blue")
        header_text.append(f"Regions: {region_text}", style="dim")

        self.console.print(Panel(header_text, border_style="blue"))

    def _print_summary(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult],
    ) -> None:
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        if result is not None:
            summary.add_row("Regions Scanned:", str(len(result.regions_scanned)))
        summary.add_row("Total Resources:", str(len(classified)))

        counts = count_by_disposition(classified)
        for disposition in Disposition:
            style = DISPOSITION_STYLES[disposition]
            summary.add_row(
                f"{disposition.value}:",
                f"[{style}]{counts[disposition.value]}[/]",
            )

        summary.add_row(
            "Est. Monthly Savings:",
            f"[bold]${estimated_savings(classified):,.2f}[/bold]",
        )
        if result is not None:
            summary.add_row(
                "Scan Time:",
                result.scan_time.strftime("%Y-%m-%d %H:%M:%S UTC")
            )
            if result.errors:
                summary.add_row(
                    "Errors:",
                    f"[yellow]{len(result.errors)} region(s) had errors[/]"
                )

        self.console.print("\n")
        self.console.print(summary)

    def _print_resources_table(self, classified: Sequence[ClassifiedResource]) -> None:
        table = Table(
            title="\nResources",
            title_style="bold",
            show_lines=False,
        )

        table.add_column("Region", style="yellow", no_wrap=True)
        table.add_column("Kind", style="white", no_wrap=True)
        table.add_column("Resource ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white", max_width=30)
        table.add_column("State", style="dim")
        table.add_column("Age", justify="right")
        table.add_column("Recommendation", no_wrap=True)
        table.add_column("Est. $/mo", justify="right")
        table.add_column("Reason", style="dim", max_width=60)

        for record, verdict in classified:
            age = record.age_days(self.as_of)
            style = DISPOSITION_STYLES[verdict.disposition]
            cost = verdict.estimated_monthly_cost
            table.add_row(
                record.region,
                record.kind.label,
                record.id,
                self._truncate(record.name, 30),
                record.state,
                "N/A" if age is None else f"{age}d",
                f"[{style}]{verdict.disposition.value}[/]",
                "N/A" if cost is None else f"{cost:,.2f}",
                self._truncate(verdict.reason, 60),
            )

        self.console.print(table)

    def _print_errors(self, errors: Dict[str, List[str]]) -> None:
        if not errors:
            return

        self.console.print("\n[yellow bold]Errors encountered:[/yellow bold]")

        for region, error_list in errors.items():
            self.console.print(f"\n[yellow]{region}:[/yellow]")
            for error in error_list:
                self.console.print(f"  [red]• {error}[/red]")

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        """Truncate text to maximum length with ellipsis."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Deletion Run
    # =========================================================================

    def print_deletion_plan(
        self,
        candidates: Sequence[ClassifiedResource],
        options: ExecutorOptions,
    ) -> None:
        """
        Show what a deletion run is about to process.

        Parameters
        ----------
        candidates : sequence of ClassifiedResource
            DELETE-classified resources selected for the run.
        options : ExecutorOptions
            Options of the run.
        """
        mode_styles = {"dry_run": "cyan", "interactive": "yellow", "automated": "red"}
        mode = options.mode.value

        header_text = Text()
        header_text.append("\nDeletion Run\n", style="bold blue")
        header_text.append(f"Mode: {mode}", style=mode_styles.get(mode, "white"))
        if options.backup_before_delete:
            header_text.append("  |  backups enabled", style="dim")
        if options.protect_tag_patterns:
            patterns = ", ".join(sorted(options.protect_tag_patterns))
            header_text.append(f"\nProtected tags: {patterns}", style="dim")
        if not options.keep_tagged:
            header_text.append("\nDefault snapshot protection tags disabled", style="dim")
        if options.min_age_days is not None:
            header_text.append(f"\nMinimum age: {options.min_age_days} days", style="dim")
        self.console.print(Panel(header_text, border_style="blue"))

        self.console.print(
            f"\n[bold]{len(candidates)}[/bold] DELETE candidates, "
            f"estimated savings [bold]${estimated_savings(candidates):,.2f}[/bold]/month"
        )

    def print_attempt(self, attempt: DeletionAttempt) -> None:
        """Print one line for a decided attempt."""
        style = OUTCOME_STYLES[attempt.outcome]
        details = f" [dim]({attempt.details})[/dim]" if attempt.details else ""
        self.console.print(
            f"  [{style}]{attempt.outcome.value:<16}[/] "
            f"{attempt.record.kind.label} {attempt.record.id}{details}"
        )

    def print_run_summary(self, report: ExecutionReport) -> None:
        """
        Print the tally of a deletion run.

        Parameters
        ----------
        report : ExecutionReport
            Result of ``DeletionExecutor.run``.
        """
        summary = report.summary
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Processed:", str(summary.total))
        if summary.dry_run_simulated:
            table.add_row("Would delete:", f"[cyan]{summary.dry_run_simulated}[/]")
        table.add_row("Deleted:", f"[green]{summary.succeeded}[/]")
        table.add_row("Skipped:", f"[yellow]{summary.skipped}[/]")
        table.add_row("  protected by tag:", str(summary.protected_by_tag))
        table.add_row("  protected by age:", str(summary.protected_by_age))
        table.add_row("  state changed:", str(summary.protected_by_state))
        table.add_row("  declined:", str(summary.declined))
        failed_style = "red" if summary.failed else "green"
        table.add_row("Failed:", f"[{failed_style}]{summary.failed}[/]")
        if summary.failed:
            table.add_row("  backup failures:", str(summary.backup_failures))
            table.add_row("  action failures:", str(summary.action_failures))
        if summary.not_processed:
            table.add_row("Not processed:", str(summary.not_processed))
        table.add_row(
            "Est. Monthly Savings:", f"[bold]${summary.estimated_savings:,.2f}[/bold]"
        )
        if report.session_id:
            table.add_row("Audit Session:", report.session_id)

        title = "Run Aborted" if summary.aborted else "Run Summary"
        self.console.print("\n")
        self.console.print(Panel(table, title=title, border_style="blue", expand=False))

    # =========================================================================
    # Public Methods: Scan Messages
    # =========================================================================

    def print_scanning_message(self, regions: List[str], kinds: Sequence[str]) -> None:
        """
        Print a message about what is being scanned.

        Example
        -------
        >>> reporter.print_scanning_message(["us-east-1"], ["Volume", "Snapshot"])
        """
        kind_text = ", ".join(kinds)
        if len(regions) == 1:
            self.console.print(
                f"\n[bold]Scanning {kind_text} in {regions[0]}...[/bold]"
            )
        else:
            region_preview = ", ".join(regions[:5])
            if len(regions) > 5:
                region_preview += f"... ({len(regions)} total)"
            self.console.print(
                f"\n[bold]Scanning {kind_text} across {len(regions)} regions...[/bold]"
            )
            self.console.print(f"[dim]Regions: {region_preview}[/dim]")

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        """Print scan completion message."""
        self.console.print("\n[green bold]Scan complete![/green bold]")
        if output_file:
            self.console.print(f"[dim]Results saved to: {output_file}[/dim]")

    def __repr__(self) -> str:
        return f"CLIReporter(show_all={self.show_all})"
