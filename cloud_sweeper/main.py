"""
Cloud-Sweeper CLI - AWS Unused Resource Auditor

Main entry point for the command-line interface.
"""

import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from . import __version__
from .classifier import Classifier
from .cleaners import (
    AuditLog,
    AWSResourceActions,
    Confirmation,
    DeletionExecutor,
    ExecutorOptions,
    RunMode,
)
from .core.aws_client import AWSClient
from .core.exceptions import CloudSweeperError
from .core.logging import get_logger, setup_logging
from .core.models import ResourceKind, ResourceRecord, ThresholdConfig, Verdict, utcnow
from .core.region_manager import DEFAULT_REGION, RegionManager
from .reporters.cli_reporter import CLIReporter
from .reporters.csv_reporter import CSVReporter
from .reporters.json_reporter import JSONReporter
from .scanners import scanners_for_kinds


console = Console()
logger = get_logger(__name__)


def validate_regions(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse comma-separated region list."""
    if value is None:
        return None
    regions = [r.strip() for r in value.split(",") if r.strip()]
    if not regions:
        raise click.BadParameter("No valid regions specified")
    return regions


def validate_kinds(ctx, param, value: Optional[str]) -> Optional[List[ResourceKind]]:
    """Validate and parse comma-separated resource kinds."""
    if value is None:
        return None
    try:
        kinds = [ResourceKind.parse(k) for k in value.split(",") if k.strip()]
    except ValueError as e:
        raise click.BadParameter(str(e))
    if not kinds:
        raise click.BadParameter("No valid resource kinds specified")
    return kinds


profile_option = click.option(
    "--profile",
    "-p",
    default=None,
    envvar="AWS_PROFILE",
    help="AWS profile name from ~/.aws/credentials (env: AWS_PROFILE)",
)

kinds_option = click.option(
    "--kinds",
    "-k",
    callback=validate_kinds,
    help="Comma-separated resource kinds (e.g., ebs,snapshot,eip). Default: all",
)


@click.group()
@click.version_option(version=__version__, prog_name="cloud-sweeper")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level (default: WARNING)",
)
@click.option(
    "--log-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write logs to this file",
)
def cli(log_level: str, log_file: Optional[str]):
    """
    Cloud-Sweeper: AWS Unused Resource Auditor

    Finds idle and orphaned EC2 instances, EBS volumes and snapshots,
    Elastic IPs, load balancers, RDS instances, Lambda functions, NAT
    gateways and S3 buckets, estimates what they cost, and deletes them
    behind safety gates.
    """
    setup_logging(level=log_level, log_file=log_file)


# =============================================================================
# scan
# =============================================================================


@cli.command("scan")
@click.option(
    "--region",
    "-r",
    default=DEFAULT_REGION,
    help=f"AWS region to scan (default: {DEFAULT_REGION})",
)
@click.option(
    "--all-regions",
    is_flag=True,
    help="Scan all available AWS regions",
)
@click.option(
    "--regions",
    callback=validate_regions,
    help="Comma-separated list of regions to scan (e.g., us-east-1,us-west-2)",
)
@profile_option
@kinds_option
@click.option(
    "--output",
    "-o",
    "output_format",
    type=click.Choice(["cli", "csv", "json"]),
    default="cli",
    help="Output format (default: cli)",
)
@click.option(
    "--output-file",
    "-f",
    default=None,
    help="Output file path (default: timestamped file in the current directory)",
)
@click.option(
    "--show-all",
    is_flag=True,
    help="List KEEP and IGNORE resources in the terminal report too",
)
@click.option(
    "--max-workers",
    default=10,
    type=int,
    help="Maximum parallel scan jobs (default: 10)",
)
@click.option("--stopped-days", default=30, type=int, show_default=True,
              help="Stopped instances at least this old are DELETE")
@click.option("--unattached-days", default=30, type=int, show_default=True,
              help="Unattached volumes at least this old are DELETE")
@click.option("--snapshot-review-days", default=90, type=int, show_default=True,
              help="Snapshots at least this old are REVIEW")
@click.option("--snapshot-delete-days", default=365, type=int, show_default=True,
              help="Snapshots at least this old are DELETE")
@click.option("--cpu-threshold", default=5.0, type=float, show_default=True,
              help="Running instances below this average CPU percent are REVIEW")
@click.option("--idle-days", default=90, type=int, show_default=True,
              help="Functions without invocations must be this old to be DELETE")
@click.option("--empty-bucket-days", default=180, type=int, show_default=True,
              help="Empty buckets at least this old are DELETE")
@click.option("--lb-days", default=7, type=int, show_default=True,
              help="Idle load balancers must be this old to be DELETE")
@click.option("--nat-bytes", default=1_000_000, type=float, show_default=True,
              help="NAT gateways below this average of bytes out are REVIEW")
@click.option("--nearly-empty-gb", default=0.1, type=float, show_default=True,
              help="Old buckets smaller than this are REVIEW")
@click.option("--metric-days", default=30, type=int, show_default=True,
              help="Trailing CloudWatch window for every kind")
def scan(
    region: str,
    all_regions: bool,
    regions: Optional[List[str]],
    profile: Optional[str],
    kinds: Optional[List[ResourceKind]],
    output_format: str,
    output_file: Optional[str],
    show_all: bool,
    max_workers: int,
    stopped_days: int,
    unattached_days: int,
    snapshot_review_days: int,
    snapshot_delete_days: int,
    cpu_threshold: float,
    idle_days: int,
    empty_bucket_days: int,
    lb_days: int,
    nat_bytes: float,
    nearly_empty_gb: float,
    metric_days: int,
):
    """
    Scan for unused resources and classify them.

    Every resource gets a recommendation (DELETE, REVIEW, KEEP or IGNORE)
    and an estimated monthly cost. Nothing is modified.

    Examples:

        # Scan default region (us-east-1)
        cloud-sweeper scan

        # Scan all regions, only volumes and snapshots
        cloud-sweeper scan --all-regions --kinds ebs,snapshot

        # Write the CSV report used by `cloud-sweeper delete`
        cloud-sweeper scan --regions us-east-1,eu-west-1 -o csv -f report.csv

        # Stricter thresholds
        cloud-sweeper scan --stopped-days 14 --cpu-threshold 2
    """
    as_of = utcnow()
    cli_reporter = CLIReporter(console, show_all=show_all, as_of=as_of)

    try:
        AWSClient(region=region, profile=profile).validate_credentials()

        config = ThresholdConfig(
            stopped_instance_min_days=stopped_days,
            unattached_volume_min_days=unattached_days,
            snapshot_review_min_days=snapshot_review_days,
            snapshot_delete_min_days=snapshot_delete_days,
            cpu_idle_percent=cpu_threshold,
            idle_activity_min_days=idle_days,
            empty_bucket_min_days=empty_bucket_days,
            load_balancer_min_days=lb_days,
            nat_idle_bytes=nat_bytes,
            nearly_empty_bucket_gb=nearly_empty_gb,
            metric_window_days={kind: metric_days for kind in ResourceKind},
        ).validate()

        region_manager = RegionManager(profile=profile, max_workers=max_workers)
        if all_regions:
            target_regions = region_manager.get_all_regions()
        elif regions:
            target_regions = regions
        else:
            target_regions = [region]

        scanner_classes = scanners_for_kinds([k.value for k in kinds] if kinds else None)
        kind_labels = [k.label for k in ResourceKind if not kinds or k in kinds]
        logger.debug(f"Scanning {len(scanner_classes)} kinds in {target_regions}")
        cli_reporter.print_scanning_message(target_regions, kind_labels)

        def progress_callback(job: str, status: str):
            if status == "complete":
                console.print(f"  [dim]Completed: {job}[/dim]")
            elif status == "error":
                console.print(f"  [yellow]Error scanning: {job}[/yellow]")

        result = region_manager.scan_regions(
            scanner_classes,
            regions=target_regions,
            config=config,
            as_of=as_of,
            progress_callback=progress_callback,
        )

        classified = Classifier(config, as_of=as_of).classify_all(result.records)

        output_path = None
        if output_format == "csv":
            output_path = CSVReporter(output_path=output_file, as_of=as_of).report(
                classified, result
            )
        elif output_format == "json":
            output_path = JSONReporter(output_path=output_file, as_of=as_of).report(
                classified, result
            )

        cli_reporter.report(classified, result)
        cli_reporter.print_completion_message(output_path)

    except CloudSweeperError as e:
        console.print(f"\n[red bold]Error:[/red bold] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Scan cancelled by user.[/yellow]")
        sys.exit(130)


# =============================================================================
# delete
# =============================================================================


@cli.command("delete")
@click.option(
    "--report",
    "report_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="CSV report written by `cloud-sweeper scan -o csv`",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Run every safety check but delete nothing (default mode)",
)
@click.option(
    "--interactive",
    "-i",
    is_flag=True,
    default=False,
    help="Ask before each deletion (yes/no/quit)",
)
@click.option(
    "--execute",
    is_flag=True,
    default=False,
    help="Delete without per-resource prompts",
)
@click.option(
    "--backup",
    is_flag=True,
    default=False,
    help="Create an AMI, EBS snapshot or DB snapshot before deleting",
)
@click.option(
    "--protect-tags",
    multiple=True,
    help="Never delete resources with these tags (Key=Value or Key; comma-separated, repeatable)",
)
@click.option(
    "--keep-tagged/--no-keep-tagged",
    default=True,
    show_default=True,
    help="Keep snapshots tagged Retention, Keep, DoNotDelete or Backup",
)
@click.option("--min-age-days", type=click.IntRange(min=0), default=None,
              help="Skip resources younger than this (or of unknown age)")
@click.option("--max-resources", type=click.IntRange(min=0), default=None,
              help="Stop after processing this many resources")
@click.option("--max-savings", type=click.FloatRange(min=0), default=None,
              help="Stop before estimated monthly savings exceed this amount")
@click.option(
    "--log-dir",
    default="./deletion-logs",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory for the audit logs and backup manifest",
)
@kinds_option
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    default=False,
    help="Skip the DELETE confirmation of an --execute run",
)
@profile_option
def delete(
    report_path: str,
    dry_run: bool,
    interactive: bool,
    execute: bool,
    backup: bool,
    protect_tags: Tuple[str, ...],
    keep_tagged: bool,
    min_age_days: Optional[int],
    max_resources: Optional[int],
    max_savings: Optional[float],
    log_dir: str,
    kinds: Optional[List[ResourceKind]],
    yes: bool,
    profile: Optional[str],
):
    """
    Delete DELETE-classified resources from a scan report.

    Every resource passes the same gates: live state, minimum age,
    protection tags, confirmation (--interactive), backup (--backup) and
    finally the deletion itself. Dry-run is the default.

    SAFETY FEATURES:
    - Dry-run by default: every check runs, nothing is deleted
    - Live state is re-read before each deletion
    - Protection tags and minimum age
    - Snapshots tagged Retention, Keep, DoNotDelete or Backup are kept
      unless --no-keep-tagged is given
    - Confirmed backups before deletion
    - Audit log of every processed resource

    Examples:

        # Preview (safe)
        cloud-sweeper delete --report report.csv

        # Ask before each resource, keep anything tagged DoNotDelete
        cloud-sweeper delete --report report.csv -i --protect-tags DoNotDelete=true

        # Delete volumes and snapshots, backing up volumes first
        cloud-sweeper delete --report report.csv --execute --backup --kinds ebs,snapshot
    """
    if interactive and execute:
        raise click.UsageError("--interactive and --execute are mutually exclusive")
    if dry_run and (interactive or execute):
        raise click.UsageError("--dry-run cannot be combined with --interactive or --execute")

    cli_reporter = CLIReporter(console)

    try:
        options = ExecutorOptions(
            dry_run=not (interactive or execute),
            interactive=interactive,
            backup_before_delete=backup,
            protect_tag_patterns=frozenset(protect_tags),
            keep_tagged=keep_tagged,
            min_age_days=min_age_days,
            max_resources=max_resources,
            max_estimated_savings=max_savings,
            kinds=frozenset(kinds) if kinds else None,
        )

        classified = CSVReporter.read(report_path)

        client = AWSClient(region=DEFAULT_REGION, profile=profile)
        client.validate_credentials()

        audit_log = AuditLog(log_dir)
        executor = DeletionExecutor(
            actions=AWSResourceActions(client),
            options=options,
            audit_log=audit_log,
            confirm=_prompt_confirmation if interactive else None,
            progress_callback=cli_reporter.print_attempt,
        )

        candidates = executor.select(classified)
        if not candidates:
            console.print("\n[green]No DELETE candidates in the report. Nothing to do.[/green]")
            return

        cli_reporter.print_deletion_plan(candidates, options)
        if options.mode is RunMode.DRY_RUN:
            console.print(
                Panel(
                    "[yellow bold]DRY-RUN MODE[/yellow bold]\n"
                    "Every check runs; no resources will be deleted.",
                    border_style="yellow",
                )
            )
        elif options.mode is RunMode.AUTOMATED and not yes:
            console.print(
                Panel(
                    f"[red bold]LIVE MODE[/red bold]\n"
                    f"Up to {len(candidates)} resources will be deleted WITHOUT "
                    f"further confirmation.",
                    border_style="red",
                )
            )
            answer = Prompt.ask("Type [bold]DELETE[/bold] to proceed", default="")
            if answer != "DELETE":
                console.print("\n[yellow]Deletion cancelled by user.[/yellow]")
                return

        console.print()
        report = executor.run(classified)

        cli_reporter.print_run_summary(report)
        console.print(f"[dim]Audit log: {audit_log.session_log_path}[/dim]")
        if options.backup_before_delete and not options.dry_run:
            console.print(f"[dim]Backup manifest: {audit_log.backup_manifest_path}[/dim]")

        if report.summary.failed:
            console.print(
                "\n[yellow]Some deletions failed. See the audit log for details.[/yellow]"
            )

    except CloudSweeperError as e:
        console.print(f"\n[red bold]Error:[/red bold] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deletion cancelled by user.[/yellow]")
        sys.exit(130)


def _prompt_confirmation(record: ResourceRecord, verdict: Verdict) -> Confirmation:
    """Ask yes/no/quit for one resource."""
    cost = verdict.estimated_monthly_cost
    console.print(
        f"\n[bold]{record.kind.label}[/bold] [cyan]{record.id}[/cyan]"
        f"{f' ({record.name})' if record.name else ''} in {record.region}"
    )
    console.print(f"  [dim]{verdict.reason}[/dim]")
    if cost is not None:
        console.print(f"  Estimated savings: ${cost:,.2f}/month")

    answer = Prompt.ask(
        "  Delete?",
        choices=[c.value for c in Confirmation],
        default=Confirmation.NO.value,
        console=console,
    )
    return Confirmation(answer)


# =============================================================================
# regions / validate
# =============================================================================


@cli.command("regions")
@profile_option
def list_regions(profile: Optional[str]):
    """List all available AWS regions."""
    try:
        region_manager = RegionManager(profile=profile)
        regions = region_manager.get_all_regions()

        console.print(f"\n[bold]Available AWS Regions ({len(regions)} total):[/bold]\n")
        for region in regions:
            console.print(f"  • {region}")
        console.print()

    except CloudSweeperError as e:
        console.print(f"\n[red bold]Error:[/red bold] {e}")
        sys.exit(1)


@cli.command("validate")
@profile_option
@click.option(
    "--region",
    "-r",
    default=DEFAULT_REGION,
    help="AWS region to use for validation",
)
def validate_credentials(profile: Optional[str], region: str):
    """Validate AWS credentials and show account info."""
    try:
        client = AWSClient(region=region, profile=profile)
        identity = client.get_caller_identity()

        console.print("\n[green bold]AWS credentials are valid![/green bold]")
        console.print(f"\n  Account ID: {identity['Account']}")
        console.print(f"  ARN: {identity['Arn']}")
        console.print(f"  Region: {region}")
        if profile:
            console.print(f"  Profile: {profile}")
        console.print()

    except CloudSweeperError as e:
        console.print(f"\n[red bold]Validation Failed:[/red bold] {e}")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
