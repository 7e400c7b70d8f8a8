"""
CSV Reporter Module
===================

Writes classified resources to CSV and reads them back.

The CSV report is the hand-off between the scan and the deletion
executor: ``cloud-sweeper delete --report FILE`` reads exactly what
``cloud-sweeper scan --output csv`` wrote, so the writer and the reader
live side by side.

Classes
-------
CSVReporter
    Writer and reader for the CSV report.

Example
-------
>>> from cloud_sweeper.reporters import CSVReporter
>>>
>>> reporter = CSVReporter(output_path="report.csv")
>>> filepath = reporter.report(classified, scan_result)
>>> pairs = CSVReporter.read(filepath)

Output Format
-------------
The CSV file includes:
1. Metadata header rows (prefixed with #)
2. Empty separator row
3. Column headers
4. Data rows, ordered by region, kind and ID

Example output::

    # Scan Metadata
    # Regions Scanned:,2
    # Region List:,"us-east-1, eu-west-1"
    # Total Resources:,42
    # DELETE:,5
    # REVIEW:,3
    # Estimated Monthly Savings:,123.40
    # Scan Time:,2024-01-15T10:30:00+00:00

    Kind,Region,Resource ID,Name,State,Type,Size,Created At,...
    Volume,us-east-1,vol-0abc,old-data,available,gp2,100.0,...

Missing numbers are written as ``N/A``.

See Also
--------
CLIReporter : For terminal display.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from cloud_sweeper.core.exceptions import ReportFormatError
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceKind,
    ResourceRecord,
    Verdict,
    ensure_utc,
    to_optional_float,
    utcnow,
)
from cloud_sweeper.core.region_manager import MultiRegionScanResult

# Module logger
logger = logging.getLogger(__name__)

MISSING = "N/A"
RECOMMENDATION_SEPARATOR = " - "


class CSVReporter:
    """
    Reporter for exporting classified resources to CSV format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    as_of : datetime, optional
        Reference time for the Age column. Defaults to now.

    Examples
    --------
    Export to specific file:

    >>> reporter = CSVReporter(output_path="./reports/unused.csv")
    >>> filepath = reporter.report(classified, scan_result)

    Auto-generate filename:

    >>> reporter = CSVReporter()
    >>> filepath = reporter.report(classified)
    >>> print(filepath)  # e.g., 'cloud_sweeper_report_20240115_103000.csv'
    """

    COLUMNS = [
        "Kind",
        "Region",
        "Resource ID",
        "Name",
        "State",
        "Type",
        "Size",
        "Created At",
        "Age (days)",
        "Utilization",
        "Utilization Metric",
        "Associated With",
        "Tags",
        "Recommendation",
        "Est. Monthly Cost",
    ]

    # Columns the reader cannot do without
    REQUIRED_COLUMNS = ("Kind", "Region", "Resource ID", "State", "Recommendation")

    def __init__(
        self,
        output_path: Optional[str] = None,
        as_of: Optional[datetime] = None,
    ) -> None:
        self.output_path = output_path
        self.as_of = ensure_utc(as_of) or utcnow()
        logger.debug(f"Initialized CSVReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"cloud_sweeper_report_{timestamp}.csv")

    # =========================================================================
    # Writing
    # =========================================================================

    def report(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult] = None,
    ) -> str:
        """
        Export classified resources to CSV.

        Parameters
        ----------
        classified : sequence of ClassifiedResource
            Records with their verdicts, in report order.
        result : MultiRegionScanResult, optional
            Scan the records came from; supplies the metadata rows.

        Returns
        -------
        str
            Path to the created CSV file.
        """
        output_path = self._get_output_path()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Exporting {len(classified)} resources to {output_path}")

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)

            self._write_metadata(writer, classified, result)
            writer.writerow(self.COLUMNS)
            for item in classified:
                writer.writerow(self._format_row(item))

        logger.info(f"CSV export complete: {output_path}")
        return str(output_path)

    def _write_metadata(
        self,
        writer: Any,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult],
    ) -> None:
        """Write the ``#`` metadata rows and a blank separator row."""
        writer.writerow(["# Scan Metadata"])
        if result is not None:
            regions = result.regions_scanned
            writer.writerow(["# Regions Scanned:", len(regions)])
            if len(regions) <= 5:
                writer.writerow(["# Region List:", ", ".join(regions)])
        writer.writerow(["# Total Resources:", len(classified)])
        for disposition, count in count_by_disposition(classified).items():
            writer.writerow([f"# {disposition}:", count])
        writer.writerow(
            ["# Estimated Monthly Savings:", f"{estimated_savings(classified):.2f}"]
        )
        scan_time = result.scan_time if result is not None else self.as_of
        writer.writerow(["# Scan Time:", scan_time.isoformat()])
        writer.writerow([])

    def _format_row(self, item: ClassifiedResource) -> List[Any]:
        record, verdict = item
        age = record.age_days(self.as_of)
        return [
            record.kind.value,
            record.region,
            record.id,
            record.name,
            record.state,
            record.flavor or "",
            _format_number(record.size),
            record.created_at.isoformat() if record.created_at else "",
            MISSING if age is None else age,
            _format_number(record.utilization),
            record.utilization_metric or "",
            record.associated_id or "",
            self._format_tags(record.tags),
            f"{verdict.disposition.value}{RECOMMENDATION_SEPARATOR}{verdict.reason}",
            _format_number(verdict.estimated_monthly_cost, digits=2),
        ]

    @staticmethod
    def _format_tags(tags: Dict[str, str]) -> str:
        """
        Format tags dictionary as a string for CSV.

        Returns
        -------
        str
            Formatted string like "key1=value1; key2=value2".
        """
        if not tags:
            return ""
        return "; ".join(f"{k}={v}" for k, v in sorted(tags.items()))

    # =========================================================================
    # Reading
    # =========================================================================

    @classmethod
    def read(cls, path: Union[str, Path]) -> List[ClassifiedResource]:
        """
        Parse a CSV report back into classified resources.

        Parameters
        ----------
        path : str or Path
            Report written by ``report``.

        Returns
        -------
        list of ClassifiedResource
            One pair per data row, in file order.

        Raises
        ------
        ReportFormatError
            If the file is missing, has no header row, lacks a required
            column or contains a malformed row.
        """
        path = Path(path)
        try:
            with open(path, newline="", encoding="utf-8") as csvfile:
                rows = list(csv.reader(csvfile))
        except OSError as e:
            raise ReportFormatError(
                f"Cannot read report {path}: {e}", details={"path": str(path)}
            )

        header: Optional[List[str]] = None
        classified: List[ClassifiedResource] = []

        for line_number, row in enumerate(rows, start=1):
            if not row or not any(cell.strip() for cell in row):
                continue
            if row[0].startswith("#"):
                continue
            if header is None:
                header = [cell.strip() for cell in row]
                missing = [c for c in cls.REQUIRED_COLUMNS if c not in header]
                if missing:
                    raise ReportFormatError(
                        f"Report {path} is missing columns: {', '.join(missing)}",
                        details={"path": str(path), "missing": missing},
                    )
                continue

            values = dict(zip(header, row))
            try:
                classified.append(cls._parse_row(values))
            except (KeyError, ValueError) as e:
                raise ReportFormatError(
                    f"Malformed row at line {line_number} of {path}: {e}",
                    details={"path": str(path), "line": line_number},
                )

        if header is None:
            raise ReportFormatError(
                f"Report {path} has no header row", details={"path": str(path)}
            )

        logger.info(f"Read {len(classified)} resources from {path}")
        return classified

    @classmethod
    def _parse_row(cls, values: Dict[str, str]) -> ClassifiedResource:
        disposition_text, _, reason = values["Recommendation"].partition(
            RECOMMENDATION_SEPARATOR
        )
        disposition = Disposition(disposition_text.strip().upper())

        created_text = values.get("Created At", "").strip()
        created_at = datetime.fromisoformat(created_text) if created_text else None

        record = ResourceRecord(
            kind=ResourceKind.parse(values["Kind"]),
            region=values["Region"].strip(),
            id=values["Resource ID"].strip(),
            state=values["State"].strip(),
            created_at=created_at,
            size=to_optional_float(values.get("Size")),
            utilization=to_optional_float(values.get("Utilization")),
            utilization_metric=values.get("Utilization Metric") or None,
            tags=cls._parse_tags(values.get("Tags", "")),
            associated_id=values.get("Associated With") or None,
            name=values.get("Name", ""),
            flavor=values.get("Type") or None,
        )
        if not record.id:
            raise ValueError("empty Resource ID")

        verdict = Verdict(
            disposition=disposition,
            reason=reason.strip(),
            estimated_monthly_cost=to_optional_float(values.get("Est. Monthly Cost")),
        )
        return ClassifiedResource(record, verdict)

    @staticmethod
    def _parse_tags(text: str) -> Dict[str, str]:
        """Inverse of ``_format_tags``."""
        tags: Dict[str, str] = {}
        for part in (text or "").split(";"):
            if not part.strip():
                continue
            key, _, value = part.strip().partition("=")
            if key.strip():
                tags[key.strip()] = value.strip()
        return tags

    def __repr__(self) -> str:
        return f"CSVReporter(output_path={self.output_path!r})"


def estimated_savings(classified: Sequence[ClassifiedResource]) -> float:
    """Sum of estimated monthly cost over DELETE verdicts."""
    return round(
        sum(
            item.verdict.estimated_monthly_cost or 0.0
            for item in classified
            if item.verdict.disposition is Disposition.DELETE
        ),
        2,
    )


def _format_number(value: Optional[float], digits: int = 4) -> str:
    if value is None:
        return MISSING
    if digits == 2:
        return f"{value:.2f}"
    return str(round(value, digits))


def count_by_disposition(classified: Sequence[ClassifiedResource]) -> Dict[str, int]:
    """Number of resources per disposition, every disposition present."""
    counts = {disposition.value: 0 for disposition in Disposition}
    for item in classified:
        counts[item.verdict.disposition.value] += 1
    return counts
