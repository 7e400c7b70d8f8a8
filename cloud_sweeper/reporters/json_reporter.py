"""
JSON Reporter Module
====================

Exports classified resources to JSON format for programmatic access.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> from cloud_sweeper.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="results.json")
>>> filepath = reporter.report(classified, scan_result)
>>>
>>> # Or get as string
>>> json_str = reporter.to_string(classified, scan_result)

Output Structure
----------------
::

    {
      "metadata": {
        "regions_scanned": ["us-east-1", "eu-west-1"],
        "total_resources": 42,
        "estimated_monthly_savings": 123.4,
        "scan_time": "2024-01-15T10:30:00+00:00",
        "errors": {}
      },
      "counts": {"DELETE": 5, "REVIEW": 3, "KEEP": 30, "IGNORE": 4},
      "summary_by_region": {
        "us-east-1": {"Volume": 9, "Snapshot": 12}
      },
      "resources": [
        {"kind": "Volume", "region": "us-east-1", "id": "vol-0abc", ...,
         "verdict": {"disposition": "DELETE", "reason": "...",
                     "estimated_monthly_cost": 10.0}}
      ]
    }

See Also
--------
CLIReporter : For terminal display.
CSVReporter : For spreadsheet export and the deletion input.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from cloud_sweeper.core.models import ClassifiedResource, ensure_utc, utcnow
from cloud_sweeper.core.region_manager import MultiRegionScanResult
from cloud_sweeper.reporters.csv_reporter import count_by_disposition, estimated_savings

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting classified resources to JSON format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level for pretty printing.
        Set to None for compact output.
    as_of : datetime, optional
        Reference time for ``age_days``. Defaults to now.

    Examples
    --------
    >>> reporter = JSONReporter(output_path="results.json")
    >>> filepath = reporter.report(classified, scan_result)

    Compact output (no indentation):

    >>> reporter = JSONReporter(indent=None)
    >>> json_str = reporter.to_string(classified)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
        as_of: Optional[datetime] = None,
    ) -> None:
        self.output_path = output_path
        self.indent = indent
        self.as_of = ensure_utc(as_of) or utcnow()
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"cloud_sweeper_report_{timestamp}.json")

    def report(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult] = None,
    ) -> str:
        """
        Export classified resources to a JSON file.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Exporting {len(classified)} resources to {output_path}")

        data = self.to_dict(classified, result)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=self.indent, default=str)

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult] = None,
    ) -> str:
        """Convert to a JSON string without writing to file."""
        return json.dumps(self.to_dict(classified, result), indent=self.indent, default=str)

    def to_dict(
        self,
        classified: Sequence[ClassifiedResource],
        result: Optional[MultiRegionScanResult] = None,
    ) -> Dict[str, Any]:
        """
        Build the report structure.

        Example
        -------
        >>> data = JSONReporter().to_dict(classified)
        >>> data["counts"]["DELETE"]
        5
        """
        metadata: Dict[str, Any] = {
            "total_resources": len(classified),
            "estimated_monthly_savings": estimated_savings(classified),
            "generated_at": self.as_of.isoformat(),
        }
        if result is not None:
            metadata.update(
                {
                    "regions_scanned": result.regions_scanned,
                    "successful_regions": len(result.successful_regions),
                    "failed_regions": len(result.failed_regions),
                    "scan_time": result.scan_time.isoformat(),
                    "errors": result.errors,
                }
            )

        return {
            "metadata": metadata,
            "counts": count_by_disposition(classified),
            "summary_by_region": self._summary_by_region(classified),
            "resources": [self._resource_entry(item) for item in classified],
        }

    @staticmethod
    def _summary_by_region(
        classified: Sequence[ClassifiedResource],
    ) -> Dict[str, Dict[str, int]]:
        summary: Dict[str, Dict[str, int]] = {}
        for record, _ in classified:
            by_kind = summary.setdefault(record.region, {})
            by_kind[record.kind.value] = by_kind.get(record.kind.value, 0) + 1
        return summary

    def _resource_entry(self, item: ClassifiedResource) -> Dict[str, Any]:
        entry = item.record.to_dict()
        entry["age_days"] = item.record.age_days(self.as_of)
        entry["verdict"] = item.verdict.to_dict()
        return entry

    def __repr__(self) -> str:
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"
