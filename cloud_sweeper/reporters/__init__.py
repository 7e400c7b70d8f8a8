"""
Report Generators
=================

This module provides output formatters for classified resources and
deletion runs.

Available Reporters
-------------------
CLIReporter
    Rich terminal output with formatted tables and progress indicators.
CSVReporter
    CSV export, and the reader that turns a CSV report back into the
    deletion executor's input.
JSONReporter
    JSON export for programmatic access.

Example
-------
>>> from cloud_sweeper.reporters import CLIReporter, CSVReporter, JSONReporter
>>>
>>> # Display in terminal
>>> CLIReporter().report(classified, scan_result)
>>>
>>> # Export to CSV and read it back
>>> filepath = CSVReporter(output_path="report.csv").report(classified, scan_result)
>>> pairs = CSVReporter.read(filepath)

Output Formats
--------------
**CLI (Terminal)**
    - Colored recommendations
    - Summary with counts per disposition and estimated savings
    - Deletion attempt tables and run summaries

**CSV**
    - Spreadsheet-compatible format
    - One row per resource, every disposition included
    - ``#`` metadata header

**JSON**
    - Machine-readable format
    - Counts per disposition and per region

See Also
--------
cloud_sweeper.classifier : Produces the verdicts being reported.
"""

from cloud_sweeper.reporters.cli_reporter import CLIReporter
from cloud_sweeper.reporters.csv_reporter import (
    CSVReporter,
    count_by_disposition,
    estimated_savings,
)
from cloud_sweeper.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "CSVReporter",
    "JSONReporter",
    "count_by_disposition",
    "estimated_savings",
]
