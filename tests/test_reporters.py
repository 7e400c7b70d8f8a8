"""
Tests for the Reporter modules.
"""

import csv
import json

import pytest
from rich.console import Console

from cloud_sweeper.cleaners import DeletionExecutor, ExecutorOptions
from cloud_sweeper.core.base_scanner import ScanResult
from cloud_sweeper.core.exceptions import ReportFormatError
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceKind,
    Verdict,
)
from cloud_sweeper.core.region_manager import MultiRegionScanResult
from cloud_sweeper.reporters import CLIReporter, CSVReporter, JSONReporter
from cloud_sweeper.reporters.csv_reporter import count_by_disposition, estimated_savings

from conftest import AS_OF, days_ago, make_record


@pytest.fixture
def classified():
    """Report rows covering every disposition."""
    return [
        ClassifiedResource(
            make_record(
                ResourceKind.VOLUME,
                id="vol-0old",
                name="old-data",
                size=100.0,
                flavor="gp2",
                created_at=days_ago(60),
                tags={"team": "data", "Environment": "dev"},
            ),
            Verdict(Disposition.DELETE, "Unattached for 60 days; estimated $10.00/month", 10.0),
        ),
        ClassifiedResource(
            make_record(ResourceKind.FLOATING_IP, id="eipalloc-1", state="unassociated"),
            Verdict(Disposition.DELETE, "Elastic IP is unassociated", 3.6),
        ),
        ClassifiedResource(
            make_record(
                ResourceKind.INSTANCE,
                id="i-busy",
                state="running",
                utilization=2.5,
                utilization_metric="Avg CPU %",
                flavor="t3.micro",
                created_at=days_ago(10),
            ),
            Verdict(Disposition.REVIEW, "Average CPU 2.5% below 5.0%", 7.5),
        ),
        ClassifiedResource(
            make_record(ResourceKind.VOLUME, id="vol-used", state="in-use",
                        associated_id="i-busy"),
            Verdict(Disposition.KEEP, "Volume is attached", 4.0),
        ),
        ClassifiedResource(
            make_record(ResourceKind.INSTANCE, id="i-gone", state="terminated"),
            Verdict(Disposition.IGNORE, "Resource is terminated", None),
        ),
    ]


@pytest.fixture
def scan_result(classified):
    """Scan result the rows came from."""
    records = [item.record for item in classified]
    return MultiRegionScanResult(
        regions_scanned=["us-east-1"],
        results=[ScanResult(ResourceKind.VOLUME, "us-east-1", records)],
        scan_time=AS_OF,
        errors={"eu-west-1": ["Failed to list NATGateway resources: denied"]},
    )


class TestSummaryHelpers:
    """Tests for the shared summary helpers."""

    def test_estimated_savings_counts_delete_only(self, classified):
        assert estimated_savings(classified) == 13.6

    def test_count_by_disposition(self, classified):
        assert count_by_disposition(classified) == {
            "DELETE": 2,
            "REVIEW": 1,
            "KEEP": 1,
            "IGNORE": 1,
        }

    def test_counts_include_zero(self):
        assert count_by_disposition([]) == {"DELETE": 0, "REVIEW": 0, "KEEP": 0, "IGNORE": 0}


class TestCSVReporter:
    """Tests for CSVReporter class."""

    def test_metadata_rows(self, classified, scan_result, tmp_path):
        path = CSVReporter(str(tmp_path / "report.csv"), as_of=AS_OF).report(
            classified, scan_result
        )
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert rows[0] == ["# Scan Metadata"]
        metadata = {row[0]: row[1] for row in rows if row and row[0].startswith("#") and len(row) > 1}
        assert metadata["# Total Resources:"] == "5"
        assert metadata["# DELETE:"] == "2"
        assert metadata["# Estimated Monthly Savings:"] == "13.60"
        assert metadata["# Region List:"] == "us-east-1"

    def test_row_format(self, classified, tmp_path):
        path = CSVReporter(str(tmp_path / "report.csv"), as_of=AS_OF).report(classified)
        with open(path, newline="", encoding="utf-8") as f:
            rows = [row for row in csv.reader(f) if row and not row[0].startswith("#")]

        header, first = rows[0], dict(zip(rows[0], rows[1]))
        assert header == CSVReporter.COLUMNS
        assert first["Resource ID"] == "vol-0old"
        assert first["Age (days)"] == "60"
        assert first["Tags"] == "Environment=dev; team=data"
        assert first["Recommendation"].startswith("DELETE - Unattached for 60 days")
        assert first["Est. Monthly Cost"] == "10.00"

        ignored = dict(zip(header, rows[5]))
        assert ignored["Est. Monthly Cost"] == "N/A"
        assert ignored["Age (days)"] == "N/A"

    def test_read_returns_what_was_written(self, classified, scan_result, tmp_path):
        path = CSVReporter(str(tmp_path / "report.csv"), as_of=AS_OF).report(
            classified, scan_result
        )
        loaded = CSVReporter.read(path)

        assert [item.record.id for item in loaded] == [item.record.id for item in classified]
        volume, verdict = loaded[0]
        assert volume.kind is ResourceKind.VOLUME
        assert volume.created_at == classified[0].record.created_at
        assert volume.tags == {"team": "data", "Environment": "dev"}
        assert volume.size == 100.0
        assert verdict.disposition is Disposition.DELETE
        assert verdict.reason == classified[0].verdict.reason
        assert verdict.estimated_monthly_cost == 10.0

        assert loaded[2].record.utilization == 2.5
        assert loaded[3].record.associated_id == "i-busy"
        assert loaded[4].verdict.estimated_monthly_cost is None

    def test_report_feeds_the_executor(self, classified, tmp_path):
        """Only DELETE rows of a read report are deletion candidates."""
        path = CSVReporter(str(tmp_path / "report.csv"), as_of=AS_OF).report(classified)
        executor = DeletionExecutor(actions=None, options=ExecutorOptions())
        candidates = executor.select(CSVReporter.read(path))
        assert [item.record.id for item in candidates] == ["vol-0old", "eipalloc-1"]

    def test_auto_generated_filename(self, classified, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = CSVReporter().report(classified)
        assert path.startswith("cloud_sweeper_report_")
        assert path.endswith(".csv")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReportFormatError):
            CSVReporter.read(tmp_path / "nope.csv")

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("Kind,Region,Resource ID\nVolume,us-east-1,vol-1\n")
        with pytest.raises(ReportFormatError) as exc_info:
            CSVReporter.read(path)
        assert "State" in exc_info.value.details["missing"]

    def test_no_header(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("# Scan Metadata\n\n")
        with pytest.raises(ReportFormatError):
            CSVReporter.read(path)

    @pytest.mark.parametrize(
        "row",
        [
            "Bucket-ish,us-east-1,x,available,DELETE - old",
            "Volume,us-east-1,vol-1,available,MAYBE - old",
            "Volume,us-east-1,,available,DELETE - old",
        ],
    )
    def test_malformed_rows(self, tmp_path, row):
        path = tmp_path / "bad.csv"
        path.write_text(f"Kind,Region,Resource ID,State,Recommendation\n{row}\n")
        with pytest.raises(ReportFormatError) as exc_info:
            CSVReporter.read(path)
        assert exc_info.value.details["line"] == 2


class TestJSONReporter:
    """Tests for JSONReporter class."""

    def test_to_dict(self, classified, scan_result):
        data = JSONReporter(as_of=AS_OF).to_dict(classified, scan_result)

        assert data["metadata"]["total_resources"] == 5
        assert data["metadata"]["estimated_monthly_savings"] == 13.6
        assert data["metadata"]["failed_regions"] == 1
        assert data["counts"]["REVIEW"] == 1
        assert data["summary_by_region"]["us-east-1"] == {"Volume": 2, "FloatingIP": 1, "Instance": 2}

        first = data["resources"][0]
        assert first["id"] == "vol-0old"
        assert first["age_days"] == 60
        assert first["verdict"]["disposition"] == "DELETE"

    def test_report_writes_file(self, classified, tmp_path):
        path = JSONReporter(str(tmp_path / "out" / "report.json")).report(classified)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert len(data["resources"]) == 5

    def test_to_string(self, classified):
        assert json.loads(JSONReporter(indent=None).to_string(classified))["counts"]["DELETE"] == 2


class TestCLIReporter:
    """Tests for CLIReporter class."""

    @staticmethod
    def reporter(show_all=False):
        console = Console(record=True, width=200)
        return CLIReporter(console=console, show_all=show_all, as_of=AS_OF), console

    def test_report_shows_actionable_rows(self, classified, scan_result):
        reporter, console = self.reporter()
        reporter.report(classified, scan_result)
        output = console.export_text()

        assert "Unused Resource Report" in output
        assert "vol-0old" in output
        assert "i-busy" in output
        assert "vol-used" not in output
        assert "$13.60" in output
        assert "Errors encountered" in output

    def test_show_all(self, classified):
        reporter, console = self.reporter(show_all=True)
        reporter.report(classified)
        assert "vol-used" in console.export_text()

    def test_nothing_actionable(self, classified):
        reporter, console = self.reporter()
        reporter.report(classified[3:])
        assert "No unused resources found" in console.export_text()

    def test_truncate(self):
        assert CLIReporter._truncate("short", 10) == "short"
        assert CLIReporter._truncate("a" * 20, 10) == "aaaaaaa..."
