"""
Tests for the classifier rule table.
"""

import pytest

from cloud_sweeper.classifier import Classifier, TERMINAL_STATES, classify
from cloud_sweeper.core.exceptions import ConfigurationError
from cloud_sweeper.core.models import Disposition, ResourceKind, ThresholdConfig

from conftest import AS_OF, days_ago, make_record

DELETE = Disposition.DELETE
REVIEW = Disposition.REVIEW
KEEP = Disposition.KEEP
IGNORE = Disposition.IGNORE


def verdict_for(record, config=None):
    return classify(record, config or ThresholdConfig(), AS_OF)


class TestRuleTable:
    """One scenario per rule branch, default thresholds."""

    @pytest.mark.parametrize(
        "overrides,expected",
        [
            ({"state": "stopped", "created_at": days_ago(45)}, DELETE),
            ({"state": "stopped", "created_at": days_ago(30)}, DELETE),
            ({"state": "stopped", "created_at": days_ago(29)}, KEEP),
            ({"state": "stopped"}, KEEP),
            ({"state": "running", "utilization": 2.0}, REVIEW),
            ({"state": "running", "utilization": 40.0}, KEEP),
            ({"state": "running"}, KEEP),
            ({"state": "pending"}, KEEP),
        ],
    )
    def test_instance(self, overrides, expected):
        record = make_record(ResourceKind.INSTANCE, flavor="t3.micro", **overrides)
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "overrides,expected",
        [
            ({"state": "available", "created_at": days_ago(31)}, DELETE),
            ({"state": "available", "created_at": days_ago(3)}, REVIEW),
            ({"state": "available"}, REVIEW),
            ({"state": "in-use", "created_at": days_ago(400)}, KEEP),
        ],
    )
    def test_volume(self, overrides, expected):
        record = make_record(ResourceKind.VOLUME, size=100, flavor="gp2", **overrides)
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "age,expected",
        [(800, DELETE), (365, DELETE), (200, REVIEW), (90, REVIEW), (10, KEEP), (None, KEEP)],
    )
    def test_snapshot(self, age, expected):
        created = days_ago(age) if age is not None else None
        record = make_record(
            ResourceKind.SNAPSHOT, state="completed", size=8, created_at=created
        )
        assert verdict_for(record).disposition is expected

    def test_unassociated_floating_ip(self):
        record = make_record(ResourceKind.FLOATING_IP, state="unassociated")
        verdict = verdict_for(record)
        assert verdict.disposition is DELETE
        assert "unassociated" in verdict.reason
        assert verdict.estimated_monthly_cost == 3.60

    def test_associated_floating_ip(self):
        record = make_record(
            ResourceKind.FLOATING_IP, state="associated", associated_id="i-123"
        )
        assert verdict_for(record).disposition is KEEP

    @pytest.mark.parametrize(
        "utilization,age,expected",
        [
            (0.0, 30, DELETE),
            (0.0, 3, KEEP),
            (0.0, None, KEEP),
            (250.0, 30, KEEP),
            (None, 30, KEEP),
        ],
    )
    def test_load_balancer(self, utilization, age, expected):
        record = make_record(
            ResourceKind.LOAD_BALANCER,
            state="active",
            flavor="application",
            utilization=utilization,
            created_at=days_ago(age) if age is not None else None,
        )
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "state,utilization,age,expected",
        [
            ("stopped", None, 100, REVIEW),
            ("stopped", 0.0, 100, REVIEW),
            ("available", 0.0, 100, DELETE),
            ("available", 0.0, None, REVIEW),
            ("available", 12.0, 100, KEEP),
            ("available", None, 100, KEEP),
        ],
    )
    def test_managed_db(self, state, utilization, age, expected):
        record = make_record(
            ResourceKind.MANAGED_DB,
            state=state,
            utilization=utilization,
            created_at=days_ago(age) if age is not None else None,
        )
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "utilization,age,expected",
        [(0.0, 120, DELETE), (0.0, 30, KEEP), (5.0, 120, KEEP), (None, 120, KEEP)],
    )
    def test_function(self, utilization, age, expected):
        record = make_record(
            ResourceKind.SERVERLESS_FUNCTION,
            state="Active",
            utilization=utilization,
            created_at=days_ago(age),
        )
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "state,utilization,expected",
        [
            ("available", 10.0, REVIEW),
            ("available", 5_000_000.0, KEEP),
            ("available", None, KEEP),
            ("pending", 0.0, KEEP),
        ],
    )
    def test_nat_gateway(self, state, utilization, expected):
        record = make_record(
            ResourceKind.NAT_GATEWAY, state=state, utilization=utilization
        )
        assert verdict_for(record).disposition is expected

    @pytest.mark.parametrize(
        "object_count,size,age,expected",
        [
            (0, 0.0, 200, DELETE),
            (0, 0.0, 20, REVIEW),
            (0, 0.0, None, REVIEW),
            (3, 0.01, 200, REVIEW),
            (3, 0.01, 20, KEEP),
            (5000, 50.0, 200, KEEP),
            (None, None, 200, KEEP),
        ],
    )
    def test_bucket(self, object_count, size, age, expected):
        record = make_record(
            ResourceKind.OBJECT_BUCKET,
            object_count=object_count,
            size=size,
            created_at=days_ago(age) if age is not None else None,
        )
        assert verdict_for(record).disposition is expected


class TestClassifierInvariants:
    """Properties that hold across the rule table."""

    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES))
    def test_terminal_states_are_ignored(self, state):
        record = make_record(ResourceKind.INSTANCE, state=state, created_at=days_ago(900))
        verdict = verdict_for(record)
        assert verdict.disposition is IGNORE
        assert verdict.estimated_monthly_cost is None

    @pytest.mark.parametrize(
        "record",
        [
            make_record(ResourceKind.INSTANCE, state="stopped"),
            make_record(ResourceKind.VOLUME, state="available"),
            make_record(ResourceKind.SNAPSHOT, state="completed"),
            make_record(ResourceKind.LOAD_BALANCER, state="active", utilization=0.0),
            make_record(ResourceKind.MANAGED_DB, state="available", utilization=0.0),
            make_record(ResourceKind.SERVERLESS_FUNCTION, state="Active", utilization=0.0),
            make_record(ResourceKind.OBJECT_BUCKET, object_count=0, size=0.0),
        ],
        ids=lambda r: r.kind.value,
    )
    def test_unknown_age_is_never_delete(self, record):
        """Missing creation time must not produce a destructive verdict."""
        assert verdict_for(record).disposition is not DELETE

    def test_missing_metrics_are_never_delete(self):
        """A resource whose metric is unavailable is never DELETE."""
        for kind in (
            ResourceKind.LOAD_BALANCER,
            ResourceKind.MANAGED_DB,
            ResourceKind.SERVERLESS_FUNCTION,
        ):
            record = make_record(kind, state="available", created_at=days_ago(1000))
            assert verdict_for(record).disposition is not DELETE

    def test_snapshot_severity_is_monotonic_in_age(self):
        """An older snapshot is never less severe than a younger one."""
        severity = {KEEP: 0, REVIEW: 1, DELETE: 2}
        previous = 0
        for age in range(0, 800, 7):
            record = make_record(
                ResourceKind.SNAPSHOT, state="completed", created_at=days_ago(age)
            )
            current = severity[verdict_for(record).disposition]
            assert current >= previous
            previous = current

    def test_classification_is_pure(self):
        """Same record, config and time give the same verdict."""
        record = make_record(
            ResourceKind.VOLUME, size=50, flavor="gp3", created_at=days_ago(60)
        )
        assert verdict_for(record) == verdict_for(record)

    def test_reason_includes_labeled_cost(self):
        record = make_record(
            ResourceKind.VOLUME, size=100, flavor="gp2", created_at=days_ago(60)
        )
        verdict = verdict_for(record)
        assert verdict.estimated_monthly_cost == 10.0
        assert "estimated $10.00/month" in verdict.reason

    def test_thresholds_are_respected(self):
        """Raising a threshold turns a DELETE into something milder."""
        record = make_record(
            ResourceKind.INSTANCE, state="stopped", created_at=days_ago(45)
        )
        strict = ThresholdConfig(stopped_instance_min_days=60)
        assert verdict_for(record).disposition is DELETE
        assert verdict_for(record, strict).disposition is KEEP


class TestClassifier:
    """Tests for the Classifier wrapper."""

    def test_classify_all_preserves_order(self):
        records = [
            make_record(ResourceKind.VOLUME, id=f"vol-{i}", created_at=days_ago(i * 20))
            for i in range(4)
        ]
        classified = Classifier(as_of=AS_OF).classify_all(records)
        assert [c.record.id for c in classified] == ["vol-0", "vol-1", "vol-2", "vol-3"]
        assert [c.verdict.disposition for c in classified] == [REVIEW, REVIEW, DELETE, DELETE]

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            Classifier(ThresholdConfig(cpu_idle_percent=-5))


class TestScenarios:
    """Named end-to-end classification scenarios."""

    @pytest.mark.parametrize("age,expected", [(45, KEEP), (120, DELETE)])
    def test_stopped_instance_with_90_day_threshold(self, age, expected):
        record = make_record(
            ResourceKind.INSTANCE, state="stopped", created_at=days_ago(age)
        )
        config = ThresholdConfig(stopped_instance_min_days=90)
        assert verdict_for(record, config).disposition is expected

    def test_tags_do_not_affect_classification(self):
        record = make_record(
            ResourceKind.VOLUME,
            size=20,
            created_at=days_ago(90),
            tags={"DoNotDelete": "true"},
        )
        assert verdict_for(record).disposition is DELETE
