"""
Safety Gates
============

The non-interactive gates of the deletion pipeline: live state, age and
tag protection. Each check returns ``(is_protected, reason)``.

Deletable States
----------------
==================== =============================
Kind                 States that may be deleted
==================== =============================
Instance             stopped
Volume               available
Snapshot             completed
FloatingIP           unassociated
LoadBalancer         active, active_impaired
ManagedDB            available, stopped
ServerlessFunction   Active, Inactive
NATGateway           available
ObjectBucket         available
==================== =============================

A resource that no longer exists has no state and is never deletable,
which makes re-running a finished batch a no-op.

Tag Patterns
------------
``Key=Value`` matches a tag with exactly that key and value (values
compared case-insensitively). A bare ``Key`` matches the key with any
value. Patterns never match substrings.

Some kinds also carry default patterns that apply unless switched off.
Snapshots tagged ``Retention``, ``Keep``, ``DoNotDelete`` or ``Backup``
(any value) are kept.

Example
-------
>>> checker = SafetyChecker(["DoNotDelete=true", "Environment=prod"])
>>> checker.check_tags(record)
(True, 'Protected by tag DoNotDelete=true')
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from cloud_sweeper.core.exceptions import ConfigurationError
from cloud_sweeper.core.models import ResourceKind, ResourceRecord, ensure_utc, utcnow

DELETABLE_STATES: Dict[ResourceKind, FrozenSet[str]] = {
    ResourceKind.INSTANCE: frozenset({"stopped"}),
    ResourceKind.VOLUME: frozenset({"available"}),
    ResourceKind.SNAPSHOT: frozenset({"completed"}),
    ResourceKind.FLOATING_IP: frozenset({"unassociated"}),
    ResourceKind.LOAD_BALANCER: frozenset({"active", "active_impaired"}),
    ResourceKind.MANAGED_DB: frozenset({"available", "stopped"}),
    ResourceKind.SERVERLESS_FUNCTION: frozenset({"Active", "Inactive"}),
    ResourceKind.NAT_GATEWAY: frozenset({"available"}),
    ResourceKind.OBJECT_BUCKET: frozenset({"available"}),
}

DEFAULT_KIND_PROTECT_TAGS: Dict[ResourceKind, Tuple[str, ...]] = {
    ResourceKind.SNAPSHOT: ("Retention", "Keep", "DoNotDelete", "Backup"),
}


@dataclass(frozen=True)
class TagPattern:
    """A parsed protection pattern: key plus optional value."""

    key: str
    value: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> TagPattern:
        """
        Parse ``"Key=Value"`` or ``"Key"``.

        Raises
        ------
        ConfigurationError
            If the key is empty.
        """
        key, sep, value = text.strip().partition("=")
        key = key.strip()
        if not key:
            raise ConfigurationError(f"Invalid protection tag pattern: {text!r}")
        return cls(key=key, value=value.strip() if sep else None)

    def matches(self, tags: Mapping[str, str]) -> bool:
        """True if the tags contain this key (and value, if given)."""
        if self.key not in tags:
            return False
        if self.value is None:
            return True
        return tags[self.key].strip().lower() == self.value.lower()

    def __str__(self) -> str:
        return self.key if self.value is None else f"{self.key}={self.value}"


def parse_tag_patterns(patterns: Iterable[str]) -> List[TagPattern]:
    """
    Parse patterns, splitting comma-separated entries.

    Example
    -------
    >>> parse_tag_patterns(["DoNotDelete=true,Environment=prod"])
    [TagPattern(key='DoNotDelete', value='true'), TagPattern(key='Environment', value='prod')]
    """
    parsed = []
    for entry in patterns:
        for part in entry.split(","):
            if part.strip():
                parsed.append(TagPattern.parse(part))
    return parsed


def is_deletable_state(kind: ResourceKind, state: Optional[str]) -> bool:
    """True if a resource of ``kind`` in ``state`` may be deleted."""
    return state is not None and state in DELETABLE_STATES[kind]


class SafetyChecker:
    """
    Evaluates the state, age and tag gates for one run.

    Parameters
    ----------
    protect_tag_patterns : iterable of str
        Protection patterns for every kind.
    min_age_days : int, optional
        Minimum age; None disables the age gate.
    as_of : datetime, optional
        Reference time for ages. Defaults to now.
    kind_protect_tags : mapping, optional
        Extra patterns per kind, e.g. ``DEFAULT_KIND_PROTECT_TAGS``.
    """

    def __init__(
        self,
        protect_tag_patterns: Iterable[str] = (),
        min_age_days: Optional[int] = None,
        as_of: Optional[datetime] = None,
        kind_protect_tags: Optional[Mapping[ResourceKind, Iterable[str]]] = None,
    ) -> None:
        self.patterns = parse_tag_patterns(protect_tag_patterns)
        self.kind_patterns = {
            kind: parse_tag_patterns(patterns)
            for kind, patterns in (kind_protect_tags or {}).items()
        }
        self.min_age_days = min_age_days
        self.as_of = ensure_utc(as_of) or utcnow()

    def check_state(
        self, record: ResourceRecord, live_state: Optional[str]
    ) -> Tuple[bool, Optional[str]]:
        """Protected unless the live state is deletable for the kind."""
        if live_state is None:
            return True, "Resource no longer exists"
        if not is_deletable_state(record.kind, live_state):
            expected = ", ".join(sorted(DELETABLE_STATES[record.kind]))
            return True, f"State is {live_state} (deletable: {expected})"
        return False, None

    def check_age(self, record: ResourceRecord) -> Tuple[bool, Optional[str]]:
        """Protected if younger than ``min_age_days`` or of unknown age."""
        if self.min_age_days is None:
            return False, None
        age = record.age_days(self.as_of)
        if age is None:
            return True, f"Age unknown (minimum {self.min_age_days} days)"
        if age < self.min_age_days:
            return True, f"Age {age} days < {self.min_age_days} days minimum"
        return False, None

    def check_tags(self, record: ResourceRecord) -> Tuple[bool, Optional[str]]:
        """Protected if any general or kind pattern matches the record's tags."""
        for pattern in self.patterns:
            if pattern.matches(record.tags):
                return True, f"Protected by tag {pattern}"
        for pattern in self.kind_patterns.get(record.kind, ()):
            if pattern.matches(record.tags):
                return True, (
                    f"Protected by tag {pattern} "
                    f"(kept by default for {record.kind.label})"
                )
        return False, None
