"""
Derived views over the joined issue list.

Pure functions; groupings return ``(key, issues)`` pairs so callers keep the
ordering. Time-based views take ``today``/``now`` so they can be pinned, and
bucket every timestamp in UTC.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from orgboard.constants import (
    AGING_BUCKETS,
    BACKLOG_STATUS,
    DEFAULT_ISSUE_TYPE_COLOR,
    ISSUE_TYPE_COLORS,
    NO_ISSUE_TYPE,
    NO_LABEL,
    NO_STATUS,
    SPRINT_STATUSES,
    THROUGHPUT_DAYS,
    UNASSIGNED,
)
from orgboard.models import Issue, IssueState, Milestone, SeriesRange

Group = Tuple[str, List[Issue]]


def _by_size(groups: Dict[str, List[Issue]]) -> List[Group]:
    # Largest first; sorted() is stable so ties keep first-seen order
    return sorted(groups.items(), key=lambda kv: len(kv[1]), reverse=True)


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _now(now: Optional[datetime]) -> datetime:
    return _utc(now) if now is not None else datetime.now(timezone.utc)


def _logins(issue: Issue) -> List[str]:
    return [a.login for a in issue.assignees] or [UNASSIGNED]


def group_by_assignee(issues: Iterable[Issue]) -> List[Group]:
    """Issues per assignee login; an issue with several assignees is in each group."""
    groups: Dict[str, List[Issue]] = defaultdict(list)
    for issue in issues:
        for login in _logins(issue):
            groups[login].append(issue)
    return _by_size(groups)


def group_by_label(issues: Iterable[Issue]) -> List[Group]:
    """Issues per label name."""
    groups: Dict[str, List[Issue]] = defaultdict(list)
    for issue in issues:
        names = [label.name for label in issue.labels] or [NO_LABEL]
        for name in names:
            groups[name].append(issue)
    return _by_size(groups)


def group_by_repository(issues: Iterable[Issue]) -> List[Group]:
    groups: Dict[str, List[Issue]] = defaultdict(list)
    for issue in issues:
        groups[issue.repository.name_with_owner].append(issue)
    return _by_size(groups)


def group_by_status(issues: Iterable[Issue]) -> List[Group]:
    """Board columns: issues per project status, alphabetical, issues on no board last."""
    groups: Dict[str, List[Issue]] = defaultdict(list)
    for issue in issues:
        groups[issue.project_status or NO_STATUS].append(issue)

    unplaced = groups.pop(NO_STATUS, None)
    ordered = sorted(groups.items(), key=lambda kv: kv[0].lower())
    if unplaced:
        ordered.append((NO_STATUS, unplaced))
    return ordered


# =============================================================================
# Milestones
# =============================================================================

@dataclass(frozen=True)
class MilestoneGroup:
    """A milestone (sprint) with the issues assigned to it."""
    milestone: Milestone
    issues: List[Issue]

    @property
    def open(self) -> int:
        return sum(1 for i in self.issues if i.state == IssueState.OPEN)

    @property
    def closed(self) -> int:
        return sum(1 for i in self.issues if i.state == IssueState.CLOSED)

    @property
    def progress(self) -> float:
        """Closed share of the milestone's issues, 0.0 when it has none."""
        total = self.open + self.closed
        return self.closed / total if total else 0.0


def group_by_milestone(issues: Iterable[Issue]) -> List[MilestoneGroup]:
    """Issues per milestone in first-seen order; issues without one are left out."""
    groups: Dict[str, MilestoneGroup] = {}
    for issue in issues:
        if issue.milestone is None:
            continue
        group = groups.get(issue.milestone.id)
        if group is None:
            group = groups[issue.milestone.id] = MilestoneGroup(issue.milestone, [])
        group.issues.append(issue)
    return list(groups.values())


def active_milestone(issues: Iterable[Issue]) -> Optional[MilestoneGroup]:
    """
    The milestone with the latest due date.

    Milestones without a due date rank below every dated one; ties keep the
    first-seen milestone.
    """
    groups = group_by_milestone(issues)
    if not groups:
        return None
    epoch = datetime.min.replace(tzinfo=timezone.utc)

    def due(group: MilestoneGroup) -> datetime:
        return _utc(group.milestone.due_on) if group.milestone.due_on else epoch

    return sorted(groups, key=due, reverse=True)[0]


# =============================================================================
# Time series
# =============================================================================

@dataclass(frozen=True)
class SeriesPoint:
    """Issues opened and closed in one bucket (a day, or a month for YEAR)."""
    bucket: str
    opened: int = 0
    closed: int = 0


@dataclass(frozen=True)
class BurnDownPoint:
    """Issues still open at the end of a bucket, against a straight ideal line."""
    bucket: str
    open: int
    ideal: int


def _day_buckets(today: date, days: int) -> List[str]:
    return [(today - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def _month_buckets(today: date, months: int) -> List[str]:
    out = []
    for i in range(months - 1, -1, -1):
        year, month = divmod(today.year * 12 + today.month - 1 - i, 12)
        out.append(f"{year:04d}-{month + 1:02d}")
    return out


def _buckets(series_range: SeriesRange, today: date) -> List[str]:
    if series_range == SeriesRange.YEAR:
        return _month_buckets(today, 12)
    return _day_buckets(today, 7 if series_range == SeriesRange.WEEK else 30)


def _bucket_end(bucket: str) -> datetime:
    """First instant (UTC) after a ``YYYY-MM-DD`` or ``YYYY-MM`` bucket."""
    if len(bucket) == 7:
        year, month = divmod(int(bucket[:4]) * 12 + int(bucket[5:]), 12)
        return datetime(year, month + 1, 1, tzinfo=timezone.utc)
    day = date.fromisoformat(bucket) + timedelta(days=1)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _bucket_of(moment: datetime, monthly: bool) -> str:
    moment = _utc(moment)
    return moment.strftime("%Y-%m") if monthly else moment.date().isoformat()


def opened_closed_series(
    issues: Iterable[Issue],
    series_range: SeriesRange = SeriesRange.MONTH,
    today: Optional[date] = None,
) -> List[SeriesPoint]:
    """
    Opened vs closed counts over a trailing window ending ``today`` (UTC).

    WEEK is the last 7 days, MONTH the last 30 days and YEAR the last 12
    calendar months. Events outside the window are ignored.
    """
    series_range = SeriesRange(series_range)
    today = today or datetime.now(timezone.utc).date()
    monthly = series_range == SeriesRange.YEAR
    buckets = _buckets(series_range, today)

    opened: Dict[str, int] = dict.fromkeys(buckets, 0)
    closed: Dict[str, int] = dict.fromkeys(buckets, 0)
    for issue in issues:
        bucket = _bucket_of(issue.created_at, monthly)
        if bucket in opened:
            opened[bucket] += 1
        if issue.closed_at is not None:
            bucket = _bucket_of(issue.closed_at, monthly)
            if bucket in closed:
                closed[bucket] += 1

    return [SeriesPoint(bucket=b, opened=opened[b], closed=closed[b]) for b in buckets]


def burn_down_series(
    issues: Iterable[Issue],
    series_range: SeriesRange = SeriesRange.MONTH,
    today: Optional[date] = None,
) -> List[BurnDownPoint]:
    """
    Open-issue count at the end of each bucket of the window.

    Usually fed the issues of ``active_milestone``. ``ideal`` falls linearly
    from the first bucket's open count to zero at the last bucket.
    """
    issues = list(issues)
    today = today or datetime.now(timezone.utc).date()
    buckets = _buckets(SeriesRange(series_range), today)

    counts = []
    for bucket in buckets:
        end = _bucket_end(bucket)
        counts.append(
            sum(
                1
                for i in issues
                if _utc(i.created_at) < end and (i.closed_at is None or _utc(i.closed_at) >= end)
            )
        )

    start = counts[0] if counts else 0
    steps = (len(counts) - 1) or 1
    return [
        BurnDownPoint(
            bucket=bucket,
            open=count,
            ideal=max(0, math.floor(start - start * idx / steps + 0.5)),
        )
        for idx, (bucket, count) in enumerate(zip(buckets, counts))
    ]


def latest(issues: Iterable[Issue], n: int = 5) -> List[Issue]:
    """The ``n`` most recently created issues, newest first."""
    return sorted(issues, key=lambda issue: issue.created_at, reverse=True)[:n]


# =============================================================================
# Metrics
# =============================================================================

def aging_buckets(
    issues: Iterable[Issue], now: Optional[datetime] = None
) -> List[Tuple[str, int]]:
    """Open issues by age in days: <7, 7-30, 31-90 and >90."""
    now = _now(now)
    counts = {label: 0 for label, _ in AGING_BUCKETS}
    for issue in issues:
        if issue.state != IssueState.OPEN:
            continue
        age_days = (now - _utc(issue.created_at)).total_seconds() / 86400
        for label, upper in AGING_BUCKETS:
            if upper is None or age_days < upper:
                counts[label] += 1
                break
    return list(counts.items())


def average_cycle_days(issues: Iterable[Issue]) -> float:
    """Mean days from creation to close over closed issues, 0.0 if none closed."""
    durations = [
        (_utc(i.closed_at) - _utc(i.created_at)).total_seconds() / 86400
        for i in issues
        if i.closed_at is not None
    ]
    return sum(durations) / len(durations) if durations else 0.0


def assignee_throughput(
    issues: Iterable[Issue],
    days: int = THROUGHPUT_DAYS,
    now: Optional[datetime] = None,
) -> List[Tuple[str, int]]:
    """Issues closed per assignee in the last ``days`` days, most first."""
    cutoff = _now(now) - timedelta(days=days)
    counts: Dict[str, int] = {}
    for issue in issues:
        if issue.closed_at is None or _utc(issue.closed_at) < cutoff:
            continue
        for login in _logins(issue):
            counts[login] = counts.get(login, 0) + 1
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


@dataclass(frozen=True)
class TypeCount:
    """Issues of one issue type, with the color the dashboard charts it in."""
    name: str
    count: int
    color: str


def issue_type_counts(
    issues: Iterable[Issue], state: IssueState = IssueState.OPEN
) -> List[TypeCount]:
    """
    Issues in ``state`` per issue type, in first-seen order.

    Type names are matched case-insensitively; the first spelling seen is
    kept. Untyped issues count under ``(none)``.
    """
    state = IssueState(state)
    names: Dict[str, str] = {}
    counts: Dict[str, int] = {}
    for issue in issues:
        if issue.state != state:
            continue
        name = issue.issue_type.name if issue.issue_type else NO_ISSUE_TYPE
        key = name.lower()
        names.setdefault(key, name)
        counts[key] = counts.get(key, 0) + 1
    return [
        TypeCount(
            name=names[key],
            count=count,
            color=ISSUE_TYPE_COLORS.get(key, DEFAULT_ISSUE_TYPE_COLOR),
        )
        for key, count in counts.items()
    ]


@dataclass(frozen=True)
class SummaryStats:
    """Headline counts of the dashboard."""
    open: int
    closed: int
    backlog: int
    in_sprint: int


def summary_stats(
    issues: Iterable[Issue],
    backlog_status: str = BACKLOG_STATUS,
    sprint_statuses: Sequence[str] = SPRINT_STATUSES,
) -> SummaryStats:
    """Open and closed totals plus the issues in the backlog and sprint columns."""
    issues = list(issues)
    return SummaryStats(
        open=sum(1 for i in issues if i.state == IssueState.OPEN),
        closed=sum(1 for i in issues if i.state == IssueState.CLOSED),
        backlog=sum(1 for i in issues if i.project_status == backlog_status),
        in_sprint=sum(1 for i in issues if i.project_status in sprint_statuses),
    )
