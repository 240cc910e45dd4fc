"""
Orgboard CLI.

Reads an organization's issues, project boards and issue types through the
cached dashboard service and prints them.
"""

import argparse
import asyncio
import re
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict

from dotenv import load_dotenv

from orgboard.api import GitHubClient
from orgboard.cache import MemoryStore, TTLCache, create_store
from orgboard.cli.formatters import format_json, format_output, issue_row
from orgboard.config import Settings, get_settings
from orgboard.constants import THROUGHPUT_DAYS
from orgboard.exceptions import OrgboardError
from orgboard.logging import bind_context, configure_logging, get_logger
from orgboard.models import IssueState, SeriesRange
from orgboard.services import DashboardService
from orgboard.services.views import (
    active_milestone,
    aging_buckets,
    assignee_throughput,
    average_cycle_days,
    burn_down_series,
    group_by_assignee,
    group_by_label,
    group_by_milestone,
    group_by_repository,
    group_by_status,
    issue_type_counts,
    latest,
    opened_closed_series,
    summary_stats,
)

logger = get_logger("cli")

ISSUE_REF = re.compile(r"^(?P<owner>[^/\s]+)/(?P<repo>[^#\s]+)#(?P<number>\d+)$")
REPO_REF = re.compile(r"^(?P<owner>[^/\s]+)/(?P<repo>[^#/\s]+)$")

GROUPINGS = {
    "assignee": group_by_assignee,
    "label": group_by_label,
    "status": group_by_status,
    "repository": group_by_repository,
}


def parse_issue_ref(value: str) -> tuple[str, str, int]:
    """Parse ``OWNER/REPO#N``."""
    match = ISSUE_REF.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"expected OWNER/REPO#NUMBER, got {value!r}")
    return match["owner"], match["repo"], int(match["number"])


def parse_repo_ref(value: str) -> tuple[str, str]:
    """Parse ``OWNER/REPO``."""
    match = REPO_REF.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"expected OWNER/REPO, got {value!r}")
    return match["owner"], match["repo"]


@asynccontextmanager
async def open_service(settings: Settings, no_cache: bool = False):
    """Dashboard service over a live client; drains background refreshes on exit."""
    cache = TTLCache(MemoryStore() if no_cache else create_store(settings))
    try:
        async with GitHubClient(settings=settings) as client:
            service = DashboardService(client, cache, settings)
            try:
                yield service
            finally:
                await service.wait_background()
    finally:
        await cache.close()


def _print_refreshed(view) -> None:
    print(
        f"(refreshed in background: {len(view.issues)} issues, rerun to see the update)",
        file=sys.stderr,
    )


# =============================================================================
# Commands
# =============================================================================

async def cmd_issues(args, settings: Settings) -> int:
    """Print the joined issue list, optionally grouped."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        view = await service.load(
            args.org, swr=args.swr, on_update=_print_refreshed if args.swr else None
        )

    issues = view.issues
    if args.state:
        issues = [i for i in issues if i.state.value == args.state.upper()]
    if args.limit:
        issues = issues[: args.limit]

    if args.group_by:
        groups = GROUPINGS[args.group_by](issues)
        if args.format == "json":
            print(format_json({key: [issue_row(i) for i in group] for key, group in groups}))
        else:
            for key, group in groups:
                print(f"\n{'=' * 60}\n{key} ({len(group)})\n{'=' * 60}")
                print(format_output([issue_row(i) for i in group], args.format, args.verbose))
    else:
        print(format_output([issue_row(i) for i in issues], args.format, args.verbose))

    if view.truncated:
        print(
            f"Warning: results truncated ({len(view.truncated_repositories)} repositories "
            "capped, or the repository page limit was reached)",
            file=sys.stderr,
        )
    return 0


async def cmd_series(args, settings: Settings) -> int:
    """Print opened vs closed counts and the latest issues."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        view = await service.load(args.org, swr=args.swr)

    points = opened_closed_series(view.issues, SeriesRange(args.range))
    newest = latest(view.issues, args.latest)

    if args.format == "json":
        print(
            format_json(
                {
                    "series": [
                        {"bucket": p.bucket, "opened": p.opened, "closed": p.closed}
                        for p in points
                    ],
                    "latest": [issue_row(i) for i in newest],
                }
            )
        )
        return 0

    print(f"\nOpened vs closed ({args.range})")
    print("-" * 32)
    for p in points:
        print(f"{p.bucket:<12} {p.opened:>6} {p.closed:>6}")
    print(f"\nLatest {len(newest)} issues")
    print(format_output([issue_row(i) for i in newest], "text"))
    return 0


async def cmd_milestones(args, settings: Settings) -> int:
    """Print milestones with their progress."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        view = await service.load(args.org, swr=args.swr)

    groups = group_by_milestone(view.issues)
    if args.format == "json":
        print(
            format_json(
                [
                    {
                        "milestone": g.milestone.model_dump(mode="json"),
                        "open": g.open,
                        "closed": g.closed,
                        "issues": [issue_row(i) for i in g.issues],
                    }
                    for g in groups
                ]
            )
        )
        return 0
    if not groups:
        print("No milestones found.")
        return 0

    for g in groups:
        due = f"  due {g.milestone.due_on.date().isoformat()}" if g.milestone.due_on else ""
        print(f"{g.milestone.title}  {g.closed}/{g.open + g.closed} closed ({g.progress:.0%}){due}")
        if args.verbose:
            print(format_output([issue_row(i) for i in g.issues], "text"))
    return 0


async def cmd_burndown(args, settings: Settings) -> int:
    """Print the burn-down of the milestone due last."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        view = await service.load(args.org, swr=args.swr)

    active = active_milestone(view.issues)
    if active is None:
        print("No milestones found.")
        return 0
    points = burn_down_series(active.issues, SeriesRange(args.range))

    if args.format == "json":
        print(
            format_json(
                {
                    "milestone": active.milestone.model_dump(mode="json"),
                    "series": [
                        {"bucket": p.bucket, "open": p.open, "ideal": p.ideal} for p in points
                    ],
                }
            )
        )
        return 0

    print(f"\nBurn-down: {active.milestone.title} ({args.range})")
    print("-" * 32)
    for p in points:
        print(f"{p.bucket:<12} {p.open:>6} {p.ideal:>6}")
    return 0


async def cmd_stats(args, settings: Settings) -> int:
    """Print headline counts and issue metrics."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        view = await service.load(args.org, swr=args.swr)

    stats = summary_stats(view.issues)
    aging = aging_buckets(view.issues)
    cycle = average_cycle_days(view.issues)
    throughput = assignee_throughput(view.issues)
    open_types = issue_type_counts(view.issues, IssueState.OPEN)
    closed_types = issue_type_counts(view.issues, IssueState.CLOSED)

    if args.format == "json":
        print(
            format_json(
                {
                    "summary": asdict(stats),
                    "aging": dict(aging),
                    "average_cycle_days": round(cycle, 2),
                    "throughput": dict(throughput),
                    "open_types": [asdict(t) for t in open_types],
                    "closed_types": [asdict(t) for t in closed_types],
                }
            )
        )
        return 0

    print(
        f"\nOpen: {stats.open}  Closed: {stats.closed}  "
        f"Backlog: {stats.backlog}  In sprint: {stats.in_sprint}"
    )
    print(f"Average cycle time: {cycle:.1f} days")
    print("\nOpen issue age (days)")
    for label, count in aging:
        print(f"  {label:<8} {count:>6}")
    print(f"\nClosed per assignee (last {THROUGHPUT_DAYS} days)")
    for login, count in throughput[: args.top]:
        print(f"  {login:<24} {count:>4}")
    for title, types in (("Open", open_types), ("Closed", closed_types)):
        print(f"\n{title} issues by type")
        for t in types:
            print(f"  {t.name:<24} {t.count:>4}")
    return 0


async def cmd_types(args, settings: Settings) -> int:
    """Print the organization's issue types."""
    async with open_service(settings, no_cache=args.no_cache) as service:
        types = await service.issue_types.fetch(args.org, swr=args.swr)

    if args.format == "json":
        print(format_json(types.model_dump(mode="json")["types"]))
        return 0
    if not types.types:
        print("No issue types found.")
        return 0
    for t in types.types:
        flag = "" if t.is_enabled else " (disabled)"
        print(f"{t.name}{flag}  [{t.color or '-'}]  {t.description or ''}".rstrip())
    return 0


async def cmd_issue(args, settings: Settings) -> int:
    """Print one issue and its timeline."""
    owner, repo, number = args.ref
    async with open_service(settings, no_cache=args.no_cache) as service:
        detail = await service.fetch_issue(owner, repo, number, swr=args.swr)

    if args.format == "json":
        print(format_json(detail.model_dump(mode="json")))
        return 0

    issue = detail.issue
    print(f"\n{issue.repository.name_with_owner}#{issue.number} {issue.title}")
    print(f"State: {issue.state.value}  Comments: {detail.comments_count}")
    print(f"URL: {issue.url}")
    if issue.assignees:
        print(f"Assignees: {', '.join(a.login for a in issue.assignees)}")
    if issue.labels:
        print(f"Labels: {', '.join(label.name for label in issue.labels)}")
    print(f"\nTimeline ({len(detail.timeline)} events)")
    print("-" * 60)
    for event in detail.timeline:
        when = event.created_at.isoformat() if event.created_at else "?"
        extra = ", ".join(
            f"{k}={v}" for k, v in event.details.items() if k != "body" and v is not None
        )
        print(f"{when}  {event.type:<24} {event.actor or '-'}  {extra}".rstrip())
    if detail.timeline_truncated:
        print("... (timeline truncated)")
    return 0


async def cmd_create_issue(args, settings: Settings) -> int:
    """Create an issue, resolving label and assignee names to ids."""
    owner, repo = args.repo
    async with open_service(settings) as service:
        metadata = await service.fetch_repo_issue_metadata(owner, repo)

        label_ids = _resolve_ids(metadata["labels"], "name", args.label, "label")
        assignee_ids = _resolve_ids(metadata["assignees"], "login", args.assignee, "assignee")
        milestone_id = None
        if args.milestone:
            milestone_id = _resolve_ids(
                metadata["milestones"], "title", [args.milestone], "milestone"
            )[0]

        issue = await service.create_issue(
            args.org or owner,
            metadata["repository_id"],
            args.title,
            body=args.body,
            label_ids=label_ids,
            assignee_ids=assignee_ids,
            project_ids=args.project or (),
            milestone_id=milestone_id,
        )

    print(f"Created {issue['repository']['nameWithOwner']}#{issue['number']}: {issue['url']}")
    return 0


def _resolve_ids(nodes: list[dict], field: str, wanted, kind: str) -> list[str]:
    by_name = {node.get(field): node.get("id") for node in nodes}
    ids = []
    for name in wanted or ():
        if name not in by_name:
            raise OrgboardError(f"Unknown {kind}: {name}")
        ids.append(by_name[name])
    return ids


async def cmd_invalidate(args, settings: Settings) -> int:
    """Evict cached snapshots."""
    cache = TTLCache(create_store(settings))
    try:
        if args.key:
            ok = await cache.invalidate(args.key)
            print(f"{'Invalidated' if ok else 'Failed to invalidate'} {args.key}")
            return 0 if ok else 1
        service = DashboardService(None, cache, settings)
        removed = await service.invalidate(args.org)
        for key in removed:
            print(f"Invalidated {key}")
        return 0
    finally:
        await cache.close()


async def cmd_keys(args, settings: Settings) -> int:
    """List cached keys with their age and freshness."""
    cache = TTLCache(create_store(settings))
    try:
        keys = await cache.keys()
        if not keys:
            print("Cache is empty.")
            return 0
        now = cache.clock()
        for key in keys:
            entry = await cache.get_entry(key)
            if entry is None:
                print(f"{key}  (unreadable)")
                continue
            age = int(now - entry.stored_at)
            state = "fresh" if cache.is_fresh(entry) else "stale"
            ttl = "never expires" if entry.ttl == 0 else f"ttl {entry.ttl}s"
            print(f"{key}  {state}  age {age}s  {ttl}")
        return 0
    finally:
        await cache.close()


COMMANDS = {
    "issues": cmd_issues,
    "series": cmd_series,
    "milestones": cmd_milestones,
    "burndown": cmd_burndown,
    "stats": cmd_stats,
    "types": cmd_types,
    "issue": cmd_issue,
    "create-issue": cmd_create_issue,
    "invalidate": cmd_invalidate,
    "keys": cmd_keys,
}

# Commands that never talk to GitHub
CACHE_ONLY_COMMANDS = {"invalidate", "keys"}


# =============================================================================
# Parser
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orgboard", description="GitHub organization issues and project boards"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_read_flags(p, formats=("text", "json", "table")):
        p.add_argument("--format", choices=formats, default="text")
        p.add_argument(
            "--swr", action="store_true", help="Serve cached data and refresh in the background"
        )
        p.add_argument("--no-cache", action="store_true", help="Skip the persistent cache")

    issues_parser = subparsers.add_parser("issues", help="List issues joined with board status")
    issues_parser.add_argument("--org", required=True)
    issues_parser.add_argument("--group-by", choices=sorted(GROUPINGS))
    issues_parser.add_argument("--state", choices=["open", "closed"])
    issues_parser.add_argument("--limit", type=int)
    issues_parser.add_argument("--verbose", "-v", action="store_true")
    add_read_flags(issues_parser)

    series_parser = subparsers.add_parser("series", help="Opened vs closed counts")
    series_parser.add_argument("--org", required=True)
    series_parser.add_argument(
        "--range", choices=[r.value for r in SeriesRange], default=SeriesRange.MONTH.value
    )
    series_parser.add_argument("--latest", type=int, default=5)
    add_read_flags(series_parser, formats=("text", "json"))

    milestones_parser = subparsers.add_parser("milestones", help="Milestones and their progress")
    milestones_parser.add_argument("--org", required=True)
    milestones_parser.add_argument("--verbose", "-v", action="store_true")
    add_read_flags(milestones_parser, formats=("text", "json"))

    burndown_parser = subparsers.add_parser(
        "burndown", help="Burn-down of the milestone with the latest due date"
    )
    burndown_parser.add_argument("--org", required=True)
    burndown_parser.add_argument(
        "--range", choices=[r.value for r in SeriesRange], default=SeriesRange.MONTH.value
    )
    add_read_flags(burndown_parser, formats=("text", "json"))

    stats_parser = subparsers.add_parser("stats", help="Headline counts and issue metrics")
    stats_parser.add_argument("--org", required=True)
    stats_parser.add_argument("--top", type=int, default=10, help="Assignees to list")
    add_read_flags(stats_parser, formats=("text", "json"))

    types_parser = subparsers.add_parser("types", help="List organization issue types")
    types_parser.add_argument("--org", required=True)
    add_read_flags(types_parser, formats=("text", "json"))

    issue_parser = subparsers.add_parser("issue", help="Show one issue with its timeline")
    issue_parser.add_argument("ref", type=parse_issue_ref, metavar="OWNER/REPO#N")
    add_read_flags(issue_parser, formats=("text", "json"))

    create_parser = subparsers.add_parser("create-issue", help="Create an issue")
    create_parser.add_argument("repo", type=parse_repo_ref, metavar="OWNER/REPO")
    create_parser.add_argument("--title", required=True)
    create_parser.add_argument("--body")
    create_parser.add_argument("--label", action="append", help="Label name (repeatable)")
    create_parser.add_argument("--assignee", action="append", help="User login (repeatable)")
    create_parser.add_argument("--milestone", help="Milestone title")
    create_parser.add_argument("--project", action="append", help="Project node id (repeatable)")
    create_parser.add_argument("--org", help="Organization whose cache to evict (default: owner)")

    invalidate_parser = subparsers.add_parser("invalidate", help="Evict cached data")
    target = invalidate_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--org")
    target.add_argument("--key")

    subparsers.add_parser("keys", help="List cached keys")

    return parser


def main(argv=None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging("DEBUG" if settings.debug else settings.log_level)

    if args.command not in CACHE_ONLY_COMMANDS:
        errors, warnings = settings.validate_runtime_config()
        for warning in warnings:
            logger.warning("config_warning", detail=warning)
        if errors:
            for error in errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1

    bind_context(command=args.command)
    try:
        return asyncio.run(COMMANDS[args.command](args, settings))
    except OrgboardError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
