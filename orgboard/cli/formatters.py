# Output formatters for the CLI

import json

from orgboard.models import Issue


def issue_row(issue: Issue) -> dict:
    """Flatten an issue into the fields the formatters print."""
    return {
        "repository": issue.repository.name_with_owner,
        "number": issue.number,
        "title": issue.title,
        "state": issue.state.value,
        "status": issue.project_status or "",
        "assignees": ", ".join(a.login for a in issue.assignees),
        "labels": ", ".join(label.name for label in issue.labels),
        "type": issue.issue_type.name if issue.issue_type else "",
        "created_at": issue.created_at.isoformat(),
        "url": issue.url,
        "partial": issue.is_partial,
    }


def format_text(rows: list[dict], verbose: bool = False) -> str:
    """
    Format issue rows as plain text.

    Returns - Formatted text string
    """
    if not rows:
        return "No issues found.\n"

    output = []
    for i, row in enumerate(rows, 1):
        output.append(f"\n{i}. {row['repository']}#{row['number']} {row['title']}")
        output.append(f"   URL: {row['url']}")
        output.append(f"   State: {row['state']}  Status: {row['status'] or 'N/A'}")
        if verbose:
            output.append(f"   Assignees: {row['assignees'] or 'N/A'}")
            output.append(f"   Labels: {row['labels'] or 'N/A'}")
            output.append(f"   Type: {row['type'] or 'N/A'}")
            output.append(f"   Created: {row['created_at']}")
            if row["partial"]:
                output.append("   (board item only)")
    output.append("")

    return "\n".join(output)


def format_json(data) -> str:
    """
    Format rows (or any JSON-compatible structure) as JSON.

    Returns - JSON string
    """
    return json.dumps(data, indent=2, default=str)


def format_table(rows: list[dict], verbose: bool = False) -> str:
    """
    Format issue rows as a table.

    Returns - Table string
    """
    if not rows:
        return "No issues found.\n"

    if verbose:
        columns = ["#", "Issue", "Title", "State", "Status", "Assignees", "Labels"]
    else:
        columns = ["#", "Issue", "Title", "State", "Status"]

    cells = []
    for i, row in enumerate(rows, 1):
        line = {
            "#": str(i),
            "Issue": f"{row['repository']}#{row['number']}",
            "Title": row["title"][:50],
            "State": row["state"],
            "Status": row["status"],
            "Assignees": row["assignees"][:30],
            "Labels": row["labels"][:30],
        }
        cells.append(line)

    widths = {col: len(col) for col in columns}
    for line in cells:
        for col in columns:
            widths[col] = max(widths[col], len(line[col]))

    output = []
    header = " | ".join(col.ljust(widths[col]) for col in columns)
    output.append(header)
    output.append("-" * len(header))
    for line in cells:
        output.append(" | ".join(line[col].ljust(widths[col]) for col in columns))

    return "\n".join(output) + "\n"


def format_output(rows: list[dict], format_type: str, verbose: bool = False) -> str:
    """
    Format issue rows based on the specified format.

    Args:
        rows: Issue rows from ``issue_row``
        format_type: One of 'text', 'json', 'table'
        verbose: Whether to include detailed information

    Raises:
        ValueError: unsupported format
    """
    format_type = format_type.lower()

    if format_type == "text":
        return format_text(rows, verbose)
    elif format_type == "json":
        return format_json(rows)
    elif format_type == "table":
        return format_table(rows, verbose)
    else:
        raise ValueError(f"Unsupported format: {format_type}. Supported: text, json, table")
