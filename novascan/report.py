"""Markdown preview of the issues a run would create."""

from .issues import format_issue_body, format_issue_title
from .runner import RunReport


def render_markdown(report: RunReport) -> str:
    """Generate a markdown document listing every issue that would be created."""
    lines = [
        "# Nova Scanner Results\n",
        "_Preview of issues that would be created_\n",
        "---\n",
    ]
    issue_count = 0

    sections = [
        ("Helm Charts", report.helm.outdated if report.helm else None, "No outdated Helm charts found."),
        (
            "Container Images",
            report.containers.outdated if report.containers else None,
            "No outdated container images found.",
        ),
    ]

    for heading, findings, empty_text in sections:
        if findings is None:
            continue
        if not findings:
            lines.append(f"## {heading}\n")
            lines.append(f"_{empty_text}_\n")
            continue

        lines.append(f"## {heading} ({len(findings)} outdated)\n")
        for finding in findings:
            issue_count += 1
            lines.append(f"### Issue {issue_count}: {format_issue_title(finding)}\n")
            lines.append(format_issue_body(finding))
            lines.append("---\n")

    if report.containers and report.containers.skipped:
        lines.append(
            f"_Note: {len(report.containers.skipped)} container images were skipped because "
            "they are in namespaces with outdated Helm releases (updating the chart will "
            "update the containers)._\n"
        )

    lines.append(f"**Total issues that would be created: {issue_count}**")
    return "\n".join(lines) + "\n"
