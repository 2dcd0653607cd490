"""Placeholder substitution for child issue titles and bodies."""

import re
from collections.abc import Collection

from federated_issues.models import IssueContent, ParentIssue

TITLE_PLACEHOLDER = "${{ github.event.issue.title }}"
BODY_PLACEHOLDER = "${{ github.event.issue.body }}"

_PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(p) for p in (TITLE_PLACEHOLDER, BODY_PLACEHOLDER)))


def render(template: str, title: str, body: str) -> str:
    """Replace the title and body placeholders in a template.

    Substitution is literal and happens in a single pass, so placeholder text
    inside the parent's title or body is never expanded again.
    """
    values = {TITLE_PLACEHOLDER: title, BODY_PLACEHOLDER: body}
    return _PLACEHOLDER_PATTERN.sub(lambda match: values[match.group(0)], template)


def build_child_content(
    parent: ParentIssue, title_template: str, body_template: str, excluded_labels: Collection[str] = ()
) -> IssueContent:
    """Build the content of a child issue from its parent.

    Labels in ``excluded_labels`` (the trigger label) are not carried over.
    """
    title = parent.title or ""
    body = parent.body or ""
    return IssueContent(
        title=render(title_template, title, body),
        body=render(body_template, title, body),
        labels=[label for label in parent.labels if label not in excluded_labels],
    )
