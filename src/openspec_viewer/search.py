"""Case-insensitive substring search across an OpenSpec snapshot."""

import re

from .core import OpenSpecData, SearchResult

EXCERPT_RADIUS = 50


def search_openspec(data: OpenSpecData, query: str) -> list[SearchResult]:
    """Return one result per matching document, in a fixed order.

    Order: project, each spec (then its design), then active and archived
    change proposals. There is no ranking.
    """
    if not query:
        return []

    pattern = re.compile(re.escape(query), re.IGNORECASE)
    results = []

    def check(kind: str, name: str, path: str, content: str | None) -> None:
        if not content:
            return
        # Match against the original text so offsets stay valid for slicing.
        match = pattern.search(content)
        if match is None:
            return
        index = match.start()
        results.append(SearchResult(
            type=kind,
            name=name,
            path=path,
            excerpt=make_excerpt(content, index, match.end() - index),
            match_line=content.count("\n", 0, index) + 1,
        ))

    check("project", data.project.name, data.project.path, data.project.content)

    for spec in data.specs:
        check("spec", spec.name, spec.path, spec.spec_content)
        check("spec", f"{spec.name} (design)", spec.path, spec.design_content)

    for change in [*data.changes.active, *data.changes.archived]:
        check("change", change.name, change.path, change.proposal)

    return results


def make_excerpt(content: str, index: int, length: int) -> str:
    """Cut up to EXCERPT_RADIUS characters either side of a match.

    Truncated ends get ``...`` and newlines are flattened to spaces.
    """
    start = max(0, index - EXCERPT_RADIUS)
    end = min(len(content), index + length + EXCERPT_RADIUS)

    excerpt = content[start:end]
    if start > 0:
        excerpt = "..." + excerpt
    if end < len(content):
        excerpt = excerpt + "..."
    return excerpt.replace("\n", " ")
