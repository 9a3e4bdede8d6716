"""Spec delta parsing.

A delta document is split by ``## ADDED|MODIFIED|REMOVED|RENAMED Requirements``
section headers; each ``### Requirement: <name>`` header inside a section
opens an operation that runs until the next section or requirement header.

Line numbers: ``start_line`` is the 1-based line of the requirement header
and ``end_line`` is the 0-based index of the line that closed the operation
(or the line count at end of input), so ``lines[start_line - 1:end_line]``
is exactly the operation's content.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..core import DeltaOperation

_SECTION_RE = re.compile(r"^##\s+(ADDED|MODIFIED|REMOVED|RENAMED)\s+Requirements?", re.IGNORECASE)
_REQUIREMENT_RE = re.compile(r"^###\s+Requirement:\s*(.+)", re.IGNORECASE)


@dataclass
class _OpenRequirement:
    type: str
    name: str
    start_line: int
    lines: list[str] = field(default_factory=list)

    def close(self, end_line: int) -> DeltaOperation:
        return DeltaOperation(
            type=self.type,
            name=self.name,
            content="\n".join(self.lines),
            start_line=self.start_line,
            end_line=end_line,
        )


def parse_delta_operations(content: str) -> list[DeltaOperation]:
    """Extract requirement operations in document order.

    Requirement headers that appear before any section header are ignored.
    """
    operations: list[DeltaOperation] = []
    lines = content.split("\n")

    section: Optional[str] = None
    current: Optional[_OpenRequirement] = None

    for index, line in enumerate(lines):
        section_match = _SECTION_RE.match(line)
        if section_match:
            if current is not None:
                operations.append(current.close(index))
            section = section_match.group(1).lower()
            current = None
            continue

        requirement_match = _REQUIREMENT_RE.match(line)
        if requirement_match and section is not None:
            if current is not None:
                operations.append(current.close(index))
            current = _OpenRequirement(
                type=section,
                name=requirement_match.group(1).strip(),
                start_line=index + 1,
                lines=[line],
            )
            continue

        if current is not None:
            current.lines.append(line)

    if current is not None:
        operations.append(current.close(len(lines)))

    return operations
