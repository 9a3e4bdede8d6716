"""Task list parsing.

Turns markdown checkbox lines into a task tree. Nesting follows leading
whitespace only: a task becomes the child of the closest preceding task
with a strictly smaller indent, so indent widths need not be consistent.
"""

import math
import re

from ..core import Task, TaskProgress

_TASK_RE = re.compile(r"^(\s*)-\s*\[([ xX])\]\s*(.+)$")


def parse_tasks(content: str) -> tuple[list[Task], TaskProgress]:
    """Parse checkbox lines into root tasks plus overall progress.

    Lines that are not checkboxes (blank lines, headings, prose) are skipped.
    """
    roots: list[Task] = []
    stack: list[tuple[Task, int]] = []

    for line_num, line in enumerate(content.split("\n"), 1):
        match = _TASK_RE.match(line.rstrip("\r"))
        if not match:
            continue

        indent = len(match.group(1))
        task = Task(
            text=match.group(3).strip(),
            completed=match.group(2).lower() == "x",
            line=line_num,
        )

        while stack and stack[-1][1] >= indent:
            stack.pop()

        if stack:
            stack[-1][0].subtasks.append(task)
        else:
            roots.append(task)

        stack.append((task, indent))

    return roots, calculate_progress(roots)


def calculate_progress(tasks: list[Task]) -> TaskProgress:
    """Count every node of the tree once, parents and children alike."""
    done = 0
    total = 0

    pending = list(reversed(tasks))
    while pending:
        task = pending.pop()
        total += 1
        if task.completed:
            done += 1
        pending.extend(reversed(task.subtasks))

    return progress_from_counts(done, total)


def progress_from_counts(done: int, total: int) -> TaskProgress:
    # Half-up rounding, so 12.5% shows as 13%.
    percentage = math.floor(done * 100 / total + 0.5) if total > 0 else 0
    return TaskProgress(done=done, total=total, percentage=percentage)
