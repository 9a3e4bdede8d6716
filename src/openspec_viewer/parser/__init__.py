"""Parse an OpenSpec directory into an OpenSpecData snapshot."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from ..core import Changes, OpenSpecData, ParseResult, Project, Spec, Stats
from .changes import parse_change_by_name, parse_changes, read_change_file
from .deltas import parse_delta_operations
from .project import parse_project
from .specs import parse_spec, parse_specs
from .tasks import parse_tasks, progress_from_counts

logger = logging.getLogger(__name__)


def parse_openspec(openspec_path: Path) -> ParseResult[OpenSpecData]:
    """Read the whole OpenSpec tree from disk.

    Every call is a full re-read. Errors and warnings from all loaders are
    collected; only a missing root (or an unreadable top-level directory)
    yields no data.
    """
    openspec_path = Path(openspec_path)
    missing = _check_root(openspec_path)
    if missing is not None:
        return missing

    project = parse_project(openspec_path)
    specs = parse_specs(openspec_path)
    changes = parse_changes(openspec_path)
    return _assemble(openspec_path, project, specs, changes)


async def parse_openspec_async(openspec_path: Path) -> ParseResult[OpenSpecData]:
    """Like parse_openspec, but loads project, specs and changes concurrently
    in worker threads. The three loaders touch disjoint subtrees.
    """
    openspec_path = Path(openspec_path)
    missing = await asyncio.to_thread(_check_root, openspec_path)
    if missing is not None:
        return missing

    project, specs, changes = await asyncio.gather(
        asyncio.to_thread(parse_project, openspec_path),
        asyncio.to_thread(parse_specs, openspec_path),
        asyncio.to_thread(parse_changes, openspec_path),
    )
    return _assemble(openspec_path, project, specs, changes)


def _check_root(openspec_path: Path) -> Optional[ParseResult[OpenSpecData]]:
    if not openspec_path.exists():
        return ParseResult(errors=[f"OpenSpec directory not found: {openspec_path}"])
    if not openspec_path.is_dir():
        return ParseResult(errors=[f"{openspec_path} is not a directory"])
    return None


def _assemble(
    openspec_path: Path,
    project: ParseResult[Project],
    specs: ParseResult[list[Spec]],
    changes: ParseResult[Changes],
) -> ParseResult[OpenSpecData]:
    result: ParseResult[OpenSpecData] = ParseResult()
    for part in (project, specs, changes):
        result.merge(part)

    if project.data is None or specs.data is None or changes.data is None:
        return result

    result.data = OpenSpecData(
        project=project.data,
        specs=specs.data,
        changes=changes.data,
        stats=calculate_stats(specs.data, changes.data),
    )
    logger.debug(
        "Parsed %s: %d specs, %d active changes, %d archived",
        openspec_path, len(specs.data), len(changes.data.active), len(changes.data.archived),
    )
    return result


def calculate_stats(specs: list[Spec], changes: Changes) -> Stats:
    """Summarize the tree. Task progress only counts active changes."""
    done = sum(c.task_progress.done for c in changes.active)
    total = sum(c.task_progress.total for c in changes.active)

    return Stats(
        total_specs=len(specs),
        active_changes=len(changes.active),
        archived_changes=len(changes.archived),
        overall_task_progress=progress_from_counts(done, total),
    )


__all__ = [
    "calculate_stats",
    "parse_change_by_name",
    "parse_changes",
    "parse_delta_operations",
    "parse_openspec",
    "parse_openspec_async",
    "parse_project",
    "parse_spec",
    "parse_specs",
    "parse_tasks",
    "read_change_file",
]
