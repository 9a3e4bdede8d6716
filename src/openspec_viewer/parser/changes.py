"""Change loading from the changes/ directory.

A change directory holds proposal.md, tasks.md and design.md at its root,
any number of supplementary markdown/HTML documents in nested folders, and
a specs/ tree of per-capability delta documents:

    changes/<name>/proposal.md
    changes/<name>/mockups/login.html
    changes/<name>/specs/<capability>/spec.md
    changes/archive/<YYYY-MM-DD-name>/...
"""

import logging
import re
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Optional

from ..core import Change, ChangeFile, Changes, FileGroup, ParseResult, SpecDelta
from .deltas import parse_delta_operations
from .specs import is_plain_name
from .tasks import parse_tasks

logger = logging.getLogger(__name__)

CORE_FILES = ("proposal", "tasks", "design")
DOCUMENT_TYPES = {".md": "markdown", ".html": "html"}
MEDIA_TYPES = {"markdown": "text/markdown", "html": "text/html"}

_ARCHIVED_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-")


def parse_changes(openspec_path: Path) -> ParseResult[Changes]:
    """Load all active and archived changes.

    Active changes are sorted by name; archived ones newest first by their
    date prefix, then by name.
    """
    result: ParseResult[Changes] = ParseResult()
    changes_path = Path(openspec_path) / "changes"

    try:
        entries = sorted(changes_path.iterdir())
    except FileNotFoundError:
        result.warnings.append("changes/ directory not found")
        result.data = Changes()
        return result
    except OSError as e:
        result.errors.append(f"Failed to read changes directory: {e}")
        return result

    active: list[Change] = []
    archived: list[Change] = []

    for entry in entries:
        if not entry.is_dir():
            continue

        if entry.name == "archive":
            archive_result = _parse_archived_changes(entry)
            result.merge(archive_result)
            archived.extend(archive_result.data or [])
            continue

        change_result = parse_change(entry.name, entry, is_archived=False)
        result.merge(change_result)
        if change_result.data is not None:
            active.append(change_result.data)

    active.sort(key=lambda c: c.name)
    archived.sort(key=lambda c: c.name)
    archived.sort(key=lambda c: c.archived_date or "", reverse=True)

    result.data = Changes(active=active, archived=archived)
    return result


def _parse_archived_changes(archive_path: Path) -> ParseResult[list[Change]]:
    result: ParseResult[list[Change]] = ParseResult(data=[])

    try:
        entries = sorted(archive_path.iterdir())
    except FileNotFoundError:
        return result
    except OSError as e:
        result.errors.append(f"Failed to read archive directory: {e}")
        return result

    for entry in entries:
        if not entry.is_dir():
            continue
        change_result = parse_change(entry.name, entry, is_archived=True)
        result.merge(change_result)
        if change_result.data is not None:
            result.data.append(change_result.data)

    return result


def parse_change(name: str, change_path: Path, is_archived: bool) -> ParseResult[Change]:
    """Load one change directory.

    Unreadable files become warnings; only a missing directory is fatal.
    """
    change_path = Path(change_path)
    if not change_path.is_dir():
        return ParseResult(errors=[f"Change {name} not found"])

    result: ParseResult[Change] = ParseResult()

    files = []
    for found in discover_change_files(change_path):
        if found.type != "markdown":
            files.append(found)
            continue
        try:
            content = Path(found.absolute_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s in change %s: %s", found.path, name, e)
            result.warnings.append(f"{name}: Failed to read {found.path}")
            content = None
        files.append(replace(found, content=content))

    proposal = _root_file_content(files, "proposal")
    tasks_raw = _root_file_content(files, "tasks")
    design = _root_file_content(files, "design")

    tasks, progress = parse_tasks(tasks_raw or "")

    deltas_result = parse_spec_deltas(change_path / "specs")
    for message in deltas_result.errors + deltas_result.warnings:
        result.warnings.append(f"{name}: {message}")

    result.data = Change(
        name=name,
        path=str(change_path),
        is_archived=is_archived,
        archived_date=archived_date_from_name(name) if is_archived else None,
        proposal=proposal,
        tasks=tasks,
        tasks_raw=tasks_raw,
        task_progress=progress,
        design=design,
        spec_deltas=deltas_result.data or [],
        files=files,
        file_groups=group_change_files(files),
    )
    return result


def archived_date_from_name(name: str) -> Optional[str]:
    """Return the ``YYYY-MM-DD`` prefix of an archived change name, if any."""
    match = _ARCHIVED_DATE_RE.match(name)
    return match.group(1) if match else None


def discover_change_files(change_path: Path, relative: str = "") -> list[ChangeFile]:
    """Recursively list markdown and HTML documents of a change.

    The top-level specs/ folder is left out; it holds spec deltas. File
    contents are not read here.
    """
    files: list[ChangeFile] = []
    current = change_path / relative if relative else change_path

    try:
        entries = sorted(current.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", current, e)
        return files

    for entry in entries:
        rel_path = f"{relative}/{entry.name}" if relative else entry.name

        if entry.is_dir():
            # Symlinked folders can point back into the tree.
            if entry.is_symlink() or (not relative and entry.name == "specs"):
                continue
            files.extend(discover_change_files(change_path, rel_path))
            continue

        file_type = DOCUMENT_TYPES.get(entry.suffix.lower())
        if file_type is None or not entry.is_file():
            continue

        files.append(ChangeFile(
            name=entry.stem,
            path=rel_path,
            absolute_path=str(entry),
            type=file_type,
            folder=relative or "root",
        ))

    return files


def group_change_files(files: list[ChangeFile]) -> list[FileGroup]:
    """Group files into navigation tabs.

    proposal, tasks and design at the change root each get their own core
    tab, in that order. Everything else is grouped by folder, with root-level
    extras under "Other"; folder groups and the files inside them are sorted
    by name.
    """
    core: list[ChangeFile] = []
    by_folder: dict[str, list[ChangeFile]] = {}

    for f in files:
        if f.folder == "root" and f.name.lower() in CORE_FILES:
            core.append(f)
        else:
            by_folder.setdefault(f.folder, []).append(f)

    core.sort(key=lambda f: CORE_FILES.index(f.name.lower()))
    groups = [
        FileGroup(name=_capitalize_first(f.name), folder="", files=[f], is_core=True)
        for f in core
    ]

    folder_groups = []
    for folder, grouped in by_folder.items():
        display = "Other" if folder == "root" else _capitalize_first(folder)
        grouped.sort(key=lambda f: f.name.casefold())
        folder_groups.append(FileGroup(name=display, folder=folder, files=grouped, is_core=False))

    folder_groups.sort(key=lambda g: g.name.casefold())
    groups.extend(folder_groups)
    return groups


def parse_spec_deltas(specs_path: Path) -> ParseResult[list[SpecDelta]]:
    """Parse ``<capability>/spec.md`` under a change's specs/ folder.

    Capability folders without a spec.md are skipped silently.
    """
    result: ParseResult[list[SpecDelta]] = ParseResult(data=[])

    try:
        entries = sorted(specs_path.iterdir())
    except FileNotFoundError:
        return result
    except OSError as e:
        result.warnings.append(f"Failed to read specs directory: {e}")
        return result

    for entry in entries:
        if not entry.is_dir():
            continue
        try:
            content = (entry / "spec.md").read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read spec delta %s: %s", entry, e)
            result.errors.append(f"Failed to read spec delta for {entry.name}")
            continue

        result.data.append(SpecDelta(
            capability=entry.name,
            content=content,
            operations=parse_delta_operations(content),
        ))

    return result


def parse_change_by_name(openspec_path: Path, change_name: str) -> ParseResult[Change]:
    """Load one change, trying active changes before archived ones.

    Archived directories match when their name contains ``change_name``,
    so ``add-foo`` finds ``2024-03-15-add-foo``.
    """
    located = find_change_dir(openspec_path, change_name)
    if located is None:
        return ParseResult(errors=[f"Change {change_name} not found"])

    name, path, is_archived = located
    return parse_change(name, path, is_archived)


def find_change_dir(openspec_path: Path, change_name: str) -> Optional[tuple[str, Path, bool]]:
    """Resolve a change name to ``(directory name, path, is_archived)``."""
    if not is_plain_name(change_name):
        return None

    changes_path = Path(openspec_path) / "changes"
    active = changes_path / change_name
    if change_name != "archive" and active.is_dir():
        return change_name, active, False

    try:
        archived = sorted(p for p in (changes_path / "archive").iterdir() if p.is_dir())
    except OSError:
        return None

    for entry in archived:
        if change_name in entry.name:
            return entry.name, entry, True
    return None


def read_change_file(openspec_path: Path, change_name: str, file_path: str) -> tuple[bytes, str]:
    """Return ``(raw bytes, media_type)`` of a document inside a change.

    The bytes are not decoded, so documents in any encoding are served as-is.

    Raises ValueError for paths that are absolute, climb out with ``..`` or
    are not markdown/HTML, and FileNotFoundError when the change or file
    does not exist.
    """
    if (
        not file_path
        or file_path.startswith(("/", "\\"))
        or re.match(r"^[A-Za-z]:", file_path)
    ):
        raise ValueError(f"Invalid file path: {file_path}")

    parts = PurePosixPath(file_path.replace("\\", "/")).parts
    if ".." in parts:
        raise ValueError(f"Invalid file path: {file_path}")

    file_type = DOCUMENT_TYPES.get(PurePosixPath(file_path).suffix.lower())
    if file_type is None:
        raise ValueError(f"Unsupported file type: {file_path}")

    located = find_change_dir(openspec_path, change_name)
    if located is None:
        raise FileNotFoundError(f"Change {change_name} not found")

    target = located[1].joinpath(*parts)
    if not target.is_file():
        raise FileNotFoundError(f"File {file_path} not found in change {change_name}")

    return target.read_bytes(), MEDIA_TYPES[file_type]


def _root_file_content(files: list[ChangeFile], name: str) -> Optional[str]:
    for f in files:
        if f.folder == "root" and f.name.lower() == name:
            return f.content
    return None


def _capitalize_first(value: str) -> str:
    return value[:1].upper() + value[1:]

