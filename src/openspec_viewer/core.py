"""Core data models for openspec-viewer."""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Project:
    """The OpenSpec root as a whole."""

    name: str  # derived from the folder containing the OpenSpec root
    description: str
    path: str  # path to project.md
    content: str


@dataclass(frozen=True)
class Spec:
    """A capability: one directory under specs/."""

    name: str
    path: str
    spec_content: str
    design_content: Optional[str] = None


@dataclass
class Task:
    """A checkbox line item, possibly with nested subtasks."""

    text: str
    completed: bool
    line: int  # 1-based line of the checkbox in tasks.md
    subtasks: list["Task"] = field(default_factory=list)


@dataclass(frozen=True)
class TaskProgress:
    done: int = 0
    total: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class DeltaOperation:
    """A requirement-level operation inside a spec delta."""

    type: str  # "added" | "modified" | "removed" | "renamed"
    name: str
    content: str
    start_line: int  # 1-based, inclusive
    end_line: int  # exclusive


@dataclass(frozen=True)
class SpecDelta:
    capability: str
    content: str
    operations: list[DeltaOperation] = field(default_factory=list)


@dataclass(frozen=True)
class ChangeFile:
    """A markdown or HTML document found inside a change directory."""

    name: str  # file name without extension
    path: str  # relative to the change directory, always "/"-separated
    absolute_path: str
    type: str  # "markdown" | "html"
    folder: str  # "root" or the relative subdirectory
    content: Optional[str] = None  # only loaded for markdown


@dataclass(frozen=True)
class FileGroup:
    """A display grouping of change files (one UI tab)."""

    name: str
    folder: str
    files: list[ChangeFile] = field(default_factory=list)
    is_core: bool = False


@dataclass(frozen=True)
class Change:
    """A proposed modification, active or archived."""

    name: str
    path: str
    is_archived: bool
    archived_date: Optional[str] = None  # "YYYY-MM-DD"
    proposal: Optional[str] = None
    tasks: list[Task] = field(default_factory=list)
    tasks_raw: Optional[str] = None
    task_progress: TaskProgress = field(default_factory=TaskProgress)
    design: Optional[str] = None
    spec_deltas: list[SpecDelta] = field(default_factory=list)
    files: list[ChangeFile] = field(default_factory=list)
    file_groups: list[FileGroup] = field(default_factory=list)


@dataclass(frozen=True)
class Changes:
    active: list[Change] = field(default_factory=list)
    archived: list[Change] = field(default_factory=list)


@dataclass(frozen=True)
class Stats:
    total_specs: int
    active_changes: int
    archived_changes: int
    overall_task_progress: TaskProgress


@dataclass(frozen=True)
class OpenSpecData:
    """A complete, fully-built snapshot of one OpenSpec directory."""

    project: Project
    specs: list[Spec]
    changes: Changes
    stats: Stats


@dataclass(frozen=True)
class SearchResult:
    type: str  # "project" | "spec" | "change"
    name: str
    path: str
    excerpt: str
    match_line: int


@dataclass(frozen=True)
class FileChangeEvent:
    """A filesystem event labeled with the entity it affects."""

    type: str  # "add" | "change" | "remove" | "addDir" | "removeDir"
    path: str
    affected_entity: str  # "project" | "specs" | "changes"
    entity_id: Optional[str] = None


@dataclass
class ParseResult(Generic[T]):
    """Result envelope returned by every loader.

    ``data`` is None only on a fatal failure for the subtree. Non-empty
    ``warnings`` next to present ``data`` means a degraded but usable load.
    """

    data: Optional[T] = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def merge(self, other: "ParseResult") -> None:
        """Append another result's errors and warnings to this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
