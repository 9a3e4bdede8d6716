"""Convert model dataclasses to JSON-ready dicts for the browser API.

Keys are camelCase to match what the frontend reads.
"""

from .core import (
    Change,
    ChangeFile,
    DeltaOperation,
    FileChangeEvent,
    FileGroup,
    OpenSpecData,
    Project,
    SearchResult,
    Spec,
    SpecDelta,
    Stats,
    Task,
    TaskProgress,
)


def project_to_dict(project: Project) -> dict:
    return {
        "name": project.name,
        "description": project.description,
        "path": project.path,
        "content": project.content,
    }


def spec_to_dict(spec: Spec) -> dict:
    return {
        "name": spec.name,
        "path": spec.path,
        "specContent": spec.spec_content,
        "designContent": spec.design_content,
    }


def spec_summary(spec: Spec) -> dict:
    """Short form used by the spec list."""
    return {
        "name": spec.name,
        "path": spec.path,
        "hasDesign": spec.design_content is not None,
    }


def task_to_dict(task: Task) -> dict:
    return {
        "text": task.text,
        "completed": task.completed,
        "line": task.line,
        "subtasks": [task_to_dict(t) for t in task.subtasks],
    }


def progress_to_dict(progress: TaskProgress) -> dict:
    return {
        "done": progress.done,
        "total": progress.total,
        "percentage": progress.percentage,
    }


def operation_to_dict(op: DeltaOperation) -> dict:
    return {
        "type": op.type,
        "name": op.name,
        "content": op.content,
        "startLine": op.start_line,
        "endLine": op.end_line,
    }


def delta_to_dict(delta: SpecDelta) -> dict:
    return {
        "capability": delta.capability,
        "content": delta.content,
        "operations": [operation_to_dict(op) for op in delta.operations],
    }


def file_to_dict(f: ChangeFile) -> dict:
    data = {
        "name": f.name,
        "path": f.path,
        "absolutePath": f.absolute_path,
        "type": f.type,
        "folder": f.folder,
    }
    if f.type == "markdown":
        data["content"] = f.content
    return data


def group_to_dict(group: FileGroup) -> dict:
    return {
        "name": group.name,
        "folder": group.folder,
        "files": [file_to_dict(f) for f in group.files],
        "isCore": group.is_core,
    }


def change_to_dict(change: Change) -> dict:
    return {
        "name": change.name,
        "path": change.path,
        "isArchived": change.is_archived,
        "archivedDate": change.archived_date,
        "proposal": change.proposal,
        "tasks": [task_to_dict(t) for t in change.tasks],
        "tasksRaw": change.tasks_raw,
        "taskProgress": progress_to_dict(change.task_progress),
        "design": change.design,
        "specDeltas": [delta_to_dict(d) for d in change.spec_deltas],
        "files": [file_to_dict(f) for f in change.files],
        "fileGroups": [group_to_dict(g) for g in change.file_groups],
    }


def change_summary(change: Change) -> dict:
    """Short form used by the change lists."""
    return {
        "name": change.name,
        "path": change.path,
        "isArchived": change.is_archived,
        "archivedDate": change.archived_date,
        "taskProgress": progress_to_dict(change.task_progress),
        "specDeltaCount": len(change.spec_deltas),
        "hasProposal": change.proposal is not None,
        "hasDesign": change.design is not None,
    }


def stats_to_dict(stats: Stats) -> dict:
    return {
        "totalSpecs": stats.total_specs,
        "activeChanges": stats.active_changes,
        "archivedChanges": stats.archived_changes,
        "overallTaskProgress": progress_to_dict(stats.overall_task_progress),
    }


def search_result_to_dict(result: SearchResult) -> dict:
    return {
        "type": result.type,
        "name": result.name,
        "path": result.path,
        "excerpt": result.excerpt,
        "matchLine": result.match_line,
    }


def refresh_payload(event: FileChangeEvent, data: OpenSpecData) -> dict:
    """The slice of the snapshot a client needs after ``event``."""
    if event.affected_entity == "project":
        return {"project": project_to_dict(data.project)}
    if event.affected_entity == "specs":
        return {
            "specs": [spec_to_dict(s) for s in data.specs],
            "stats": stats_to_dict(data.stats),
        }
    if event.affected_entity == "changes":
        return {
            "changes": {
                "active": [change_to_dict(c) for c in data.changes.active],
                "archived": [change_to_dict(c) for c in data.changes.archived],
            },
            "stats": stats_to_dict(data.stats),
        }
    return {"stats": stats_to_dict(data.stats)}
