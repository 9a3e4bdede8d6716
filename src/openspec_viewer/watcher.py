"""Filesystem watching for an OpenSpec directory.

watchdog reports raw paths; ``classify_change`` decides which part of the
model a path belongs to. Classified events are handed to a callback, which
is expected to trigger a re-parse and notify clients.
"""

import logging
from pathlib import Path, PurePath
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .core import FileChangeEvent

logger = logging.getLogger(__name__)

WATCHED_SUFFIXES = (".md", ".html")
IGNORED_NAMES = ("node_modules",)

FileChangeHandler = Callable[[FileChangeEvent], None]


def classify_change(openspec_path: Path, path: str, event_type: str) -> Optional[FileChangeEvent]:
    """Label a changed path with the entity it affects.

    Returns None for paths that should not trigger a refresh: files that are
    not markdown/HTML, directories outside specs/ and changes/, and anything
    hidden or under node_modules.
    """
    try:
        relative = Path(path).relative_to(openspec_path)
    except ValueError:
        return None

    parts = relative.parts
    if not parts or _is_ignored(parts):
        return None

    is_dir = event_type in ("addDir", "removeDir")
    if is_dir:
        if parts[0] not in ("specs", "changes"):
            return None
    elif not parts[-1].lower().endswith(WATCHED_SUFFIXES):
        return None

    affected, entity_id = entity_for_parts(parts)
    return FileChangeEvent(
        type=event_type,
        path=str(path),
        affected_entity=affected,
        entity_id=entity_id,
    )


def entity_for_parts(parts: tuple[str, ...]) -> tuple[str, Optional[str]]:
    """Map relative path segments to ``(affected_entity, entity_id)``.

    specs/<capability>/...          -> ("specs", capability)
    changes/<name>/...              -> ("changes", name)
    changes/archive/<name>/...      -> ("changes", name)
    anything else                   -> ("project", None)
    """
    if parts[0] == "specs":
        return "specs", _segment(parts, 1)
    if parts[0] == "changes":
        if _segment(parts, 1) == "archive":
            return "changes", _segment(parts, 2)
        return "changes", _segment(parts, 1)
    return "project", None


def _segment(parts: tuple[str, ...], index: int) -> Optional[str]:
    return parts[index] if len(parts) > index else None


def _is_ignored(parts: tuple[str, ...]) -> bool:
    return any(p.startswith(".") or p in IGNORED_NAMES for p in parts)


class OpenSpecEventHandler(FileSystemEventHandler):
    """Translate watchdog events into classified FileChangeEvents."""

    def __init__(self, openspec_path: Path, on_change: FileChangeHandler):
        self.openspec_path = Path(openspec_path)
        self.on_change = on_change

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit(event.src_path, "addDir" if event.is_directory else "add")

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime updates duplicate the file events inside them.
        if not event.is_directory:
            self._emit(event.src_path, "change")

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit(event.src_path, "removeDir" if event.is_directory else "remove")

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self._emit(event.src_path, "removeDir")
            self._emit(event.dest_path, "addDir")
        else:
            self._emit(event.src_path, "remove")
            self._emit(event.dest_path, "add")

    def _emit(self, raw_path, event_type: str) -> None:
        path = raw_path.decode() if isinstance(raw_path, bytes) else raw_path
        change = classify_change(self.openspec_path, path, event_type)
        if change is None:
            return

        logger.info("File %s: %s", change.type, PurePath(path).as_posix())
        try:
            self.on_change(change)
        except Exception:
            logger.exception("Change handler failed for %s", path)


class OpenSpecWatcher:
    """Owns the watchdog observer for one OpenSpec directory.

    Constructed at startup and stopped on shutdown; it holds no global state.
    """

    def __init__(self, openspec_path: Path, on_change: FileChangeHandler):
        self.openspec_path = Path(openspec_path).resolve()
        self.on_change = on_change
        self.observer: Optional[Observer] = None

    def start(self) -> None:
        if self.observer is not None:
            logger.warning("Watcher already running")
            return

        handler = OpenSpecEventHandler(self.openspec_path, self.on_change)
        self.observer = Observer()
        self.observer.schedule(handler, str(self.openspec_path), recursive=True)
        self.observer.daemon = True
        self.observer.start()
        logger.info("Watching %s", self.openspec_path)

    def stop(self) -> None:
        """Stop the watcher and join the observer thread."""
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        logger.info("Stopped watching %s", self.openspec_path)

    @property
    def is_running(self) -> bool:
        return self.observer is not None
