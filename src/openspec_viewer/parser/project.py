"""Project description loading from project.md."""

import logging
import re
from pathlib import Path

from ..core import ParseResult, Project

logger = logging.getLogger(__name__)

MISSING_DESCRIPTION = "No project.md file found"

# First paragraph after the top-level heading, up to a blank line or the
# next heading.
_DESCRIPTION_RE = re.compile(r"^#[ \t]+[^\n]+\n+(?![#\n])(.+?)(?:\n[ \t]*\n|\n#|\Z)", re.MULTILINE | re.DOTALL)


def parse_project(openspec_path: Path) -> ParseResult[Project]:
    """Read project.md and derive the project's name and description."""
    result: ParseResult[Project] = ParseResult()
    openspec_path = Path(openspec_path)
    project_path = openspec_path / "project.md"
    name = project_name_from_path(openspec_path)

    try:
        content = project_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        result.warnings.append("project.md not found")
        result.data = Project(
            name=name,
            description=MISSING_DESCRIPTION,
            path=str(project_path),
            content="",
        )
        return result
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read %s: %s", project_path, e)
        result.errors.append(f"Failed to read project.md: {e}")
        return result

    result.data = Project(
        name=name,
        description=extract_description(content),
        path=str(project_path),
        content=content,
    )
    return result


def project_name_from_path(openspec_path: Path) -> str:
    """Turn the folder holding the OpenSpec root into a display name.

    ``/home/me/my-cool_app/openspec`` becomes ``My Cool App``.
    """
    folder = Path(openspec_path).resolve().parent.name
    words = re.sub(r"[-_]+", " ", folder).strip()
    if not words:
        return "OpenSpec Project"
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), words)


def extract_description(content: str) -> str:
    match = _DESCRIPTION_RE.search(content)
    return match.group(1).strip() if match else ""
