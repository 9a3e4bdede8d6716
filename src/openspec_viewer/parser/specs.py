"""Capability loading from the specs/ directory."""

import logging
from pathlib import Path

from ..core import ParseResult, Spec

logger = logging.getLogger(__name__)


def parse_specs(openspec_path: Path) -> ParseResult[list[Spec]]:
    """Load every capability under ``specs/``, sorted by name."""
    result: ParseResult[list[Spec]] = ParseResult()
    specs_path = Path(openspec_path) / "specs"

    try:
        entries = sorted(specs_path.iterdir())
    except FileNotFoundError:
        result.warnings.append("specs/ directory not found")
        result.data = []
        return result
    except OSError as e:
        result.errors.append(f"Failed to read specs directory: {e}")
        return result

    specs = []
    for entry in entries:
        if not entry.is_dir():
            continue
        capability = parse_capability(entry.name, entry)
        result.merge(capability)
        if capability.data is not None:
            specs.append(capability.data)

    specs.sort(key=lambda s: s.name)
    result.data = specs
    return result


def parse_capability(name: str, capability_path: Path) -> ParseResult[Spec]:
    """Read one capability's spec.md and optional design.md.

    A missing spec.md is a warning and leaves the content empty; a missing
    design.md is not reported at all.
    """
    result: ParseResult[Spec] = ParseResult()

    spec_content = ""
    try:
        spec_content = (capability_path / "spec.md").read_text(encoding="utf-8")
    except FileNotFoundError:
        result.warnings.append(f"{name}: spec.md not found")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read spec.md for %s: %s", name, e)
        result.errors.append(f"{name}: Failed to read spec.md: {e}")

    design_content = None
    try:
        design_content = (capability_path / "design.md").read_text(encoding="utf-8")
    except FileNotFoundError:
        pass
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read design.md for %s: %s", name, e)
        result.warnings.append(f"{name}: Failed to read design.md: {e}")

    result.data = Spec(
        name=name,
        path=str(capability_path),
        spec_content=spec_content,
        design_content=design_content,
    )
    return result


def parse_spec(openspec_path: Path, spec_name: str) -> ParseResult[Spec]:
    """Load a single capability by name for an on-demand refresh."""
    if not is_plain_name(spec_name):
        return ParseResult(errors=[f"Spec {spec_name} not found"])

    capability_path = Path(openspec_path) / "specs" / spec_name
    if not capability_path.exists():
        return ParseResult(errors=[f"Spec {spec_name} not found"])
    if not capability_path.is_dir():
        return ParseResult(errors=[f"{spec_name} is not a directory"])

    return parse_capability(spec_name, capability_path)


def is_plain_name(name: str) -> bool:
    """True for a single path segment that cannot escape its parent."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name
