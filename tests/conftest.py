"""Shared test fixtures for openspec-viewer."""

import pytest


PROJECT_MD = """# Cool App

A tool for tracking cool things across teams.
Second line of the same paragraph.

## Tech Stack
- Python
"""

AUTH_SPEC = """# Auth

## Purpose
Users sign in with email and password.

### Requirement: Login
The system SHALL authenticate users.
"""

AUTH_DESIGN = """# Auth design

Sessions are stored in signed cookies.
"""

ADD_2FA_PROPOSAL = """# Add two-factor authentication

## Why
Passwords alone are not enough.
"""

ADD_2FA_TASKS = """# Tasks

## 1. Backend
- [x] 1.1 Add TOTP secret column
- [ ] 1.2 Verify codes on login
  - [x] 1.2.1 Accept a 30s window
  - [ ] 1.2.2 Rate limit attempts

## 2. Frontend
- [ ] 2.1 Code entry screen
"""

ADD_2FA_DELTA = """## ADDED Requirements
### Requirement: Two-Factor Login
Users with 2FA enabled SHALL enter a code.

#### Scenario: Valid code
- **WHEN** a valid code is entered
- **THEN** the user is signed in

## MODIFIED Requirements
### Requirement: Login
The system SHALL authenticate users with a password and optional code.
"""

SEARCH_PROPOSAL = """# Add search

Full text search over notes.
"""


@pytest.fixture
def openspec_dir(tmp_path):
    """Create a synthetic OpenSpec directory inside a project folder."""
    root = tmp_path / "my-cool_app" / "openspec"
    root.mkdir(parents=True)

    (root / "project.md").write_text(PROJECT_MD, encoding="utf-8")
    (root / "AGENTS.md").write_text("# Agents\n", encoding="utf-8")

    auth = root / "specs" / "auth"
    auth.mkdir(parents=True)
    (auth / "spec.md").write_text(AUTH_SPEC, encoding="utf-8")
    (auth / "design.md").write_text(AUTH_DESIGN, encoding="utf-8")

    billing = root / "specs" / "billing"
    billing.mkdir(parents=True)
    (billing / "spec.md").write_text("# Billing\n\nInvoices are sent monthly.\n", encoding="utf-8")

    change = root / "changes" / "add-2fa"
    change.mkdir(parents=True)
    (change / "proposal.md").write_text(ADD_2FA_PROPOSAL, encoding="utf-8")
    (change / "tasks.md").write_text(ADD_2FA_TASKS, encoding="utf-8")
    (change / "design.md").write_text("# Design\n\nUse RFC 6238.\n", encoding="utf-8")
    (change / "notes.md").write_text("# Notes\n", encoding="utf-8")
    (change / "mockups").mkdir()
    (change / "mockups" / "login.html").write_text("<h1>Login</h1>", encoding="utf-8")
    (change / "mockups" / "flow.md").write_text("# Flow\n", encoding="utf-8")
    (change / "specs" / "auth").mkdir(parents=True)
    (change / "specs" / "auth" / "spec.md").write_text(ADD_2FA_DELTA, encoding="utf-8")

    search = root / "changes" / "add-search"
    search.mkdir()
    (search / "proposal.md").write_text(SEARCH_PROPOSAL, encoding="utf-8")
    (search / "tasks.md").write_text("- [x] Index notes\n- [x] Query API\n", encoding="utf-8")

    archive = root / "changes" / "archive"
    for name in ("2024-01-10-init-project", "2024-03-15-add-auth", "legacy-import"):
        (archive / name).mkdir(parents=True)
        (archive / name / "proposal.md").write_text(f"# {name}\n\nArchived work.\n", encoding="utf-8")
        (archive / name / "tasks.md").write_text("- [x] Done\n- [ ] Dropped\n", encoding="utf-8")

    return root
