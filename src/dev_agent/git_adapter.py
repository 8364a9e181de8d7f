"""Git command wrapper and repository context detection."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Literal, Protocol

from dev_agent.models import (
    BranchListing,
    CommitRecord,
    CommitResult,
    InitResult,
    RepoSnapshot,
    StatusReport,
)

logger = logging.getLogger(__name__)

# Checked in order; a package.json contributes "node" before its framework labels.
PACKAGE_JSON_LABELS = ("react", "vue", "express", "typescript", "jest")
MARKER_FILE_LABELS = (
    ("requirements.txt", ("python",)),
    ("pom.xml", ("java", "maven")),
    ("Cargo.toml", ("rust",)),
    ("go.mod", ("go",)),
)

COMMIT_HEADER_RE = re.compile(r"^\[(?P<branch>.+?)(?: \(root-commit\))? (?P<hash>[0-9a-f]{4,})\]", re.MULTILINE)
COMMIT_STATS_RE = re.compile(
    r"(\d+) files? changed(?:, (\d+) insertions?\(\+\))?(?:, (\d+) deletions?\(-\))?"
)


class GitCommandError(RuntimeError):
    """Raised when a git invocation fails."""


class VersionControl(Protocol):
    def is_repository(self) -> bool: ...

    def initialize_if_absent(self) -> InitResult: ...

    def status(self) -> StatusReport: ...

    def diff(self, staged: bool = False, file: str | None = None) -> str: ...

    def stage(self, paths: list[str] | Literal["all"] = "all") -> None: ...

    def commit(self, message: str, author: str | None = None) -> CommitResult: ...

    def create_branch(self, name: str, switch_to: bool = True) -> None: ...

    def checkout(self, name: str) -> None: ...

    def current_branch(self) -> str: ...

    def list_branches(self) -> BranchListing: ...

    def push(self, remote: str = "origin", branch: str | None = None, set_upstream: bool = False) -> str: ...

    def pull(self, remote: str = "origin", branch: str | None = None) -> None: ...

    def log(self, max_count: int = 10) -> list[CommitRecord]: ...

    def detect_tech_stack(self) -> list[str]: ...

    def snapshot(self) -> RepoSnapshot: ...


def _run_git(repo_path: Path, args: list[str]) -> str:
    cmd = ["git", "-C", str(repo_path), *args]
    logger.debug("running %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, check=False, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise GitCommandError("git executable not found on PATH") from exc
    if proc.returncode != 0:
        raise GitCommandError(f"git command failed: {' '.join(cmd)}\n{proc.stderr.strip()}")
    return proc.stdout


def parse_status(output: str) -> StatusReport:
    """Parse ``git status --porcelain=v1 --branch`` output."""
    report = StatusReport()
    for line in output.splitlines():
        if line.startswith("## "):
            report.current = _parse_branch_header(line[3:])
            continue
        if len(line) < 4:
            continue

        index, worktree, path = line[0], line[1], line[3:]
        report.files.append(path)

        if index == "?" and worktree == "?":
            report.not_added.append(path)
            continue
        if index == "A":
            report.created.append(path)
        if index == "R":
            report.renamed.append(path)
        if "M" in (index, worktree):
            report.modified.append(path)
        if "D" in (index, worktree):
            report.deleted.append(path)
        if index not in (" ", "?"):
            report.staged.append(path.split(" -> ")[-1])
    return report


def _parse_branch_header(header: str) -> str | None:
    if header.startswith("No commits yet on "):
        return header[len("No commits yet on ") :].strip()
    if header.startswith("HEAD (no branch)"):
        return None
    return header.split("...", 1)[0].split(" ", 1)[0] or None


def detect_tech_stack(directory: Path) -> list[str]:
    """Return ordered, de-duplicated technology labels from marker files.

    Missing or unreadable markers are skipped.
    """
    labels: list[str] = []

    try:
        package = json.loads((directory / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        package = None
    if isinstance(package, dict):
        labels.append("node")
        deps: dict[str, object] = {}
        for key in ("dependencies", "devDependencies"):
            section = package.get(key)
            if isinstance(section, dict):
                deps.update(section)
        labels.extend(name for name in PACKAGE_JSON_LABELS if name in deps)

    for marker, marker_labels in MARKER_FILE_LABELS:
        if (directory / marker).is_file():
            labels.extend(marker_labels)

    return list(dict.fromkeys(labels))


class GitAdapter:
    """Runs git operations against one working directory."""

    def __init__(self, working_dir: Path):
        self.working_dir = Path(working_dir)

    def _git(self, *args: str) -> str:
        return _run_git(self.working_dir, list(args))

    def is_repository(self) -> bool:
        try:
            return self._git("rev-parse", "--is-inside-work-tree").strip() == "true"
        except GitCommandError:
            return False

    def initialize_if_absent(self) -> InitResult:
        if self.is_repository():
            return InitResult(initialized=False, message="Already a git repository")
        self._git("init")
        return InitResult(initialized=True, message=f"Initialized repository in {self.working_dir}")

    def status(self) -> StatusReport:
        return parse_status(self._git("status", "--porcelain=v1", "--branch"))

    def diff(self, staged: bool = False, file: str | None = None) -> str:
        args = ["diff"]
        if staged:
            args.append("--cached")
        if file:
            args.extend(["--", file])
        return self._git(*args)

    def stage(self, paths: list[str] | Literal["all"] = "all") -> None:
        if paths == "all":
            self._git("add", "--all")
        else:
            self._git("add", "--", *paths)

    def commit(self, message: str, author: str | None = None) -> CommitResult:
        """Create a commit and summarize it from git's own output."""
        args = ["commit", "-m", message]
        if author:
            args.append(f"--author={author}")
        output = self._git(*args)

        header = COMMIT_HEADER_RE.search(output)
        if header:
            branch, commit_id = header.group("branch"), header.group("hash")
        else:
            branch = self.current_branch()
            commit_id = self._git("rev-parse", "--short", "HEAD").strip()

        changes = insertions = deletions = 0
        stats = COMMIT_STATS_RE.search(output)
        if stats:
            changes = int(stats.group(1))
            insertions = int(stats.group(2) or 0)
            deletions = int(stats.group(3) or 0)

        return CommitResult(
            commit_id=commit_id,
            branch=branch,
            changes=changes,
            insertions=insertions,
            deletions=deletions,
        )

    def create_branch(self, name: str, switch_to: bool = True) -> None:
        if switch_to:
            self._git("checkout", "-b", name)
        else:
            self._git("branch", name)

    def checkout(self, name: str) -> None:
        self._git("checkout", name)

    def current_branch(self) -> str:
        return self._git("branch", "--show-current").strip()

    def list_branches(self) -> BranchListing:
        output = self._git("branch", "--format=%(refname:short)")
        names = [line.strip() for line in output.splitlines() if line.strip()]
        return BranchListing(all=names, current=self.current_branch())

    def push(self, remote: str = "origin", branch: str | None = None, set_upstream: bool = False) -> str:
        """Push ``branch`` (default: current) and return the branch pushed."""
        target = branch or self.current_branch()
        args = ["push"]
        if set_upstream:
            args.append("-u")
        self._git(*args, remote, target)
        return target

    def pull(self, remote: str = "origin", branch: str | None = None) -> None:
        if branch:
            self._git("pull", remote, branch)
        else:
            self._git("pull")

    def log(self, max_count: int = 10) -> list[CommitRecord]:
        output = self._git("log", "--pretty=format:%H%x1f%an%x1f%aI%x1f%s", "-n", str(max_count))
        records: list[CommitRecord] = []
        for line in output.split("\n"):
            if not line.strip():
                continue
            commit_hash, author, ts, subject = line.split("\x1f", maxsplit=3)
            records.append(
                CommitRecord(
                    hash=commit_hash,
                    author=author,
                    timestamp=datetime.fromisoformat(ts.replace("Z", "+00:00")),
                    message=subject,
                )
            )
        return records

    def detect_tech_stack(self) -> list[str]:
        return detect_tech_stack(self.working_dir)

    def snapshot(self) -> RepoSnapshot:
        """Build a fresh ``RepoSnapshot`` of the working directory.

        Tech-stack detection only reads marker files, so it also runs
        outside a repository.
        """
        tech_stack = self.detect_tech_stack()
        if not self.is_repository():
            return RepoSnapshot(is_repository=False, tech_stack=tech_stack)

        status = self.status()
        return RepoSnapshot(
            is_repository=True,
            current_branch=status.current,
            modified_count=len(status.modified),
            created_count=len(status.created),
            deleted_count=len(status.deleted),
            staged_count=len(status.staged),
            tech_stack=tech_stack,
        )
