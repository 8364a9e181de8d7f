from __future__ import annotations

import sys
import types
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from dev_agent.models import (
    BranchListing,
    CommitRecord,
    CommitResult,
    InitResult,
    RepoSnapshot,
    StatusReport,
    Story,
)


class FakeGateway:
    """Returns canned responses and records every prompt it receives."""

    def __init__(self, responses: list[str]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, object]] = []

    def ask(self, prompt: str, *, model: str | None = None, max_tokens: int | None = None) -> str:
        self.calls.append({"prompt": prompt, "model": model, "max_tokens": max_tokens})
        return self.responses.pop(0)


class FakeVcs:
    """In-memory stand-in for the git adapter."""

    def __init__(self, status: StatusReport | None = None, tech_stack: list[str] | None = None) -> None:
        self._status = status or StatusReport()
        self.tech_stack = tech_stack or []
        self.staged: list[str] | Literal["all"] | None = None
        self.commits: list[str] = []
        self.staged_diff = "diff --git a/a.js b/a.js\n+console.log(1);\n"
        self.branch = "main"
        self.branches = ["main"]
        self.pushed: list[tuple[str, str]] = []
        self.pulled: list[tuple[str, str | None]] = []

    def is_repository(self) -> bool:
        return True

    def status(self) -> StatusReport:
        return self._status

    def diff(self, staged: bool = False, file: str | None = None) -> str:
        return self.staged_diff if staged else ""

    def stage(self, paths: list[str] | Literal["all"] = "all") -> None:
        self.staged = paths

    def commit(self, message: str, author: str | None = None) -> CommitResult:
        self.commits.append(message)
        return CommitResult(commit_id="abc1234", branch=self.branch, changes=1)

    def initialize_if_absent(self) -> InitResult:
        return InitResult(initialized=False, message="Already a git repository")

    def create_branch(self, name: str, switch_to: bool = True) -> None:
        self.branches.append(name)
        if switch_to:
            self.branch = name

    def checkout(self, name: str) -> None:
        self.branch = name

    def current_branch(self) -> str:
        return self.branch

    def list_branches(self) -> BranchListing:
        return BranchListing(all=list(self.branches), current=self.branch)

    def push(self, remote: str = "origin", branch: str | None = None, set_upstream: bool = False) -> str:
        target = branch or self.branch
        self.pushed.append((remote, target))
        return target

    def pull(self, remote: str = "origin", branch: str | None = None) -> None:
        self.pulled.append((remote, branch))

    def log(self, max_count: int = 10) -> list[CommitRecord]:
        records = [
            CommitRecord(
                hash=f"{index:040x}",
                author="Dev",
                timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
                message=message,
            )
            for index, message in enumerate(reversed(self.commits), start=1)
        ]
        return records[:max_count]

    def detect_tech_stack(self) -> list[str]:
        return list(self.tech_stack)

    def snapshot(self) -> RepoSnapshot:
        return RepoSnapshot(is_repository=True, current_branch=self.branch, tech_stack=self.detect_tech_stack())


@pytest.fixture
def sample_story() -> Story:
    return Story(
        title="User login",
        description="Users sign in with email and password",
        acceptance_criteria=["Rejects empty password", "Locks after 5 failures"],
    )


@pytest.fixture
def multi_file_response() -> str:
    return "\n".join(
        [
            "Here is the implementation.",
            "",
            "```javascript",
            "// Filename: src/auth.js",
            "function login(user) {",
            "  return Boolean(user);",
            "}",
            "```",
            "",
            "And the tests:",
            "",
            "```js",
            "// Filename: src/__tests__/auth.test.js",
            "test('login', () => {});",
            "```",
        ]
    )


@pytest.fixture
def fake_gateway_factory():
    return FakeGateway


@pytest.fixture
def fake_vcs_factory():
    return FakeVcs


@pytest.fixture
def install_fake_genai(monkeypatch: pytest.MonkeyPatch):
    """Install fake ``google``/``google.genai`` modules whose client serves ``models``."""

    def install(models: object, captured: dict[str, object]) -> None:
        class FakeGenerateContentConfig:
            def __init__(self, **kwargs: object) -> None:
                self.kwargs = kwargs

        class FakeClient:
            def __init__(self, api_key: str) -> None:
                captured["api_key"] = api_key
                self.models = models

        fake_google_genai = types.ModuleType("google.genai")
        fake_google_genai.Client = FakeClient
        fake_google_genai.types = types.SimpleNamespace(GenerateContentConfig=FakeGenerateContentConfig)

        fake_google = types.ModuleType("google")
        fake_google.genai = fake_google_genai

        monkeypatch.setitem(sys.modules, "google", fake_google)
        monkeypatch.setitem(sys.modules, "google.genai", fake_google_genai)

    return install
