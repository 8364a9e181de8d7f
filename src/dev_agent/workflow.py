"""Sequential orchestration of model, git, and file operations per command."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Literal

from dev_agent.extraction import extract_artifacts, select_code, test_path_for, write_artifacts
from dev_agent.gateway import ModelGateway
from dev_agent.git_adapter import VersionControl
from dev_agent.models import (
    CommitOutcome,
    GenerationResult,
    RefactorResult,
    ReviewResult,
    Story,
    TestGenerationResult,
)
from dev_agent.prompting import (
    build_commit_prompt,
    build_generate_prompt,
    build_refactor_prompt,
    build_review_prompt,
    build_test_prompt,
)

logger = logging.getLogger(__name__)

GENERATE_MAX_TOKENS = 4000
TEST_MAX_TOKENS = 3000
REVIEW_MAX_TOKENS = 2500
REFACTOR_MAX_TOKENS = 3000
COMMIT_MAX_TOKENS = 500


class DevelopmentAgent:
    """Runs one development chore end to end.

    Every step runs strictly in order and the first error propagates to the
    caller; nothing is retried or cached.
    """

    def __init__(
        self,
        working_dir: Path,
        gateway: ModelGateway,
        vcs: VersionControl,
        progress_callback: Callable[[str], None] | None = None,
        max_tokens: int | None = None,
    ):
        self.working_dir = Path(working_dir)
        self.gateway = gateway
        self.vcs = vcs
        self.progress_callback = progress_callback
        self.max_tokens = max_tokens

    def _progress(self, message: str) -> None:
        logger.debug(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _budget(self, command_default: int) -> int:
        # A configured budget replaces every per-command default.
        return self.max_tokens or command_default

    def _read_source(self, file_path: str) -> str:
        return (self.working_dir / file_path).read_text(encoding="utf-8")

    def generate_from_story(
        self,
        story: Story,
        tech_stack: list[str] | None = None,
        test_framework: str = "jest",
        output_path: str = "",
        write: bool = False,
    ) -> GenerationResult:
        """Generate code for a user story and optionally write the files.

        Args:
            story: Title, description, and acceptance criteria.
            tech_stack: Explicit stack labels; detected from the repository when omitted.
            test_framework: Framework named in the prompt.
            output_path: Directory, relative to the working directory, for written files.
            write: Persist extracted artifacts when ``True``.
        """
        self._progress("reading repository context")
        snapshot = self.vcs.snapshot()
        stack = tech_stack if tech_stack else snapshot.tech_stack

        self._progress("analyzing requirements")
        prompt = build_generate_prompt(story, stack, test_framework=test_framework, output_path=output_path)
        raw_output = self.gateway.ask(prompt, max_tokens=self._budget(GENERATE_MAX_TOKENS))

        files = extract_artifacts(raw_output)
        if write and files:
            self._progress("writing files")
            write_artifacts(files, self.working_dir / output_path)

        return GenerationResult(files=files, raw_output=raw_output, written=write and bool(files))

    def generate_tests(
        self,
        file_path: str,
        framework: str = "jest",
        coverage_target: int = 80,
        write: bool = False,
    ) -> TestGenerationResult:
        self._progress("analyzing code")
        code = self._read_source(file_path)
        response = self.gateway.ask(
            build_test_prompt(code, framework=framework, coverage_target=coverage_target),
            max_tokens=self._budget(TEST_MAX_TOKENS),
        )

        test_path = test_path_for(file_path)
        tests = select_code(response)
        if write:
            self._progress(f"writing {test_path}")
            target = self.working_dir / test_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(tests, encoding="utf-8")

        return TestGenerationResult(test_path=test_path, tests=tests, written=write)

    def review_code(self, file_path: str) -> ReviewResult:
        self._progress("analyzing code quality")
        code = self._read_source(file_path)
        review = self.gateway.ask(build_review_prompt(code), max_tokens=self._budget(REVIEW_MAX_TOKENS))
        return ReviewResult(review=review)

    def refactor_code(self, file_path: str, instructions: str, write: bool = False) -> RefactorResult:
        """Ask for a refactoring of one file; overwrite it in place when ``write`` is set."""
        self._progress("refactoring code")
        code = self._read_source(file_path)
        response = self.gateway.ask(
            build_refactor_prompt(code, instructions),
            max_tokens=self._budget(REFACTOR_MAX_TOKENS),
        )

        refactored = select_code(response)
        if write:
            self._progress(f"updating {file_path}")
            (self.working_dir / file_path).write_text(refactored, encoding="utf-8")

        return RefactorResult(refactored=refactored, written=write)

    def create_commit(
        self,
        files: list[str] | None = None,
        message: str | None = None,
        convention: Literal["conventional", "standard"] = "conventional",
    ) -> CommitOutcome:
        """Stage changes and commit them with an explicit or generated message.

        Returns an unsuccessful outcome, without touching the index, when the
        working tree has no changes.
        """
        status = self.vcs.status()
        if status.is_clean:
            return CommitOutcome(success=False, message="No changes")

        self.vcs.stage(files if files else "all")
        diff = self.vcs.diff(staged=True)

        if message:
            commit_message = message
        else:
            self._progress("analyzing changes")
            commit_message = self.gateway.ask(
                build_commit_prompt(diff, convention=convention),
                max_tokens=self._budget(COMMIT_MAX_TOKENS),
            ).strip()

        result = self.vcs.commit(commit_message)
        return CommitOutcome(success=True, commit_id=result.commit_id, message=commit_message)
