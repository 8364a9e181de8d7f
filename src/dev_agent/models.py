"""Pydantic models shared across the gateway, git adapter, parser, and workflows."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Story(BaseModel):
    """A user story used as input for code generation."""

    title: str
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)


class GeneratedArtifact(BaseModel):
    """A named code block extracted from a model response."""

    relative_path: str
    content: str

    @field_validator("relative_path")
    @classmethod
    def _require_path(cls, value: str) -> str:
        path = value.strip()
        if not path:
            raise ValueError("relative_path must be a non-empty string")
        return path

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_count(self) -> int:
        # Empty content still counts as one (empty) line.
        return len(self.content.strip().split("\n"))


class RepoSnapshot(BaseModel):
    """Point-in-time summary of the working tree, rebuilt on every request."""

    model_config = ConfigDict(frozen=True)

    is_repository: bool
    current_branch: str | None = None
    modified_count: int = 0
    created_count: int = 0
    deleted_count: int = 0
    staged_count: int = 0
    tech_stack: list[str] = Field(default_factory=list)


class StatusReport(BaseModel):
    """Parsed ``git status`` output."""

    current: str | None = None
    files: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    created: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    renamed: list[str] = Field(default_factory=list)
    staged: list[str] = Field(default_factory=list)
    not_added: list[str] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.files


class CommitRecord(BaseModel):
    hash: str
    author: str
    timestamp: datetime
    message: str


class CommitResult(BaseModel):
    commit_id: str
    branch: str = ""
    changes: int = 0
    insertions: int = 0
    deletions: int = 0


class BranchListing(BaseModel):
    all: list[str] = Field(default_factory=list)
    current: str = ""


class InitResult(BaseModel):
    initialized: bool
    message: str = ""


class GenerationResult(BaseModel):
    """Outcome of generating code from a story."""

    files: list[GeneratedArtifact]
    raw_output: str
    written: bool = False


class TestGenerationResult(BaseModel):
    test_path: str
    tests: str
    written: bool = False


class ReviewResult(BaseModel):
    review: str


class RefactorResult(BaseModel):
    refactored: str
    written: bool = False


class CommitOutcome(BaseModel):
    success: bool
    commit_id: str | None = None
    message: str
