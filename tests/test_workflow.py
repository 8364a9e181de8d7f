from __future__ import annotations

import pytest

from dev_agent import workflow
from dev_agent.gateway import GatewayError
from dev_agent.models import StatusReport
from dev_agent.workflow import DevelopmentAgent


def test_generate_from_story_given_write_when_run_then_artifacts_are_written_under_output_path(
    tmp_path,
    sample_story,
    multi_file_response,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    gateway = fake_gateway_factory([multi_file_response])
    progress: list[str] = []
    agent = DevelopmentAgent(
        tmp_path,
        gateway=gateway,
        vcs=fake_vcs_factory(tech_stack=["node", "express"]),
        progress_callback=progress.append,
    )

    # When
    result = agent.generate_from_story(sample_story, output_path="out", write=True)

    # Then
    assert result.written is True
    assert result.raw_output == multi_file_response
    assert [artifact.relative_path for artifact in result.files] == ["src/auth.js", "src/__tests__/auth.test.js"]
    assert (tmp_path / "out/src/auth.js").read_text(encoding="utf-8").startswith("function login")
    assert (tmp_path / "out/src/__tests__/auth.test.js").exists()
    assert "Tech Stack: node, express" in gateway.calls[0]["prompt"]
    assert gateway.calls[0]["max_tokens"] == workflow.GENERATE_MAX_TOKENS
    assert "writing files" in progress


def test_generate_from_story_given_explicit_stack_and_no_write_when_run_then_nothing_is_written(
    tmp_path,
    sample_story,
    multi_file_response,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    gateway = fake_gateway_factory([multi_file_response])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=fake_vcs_factory(tech_stack=["python"]))

    # When
    result = agent.generate_from_story(sample_story, tech_stack=["go"])

    # Then
    assert result.written is False
    assert len(result.files) == 2
    assert list(tmp_path.iterdir()) == []
    assert "Tech Stack: go" in gateway.calls[0]["prompt"]


def test_generate_from_story_given_response_without_code_when_written_then_zero_files_and_no_error(
    tmp_path,
    sample_story,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    agent = DevelopmentAgent(
        tmp_path,
        gateway=fake_gateway_factory(["I need more details before writing code."]),
        vcs=fake_vcs_factory(),
    )

    # When
    result = agent.generate_from_story(sample_story, write=True)

    # Then
    assert result.files == []
    assert result.written is False


def test_generate_tests_given_fenced_response_when_written_then_code_lands_at_derived_test_path(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    (tmp_path / "src").mkdir()
    (tmp_path / "src/auth.js").write_text("module.exports = () => true;\n", encoding="utf-8")
    gateway = fake_gateway_factory(["Tests below.\n```javascript\ndescribe('auth', () => {});\n```\nEnjoy."])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=fake_vcs_factory())

    # When
    result = agent.generate_tests("src/auth.js", framework="jest", coverage_target=90, write=True)

    # Then
    assert result.test_path == "src/__tests__/auth.test.js"
    assert result.tests == "describe('auth', () => {});"
    assert (tmp_path / result.test_path).read_text(encoding="utf-8") == "describe('auth', () => {});"
    assert "module.exports = () => true;" in gateway.calls[0]["prompt"]
    assert "Coverage Target: 90%" in gateway.calls[0]["prompt"]


def test_generate_tests_given_missing_source_when_run_then_filesystem_error_propagates(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    gateway = fake_gateway_factory(["unused"])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=fake_vcs_factory())

    # When / Then
    with pytest.raises(FileNotFoundError):
        agent.generate_tests("src/missing.js")
    assert gateway.calls == []


def test_review_code_given_source_when_reviewed_then_model_text_is_returned_verbatim(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    (tmp_path / "a.js").write_text("var x = 1", encoding="utf-8")
    gateway = fake_gateway_factory(["1. Use const instead of var."])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=fake_vcs_factory())

    # When
    result = agent.review_code("a.js")

    # Then
    assert result.review == "1. Use const instead of var."
    assert gateway.calls[0]["max_tokens"] == workflow.REVIEW_MAX_TOKENS


def test_refactor_code_given_write_when_run_then_source_file_is_overwritten_with_extracted_code(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    source = tmp_path / "a.js"
    source.write_text("var x = 1", encoding="utf-8")
    gateway = fake_gateway_factory(["Changed var to const.\n```js\nconst x = 1;\n```"])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=fake_vcs_factory())

    # When
    result = agent.refactor_code("a.js", "prefer const", write=True)

    # Then
    assert result.written is True
    assert source.read_text(encoding="utf-8") == "const x = 1;"
    assert "Instructions: prefer const" in gateway.calls[0]["prompt"]


def test_create_commit_given_changes_and_no_message_when_committed_then_model_message_is_used_verbatim(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    vcs = fake_vcs_factory(status=StatusReport(files=["a.js"], not_added=["a.js"]))
    gateway = fake_gateway_factory(["  feat: log startup banner\n"])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=vcs)

    # When
    outcome = agent.create_commit()

    # Then
    assert outcome.success is True
    assert outcome.commit_id == "abc1234"
    assert outcome.message == "feat: log startup banner"
    assert vcs.staged == "all"
    assert vcs.commits == ["feat: log startup banner"]
    assert "+console.log(1);" in gateway.calls[0]["prompt"]
    assert gateway.calls[0]["max_tokens"] == workflow.COMMIT_MAX_TOKENS


def test_create_commit_given_explicit_message_and_files_when_committed_then_model_is_not_called(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    vcs = fake_vcs_factory(status=StatusReport(files=["a.js", "b.js"], modified=["a.js", "b.js"]))
    gateway = fake_gateway_factory([])
    agent = DevelopmentAgent(tmp_path, gateway=gateway, vcs=vcs)

    # When
    outcome = agent.create_commit(files=["a.js"], message="chore: tidy")

    # Then
    assert outcome.message == "chore: tidy"
    assert vcs.staged == ["a.js"]
    assert gateway.calls == []


def test_create_commit_given_clean_tree_when_committed_then_no_changes_outcome_is_returned(
    tmp_path,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    vcs = fake_vcs_factory(status=StatusReport())
    agent = DevelopmentAgent(tmp_path, gateway=fake_gateway_factory([]), vcs=vcs)

    # When
    outcome = agent.create_commit()

    # Then
    assert outcome.success is False
    assert outcome.message == "No changes"
    assert vcs.staged is None
    assert vcs.commits == []


def test_create_commit_given_gateway_failure_when_committed_then_error_propagates_without_commit(
    tmp_path,
    fake_vcs_factory,
) -> None:
    # Given
    class FailingGateway:
        def ask(self, prompt, *, model=None, max_tokens=None):
            raise GatewayError("Gemini API error: quota exceeded")

    vcs = fake_vcs_factory(status=StatusReport(files=["a.js"]))
    agent = DevelopmentAgent(tmp_path, gateway=FailingGateway(), vcs=vcs)

    # When / Then
    with pytest.raises(GatewayError, match="quota exceeded"):
        agent.create_commit()
    assert vcs.commits == []


def test_development_agent_given_configured_budget_when_commands_run_then_it_replaces_command_defaults(
    tmp_path,
    sample_story,
    fake_gateway_factory,
    fake_vcs_factory,
) -> None:
    # Given
    (tmp_path / "a.js").write_text("var a = 1", encoding="utf-8")
    gateway = fake_gateway_factory(["```js\n// Filename: b.js\nb();\n```", "Looks fine.", "chore: tidy"])
    agent = DevelopmentAgent(
        tmp_path,
        gateway=gateway,
        vcs=fake_vcs_factory(status=StatusReport(files=["a.js"], modified=["a.js"])),
        max_tokens=123,
    )

    # When
    agent.generate_from_story(sample_story)
    agent.review_code("a.js")
    agent.create_commit()

    # Then
    assert [call["max_tokens"] for call in gateway.calls] == [123, 123, 123]
