from __future__ import annotations

from dev_agent.models import Story


def _numbered(items: list[str]) -> str:
    return "\n".join(f"{idx}. {item}" for idx, item in enumerate(items, start=1))


def build_generate_prompt(
    story: Story,
    tech_stack: list[str],
    test_framework: str = "jest",
    output_path: str = "",
) -> str:
    lines = [
        "As an expert software developer, generate production-ready code for this user story:",
        "",
        f"Story: {story.title}",
        f"Description: {story.description}",
        "Acceptance Criteria:",
        _numbered(story.acceptance_criteria),
        "",
        f"Tech Stack: {', '.join(tech_stack) or 'Node.js'}",
        f"Test Framework: {test_framework}",
    ]
    if output_path:
        lines.append(f"Output Path: {output_path}")

    return (
        "\n".join(lines)
        + "\n\n"
        "Generate:\n"
        "1. Complete implementation with proper error handling\n"
        "2. Unit tests with good coverage\n"
        "3. JSDoc comments for all functions\n"
        "4. README section explaining the code\n\n"
        "Format the response as:\n"
        "```javascript\n"
        "// Filename: <filename>\n"
        "<code>\n"
        "```\n\n"
        "Include all necessary files."
    )


def build_test_prompt(code: str, framework: str = "jest", coverage_target: int = 80) -> str:
    return (
        "As a QA engineer, generate comprehensive tests for this code:\n\n"
        f"{code}\n\n"
        f"Test Framework: {framework}\n"
        f"Coverage Target: {coverage_target}%\n\n"
        "Generate:\n"
        "1. Unit tests covering all functions\n"
        "2. Edge cases and error scenarios\n"
        "3. Mock strategies for dependencies\n"
        "4. Integration tests if applicable\n\n"
        "Format as complete test file with proper imports and describe blocks."
    )


def build_review_prompt(code: str) -> str:
    return (
        "As a senior developer, review this code and provide feedback:\n\n"
        f"{code}\n\n"
        "Focus on:\n"
        "1. Code quality and best practices\n"
        "2. Potential bugs or issues\n"
        "3. Performance optimizations\n"
        "4. Security concerns\n"
        "5. Maintainability\n\n"
        "Provide specific, actionable suggestions."
    )


def build_refactor_prompt(code: str, instructions: str) -> str:
    return (
        "Refactor this code according to these instructions:\n\n"
        "Code:\n"
        f"{code}\n\n"
        f"Instructions: {instructions}\n\n"
        "Provide the refactored code with explanations of changes made."
    )


def build_commit_prompt(diff: str, convention: str = "conventional") -> str:
    style = (
        "Conventional Commits (type: description)" if convention == "conventional" else "Standard format"
    )
    return (
        "Generate a commit message for these changes:\n\n"
        f"{diff}\n\n"
        f"Format: {style}\n\n"
        "Keep it concise but descriptive."
    )
