"""Extract named code artifacts from model responses and write them to disk.

Model output is expected to wrap each file in a fenced block whose first
content line names the file::

    ```javascript
    // Filename: src/auth.js
    ...
    ```

The filename marker is strict: the line must begin with exactly
``// Filename: `` (one space before and after ``Filename:``). Surrounding
whitespace of the path itself is trimmed. ``//Filename: x``,
``// filename: x``, ``// Filename:x`` and indented markers are not markers.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from dev_agent.models import GeneratedArtifact

logger = logging.getLogger(__name__)

FENCE = "```"
FILENAME_MARKER = "// Filename: "
ALLOWED_TAGS = frozenset({"javascript", "typescript", "js", "ts", "jsx", "tsx"})
DEFAULT_ARTIFACT_PATH = "generated.js"
TEST_DIR_NAME = "__tests__"


class _State(enum.Enum):
    OUTSIDE = "outside"
    IGNORED_FENCE = "ignored_fence"
    AWAITING_FILENAME = "awaiting_filename"
    COLLECTING_BODY = "collecting_body"


@dataclass(frozen=True)
class FencedRegion:
    """One terminated fenced block with an allowed language tag."""

    tag: str
    filename: str | None
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        """Whole region body, including a filename marker line if present."""
        return "\n".join(self.lines)

    @property
    def body(self) -> str:
        """Region body without the filename marker line."""
        if self.filename is None:
            return self.text
        return "\n".join(self.lines[1:])


def parse_filename_marker(line: str) -> str | None:
    """Return the path named by a filename marker line, or ``None``."""
    if not line.startswith(FILENAME_MARKER):
        return None
    path = line[len(FILENAME_MARKER) :].strip()
    return path or None


def scan_fenced_regions(text: str) -> Iterator[FencedRegion]:
    """Yield allowed fenced regions in order of appearance.

    Fences with a tag outside ``ALLOWED_TAGS`` are skipped together with their
    closing fence. A fence left open at end of input yields nothing.
    """
    state = _State.OUTSIDE
    tag = ""
    filename: str | None = None
    collected: list[str] = []

    for raw_line in text.split("\n"):
        line = raw_line.removesuffix("\r")
        stripped = line.strip()

        if state is _State.OUTSIDE:
            if stripped.startswith(FENCE):
                tag = stripped[len(FENCE) :].strip()
                if tag in ALLOWED_TAGS:
                    state = _State.AWAITING_FILENAME
                    filename = None
                    collected = []
                else:
                    state = _State.IGNORED_FENCE
            continue

        if state is _State.IGNORED_FENCE:
            if stripped == FENCE:
                state = _State.OUTSIDE
            continue

        if stripped == FENCE:
            yield FencedRegion(tag=tag, filename=filename, lines=tuple(collected))
            state = _State.OUTSIDE
            continue

        if state is _State.AWAITING_FILENAME:
            filename = parse_filename_marker(line)
            state = _State.COLLECTING_BODY

        collected.append(line)


def extract_artifacts(response: str) -> list[GeneratedArtifact]:
    """Turn one model response into an ordered list of artifacts.

    Regions with a filename marker become one artifact each, in scan order and
    without de-duplication. When none carry a marker, the first allowed region
    becomes a single artifact at ``DEFAULT_ARTIFACT_PATH``. When there is no
    allowed region at all, the result is empty.
    """
    regions = list(scan_fenced_regions(response))

    artifacts = [
        GeneratedArtifact(relative_path=region.filename, content=region.body.strip())
        for region in regions
        if region.filename is not None
    ]
    if artifacts:
        return artifacts

    if regions:
        logger.debug("no filename markers found; using %s", DEFAULT_ARTIFACT_PATH)
        return [GeneratedArtifact(relative_path=DEFAULT_ARTIFACT_PATH, content=regions[0].text.strip())]

    return []


def select_code(response: str) -> str:
    """Return the first extracted artifact's content, or the trimmed response."""
    artifacts = extract_artifacts(response)
    if artifacts:
        return artifacts[0].content
    return response.strip()


def resolve_under(base_dir: Path, relative_path: str) -> Path:
    """Join ``relative_path`` onto ``base_dir``, dropping any leading root such as ``/``."""
    path = PurePosixPath(relative_path)
    if path.is_absolute():
        path = path.relative_to(path.anchor)
    return Path(base_dir) / path


def write_artifacts(artifacts: Iterable[GeneratedArtifact], base_dir: Path) -> list[Path]:
    """Write artifacts under ``base_dir``, creating parent directories.

    Existing files are overwritten. The first ``OSError`` aborts the batch;
    files already written stay on disk.

    Returns:
        Written paths in input order.
    """
    written: list[Path] = []
    for artifact in artifacts:
        target = resolve_under(base_dir, artifact.relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(artifact.content, encoding="utf-8")
        logger.debug("wrote %s (%d lines)", target, artifact.line_count)
        written.append(target)
    return written


def artifact_exists(relative_path: str, base_dir: Path) -> bool:
    return resolve_under(base_dir, relative_path).exists()


def test_path_for(source_path: str) -> str:
    """Map ``src/auth.js`` to ``src/__tests__/auth.test.js``."""
    source = PurePosixPath(source_path)
    return str(source.parent / TEST_DIR_NAME / f"{source.stem}.test{source.suffix}")
