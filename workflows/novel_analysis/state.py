"""
Data model and graph state for the novel analysis workflow.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Literal, Optional
from typing_extensions import TypedDict

from pydantic import BaseModel, ConfigDict

from workflows.novel_analysis.errors import EmptyInputError


class AnalysisKind(str, Enum):
    """The analysis being requested; selects prompt and strategy."""
    SUMMARY = "summary"
    OUTLINE = "outline"
    STYLE = "style"
    SETTINGS = "settings"
    RELATIONSHIPS = "relationships"
    THEME = "theme"
    PLOTHOLES = "plotholes"


class ChunkStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


Strategy = Literal["digest", "sampled", "chunked"]


class PromptSpec(BaseModel):
    """The two tunable instructions of a generation call."""

    model_config = ConfigDict(frozen=True)

    system: str
    user: str


@dataclass(frozen=True)
class Document:
    """A loaded document. Content is already-decoded text."""

    name: str
    content: str
    size: int

    @classmethod
    def from_text(cls, name: str, content: str) -> "Document":
        return cls(name=name, content=content, size=len(content.encode("utf-8")))

    @classmethod
    def from_path(cls, path: str | Path) -> "Document":
        """Read a UTF-8 text file."""
        path = Path(path)
        return cls.from_text(path.name, path.read_text(encoding="utf-8"))

    def require_content(self) -> str:
        """Return the content, or raise EmptyInputError if there is none."""
        if not self.content or not self.content.strip():
            raise EmptyInputError(
                f"Document '{self.name}' has empty or unreadable content",
                document_name=self.name,
            )
        return self.content


@dataclass
class Chunk:
    """One slice of a document plus its condensation."""

    index: int
    text: str
    summary: str = ""
    status: ChunkStatus = ChunkStatus.PENDING
    error: Optional[str] = None

    @property
    def position(self) -> int:
        """1-based position, as shown to users."""
        return self.index + 1


class Transcript:
    """Append-only accumulator for one run's streamed output.

    Every append notifies the sink with the running total, not the delta.
    """

    def __init__(self, sink: Optional[Callable[[str], None]] = None):
        self._parts: list[str] = []
        self._length = 0
        self._sink = sink

    def append(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        self._length += len(text)
        if self._sink:
            self._sink(self.text)

    @property
    def text(self) -> str:
        if len(self._parts) > 1:
            # Collapse so repeated reads stay linear
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    def __len__(self) -> int:
        return self._length

    def reset(self) -> None:
        self._parts = []
        self._length = 0


@dataclass
class AnalysisRun:
    """Accumulated output and status for one (document, kind) analysis."""

    kind: AnalysisKind
    status: RunStatus = RunStatus.PENDING
    error: Optional[str] = None
    transcript: Transcript = field(default_factory=Transcript)

    @property
    def content(self) -> str:
        return self.transcript.text


class AnalysisState(TypedDict):
    """State for the analysis graph."""
    # Input
    document_name: str
    content: str
    kind: AnalysisKind
    system_prompt: str
    user_prompt: str
    digest: str

    # Strategy selection
    strategy: Optional[Strategy]
    chunk_count: int
    accumulated_chars: int
    synthesis_max_chars: int

    # Workflow metadata
    calls_made: int
    current_status: str
