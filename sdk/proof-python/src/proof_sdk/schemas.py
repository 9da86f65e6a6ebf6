from dataclasses import dataclass, replace
from typing import Any, Literal

from pydantic import BaseModel, Field

TOKEN_EVENT = "llm-token"
DONE_EVENT = "llm-done"
DEFAULT_MODEL = "llama3.2:1b"


@dataclass
class ModelTag:
    """One model known to the server, rebuilt on every listing."""

    name: str
    size: int | None = None  # bytes

    def to_payload(self) -> dict[str, Any]:
        return {"model": self.name, "size": self.size}


@dataclass(frozen=True)
class GenerationRequest:
    """A single `/api/generate` call.

    Attributes:
        model: Model tag to generate with.
        prompt: Prompt text.
        stream: Whether the server should answer with a newline-delimited JSON stream.
        temperature: Sampling temperature override.
        context_length: Context window, sent to the server as `num_ctx`.
        system: System prompt override.
    """

    model: str
    prompt: str
    stream: bool = False
    temperature: float | None = None
    context_length: int | None = None
    system: str | None = None

    def with_stream(self, stream: bool) -> "GenerationRequest":
        return replace(self, stream=stream)

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "stream": self.stream,
            "temperature": self.temperature,
            "num_ctx": self.context_length,
            "system": self.system,
        }


@dataclass
class GenerationChunk:
    """One decoded line of a streamed generation."""

    response_fragment: str | None
    done: bool = False


@dataclass
class StreamEvent:
    kind: Literal["token", "done"]
    token: str | None = None

    @property
    def name(self) -> str:
        return TOKEN_EVENT if self.kind == "token" else DONE_EVENT

    @property
    def payload(self) -> dict[str, Any]:
        if self.kind == "token":
            return {"token": self.token}
        return {"done": True}


class Settings(BaseModel):
    """User preferences persisted to `settings.json`."""

    default_model: str
    temperature: float
    context_length: int = Field(ge=0)
    system: str = ""

    @classmethod
    def defaults(cls) -> "Settings":
        return cls(default_model=DEFAULT_MODEL, temperature=0.7, context_length=4096)


class ChatMessage(BaseModel):
    """Chat transcript entry.

    Attributes:
        role: Message author role.
        content: Message text content.
        timestamp: Epoch milliseconds.
    """

    role: str
    content: str
    timestamp: int


class ChatSession(BaseModel):
    """A chat transcript stored as `<id>.json`; `created_at` is epoch milliseconds."""

    id: str
    title: str
    created_at: int
    messages: list[ChatMessage] = Field(default_factory=list)
