"""Command table exposed to the desktop GUI shell.

Every command answers with a `CommandResult`: either a JSON-ready value or a
plain error string. No structured error codes cross this boundary.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from proof_sdk.errors import ProofSDKError
from proof_sdk.logger import logger
from proof_sdk.main import AsyncProofClient
from proof_sdk.schemas import ChatSession, GenerationRequest, ModelTag, Settings, StreamEvent
from proof_sdk.storage import SessionStore, SettingsStore

EventEmitter = Callable[[str, dict[str, Any]], None]


class ModelArgs(BaseModel):
    model: str


class GenerateArgs(BaseModel):
    model: str
    prompt: str
    temperature: float | None = None
    context_length: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("context_length", "num_ctx")
    )
    system: str | None = None

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            model=self.model,
            prompt=self.prompt,
            temperature=self.temperature,
            context_length=self.context_length,
            system=self.system,
        )


class LoadSessionArgs(BaseModel):
    id: str


@dataclass
class CommandResult:
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def to_wire(value: Any) -> Any:
    """Convert command return values to plain JSON-compatible data."""
    if isinstance(value, ModelTag):
        return value.to_payload()
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [to_wire(item) for item in value]
    return value


class CommandSurface:
    """GUI-facing commands backed by a client and the two file stores."""

    def __init__(
        self,
        client: AsyncProofClient | None = None,
        settings_store: SettingsStore | None = None,
        session_store: SessionStore | None = None,
    ):
        self.client = client or AsyncProofClient()
        self.settings_store = settings_store or SettingsStore()
        self.session_store = session_store or SessionStore()

        self._commands: dict[str, Callable[[dict, EventEmitter | None], Awaitable[Any]]] = {
            "ollama_health": lambda payload, emit: self.ollama_health(),
            "ollama_ensure": lambda payload, emit: self.ollama_ensure(),
            "models_list": lambda payload, emit: self.models_list(),
            "model_pull": lambda payload, emit: self.model_pull(ModelArgs.model_validate(payload.get("args"))),
            "model_delete": lambda payload, emit: self.model_delete(ModelArgs.model_validate(payload.get("args"))),
            "generate_text": lambda payload, emit: self.generate_text(
                GenerateArgs.model_validate(payload.get("args"))
            ),
            "generate_stream": lambda payload, emit: self.generate_stream(
                GenerateArgs.model_validate(payload.get("args")), emit
            ),
            "get_settings": lambda payload, emit: self.get_settings(),
            "save_settings": lambda payload, emit: self.save_settings(Settings.model_validate(payload.get("settings"))),
            "save_session": lambda payload, emit: self.save_session(ChatSession.model_validate(payload.get("session"))),
            "list_sessions": lambda payload, emit: self.list_sessions(),
            "load_session": lambda payload, emit: self.load_session(LoadSessionArgs.model_validate(payload).id),
        }

    @property
    def commands(self) -> list[str]:
        return list(self._commands)

    async def invoke(self, command: str, payload: dict | None = None, emit: EventEmitter | None = None) -> CommandResult:
        """Run `command` with its IPC payload.

        Args:
            command: Command name, e.g. `models_list`.
            payload: Argument object as sent by the GUI.
            emit: Receives `(event_name, payload)` for streaming commands.
        """
        handler = self._commands.get(command)
        if handler is None:
            return CommandResult(error=f"Unknown command: {command}")

        try:
            value = await handler(payload or {}, emit)
        except (ProofSDKError, ValidationError) as exc:
            logger.debug(f"Command {command} failed: {exc}")
            return CommandResult(error=str(exc))
        return CommandResult(value=to_wire(value))

    async def ollama_health(self) -> bool:
        return await self.client.is_running()

    async def ollama_ensure(self) -> None:
        await self.client.ensure_started()

    async def models_list(self) -> list[ModelTag]:
        await self.client.ensure_started()
        return await self.client.list_models()

    async def model_pull(self, args: ModelArgs) -> None:
        await self.client.ensure_started()
        await self.client.pull_model(args.model)

    async def model_delete(self, args: ModelArgs) -> None:
        await self.client.delete_model(args.model)

    async def generate_text(self, args: GenerateArgs) -> str:
        await self.client.ensure_started()
        return await self.client.generate_once(args.to_request())

    async def generate_stream(self, args: GenerateArgs, emit: EventEmitter | None) -> None:
        if emit is None:
            raise ProofSDKError("generate_stream needs an event emitter")

        def relay(event: StreamEvent) -> None:
            emit(event.name, event.payload)

        await self.client.ensure_started()
        await self.client.generate_streaming(args.to_request(), relay)

    async def get_settings(self) -> Settings:
        return self.settings_store.load()

    async def save_settings(self, settings: Settings) -> None:
        self.settings_store.save(settings)

    async def save_session(self, session: ChatSession) -> None:
        self.session_store.save(session)

    async def list_sessions(self) -> list[ChatSession]:
        return self.session_store.list()

    async def load_session(self, session_id: str) -> ChatSession:
        return self.session_store.load(session_id)
