"""File-backed settings and chat-session persistence."""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from proof_sdk.config import get_sdk_config
from proof_sdk.errors import ProofSessionNotFoundError, ProofStorageError
from proof_sdk.logger import logger
from proof_sdk.schemas import ChatSession, Settings

ModelT = TypeVar("ModelT", bound=BaseModel)

SETTINGS_FILE = "settings.json"
SESSIONS_DIR = "sessions"


def resolve_root(root: Path | str | None) -> Path:
    if root is None:
        return get_sdk_config().storage.storage_root
    return Path(root)


def _write_model(path: Path, model: BaseModel) -> None:
    """Overwrite `path` with pretty-printed JSON for `model`."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(model.model_dump_json(indent=2), encoding="utf-8")
    except (OSError, ValueError) as exc:
        raise ProofStorageError(f"Failed to write {path}: {exc}") from exc


def _read_model(path: Path, model_type: type[ModelT]) -> ModelT:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProofStorageError(f"Failed to read {path}: {exc}") from exc

    try:
        return model_type.model_validate_json(content)
    except ValidationError as exc:
        raise ProofStorageError(f"{path} does not contain a valid {model_type.__name__}: {exc}") from exc


class SettingsStore:
    """
    Loads and saves the single settings file.

    Saving replaces the whole file; there are no partial updates.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = resolve_root(root)
        self.path = self.root / SETTINGS_FILE

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings.defaults()
        return _read_model(self.path, Settings)

    def save(self, settings: Settings) -> None:
        _write_model(self.path, settings)
        logger.debug(f"Saved settings to {self.path}")


class SessionStore:
    """
    One JSON file per chat session, named after the session id.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.directory = resolve_root(root) / SESSIONS_DIR

    def _session_path(self, session_id: str) -> Path:
        if not session_id or session_id in {".", ".."} or "/" in session_id or "\\" in session_id or "\x00" in session_id:
            raise ProofStorageError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, session: ChatSession) -> None:
        _write_model(self._session_path(session.id), session)

    def load(self, session_id: str) -> ChatSession:
        path = self._session_path(session_id)
        if not path.exists():
            raise ProofSessionNotFoundError(f"No session with id {session_id!r}")
        return _read_model(path, ChatSession)

    def list(self) -> list[ChatSession]:
        """Return every readable session, newest `created_at` first."""
        if not self.directory.is_dir():
            return []

        sessions: list[ChatSession] = []
        for file in self.directory.glob("*.json"):
            try:
                sessions.append(_read_model(file, ChatSession))
            except ProofStorageError as exc:
                logger.warning(f"Skipping unreadable session file: {exc}")
        sessions.sort(key=lambda session: session.created_at, reverse=True)
        return sessions
