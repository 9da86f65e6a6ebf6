"""Public SDK exports for Proof Python."""

from . import main
from .commands import CommandResult, CommandSurface
from .config import FrozenSDKSettings, SDKSettings, get_sdk_config, settings
from .main import AsyncProofClient, ModelRegistry, ProofClient
from .schemas import ChatMessage, ChatSession, GenerationRequest, ModelTag, Settings, StreamEvent
from .storage import SessionStore, SettingsStore
from .stream import LineDecoder

__version__ = "0.1.0"
