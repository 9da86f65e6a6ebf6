import shutil

import pytest

from proof_sdk.utils import ServerAttributes


def has_model_server() -> bool:
    """True when an Ollama binary is installed or a server already answers locally."""
    if ServerAttributes().is_healthy(timeout=1):
        return True
    return shutil.which("ollama") is not None


requires_model_server = pytest.mark.skipif(
    not has_model_server(),
    reason="No local Ollama server or binary available",
)


@pytest.fixture
def small_model():
    """A small model suitable for integration testing."""
    return "smollm2:135m"
