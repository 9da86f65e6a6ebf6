"""Exceptions raised by the Proof SDK."""


class ProofSDKError(Exception):
    """Base class for every error the SDK raises on purpose."""


class ProofHttpError(ProofSDKError):
    """The model server was unreachable, failed mid-read, or answered with a non-2xx status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ProofSpawnFailedError(ProofSDKError):
    """The model server process could not be launched."""


class ProofStorageError(ProofSDKError):
    """Reading, writing or decoding a settings or session file failed."""


class ProofSessionNotFoundError(ProofStorageError):
    pass
