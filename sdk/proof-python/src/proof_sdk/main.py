"""Proof Python SDK public interface for supervising a local model server and generating text."""

import asyncio
from abc import ABC
from contextlib import closing

from proof_sdk.config import FrozenSDKSettings, get_sdk_config
from proof_sdk.logger import logger
from proof_sdk.process import AsyncProcessSupervisor, ProcessSupervisor
from proof_sdk.schemas import GenerationRequest, ModelTag
from proof_sdk.stream import StreamListener, StreamRelay
from proof_sdk.utils import (
    ServerAttributes,
    delete_model,
    list_models,
    make_generate_request,
    open_generate_stream,
    pull_model,
    read_fragment,
    stream_generate_request,
)


class ModelRegistry:
    """Models known to the server. Nothing is cached between calls."""

    def __init__(self, server: ServerAttributes):
        self.server = server

    def list_models(self) -> list[ModelTag]:
        """List models in the order the server reports them.

        Raises:
            ProofHttpError: On transport failure or a non-2xx status.
        """
        return list_models(self.server)

    def pull_model(self, name: str) -> None:
        """Start a download of `name` on the server without waiting for it to finish.

        Raises:
            ProofHttpError: If the server does not accept the request.
        """
        pull_model(self.server, name)

    def delete_model(self, name: str) -> None:
        delete_model(self.server, name)


def server_attributes_from_config(config: FrozenSDKSettings) -> ServerAttributes:
    connection = config.connection
    return ServerAttributes(
        host=connection.host,
        port=connection.port,
        scheme=connection.scheme,
        request_timeout=connection.request_timeout,
    )


class ProofClientBase(ABC):
    """Base class for model server clients."""

    supervisor_class = ProcessSupervisor

    def __init__(
        self,
        server: ServerAttributes | None = None,
        executable: str | None = None,
        poll_interval: float | None = None,
        poll_attempts: int | None = None,
        config: FrozenSDKSettings | None = None,
    ):
        """Initialize a client.

        Connection and supervision values default to the global SDK config.

        Args:
            server: Endpoint overrides for the model server.
            executable: Server binary launched when the server is not running.
            poll_interval: Seconds between readiness checks after a spawn.
            poll_attempts: Readiness checks before giving up.
            config: SDK settings snapshot to use instead of the global one.
        """
        self.conf = config or get_sdk_config()
        self.server = server or server_attributes_from_config(self.conf)

        supervisor_conf = self.conf.supervisor
        self.supervisor = self.supervisor_class(
            self.server,
            executable=executable or supervisor_conf.executable,
            health_timeout=self.conf.connection.health_timeout,
            poll_interval=supervisor_conf.poll_interval if poll_interval is None else poll_interval,
            poll_attempts=supervisor_conf.poll_attempts if poll_attempts is None else poll_attempts,
        )
        self.models = ModelRegistry(self.server)

    @property
    def process(self):
        """Handle of the server process this client spawned, if any."""
        return self.supervisor.process


class ProofClient(ProofClientBase):
    """Synchronous model server client."""

    def is_running(self) -> bool:
        return self.supervisor.is_running()

    def ensure_started(self) -> None:
        """Start the server if needed.

        Raises:
            ProofSpawnFailedError: If the server process cannot be launched.
        """
        self.supervisor.ensure_started()

    def list_models(self) -> list[ModelTag]:
        return self.models.list_models()

    def pull_model(self, name: str) -> None:
        self.models.pull_model(name)

    def delete_model(self, name: str) -> None:
        self.models.delete_model(name)

    def generate_once(self, request: GenerationRequest) -> str:
        """Generate a full response in one request.

        Returns:
            The generated text, or an empty string if the server sent none.

        Raises:
            ProofHttpError: On transport failure or a non-2xx status.
        """
        return make_generate_request(self.server, request)

    def generate_streaming(self, request: GenerationRequest, listener: StreamListener) -> None:
        """Generate a response, relaying `token` and `done` events as they arrive.

        Raises:
            ProofHttpError: If the request or a fragment read fails.
        """
        stream_generate_request(self.server, request, listener)


class AsyncProofClient(ProofClientBase):
    """Asyncio-friendly model server client."""

    supervisor_class = AsyncProcessSupervisor

    async def _run(self, func, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, func, *args)

    async def is_running(self) -> bool:
        return await self.supervisor.is_running_async()

    async def ensure_started(self) -> None:
        """Start the server if needed.

        Raises:
            ProofSpawnFailedError: If the server process cannot be launched.
        """
        await self.supervisor.ensure_started()

    async def list_models(self) -> list[ModelTag]:
        return await self._run(self.models.list_models)

    async def pull_model(self, name: str) -> None:
        await self._run(self.models.pull_model, name)

    async def delete_model(self, name: str) -> None:
        await self._run(self.models.delete_model, name)

    async def generate_once(self, request: GenerationRequest) -> str:
        return await self._run(make_generate_request, self.server, request)

    async def generate_streaming(self, request: GenerationRequest, listener: StreamListener) -> None:
        """Generate a response, relaying events on the event loop thread.

        Each fragment read runs in the default executor, so concurrent streams
        do not block one another.

        Raises:
            ProofHttpError: If the request or a fragment read fails.
        """
        relay = StreamRelay(listener)
        response = await self._run(open_generate_stream, self.server, request)
        with closing(response):
            while data := await self._run(read_fragment, response):
                if relay.feed(data):
                    break
            else:
                relay.finish()
        logger.debug("Stream ended")
