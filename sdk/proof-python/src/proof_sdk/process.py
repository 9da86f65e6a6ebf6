"""Best-effort supervision of the local model server process."""

import asyncio
import subprocess
import time
from dataclasses import dataclass

from proof_sdk.errors import ProofSpawnFailedError
from proof_sdk.logger import logger
from proof_sdk.utils import ServerAttributes


@dataclass
class ServerProcess:
    """Handle to a model server launched by the SDK.

    The child is started detached and is never waited on or reaped; the SDK
    only keeps the handle so callers can ask whether it is still alive.
    """

    popen: subprocess.Popen

    @property
    def pid(self) -> int:
        return self.popen.pid

    def is_alive(self) -> bool:
        return self.popen.poll() is None


class ProcessSupervisorBase:
    def __init__(
        self,
        server: ServerAttributes,
        executable: str = "ollama",
        health_timeout: float = 2,
        poll_interval: float = 0.5,
        poll_attempts: int = 10,
    ):
        self.server = server
        self.executable = executable
        self.health_timeout = health_timeout
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.process: ServerProcess | None = None

    @property
    def command(self) -> list[str]:
        return [self.executable, "serve"]

    def is_running(self) -> bool:
        """Return whether the server answers its tag-listing endpoint. Never raises."""
        return self.server.is_healthy(timeout=self.health_timeout)

    def spawn(self) -> ServerProcess:
        """Launch the server with no stdio attached.

        Raises:
            ProofSpawnFailedError: If the executable cannot be started.
        """
        try:
            popen = subprocess.Popen(
                self.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            raise ProofSpawnFailedError(f"Failed to start `{' '.join(self.command)}`: {exc}") from exc

        self.process = ServerProcess(popen)
        logger.info(f"Started model server (pid {self.process.pid})")
        return self.process

    def _gave_up(self) -> None:
        logger.warning(
            f"Model server at {self.server.url} did not answer after {self.poll_attempts} checks; continuing anyway"
        )


class ProcessSupervisor(ProcessSupervisorBase):
    """Synchronous server supervisor."""

    def ensure_started(self) -> None:
        """Start the server if it is not reachable and wait briefly for it.

        Giving up after the poll budget is not an error: the next request to the
        server reports the real failure.

        Raises:
            ProofSpawnFailedError: If the server process cannot be launched.
        """
        if self.is_running():
            return

        self.spawn()
        for _ in range(self.poll_attempts):
            if self.is_running():
                return
            time.sleep(self.poll_interval)
        self._gave_up()


class AsyncProcessSupervisor(ProcessSupervisorBase):
    """Asyncio-friendly server supervisor."""

    async def is_running_async(self) -> bool:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.is_running)

    async def ensure_started(self) -> None:
        """Start the server if it is not reachable and wait briefly for it.

        Raises:
            ProofSpawnFailedError: If the server process cannot be launched.
        """
        if await self.is_running_async():
            return

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.spawn)
        for _ in range(self.poll_attempts):
            if await self.is_running_async():
                return
            await asyncio.sleep(self.poll_interval)
        self._gave_up()
