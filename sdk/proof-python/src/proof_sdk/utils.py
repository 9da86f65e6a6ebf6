import json
import urllib.error
import urllib.request
from contextlib import closing
from dataclasses import dataclass
from http.client import HTTPException, HTTPResponse
from typing import Any

from proof_sdk.errors import ProofHttpError
from proof_sdk.logger import logger
from proof_sdk.schemas import GenerationRequest, ModelTag
from proof_sdk.stream import StreamListener, relay_fragments

STREAM_READ_SIZE = 8192


@dataclass
class ServerAttributes:
    """Track connection endpoints for the local model server."""

    host: str = "127.0.0.1"
    port: int = 11434
    scheme: str = "http"
    tags_path: str = "/api/tags"
    generate_path: str = "/api/generate"
    pull_path: str = "/api/pull"
    delete_path: str = "/api/delete"
    request_timeout: float | None = None

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def _endpoint(self, path: str) -> str:
        return f"{self.url}/{path.lstrip('/')}"

    @property
    def tags_url(self) -> str:
        return self._endpoint(self.tags_path)

    @property
    def generate_url(self) -> str:
        return self._endpoint(self.generate_path)

    @property
    def pull_url(self) -> str:
        return self._endpoint(self.pull_path)

    @property
    def delete_url(self) -> str:
        return self._endpoint(self.delete_path)

    def is_healthy(self, timeout: float = 2) -> bool:
        """Check whether the tag-listing endpoint answers.

        Returns:
            True when the endpoint returns a 2xx status. Connection failures,
            timeouts and error statuses all yield False.
        """
        request = urllib.request.Request(self.tags_url, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                return 200 <= response.status < 300
        except (urllib.error.URLError, HTTPException, OSError, ValueError):
            return False


def open_request(
    method: str, url: str, payload: dict | None = None, timeout: float | None = None
) -> HTTPResponse:
    """Send a request and return the open response.

    Raises:
        ProofHttpError: On connection failure or a non-2xx status.
    """
    data = None
    headers = {}
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"

    request = urllib.request.Request(url, data=data, headers=headers, method=method)
    try:
        if timeout is None:
            return urllib.request.urlopen(request)
        return urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        raise ProofHttpError(f"{method} {url} returned {exc.code}: {exc.reason}", status=exc.code) from exc
    except (urllib.error.URLError, HTTPException, OSError) as exc:
        raise ProofHttpError(f"{method} {url} failed: {exc}") from exc


def request_json(method: str, url: str, payload: dict | None = None, timeout: float | None = None) -> Any:
    """Send a request and decode the whole response body as JSON."""
    with closing(open_request(method, url, payload, timeout)) as response:
        try:
            body = response.read()
        except (HTTPException, OSError) as exc:
            raise ProofHttpError(f"{method} {url} failed while reading the response: {exc}") from exc

    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProofHttpError(f"{method} {url} returned a body that is not JSON") from exc


def send_and_discard(method: str, url: str, payload: dict | None = None, timeout: float | None = None) -> None:
    """Send a request, confirm the status, and close without reading the body."""
    open_request(method, url, payload, timeout).close()


def read_fragment(response: HTTPResponse, size: int = STREAM_READ_SIZE) -> bytes:
    """Read whatever bytes are available, up to `size`. Empty bytes mean end of stream."""
    try:
        return response.read1(size)
    except (HTTPException, OSError) as exc:
        raise ProofHttpError(f"Reading the generation stream failed: {exc}") from exc


def list_models(server: ServerAttributes) -> list[ModelTag]:
    """List models known to the server, in the order the server reports them."""
    body = request_json("GET", server.tags_url, timeout=server.request_timeout)

    models = body.get("models") if isinstance(body, dict) else None
    if not isinstance(models, list):
        return []

    ret = []
    for entry in models:
        if isinstance(entry, dict) and isinstance(name := entry.get("name"), str):
            ret.append(ModelTag(name=name))
    return ret


def pull_model(server: ServerAttributes, name: str) -> None:
    """Ask the server to download `name`. Returns once the request is accepted."""
    logger.info(f"Requesting pull of model {name}")
    send_and_discard("POST", server.pull_url, {"model": name}, timeout=server.request_timeout)


def delete_model(server: ServerAttributes, name: str) -> None:
    logger.info(f"Deleting model {name}")
    send_and_discard("DELETE", server.delete_url, {"model": name}, timeout=server.request_timeout)


def make_generate_request(server: ServerAttributes, request: GenerationRequest) -> str:
    """Run a single-shot generation and return the full response text."""
    payload = request.with_stream(False).to_payload()
    body = request_json("POST", server.generate_url, payload, timeout=server.request_timeout)
    if not isinstance(body, dict):
        return ""
    response = body.get("response")
    return response if isinstance(response, str) else ""


def open_generate_stream(server: ServerAttributes, request: GenerationRequest) -> HTTPResponse:
    payload = request.with_stream(True).to_payload()
    logger.debug(f"Streaming request: {json.dumps(payload)}")
    return open_request("POST", server.generate_url, payload, timeout=server.request_timeout)


def stream_generate_request(server: ServerAttributes, request: GenerationRequest, listener: StreamListener) -> None:
    """Run a streaming generation, relaying token and done events to `listener`.

    Reading stops after the `done` chunk or when the server closes the stream.

    Raises:
        ProofHttpError: If the request fails or a fragment read fails.
    """
    with closing(open_generate_stream(server, request)) as response:
        relay_fragments(iter(lambda: read_fragment(response), b""), listener)
    logger.debug("Stream ended")
