"""HTTP transport and error types shared by every Shilp API group."""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping
from urllib.parse import quote

import orjson
import requests
from urllib3.exceptions import ReadTimeoutError

logger = logging.getLogger("shilp.transport")

DEFAULT_CHUNK_SIZE = 64 * 1024


class ShilpError(Exception):
    """Shilp client error."""
    pass


class TransportError(ShilpError):
    """Connection failure or broken stream; the request may not have reached the server."""
    pass


class RequestTimeoutError(TransportError):
    """The server did not answer within the configured timeout."""
    pass


class RequestCancelledError(ShilpError):
    """A streamed response was closed by the caller before it was fully read."""
    pass


class ApiError(ShilpError):
    """Server answered with a non-success status code."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error: {body} (status: {status_code})")


class DecodeError(ShilpError):
    """Response body was expected to be JSON but is not."""
    pass


class ValidationError(ShilpError, ValueError):
    """Local precondition failed; no request was sent."""
    pass


class LSNRegressionError(ValidationError):
    """A replica heartbeat tried to move its watermark backwards."""

    def __init__(self, collection: str, replica_id: str, lsn: int, reported: int):
        self.collection = collection
        self.replica_id = replica_id
        self.lsn = lsn
        self.reported = reported
        scope = collection or "<all collections>"
        super().__init__(
            f"LSN {lsn} for replica {replica_id!r} on {scope} is lower than "
            f"already reported LSN {reported}"
        )


class OplogOrderError(ShilpError):
    """Server returned oplog entries out of ascending order or not after the requested LSN."""
    pass


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, str] | None:
    if not params:
        return None
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = str(value)
    return cleaned or None


def _is_read_timeout(exc: requests.RequestException) -> bool:
    # requests wraps a timeout hit while reading the body in ConnectionError
    if isinstance(exc, requests.Timeout):
        return True
    reason = exc.args[0] if exc.args else None
    return isinstance(reason, ReadTimeoutError)


class _ResponseStream:
    """Base for live response bodies handed to the caller."""

    def __init__(self, response: requests.Response):
        self._response = response
        self._closed = False
        self._exhausted = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> Mapping[str, str]:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._closed

    def _iterate(self, open_source: Callable[[], Iterator[Any]]) -> Iterator[Any]:
        if self._closed:
            if self._exhausted:
                return
            raise RequestCancelledError("Stream was closed before it was fully read")

        try:
            for item in open_source():
                if self._closed:
                    raise RequestCancelledError("Stream was closed before it was fully read")
                yield item
        except requests.RequestException as e:
            if self._closed:
                raise RequestCancelledError("Stream was closed before it was fully read") from e
            if _is_read_timeout(e):
                raise RequestTimeoutError(f"Stream read timed out: {e}") from e
            raise TransportError(f"Stream interrupted: {e}") from e
        except (OSError, ValueError, AttributeError) as e:
            # a body closed under a reader surfaces in several shapes
            if self._closed:
                raise RequestCancelledError("Stream was closed before it was fully read") from e
            raise TransportError(f"Stream interrupted: {e}") from e

        if self._closed:
            raise RequestCancelledError("Stream was closed before it was fully read")
        self._exhausted = True
        self.close()

    def close(self):
        """Release the underlying connection."""
        if self._closed:
            return
        self._closed = True
        self._response.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class DownloadStream(_ResponseStream):
    """
    Raw file download (collection export).

    Usage:
        with client.collections.export_collection("docs") as stream:
            stream.save("docs.export")
    """

    @property
    def filename(self) -> str | None:
        """File name suggested by the server's Content-Disposition header."""
        disposition = self._response.headers.get("Content-Disposition", "")
        match = re.search(r'filename="?([^";]+)"?', disposition)
        return match.group(1) if match else None

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks until the server closes the stream."""
        for chunk in self._iterate(lambda: self._response.iter_content(chunk_size)):
            if chunk:
                yield chunk

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_chunks()

    def read(self) -> bytes:
        """Read the remaining body into memory."""
        return b"".join(self.iter_chunks())

    def save(self, path: Path | str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Write the body to ``path`` and return the number of bytes written."""
        path = Path(path)
        written = 0
        with path.open("wb") as fh:
            for chunk in self.iter_chunks(chunk_size):
                fh.write(chunk)
                written += len(chunk)
        return written


class EventStream(_ResponseStream):
    """Server-Sent-Events line stream; yields every non-blank line as text."""

    def __iter__(self) -> Iterator[str]:
        if self._response.encoding is None:
            self._response.encoding = "utf-8"
        # single-byte reads: an unchunked body blocks larger reads until they fill
        for line in self._iterate(lambda: self._response.iter_lines(chunk_size=1, decode_unicode=True)):
            if line and line.strip():
                yield line


class Transport:
    """
    Performs single HTTP exchanges against one base URL.

    The transport never retries; every failure is raised to the caller as
    TransportError, ApiError or DecodeError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Args:
            base_url: Server address, e.g. http://localhost:3000
            timeout: Request timeout in seconds
            session: Optional pre-configured session for connection reuse
        """
        if not base_url:
            raise ValidationError("base_url cannot be empty")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    @property
    def session(self) -> requests.Session:
        return self._session

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        stream: bool = False,
        timeout: Any = None,
    ) -> requests.Response:
        url = self.url_for(path)
        request_headers = dict(headers or {})
        data = None
        if body is not None:
            data = orjson.dumps(body)
            request_headers["Content-Type"] = "application/json"

        try:
            response = self._session.request(
                method,
                url,
                params=_clean_params(params),
                data=data,
                files=files,
                headers=request_headers,
                timeout=self.timeout if timeout is None else timeout,
                stream=stream,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(f"Request timeout: {method} {url}") from e
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        if response.status_code >= 400:
            try:
                text = response.text
            except requests.RequestException as e:
                raise TransportError(f"Failed to read error response: {e}") from e
            finally:
                response.close()
            raise ApiError(response.status_code, text)

        return response

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a JSON request and return the decoded JSON body ({} when empty)."""
        response = self._send(method, path, body=body, params=params)
        content = response.content
        if not content or not content.strip():
            return {}
        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            raise DecodeError(f"Failed to decode response: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"Failed to decode response: expected a JSON object, got {type(data).__name__}")
        return data

    def upload_file(self, method: str, path: str, file_path: Path | str) -> None:
        """Upload a local file as multipart form field ``file``."""
        file_path = Path(file_path)
        if not file_path.is_file():
            raise ValidationError(f"File not found: {file_path}")

        with file_path.open("rb") as fh:
            response = self._send(method, path, files={"file": (file_path.name, fh)})
        response.close()

    def request_stream(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> DownloadStream:
        """Send a request and hand back the unread response body."""
        response = self._send(method, path, body=body, params=params, stream=True)
        return DownloadStream(response)

    def stream_lines(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> EventStream:
        """Open a Server-Sent-Events stream; reads block until the server sends a line."""
        response = self._send(
            method,
            path,
            params=params,
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=(self.timeout, None),
        )
        return EventStream(response)

    def close(self):
        """Close pooled connections if this transport created the session."""
        if self._owns_session:
            self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def path_segment(value: Any) -> str:
    """Quote a value for use as a single URL path segment."""
    return quote(str(value), safe="")


class ResourceGroup:
    """Base for the per-endpoint-group clients; holds the shared transport."""

    def __init__(self, transport: Transport):
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport
