"""Pull-style streaming reader for multipart/form-data request bodies.

The body is consumed chunk by chunk from an async byte stream and fed to the
python-multipart push parser. Parser callbacks queue events which callers pull
one field at a time, and each field one chunk at a time, so file content is
never held in memory beyond a single network chunk.
"""

from collections import deque
from typing import AsyncIterator, Deque, List, Optional, Tuple
from urllib.parse import unquote_to_bytes

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from filegate.core.exceptions import BadRequest

_Event = Tuple[str, object]


def _decode_option(value: Optional[bytes]) -> Optional[str]:
    # Undecodable bytes survive as lone surrogates so path construction can reject them
    if value is None:
        return None
    return value.decode("utf-8", "surrogateescape")


def _filename_option(options: dict) -> Optional[str]:
    filename = options.get(b"filename")
    if filename is not None:
        return _decode_option(filename)
    extended = options.get(b"filename*")
    if extended is None:
        return None
    # RFC 2231: charset'language'percent-encoded-value
    charset, _, rest = extended.partition(b"'")
    _, _, encoded = rest.partition(b"'")
    if not encoded:
        return _decode_option(extended)
    raw = unquote_to_bytes(encoded)
    try:
        return raw.decode(charset.decode("ascii") or "utf-8", "surrogateescape")
    except (LookupError, UnicodeDecodeError):
        return _decode_option(raw)


class MultipartField:
    """A single named part of a multipart body."""

    def __init__(
        self,
        reader: "MultipartReader",
        name: str,
        filename: Optional[str],
        content_type: Optional[str],
    ):
        self._reader = reader
        self.name = name
        self.filename = filename
        self.content_type = content_type
        self._done = False

    async def chunk(self) -> Optional[bytes]:
        """Return the next chunk of this field, or None once it is complete."""
        if self._done:
            return None
        while True:
            event = await self._reader._next_event("Failed to read chunk")
            if event is None:
                self._done = True
                return None
            kind, payload = event
            if kind == "data":
                return payload  # type: ignore[return-value]
            if kind == "end":
                self._done = True
                return None
            # Headers of the next part: hand them back to the reader
            self._reader._events.appendleft(event)
            self._done = True
            return None

    async def read(self) -> bytes:
        """Buffer the whole field. Only meant for small text fields."""
        buffer = bytearray()
        while (chunk := await self.chunk()) is not None:
            buffer += chunk
        return bytes(buffer)

    async def drain(self) -> None:
        while await self.chunk() is not None:
            pass


class MultipartReader:
    """Reads multipart fields in arrival order from an async byte stream."""

    def __init__(self, content_type: Optional[str], stream: AsyncIterator[bytes]):
        media_type, params = parse_options_header(content_type)
        if media_type != b"multipart/form-data":
            raise BadRequest("Multipart error: expected multipart/form-data content type")
        boundary = params.get(b"boundary")
        if not boundary:
            raise BadRequest("Multipart error: missing multipart boundary")

        self._chunks = stream.__aiter__()
        self._events: Deque[_Event] = deque()
        self._headers: List[Tuple[bytes, bytes]] = []
        self._header_field = b""
        self._header_value = b""
        self._finished = False
        self._exhausted = False
        self._current: Optional[MultipartField] = None

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_end": self._on_end,
        }
        self._parser = MultipartParser(boundary, callbacks)

    # Parser callbacks

    def _on_part_begin(self) -> None:
        self._headers = []

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if end > start:
            self._events.append(("data", bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append(("end", None))

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append(("headers", self._headers))

    def _on_end(self) -> None:
        self._finished = True

    async def _next_event(self, error_prefix: str) -> Optional[_Event]:
        while not self._events:
            if self._exhausted:
                return None
            try:
                chunk = await anext(self._chunks)
            except StopAsyncIteration:
                self._exhausted = True
                self._parser.finalize()
                if not self._finished:
                    raise BadRequest(f"{error_prefix}: unexpected end of multipart body")
                continue
            except ClientDisconnect as e:
                self._exhausted = True
                raise BadRequest(f"{error_prefix}: client disconnected") from e
            if not chunk:
                continue
            try:
                self._parser.write(chunk)
            except MultipartParseError as e:
                raise BadRequest(f"Multipart error: {e}") from e
        return self._events.popleft()

    def _field_from_headers(self, headers: List[Tuple[bytes, bytes]]) -> MultipartField:
        name = ""
        filename = None
        content_type = None
        for field, value in headers:
            if field == b"content-disposition":
                _, options = parse_options_header(value)
                name = _decode_option(options.get(b"name")) or ""
                filename = _filename_option(options)
            elif field == b"content-type":
                content_type = value.decode("latin-1")
        return MultipartField(self, name, filename, content_type)

    async def next_field(self) -> Optional[MultipartField]:
        """Return the next field, or None when the body is exhausted.

        Any unread chunks of the previous field are discarded first.
        """
        if self._current is not None:
            await self._current.drain()
            self._current = None

        while True:
            event = await self._next_event("Multipart error")
            if event is None:
                return None
            kind, payload = event
            if kind == "headers":
                self._current = self._field_from_headers(payload)  # type: ignore[arg-type]
                return self._current
