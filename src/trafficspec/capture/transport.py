"""
httpx transports that record matching traffic.

Wrap any inner transport; requests to the target host under the base path
are forwarded as usual and, once the response body has been read to the end,
handed to a recorder as a CapturedExchange. Everything else passes straight
through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Iterator, Optional

import httpx

from trafficspec.capture.exchange import CapturedExchange
from trafficspec.config import CaptureConfig, host_key

logger = logging.getLogger(__name__)

Recorder = Callable[[CapturedExchange], object]


@dataclass(frozen=True)
class Target:
    host: str  # lowercased host[:port]
    base_path: str = "/"

    @classmethod
    def from_config(cls, config: CaptureConfig) -> "Target":
        return cls(host=config.target_host, base_path=config.base_path)

    def matches(self, url: httpx.URL) -> bool:
        return host_key(url.host, url.port) == self.host.lower() and url.path.startswith(self.base_path)


def _decode_body(headers: httpx.Headers, raw: bytes) -> bytes:
    # undo Content-Encoding the same way httpx does for the caller
    try:
        return httpx.Response(200, headers=headers, content=raw).read()
    except httpx.DecodingError:
        logger.debug("Could not decode response body (%s)", headers.get("content-encoding"))
        return b""


class _RecordingStream(httpx.SyncByteStream):
    def __init__(self, stream: httpx.SyncByteStream, on_complete: Callable[[bytes], None]):
        self._stream = stream
        self._on_complete = on_complete
        self._chunks: list[bytes] = []

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            self._chunks.append(chunk)
            yield chunk
        self._on_complete(b"".join(self._chunks))

    def close(self) -> None:
        self._stream.close()


class _AsyncRecordingStream(httpx.AsyncByteStream):
    def __init__(self, stream: httpx.AsyncByteStream, on_complete: Callable[[bytes], None]):
        self._stream = stream
        self._on_complete = on_complete
        self._chunks: list[bytes] = []

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            self._chunks.append(chunk)
            yield chunk
        self._on_complete(b"".join(self._chunks))

    async def aclose(self) -> None:
        await self._stream.aclose()


def _completion(request: httpx.Request, response: httpx.Response, recorder: Recorder) -> Callable[[bytes], None]:
    # bound per call: each response only ever sees its own request
    def on_complete(raw: bytes) -> None:
        body = _decode_body(response.headers, raw)
        recorder(CapturedExchange.from_httpx(request, response.status_code, body))

    return on_complete


def _rewrap(response: httpx.Response, stream: httpx.SyncByteStream | httpx.AsyncByteStream) -> httpx.Response:
    # a fresh streaming response: inner ones built from content= are already read
    # and would never iterate the recording stream
    return httpx.Response(
        status_code=response.status_code,
        headers=response.headers,
        stream=stream,
        extensions=response.extensions,
    )


class CaptureTransport(httpx.BaseTransport):
    def __init__(
        self,
        target: Target,
        recorder: Recorder,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.target = target
        self.recorder = recorder
        self._transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if not self.target.matches(request.url):
            return self._transport.handle_request(request)

        request.read()
        response = self._transport.handle_request(request)
        return _rewrap(response, _RecordingStream(response.stream, _completion(request, response, self.recorder)))

    def close(self) -> None:
        self._transport.close()


class AsyncCaptureTransport(httpx.AsyncBaseTransport):
    def __init__(
        self,
        target: Target,
        recorder: Recorder,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.target = target
        self.recorder = recorder
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not self.target.matches(request.url):
            return await self._transport.handle_async_request(request)

        await request.aread()
        response = await self._transport.handle_async_request(request)
        return _rewrap(
            response, _AsyncRecordingStream(response.stream, _completion(request, response, self.recorder))
        )

    async def aclose(self) -> None:
        await self._transport.aclose()
