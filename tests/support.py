"""Shared test doubles: simulated clock, schema models and fake sockets."""

import asyncio
from typing import Any

from pydantic import BaseModel


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Todo(BaseModel):
    id: int
    title: str
    done: bool = False


class TodoPath(BaseModel):
    id: int


class TodoQuery(BaseModel):
    page: int = 1
    tags: list[str] = []


class NewTodo(BaseModel):
    title: str


class Ping(BaseModel):
    kind: str = "ping"
    seq: int


class Chat(BaseModel):
    kind: str = "chat"
    text: str


_CLOSED = object()


class FakeSocket:
    """In-memory socket: tests push frames, the multiplexer reads them."""

    def __init__(self, url: str):
        self.url = url
        self.sent: list[str] = []
        self.closed = False
        self._frames: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, frame: str) -> None:
        self._frames.put_nowait(frame)

    def fail(self, error: Exception) -> None:
        self._frames.put_nowait(error)

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionError("socket closed")
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._frames.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        frame = await self._frames.get()
        if frame is _CLOSED:
            raise StopAsyncIteration
        if isinstance(frame, Exception):
            raise frame
        return frame


class FakeConnector:
    """Socket factory recording every socket it opened."""

    def __init__(self, error: Exception | None = None):
        self.sockets: list[FakeSocket] = []
        self.error = error

    async def __call__(self, url: str) -> FakeSocket:
        if self.error is not None:
            raise self.error
        socket = FakeSocket(url)
        self.sockets.append(socket)
        return socket


async def settle(rounds: int = 5) -> None:
    """Let background tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
