"""
Polling client that keeps a view of one thread up to date.

Usage: python sync_client.py <base_url> <thread_id>
"""
import os
import sys
import enum
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "2.0"))

Fetcher = Callable[[UUID], Awaitable[List[Dict[str, Any]]]]
Renderer = Callable[[List[Dict[str, Any]]], None]


class ClientState(enum.Enum):
    """Enum for the view state of a sync client."""
    IDLE = "idle"
    OPEN = "open"


class HttpMessageFetcher:
    """Reads a thread's message list from the chat API."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __call__(self, thread_id: UUID) -> List[Dict[str, Any]]:
        response = await self._client.get(f"/threads/{thread_id}/messages")
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


class SyncClient:
    """
    Polls the open thread on a fixed interval and re-renders it in full.

    At most one poll timer is armed at any time: opening a thread or closing
    the view always cancels the current timer before anything else happens.
    Rendering replaces the whole list, so a reply that stops being pending is
    picked up on the next tick.
    """

    def __init__(self, fetch: Fetcher, render: Renderer, interval: float = POLL_INTERVAL_SECONDS):
        self.fetch = fetch
        self.render = render
        self.interval = interval
        self.state = ClientState.IDLE
        self.thread_id: Optional[UUID] = None
        self._timer: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def open(self, thread_id: UUID) -> None:
        """Show a thread: read it now, then keep polling it."""
        # Claim the view before the first await so later calls win
        self._generation += 1
        generation = self._generation
        self.state = ClientState.OPEN
        self.thread_id = thread_id

        await self._cancel_timer()
        if generation != self._generation:
            return

        try:
            await self._refresh(thread_id)
        except Exception as e:
            logger.warning(f"Initial load of thread {thread_id} failed: {e}")

        # Another open() or close() ran while we were loading
        if generation != self._generation:
            return

        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.create_task(self._poll(thread_id))

    async def close(self) -> None:
        """Stop polling and return to idle."""
        self._generation += 1
        self.state = ClientState.IDLE
        self.thread_id = None
        await self._cancel_timer()

    async def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass

    async def _refresh(self, thread_id: UUID) -> None:
        messages = await self.fetch(thread_id)
        # Drop results for a thread that is no longer open
        if self.thread_id == thread_id:
            self.render(messages)

    async def _poll(self, thread_id: UUID) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._refresh(thread_id)
            except Exception as e:
                logger.warning(f"Polling thread {thread_id} failed: {e}")


def print_messages(messages: List[Dict[str, Any]]) -> None:
    """Render a message list to the terminal."""
    print("\033[2J\033[H", end="")
    for m in messages:
        marker = " …" if m.get("pending") else ""
        line = f"[{m['role']}] {m.get('text') or ''}{marker}"
        if m.get("attachment_ref"):
            line += f" <image {m['attachment_ref']}>"
        print(line)


async def watch(base_url: str, thread_id: UUID) -> None:
    fetcher = HttpMessageFetcher(base_url)
    client = SyncClient(fetcher, print_messages)
    try:
        await client.open(thread_id)
        while True:
            await asyncio.sleep(3600)
    finally:
        await client.close()
        await fetcher.aclose()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(watch(sys.argv[1], UUID(sys.argv[2])))
    except KeyboardInterrupt:
        pass
