"""Polling engine — turns per-room history calls into one message stream."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Union

from rocketfeed.domain.dedup import DEFAULT_CAPACITY, DedupWindow
from rocketfeed.domain.directory import ConversationDirectory
from rocketfeed.domain.history import HistoryFetcher
from rocketfeed.domain.models import ChatSession, ConversationKind, ConversationSet, Message
from rocketfeed.errors import ChatError, DirectoryError

logger = logging.getLogger(__name__)

Emit = Callable[[Message], Awaitable[None]]

_CLOSED = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncomingStream:
    """Async iterator handed to the consumer.

    Every put is a rendezvous: the producer waits on ``Queue.join`` until
    the consumer has taken the message, so a slow reader throttles polling.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def _attach(self, task: asyncio.Task):
        self._task = task

    async def put(self, message: Message):
        await self._queue.put(message)
        await self._queue.join()

    def _finish(self):
        """Drop any unaccepted message and wake readers with the close marker."""
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "IncomingStream":
        return self

    async def __anext__(self) -> Message:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        self._queue.task_done()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return item

    async def aclose(self):
        """Stop the polling task and wait for it to exit."""
        self._stop.set()
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A task cancelled before its first step never reaches _finish
        if self._queue.empty():
            self._queue.put_nowait(_CLOSED)
        self._closed = True

    async def __aenter__(self) -> "IncomingStream":
        return self

    async def __aexit__(self, *args):
        await self.aclose()


class MessagePoller:
    """Polls every visible room each cycle and emits unseen, foreign messages.

    One cycle: resolve rooms, fetch DMs then channels sequentially with the
    cursor as lower bound, filter self-authored and already-seen ids, emit,
    then move the cursor to the instant the cycle began.
    """

    def __init__(
        self,
        client,
        session: ChatSession,
        dedup_capacity: int = DEFAULT_CAPACITY,
        self_user_id: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session = session
        self.self_user_id = self_user_id or session.user_id
        self.directory = ConversationDirectory(client, session)
        self.fetcher = HistoryFetcher(client, session)
        self.dedup = DedupWindow(dedup_capacity)
        self._clock = clock
        self.cursor: datetime = clock()
        self.cycle_count = 0
        self.emitted_count = 0
        self.last_cycle_started: Optional[datetime] = None
        self._stream: Optional[IncomingStream] = None

    @property
    def stream(self) -> Optional[IncomingStream]:
        return self._stream

    async def _resolve(self) -> ConversationSet:
        try:
            return await self.directory.resolve()
        except DirectoryError as e:
            logger.warning("Room resolution failed, skipping this cycle: %s", e)
            return ConversationSet()

    async def _poll_conversation(
        self,
        conversation_id: str,
        kind: ConversationKind,
        emit: Emit,
        should_stop: Callable[[], bool],
    ) -> int:
        try:
            messages = await self.fetcher.fetch(
                conversation_id,
                kind=kind,
                latest=None,
                oldest=self.cursor,
                include_unread=True,
            )
        except ChatError as e:
            logger.warning("History fetch failed for %s %s: %s", kind.value, conversation_id, e)
            return 0

        emitted = 0
        for message in messages:
            logger.debug("msg: %s", message)
            if message.author.id == self.self_user_id:
                continue
            if self.dedup.contains(message.id):
                continue
            if should_stop():
                break
            await emit(message)
            self.dedup.record(message.id)
            emitted += 1
        return emitted

    async def poll_once(self, emit: Emit, should_stop: Callable[[], bool] = lambda: False) -> int:
        """Run one full cycle and return how many messages were emitted."""
        cycle_start = self._clock()
        self.last_cycle_started = cycle_start
        current = await self._resolve()

        emitted = 0
        for im in current.direct_messages:
            if should_stop():
                return emitted
            emitted += await self._poll_conversation(im, ConversationKind.DIRECT, emit, should_stop)
        for channel in current.channels:
            if should_stop():
                return emitted
            emitted += await self._poll_conversation(channel, ConversationKind.CHANNEL, emit, should_stop)
        if should_stop():
            return emitted

        self.cursor = cycle_start
        self.cycle_count += 1
        self.emitted_count += emitted
        logger.debug(
            "Cycle %d: %d room(s), %d message(s) emitted",
            self.cycle_count,
            len(current),
            emitted,
        )
        return emitted

    async def _run(self, stream: IncomingStream, interval: float):
        logger.info("Incoming message loop started (every %.1fs)", interval)
        try:
            while not stream.stopping:
                try:
                    await self.poll_once(stream.put, lambda: stream.stopping)
                except Exception:
                    logger.exception("Unexpected error in polling cycle")
                if stream.stopping:
                    break
                await asyncio.sleep(interval)
        finally:
            stream._finish()
            logger.info("Incoming message loop stopped")

    def start_incoming_stream(self, poll_interval: Union[float, timedelta]) -> IncomingStream:
        """Start the background loop and return the stream it feeds.

        The stream cannot be restarted; close it with ``aclose()``.
        """
        if self._stream is not None:
            raise RuntimeError("Incoming stream already started for this poller")
        if isinstance(poll_interval, timedelta):
            poll_interval = poll_interval.total_seconds()
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive (got {poll_interval})")

        stream = IncomingStream()
        self.cursor = self._clock()
        stream._attach(asyncio.create_task(self._run(stream, poll_interval)))
        self._stream = stream
        return stream
