"""Offline-first sync engine for the local word collection.

The ``SyncEngine`` reconciles the ``WordStore`` with the remote word
service.  A sync round:

1. Guards: no credential, a round already in flight, or offline -> skip.
2. Collects local words changed since the cursor (all words on a full
   sync or when there is no cursor).
3. Posts them with the cursor; the server merges them and answers with
   every record it changed after the cursor.
4. Re-reads the local collection (edits may have happened during the
   round-trip) and merges the server words into it.
5. Replaces the local collection and advances the cursor.

Any failure leaves local data and the cursor untouched; the next trigger
retries from the same cursor.  A failed connection takes the engine
offline; once started, it then checks the connection every
``reconnect_seconds`` and syncs as soon as the service answers.
Concurrent triggers are dropped, not queued.  Everything runs on one
asyncio event loop; only the blocking HTTP call is moved to a worker
thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import timedelta
from typing import Any

from ..core.async_utils import run_sync
from ..core.client import SyncApiClient
from ..exceptions import (
    AuthenticationError,
    ServiceUnreachableError,
    SyncApiError,
)
from ..models import SyncStatus, UserProfile, WordRecord, utc_now
from ..store.word_store import WordStore
from .merge import merge_into_local

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]

# Minimum distance between a re-stamped mid-flight edit and the new cursor.
_CURSOR_EPSILON = timedelta(milliseconds=1)


class SyncEngine:
    """Synchronise a ``WordStore`` with the remote word service.

    Args:
        store: The local word store (also holds cursor and credential).
        client: Transport for ``/sync``, ``/words`` and ``/auth/me``.
        debounce_seconds: Delay used by ``trigger_sync()``.
        interval_seconds: Period of the background sync loop.
        online: Initial connectivity state.
        reconnect_seconds: Connection check interval while offline.
    """

    def __init__(
        self,
        store: WordStore,
        client: SyncApiClient,
        debounce_seconds: float = 2.0,
        interval_seconds: float = 300.0,
        online: bool = True,
        reconnect_seconds: float = 30.0,
    ) -> None:
        self.store = store
        self.client = client
        self.debounce_seconds = debounce_seconds
        self.interval_seconds = interval_seconds
        self.reconnect_seconds = reconnect_seconds
        self.user: UserProfile | None = None

        self._online = online
        self._status = SyncStatus.IDLE
        self._in_flight = False
        self._applying = False
        self._listeners: list[StatusListener] = []
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._periodic_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def add_status_listener(self, listener: StatusListener) -> None:
        """Call *listener* on every status change."""
        self._listeners.append(listener)

    def _set_status(self, status: SyncStatus) -> None:
        if status == self._status:
            return
        logger.debug("Sync status %s -> %s", self._status.value, status.value)
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def trigger_sync(self) -> None:
        """Schedule a sync after the debounce delay.

        A new call cancels the pending one, so a burst of edits produces
        a single round-trip once the burst is over.  Must be called from
        the event loop thread.
        """
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(
            self.debounce_seconds, self._fire_debounced
        )

    def watch_store(self) -> Callable[[], None]:
        """Trigger a debounced sync after every local change to the store.

        The engine's own writes at the end of a round are ignored.

        Returns:
            A function that stops watching.
        """
        return self.store.subscribe(self._on_store_change)

    def _on_store_change(self, words: list[WordRecord]) -> None:
        if not self._applying:
            self.trigger_sync()

    def _fire_debounced(self) -> None:
        self._debounce_handle = None
        self._spawn(self.perform_sync())

    async def full_sync(self) -> bool:
        """Sync immediately, sending the whole collection."""
        return await self.perform_sync(force_full=True)

    def set_online(self, online: bool) -> asyncio.Task | None:
        """React to a connectivity change.

        Going online starts a sync right away (returned as a task) and
        absorbs any pending debounced attempt; going offline updates the
        status and, once the engine is started, begins checking for the
        service.
        """
        self._online = online
        if not online:
            logger.info("Device offline; sync paused")
            self._set_status(SyncStatus.OFFLINE)
            self._start_reconnecting()
            return None
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        reconnect = self._reconnect_task
        if reconnect is not None and reconnect is not asyncio.current_task():
            reconnect.cancel()
        logger.info("Device online; syncing")
        return self._spawn(self.perform_sync())

    async def load_credential(self, token: str) -> UserProfile | None:
        """Install a new bearer credential, validate it, then sync.

        A rejected credential is cleared and no sync is attempted.  Any
        other failure keeps the credential for the next trigger; an
        unreachable service also takes the engine offline.

        Returns:
            The authenticated identity, or ``None`` when it could not be
            confirmed.
        """
        self.store.set_token(token)
        if not self._online:
            self._set_status(SyncStatus.OFFLINE)
            return None
        try:
            self.user = await run_sync(self.client.get_current_user, token)
        except AuthenticationError as exc:
            logger.warning("Credential rejected: %s", exc)
            self._drop_credential()
            return None
        except ServiceUnreachableError as exc:
            self._went_offline(exc)
            return None
        except SyncApiError as exc:
            logger.error("Could not confirm credential: %s", exc)
            return None
        logger.info("Signed in as %s", self.user.email or self.user.id)
        await self.perform_sync()
        return self.user

    async def check_connection(self) -> bool:
        """Check that the service answers, using the stored credential.

        An answer puts the engine back online, which starts a sync; a
        rejected credential is cleared.

        Returns:
            ``True`` if the service answered.
        """
        token = self.store.token
        if not token:
            return False
        try:
            self.user = await run_sync(self.client.get_current_user, token)
        except ServiceUnreachableError as exc:
            logger.debug("Word service still unreachable: %s", exc)
            return False
        except AuthenticationError as exc:
            logger.warning("Credential rejected: %s", exc)
            self._online = True
            self._drop_credential()
            return True
        except SyncApiError as exc:
            logger.warning("Word service reachable but failing: %s", exc)
        self.set_online(True)
        return True

    def _went_offline(self, exc: ServiceUnreachableError) -> None:
        logger.warning("%s", exc)
        self.set_online(False)

    def _drop_credential(self) -> None:
        self.store.set_token(None)
        self.user = None
        self._set_status(SyncStatus.ERROR)

    # ------------------------------------------------------------------
    # Background loops
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic sync loop and run an initial sync.

        While offline the connection is checked instead.
        """
        if self._periodic_task is not None:
            return
        self._periodic_task = asyncio.get_running_loop().create_task(
            self._periodic_loop()
        )
        if not self._online:
            self._start_reconnecting()
        elif self.store.token:
            self._spawn(self.perform_sync())

    async def stop(self) -> None:
        """Cancel the loops and pending debounce; let in-flight rounds finish."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        loops = [self._periodic_task, self._reconnect_task]
        # No reconnect loop can start once the periodic task is cleared.
        self._periodic_task = None
        for task in loops:
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None
        await self.wait_for_pending()

    async def wait_for_pending(self) -> None:
        """Wait for every sync task started by this engine to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if self.store.token and self._online:
                # A round already started is left to finish on stop().
                await asyncio.shield(self._spawn(self.perform_sync()))

    def _start_reconnecting(self) -> None:
        if self._periodic_task is None or self._reconnect_task is not None:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_loop()
        )

    async def _reconnect_loop(self) -> None:
        try:
            while not self._online:
                await asyncio.sleep(self.reconnect_seconds)
                if not self._online:
                    await self.check_connection()
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Sync rounds
    # ------------------------------------------------------------------

    def _can_start(self) -> bool:
        if not self.store.token:
            logger.debug("No credential; skipping sync")
            return False
        if self._in_flight:
            logger.debug("Sync already in flight; dropping trigger")
            return False
        if not self._online:
            self._set_status(SyncStatus.OFFLINE)
            return False
        return True

    async def perform_sync(self, force_full: bool = False) -> bool:
        """Run one sync round.

        Args:
            force_full: Send the whole collection and ask for every
                server record, ignoring the cursor.

        Returns:
            ``True`` if the round completed, ``False`` if it was skipped
            or failed.
        """
        if not self._can_start():
            return False

        token = self.store.token
        self._in_flight = True
        self._set_status(SyncStatus.SYNCING)
        try:
            cursor = None if force_full else self.store.last_synced_at
            snapshot = {w.word: w for w in self.store.get_all()}
            if cursor is None:
                changed = list(snapshot.values())
            else:
                changed = [
                    w for w in snapshot.values() if w.updated_at > cursor
                ]

            response = await run_sync(
                self.client.sync, token, cursor, changed
            )

            # Edits made while the request was out were not sent.
            latest = self.store.get_all()
            edited = {
                w.word for w in latest if snapshot.get(w.word) is not w
            }
            merged = merge_into_local(latest, response.server_words)
            if edited:
                merged = _restamp(merged, edited, response.synced_at)

            self._apply(merged)
            self.store.set_last_synced_at(response.synced_at)
            self._set_status(SyncStatus.SYNCED)
            logger.info(
                "Sync complete: sent %d, received %d%s",
                len(changed),
                len(response.server_words),
                " (full)" if cursor is None else "",
            )
            return True
        except AuthenticationError as exc:
            logger.warning("Credential rejected during sync: %s", exc)
            self._drop_credential()
            return False
        except ServiceUnreachableError as exc:
            self._went_offline(exc)
            return False
        except SyncApiError as exc:
            logger.error("Sync failed: %s", exc)
            self._set_status(SyncStatus.ERROR)
            return False
        except Exception:
            self._set_status(SyncStatus.ERROR)
            raise
        finally:
            self._in_flight = False

    def _apply(self, merged: list[WordRecord]) -> None:
        self._applying = True
        try:
            self.store.replace_all(merged)
        finally:
            self._applying = False

    async def fetch_all(self) -> bool:
        """Merge the server's full collection (``GET /words``) into the store.

        Fallback resync path; the cursor is not moved.
        """
        if not self._can_start():
            return False

        token = self.store.token
        self._in_flight = True
        self._set_status(SyncStatus.SYNCING)
        try:
            server_words = await run_sync(self.client.get_words, token)
            merged = merge_into_local(self.store.get_all(), server_words)
            self._apply(merged)
            self._set_status(SyncStatus.SYNCED)
            logger.info("Fetched %d words from server", len(server_words))
            return True
        except AuthenticationError as exc:
            logger.warning("Credential rejected during fetch: %s", exc)
            self._drop_credential()
            return False
        except ServiceUnreachableError as exc:
            self._went_offline(exc)
            return False
        except SyncApiError as exc:
            logger.error("Fetch failed: %s", exc)
            self._set_status(SyncStatus.ERROR)
            return False
        except Exception:
            self._set_status(SyncStatus.ERROR)
            raise
        finally:
            self._in_flight = False


def _restamp(
    words: list[WordRecord], edited: set[str], synced_at
) -> list[WordRecord]:
    """Push ``updated_at`` of *edited* words past the new cursor.

    Guarantees the next delta round picks them up even when the local
    clock is behind the server's.
    """
    floor = synced_at + _CURSOR_EPSILON
    result = []
    for w in words:
        if w.word in edited and w.updated_at <= synced_at:
            w = w.model_copy(update={"updated_at": max(utc_now(), floor)})
        result.append(w)
    return result
