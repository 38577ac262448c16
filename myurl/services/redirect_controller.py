"""
Redirect Controller

Owns one countdown/redirect attempt for one short code.

State machine:
    loading ──► ready ──► redirecting   (terminal, navigation issued)
       │          │
       └──────────┴─────► failed        (terminal unless retryable)

- loading -> ready: the resolver returned an active, non-expired link.
  The countdown starts at once; preview metadata is fetched in the
  background and upgrades the preview in place when it arrives.
- loading -> failed: invalid short code, resolver error, expired or
  inactive link, or resolution timeout.
- ready -> ready: one tick per second decrements the countdown.
- ready -> redirecting: countdown reached zero or the visitor chose
  "go now". Guarded by a one-shot latch so navigation happens once.
- failed -> loading: only through an explicit retry of a retryable
  failure (network errors).

Cancelling from loading or ready stops every task and hands control
back to the host through ``on_cancel``; it never navigates.

All tasks run on the caller's event loop. Nothing here is thread-safe.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Set

from myurl.core.exceptions import (
    InvalidShortCodeError,
    InvalidTransitionError,
    LinkResolutionError,
    NetworkError,
)
from myurl.core.models import (
    FailureReason,
    LinkRecord,
    PreviewMetadata,
    RedirectPhase,
    RedirectSession,
)
from myurl.core.setting import settings
from myurl.core.validators import sanitize_short_code
from myurl.services.metadata_enricher import fallback_metadata

logger = logging.getLogger(__name__)

TICK_SECONDS = 1


class Resolver(Protocol):
    async def resolve(self, short_code: str) -> LinkRecord: ...


class Enricher(Protocol):
    async def enrich(self, original_url: str) -> PreviewMetadata: ...


Navigator = Callable[[str], None]
SleepFunc = Callable[[float], Awaitable[None]]


class RedirectController:
    """
    Countdown/redirect state machine for a single short code.

    Example:
        controller = RedirectController("abc123", resolver, enricher, navigator=open_url)
        await controller.start()
        ...
        controller.go_now()
    """

    def __init__(
        self,
        short_code: str,
        resolver: Resolver,
        enricher: Enricher,
        navigator: Navigator,
        *,
        countdown_seconds: Optional[int] = None,
        on_cancel: Optional[Callable[[], None]] = None,
        on_redirect_start: Optional[Callable[[RedirectSession], None]] = None,
        sleep: SleepFunc = asyncio.sleep,
        resolve_timeout: Optional[float] = settings.RESOLVE_TIMEOUT_SECONDS,
        metadata_timeout: Optional[float] = settings.METADATA_TIMEOUT_SECONDS,
    ):
        """
        Args:
            short_code: Short code from the route
            resolver: Turns the short code into a LinkRecord
            enricher: Fetches preview metadata, expected never to fail
            navigator: Performs the full navigation to the destination
            countdown_seconds: Countdown length, defaults to COUNTDOWN_SECONDS
            on_cancel: Called when the visitor cancels
            on_redirect_start: Called with the snapshot when entering redirecting
            sleep: Awaitable used between ticks
            resolve_timeout: Upper bound on resolution, None to wait indefinitely
            metadata_timeout: Upper bound on enrichment, None to wait indefinitely
        """
        if countdown_seconds is None:
            countdown_seconds = settings.COUNTDOWN_SECONDS
        if countdown_seconds < 1:
            raise ValueError(f"countdown_seconds must be at least 1, got {countdown_seconds}")

        self.short_code = short_code
        self.countdown_seconds = countdown_seconds

        self._resolver = resolver
        self._enricher = enricher
        self._navigator = navigator
        self._on_cancel = on_cancel
        self._on_redirect_start = on_redirect_start
        self._sleep = sleep
        self._resolve_timeout = resolve_timeout
        self._metadata_timeout = metadata_timeout

        self._phase = RedirectPhase.LOADING
        self._seconds_remaining = countdown_seconds
        self._link: Optional[LinkRecord] = None
        self._metadata: Optional[PreviewMetadata] = None
        self._error: Optional[LinkResolutionError] = None
        self._navigate_to: Optional[str] = None

        self._started = False
        self._closed = False
        self._has_redirected = False

        self._resolve_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._enrich_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    # -- read side -----------------------------------------------------

    @property
    def phase(self) -> RedirectPhase:
        return self._phase

    @property
    def seconds_remaining(self) -> int:
        return self._seconds_remaining

    @property
    def link(self) -> Optional[LinkRecord]:
        return self._link

    @property
    def metadata(self) -> Optional[PreviewMetadata]:
        return self._metadata

    @property
    def closed(self) -> bool:
        """True once the session was cancelled or torn down."""
        return self._closed

    @property
    def timer_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def is_terminal(self) -> bool:
        return self._phase is RedirectPhase.REDIRECTING or (
            self._phase is RedirectPhase.FAILED and not self._retryable
        )

    @property
    def _retryable(self) -> bool:
        return self._error is not None and self._error.retryable

    @property
    def session(self) -> RedirectSession:
        """Snapshot of the current state."""
        error = self._error
        return RedirectSession(
            short_code=self.short_code,
            phase=self._phase,
            countdown_seconds=self.countdown_seconds,
            seconds_remaining=self._seconds_remaining,
            error_message=error.user_message if error else None,
            failure_reason=error.reason if error else None,
            retryable=self._retryable,
            link=self._link,
            metadata=self._metadata,
            navigate_to=self._navigate_to,
        )

    # -- transitions ---------------------------------------------------

    async def start(self) -> RedirectSession:
        """
        Resolve the short code and enter ready or failed.

        Returns:
            Snapshot after resolution finished (or was cancelled)

        Raises:
            InvalidTransitionError: If the controller was already started
        """
        if self._started or self._closed:
            raise InvalidTransitionError("start", self._phase.value)
        self._started = True
        await self._load()
        return self.session

    async def retry(self) -> RedirectSession:
        """
        Re-run resolution after a retryable failure.

        Raises:
            InvalidTransitionError: Unless the session failed with a retryable reason
        """
        if self._closed or self._phase is not RedirectPhase.FAILED or not self._retryable:
            raise InvalidTransitionError("retry", self._phase.value)

        logger.info(f"Retrying resolution of {self.short_code}")
        self._phase = RedirectPhase.LOADING
        self._error = None
        self._link = None
        self._metadata = None
        await self._load()
        return self.session

    def tick(self) -> None:
        """Advance the countdown by one second."""
        if self._closed or self._phase is not RedirectPhase.READY:
            return

        self._seconds_remaining = max(self._seconds_remaining - 1, 0)
        logger.debug(f"Countdown {self.short_code}: {self._seconds_remaining}s remaining")

        if self._seconds_remaining == 0:
            self._redirect("countdown")

    def go_now(self) -> bool:
        """
        Redirect without waiting for the countdown.

        Returns:
            True if this call performed the navigation, False if it was a no-op
        """
        if self._closed or self._phase is not RedirectPhase.READY:
            return False
        return self._redirect("user")

    def cancel(self) -> bool:
        """
        Abandon the redirect and hand control back to the host.

        Returns:
            True if the session was cancelled, False if cancelling is not allowed
        """
        if self._closed or self._phase not in (RedirectPhase.LOADING, RedirectPhase.READY):
            return False

        self._closed = True
        self._stop_tasks()
        logger.info(f"Redirect for {self.short_code} cancelled in phase {self._phase.value}")

        if self._on_cancel is not None:
            try:
                self._on_cancel()
            except Exception as e:
                logger.warning(f"on_cancel hook failed for {self.short_code}: {e}", exc_info=True)
        return True

    async def close(self) -> None:
        """Tear down the controller; no callbacks fire afterwards."""
        self._closed = True
        self._stop_tasks()
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    # -- internals -----------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load(self) -> None:
        code = sanitize_short_code(self.short_code)
        if code is None:
            self._fail(InvalidShortCodeError(self.short_code))
            return

        self._resolve_task = self._spawn(self._resolve(code))
        try:
            link = await self._resolve_task
        except asyncio.CancelledError:
            if self._closed:
                return
            raise
        except LinkResolutionError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.error(f"Unexpected error resolving {code}: {e}", exc_info=True)
            self._fail(NetworkError("Failed to load link information", short_code=code, original_error=e))
            return
        finally:
            self._resolve_task = None

        if self._closed:
            return
        self._enter_ready(link)

    async def _resolve(self, code: str) -> LinkRecord:
        try:
            return await asyncio.wait_for(self._resolver.resolve(code), timeout=self._resolve_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Resolving {code} timed out after {self._resolve_timeout}s")
            raise NetworkError(
                "Network error: the link service did not respond in time",
                short_code=code,
                original_error=e,
            ) from e

    def _fail(self, error: LinkResolutionError) -> None:
        self._error = error
        self._link = getattr(error, "link", None)
        self._phase = RedirectPhase.FAILED
        self._stop_tasks()
        logger.info(f"Redirect for {self.short_code} failed: {error.reason.value} ({error.user_message})")

    def _enter_ready(self, link: LinkRecord) -> None:
        self._link = link
        self._metadata = fallback_metadata(link.original_url)
        self._seconds_remaining = self.countdown_seconds
        self._phase = RedirectPhase.READY
        logger.info(f"Redirect for {self.short_code} ready, {self.countdown_seconds}s countdown")

        self._enrich_task = self._spawn(self._enrich(link.original_url))
        self._timer_task = self._spawn(self._run_countdown())

    async def _run_countdown(self) -> None:
        while not self._closed and self._phase is RedirectPhase.READY:
            await self._sleep(TICK_SECONDS)
            self.tick()

    async def _enrich(self, original_url: str) -> None:
        try:
            metadata = await asyncio.wait_for(
                self._enricher.enrich(original_url),
                timeout=self._metadata_timeout,
            )
        except asyncio.TimeoutError:
            logger.info(f"Metadata for {original_url} not ready in time, keeping fallback preview")
            return
        except Exception as e:
            logger.warning(f"Metadata enrichment failed for {original_url}: {e}")
            return

        if self._closed or self._phase is not RedirectPhase.READY:
            logger.debug(f"Discarding late metadata for {original_url}")
            return
        self._metadata = metadata

    def _redirect(self, trigger: str) -> bool:
        if self._has_redirected:
            return False
        self._has_redirected = True

        url = self._link.original_url
        self._phase = RedirectPhase.REDIRECTING
        self._navigate_to = url
        self._stop_tasks()
        logger.info(f"Redirecting {self.short_code} -> {url} (trigger: {trigger})")

        if self._on_redirect_start is not None:
            try:
                self._on_redirect_start(self.session)
            except Exception as e:
                logger.warning(f"on_redirect_start hook failed for {self.short_code}: {e}", exc_info=True)

        try:
            self._navigator(url)
        except Exception as e:
            # The latch stays set: a failed navigation is never retried
            logger.error(f"Navigation to {url} failed for {self.short_code}: {e}", exc_info=True)
        return True

    def _stop_tasks(self) -> None:
        current = asyncio.current_task()
        for name in ("_timer_task", "_enrich_task", "_resolve_task"):
            task = getattr(self, name)
            setattr(self, name, None)
            if task is not None and task is not current and not task.done():
                task.cancel()
