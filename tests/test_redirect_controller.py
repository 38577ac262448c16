"""
Tests for the countdown/redirect state machine.

The countdown sleeps on a ManualClock, so every tick is driven explicitly
and no test waits for real seconds.
"""

import asyncio

import pytest

from myurl.core.exceptions import (
    InvalidTransitionError,
    LinkExpiredError,
    LinkNotFoundError,
    NetworkError,
)
from myurl.core.models import FailureReason, RedirectPhase
from myurl.services.metadata_enricher import fallback_metadata
from myurl.services.redirect_controller import RedirectController

from conftest import (
    HangingEnricher,
    HangingResolver,
    SequenceResolver,
    StubEnricher,
    StubResolver,
    make_link,
    settle,
)

URL = "https://example.com/article"


def make_controller(clock, navigations, resolver=None, enricher=None, short_code="abc123", **kwargs):
    kwargs.setdefault("countdown_seconds", 5)
    return RedirectController(
        short_code,
        resolver or StubResolver(make_link()),
        enricher or StubEnricher(),
        navigations.append,
        sleep=clock.sleep,
        **kwargs,
    )


class TestHappyPath:
    """Test the loading -> ready -> redirecting flow."""

    @pytest.mark.asyncio
    async def test_countdown_then_single_navigation(self, clock, navigations):
        controller = make_controller(clock, navigations)

        session = await controller.start()
        assert session.phase is RedirectPhase.READY
        assert session.seconds_remaining == 5
        assert session.link.original_url == URL

        await clock.advance(4)
        assert controller.seconds_remaining == 1
        assert controller.phase is RedirectPhase.READY
        assert navigations == []

        await clock.advance(1)
        assert controller.phase is RedirectPhase.REDIRECTING
        assert navigations == [URL]
        assert controller.session.navigate_to == URL
        assert controller.session.progress == 100.0
        assert not controller.timer_running

        # Nothing left to wake up
        await clock.advance(3)
        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_seconds_remaining_decreases_by_one(self, clock, navigations):
        controller = make_controller(clock, navigations, countdown_seconds=3)
        await controller.start()

        seen = [controller.seconds_remaining]
        for _ in range(3):
            await clock.advance(1)
            seen.append(controller.seconds_remaining)

        assert seen == [3, 2, 1, 0]
        await controller.close()

    @pytest.mark.asyncio
    async def test_metadata_upgrades_in_place(self, clock, navigations):
        enricher = StubEnricher()
        controller = make_controller(clock, navigations, enricher=enricher)

        await controller.start()
        # Fallback preview is available as soon as the link resolved
        assert controller.metadata == fallback_metadata(URL)

        await settle()
        assert enricher.calls == [URL]
        assert controller.metadata.title == "Example Article"
        assert controller.phase is RedirectPhase.READY
        await controller.close()

    @pytest.mark.asyncio
    async def test_default_countdown_from_settings(self, clock, navigations):
        controller = RedirectController(
            "abc123", StubResolver(make_link()), StubEnricher(), navigations.append, sleep=clock.sleep
        )
        assert controller.countdown_seconds == 5
        await controller.close()

    def test_countdown_must_be_positive(self, clock, navigations):
        with pytest.raises(ValueError):
            make_controller(clock, navigations, countdown_seconds=0)

    @pytest.mark.asyncio
    async def test_start_only_once(self, clock, navigations):
        controller = make_controller(clock, navigations)
        await controller.start()
        with pytest.raises(InvalidTransitionError):
            await controller.start()
        await controller.close()


class TestFailures:
    """Test transitions into the failed phase."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("short_code", ["", "undefined"])
    async def test_invalid_short_code(self, clock, navigations, short_code):
        resolver = StubResolver(make_link())
        enricher = StubEnricher()
        controller = make_controller(clock, navigations, resolver=resolver, enricher=enricher, short_code=short_code)

        session = await controller.start()

        assert session.phase is RedirectPhase.FAILED
        assert session.failure_reason is FailureReason.INVALID_SHORT_CODE
        assert session.error_message == "Invalid short URL"
        assert not session.retryable
        assert resolver.calls == []
        assert enricher.calls == []
        assert navigations == []

    @pytest.mark.asyncio
    async def test_expired_link_never_redirects(self, clock, navigations):
        expired = make_link(expiresAt="2020-01-01T00:00:00Z")
        resolver = StubResolver(error=LinkExpiredError("abc123", expired))
        controller = make_controller(clock, navigations, resolver=resolver)

        session = await controller.start()
        await clock.advance(10)

        assert session.phase is RedirectPhase.FAILED
        assert session.failure_reason is FailureReason.EXPIRED
        assert session.link == expired
        assert controller.is_terminal
        assert clock.pending == 0
        assert navigations == []

    @pytest.mark.asyncio
    async def test_not_found(self, clock, navigations):
        resolver = StubResolver(error=LinkNotFoundError("zzz999"))
        controller = make_controller(clock, navigations, resolver=resolver, short_code="zzz999")

        session = await controller.start()

        assert session.phase is RedirectPhase.FAILED
        assert session.error_message == "Short link 'zzz999' not found"
        assert not session.retryable
        assert clock.pending == 0
        assert navigations == []

    @pytest.mark.asyncio
    async def test_unexpected_resolver_error_is_retryable(self, clock, navigations):
        resolver = StubResolver(error=RuntimeError("boom"))
        controller = make_controller(clock, navigations, resolver=resolver)

        session = await controller.start()

        assert session.phase is RedirectPhase.FAILED
        assert session.failure_reason is FailureReason.NETWORK_ERROR
        assert session.error_message == "Failed to load link information"
        assert session.retryable

    @pytest.mark.asyncio
    async def test_resolution_timeout(self, clock, navigations):
        resolver = HangingResolver()
        controller = make_controller(clock, navigations, resolver=resolver, resolve_timeout=0.01)

        session = await controller.start()

        assert session.phase is RedirectPhase.FAILED
        assert session.failure_reason is FailureReason.NETWORK_ERROR
        assert session.retryable
        assert resolver.cancelled


class TestEnrichment:
    """Test that metadata problems never block the redirect."""

    @pytest.mark.asyncio
    async def test_failing_enricher_keeps_fallback(self, clock, navigations):
        enricher = StubEnricher(error=RuntimeError("scraper down"))
        controller = make_controller(clock, navigations, enricher=enricher, countdown_seconds=2)

        await controller.start()
        await settle()

        assert controller.phase is RedirectPhase.READY
        assert controller.metadata == fallback_metadata(URL)

        await clock.advance(2)
        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_hanging_enricher_does_not_delay_countdown(self, clock, navigations):
        enricher = HangingEnricher()
        controller = make_controller(clock, navigations, enricher=enricher, countdown_seconds=3, metadata_timeout=None)

        await controller.start()
        await clock.advance(3)

        assert enricher.calls == [URL]
        assert navigations == [URL]
        assert controller.metadata == fallback_metadata(URL)
        await controller.close()

    @pytest.mark.asyncio
    async def test_metadata_timeout_keeps_fallback(self, clock, navigations):
        controller = make_controller(clock, navigations, enricher=HangingEnricher(), metadata_timeout=0.01)

        await controller.start()
        await asyncio.sleep(0.05)

        assert controller.phase is RedirectPhase.READY
        assert controller.metadata == fallback_metadata(URL)
        await controller.close()


class TestUserActions:
    """Test go now, cancel and retry."""

    @pytest.mark.asyncio
    async def test_go_now_skips_countdown(self, clock, navigations):
        controller = make_controller(clock, navigations)
        await controller.start()

        assert controller.go_now() is True
        assert controller.phase is RedirectPhase.REDIRECTING
        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_go_now_racing_the_last_tick_navigates_once(self, clock, navigations):
        controller = make_controller(clock, navigations, countdown_seconds=2)
        await controller.start()
        await clock.advance(1)

        assert controller.go_now() is True
        controller.tick()
        await clock.advance(2)
        assert controller.go_now() is False

        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_go_now_after_countdown_finished(self, clock, navigations):
        controller = make_controller(clock, navigations, countdown_seconds=1)
        await controller.start()
        await clock.advance(1)

        assert controller.go_now() is False
        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_go_now_while_loading_is_ignored(self, clock, navigations):
        controller = make_controller(clock, navigations, resolver=HangingResolver())
        task = asyncio.create_task(controller.start())
        await settle()

        assert controller.go_now() is False
        assert navigations == []

        controller.cancel()
        await task

    @pytest.mark.asyncio
    async def test_cancel_stops_the_countdown(self, clock, navigations):
        cancelled = []
        controller = make_controller(clock, navigations, on_cancel=lambda: cancelled.append(True))
        await controller.start()
        await clock.advance(2)

        assert controller.cancel() is True
        assert cancelled == [True]
        assert not controller.timer_running

        await clock.advance(10)
        assert controller.seconds_remaining == 3
        assert clock.pending == 0
        assert navigations == []

    @pytest.mark.asyncio
    async def test_cancel_while_loading(self, clock, navigations):
        resolver = HangingResolver()
        controller = make_controller(clock, navigations, resolver=resolver)
        task = asyncio.create_task(controller.start())
        await settle()
        assert controller.phase is RedirectPhase.LOADING

        assert controller.cancel() is True
        session = await task

        assert session.phase is RedirectPhase.LOADING
        assert resolver.cancelled
        assert navigations == []

    @pytest.mark.asyncio
    async def test_cancel_after_redirect_is_refused(self, clock, navigations):
        cancelled = []
        controller = make_controller(clock, navigations, on_cancel=lambda: cancelled.append(True))
        await controller.start()
        controller.go_now()

        assert controller.cancel() is False
        assert cancelled == []
        await controller.close()

    @pytest.mark.asyncio
    async def test_retry_after_network_error(self, clock, navigations):
        resolver = SequenceResolver(NetworkError(short_code="abc123"), make_link())
        controller = make_controller(clock, navigations, resolver=resolver, countdown_seconds=2)

        session = await controller.start()
        assert session.phase is RedirectPhase.FAILED
        assert session.retryable

        session = await controller.retry()
        assert session.phase is RedirectPhase.READY
        assert session.error_message is None
        assert session.seconds_remaining == 2

        await clock.advance(2)
        assert navigations == [URL]
        assert resolver.calls == ["abc123", "abc123"]
        await controller.close()

    @pytest.mark.asyncio
    async def test_retry_not_allowed_for_permanent_failures(self, clock, navigations):
        controller = make_controller(clock, navigations, resolver=StubResolver(error=LinkNotFoundError("abc123")))
        await controller.start()

        with pytest.raises(InvalidTransitionError):
            await controller.retry()

    @pytest.mark.asyncio
    async def test_retry_not_allowed_while_ready(self, clock, navigations):
        controller = make_controller(clock, navigations)
        await controller.start()

        with pytest.raises(InvalidTransitionError):
            await controller.retry()
        await controller.close()


class TestHooks:

    @pytest.mark.asyncio
    async def test_redirect_start_hook_sees_redirecting_snapshot(self, clock, navigations):
        snapshots = []
        controller = make_controller(clock, navigations, on_redirect_start=snapshots.append)
        await controller.start()
        controller.go_now()

        assert len(snapshots) == 1
        assert snapshots[0].phase is RedirectPhase.REDIRECTING
        assert snapshots[0].navigate_to == URL
        await controller.close()

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_block_navigation(self, clock, navigations):
        def hook(session):
            raise RuntimeError("analytics down")

        controller = make_controller(clock, navigations, on_redirect_start=hook)
        await controller.start()

        assert controller.go_now() is True
        assert navigations == [URL]
        await controller.close()

    @pytest.mark.asyncio
    async def test_close_silences_everything(self, clock, navigations):
        controller = make_controller(clock, navigations, enricher=HangingEnricher(), metadata_timeout=None)
        await controller.start()
        await controller.close()

        await clock.advance(10)
        controller.tick()
        assert controller.go_now() is False
        assert navigations == []
        assert controller.closed


class TestFailingCallbacks:
    """Test that host callbacks cannot break the state machine."""

    @pytest.mark.asyncio
    async def test_failing_on_cancel_still_cancels(self, clock, navigations):
        def on_cancel():
            raise RuntimeError("host gone")

        controller = make_controller(clock, navigations, on_cancel=on_cancel)
        await controller.start()

        assert controller.cancel() is True
        assert controller.closed
        assert not controller.timer_running

        await clock.advance(10)
        assert navigations == []

    @pytest.mark.asyncio
    async def test_failing_navigator_on_go_now(self, clock):
        def navigator(url):
            raise RuntimeError("navigation failed")

        controller = RedirectController(
            "abc123", StubResolver(make_link()), StubEnricher(), navigator, countdown_seconds=5, sleep=clock.sleep
        )
        await controller.start()

        assert controller.go_now() is True
        assert controller.phase is RedirectPhase.REDIRECTING
        assert controller.go_now() is False
        await controller.close()

    @pytest.mark.asyncio
    async def test_failing_navigator_inside_countdown(self, clock):
        attempts = []

        def navigator(url):
            attempts.append(url)
            raise RuntimeError("navigation failed")

        controller = RedirectController(
            "abc123", StubResolver(make_link()), StubEnricher(), navigator, countdown_seconds=1, sleep=clock.sleep
        )
        await controller.start()
        tasks = list(controller._tasks)

        await clock.advance(1)

        assert attempts == [URL]
        assert controller.phase is RedirectPhase.REDIRECTING
        for task in tasks:
            assert task.done()
            assert task.cancelled() or task.exception() is None
        await controller.close()


class TestSameTurnRace:

    @pytest.mark.asyncio
    async def test_go_now_in_the_turn_the_last_tick_fires(self, clock, navigations):
        controller = make_controller(clock, navigations, countdown_seconds=2)
        await controller.start()
        await clock.advance(1)
        assert controller.seconds_remaining == 1

        # Final tick is due but the timer task has not run yet
        clock.release()
        assert controller.go_now() is True
        await settle()

        assert navigations == [URL]
        assert controller.phase is RedirectPhase.REDIRECTING
        assert not controller.timer_running
        await controller.close()

    @pytest.mark.asyncio
    async def test_last_tick_wins_then_go_now_is_ignored(self, clock, navigations):
        controller = make_controller(clock, navigations, countdown_seconds=2)
        await controller.start()
        await clock.advance(1)

        clock.release()
        await asyncio.sleep(0)
        assert controller.go_now() is False
        await settle()

        assert navigations == [URL]
        await controller.close()
