# tests/infrastructure/test_subscription.py
import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from ui_actionable.configs.models import ChannelSettings
from ui_actionable.core.exceptions import (
    DoubleReservationError,
    ReentrantDetachError,
    SubscriptionDisposedError,
)
from ui_actionable.domain.action import ActionEnvelope, SlotState
from ui_actionable.infrastructure.action_channel.memory_action_channel import MemoryActionChannel
from ui_actionable.infrastructure.action_channel.subscription import ActionSubscription


async def _never_completes(payload):
    await asyncio.Event().wait()


def test_subscription_needs_a_listener():
    with pytest.raises(ValueError):
        ActionSubscription()


class TestAttach:
    """attach() is idempotent per channel instance and detaches on change."""

    def test_attach_same_channel_twice_registers_once(self):
        channel = MemoryActionChannel()
        sub = ActionSubscription(listener=print)

        sub.attach(channel)
        sub.attach(channel)

        assert sub.channel is channel
        assert channel.subscriber_count == 1

    def test_attach_new_channel_moves_registration(self):
        old, new = MemoryActionChannel(), MemoryActionChannel()
        sub = ActionSubscription(listener=print)

        sub.attach(old)
        sub.attach(new)

        assert sub.channel is new
        assert old.subscriber_count == 0
        assert new.subscriber_count == 1

    def test_detach_without_channel_is_harmless(self):
        sub = ActionSubscription(listener=print)

        sub.detach()

        assert not sub.is_attached

    def test_disposed_subscription_cannot_attach(self):
        sub = ActionSubscription(listener=print)
        sub.dispose()
        sub.dispose()

        assert sub.is_disposed
        with pytest.raises(SubscriptionDisposedError):
            sub.attach(MemoryActionChannel())


@pytest.mark.asyncio
async def test_reattaching_releases_reservations_on_the_old_channel():
    old, new = MemoryActionChannel(), MemoryActionChannel()
    sub = ActionSubscription(completable_listener=_never_completes)
    sub.attach(old)

    pending = asyncio.create_task(old.emit('stall'))
    await asyncio.sleep(0)
    assert sub.outstanding_count == 1

    sub.attach(new)

    assert await asyncio.wait_for(pending, timeout=1) is None
    assert sub.outstanding_count == 0


@pytest.mark.asyncio
async def test_dispose_releases_every_outstanding_reservation():
    channel = MemoryActionChannel()
    sub = ActionSubscription(completable_listener=_never_completes)
    sub.attach(channel)

    pending = [asyncio.create_task(channel.emit(n)) for n in range(3)]
    await asyncio.sleep(0)
    assert sub.outstanding_count == 3

    sub.dispose()

    assert await asyncio.wait_for(asyncio.gather(*pending), timeout=1) == [None, None, None]


@pytest.mark.asyncio
async def test_dispose_cancels_running_handlers():
    channel = MemoryActionChannel()
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def handler(payload):
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    sub = ActionSubscription(completable_listener=handler)
    sub.attach(channel)
    pending = asyncio.create_task(channel.emit('x'))
    await asyncio.wait_for(started.wait(), timeout=1)

    sub.dispose()

    assert await asyncio.wait_for(pending, timeout=1) is None
    await asyncio.wait_for(cancelled.wait(), timeout=1)


@pytest.mark.asyncio
async def test_completed_reservations_are_not_swept_again():
    channel = MemoryActionChannel()
    sub = ActionSubscription(completable_listener=lambda payload: 'done')
    sub.attach(channel)

    assert await channel.emit('x') == 'done'
    assert sub.outstanding_count == 0

    sub.detach()


@pytest.mark.asyncio
async def test_handler_errors_abandon_the_slot(caplog):
    channel = MemoryActionChannel()

    async def broken(payload):
        raise RuntimeError('dialog failed')

    sub = ActionSubscription(completable_listener=broken)
    sub.attach(channel)

    assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
    assert sub.outstanding_count == 0
    assert any('dialog failed' in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_sync_handler_errors_abandon_the_slot():
    channel = MemoryActionChannel()

    def broken(payload):
        raise ValueError('bad payload')

    sub = ActionSubscription(completable_listener=broken)
    sub.attach(channel)

    assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
    assert sub.outstanding_count == 0


@pytest.mark.asyncio
async def test_async_plain_listener_runs():
    channel = MemoryActionChannel()
    seen = []

    async def listener(payload):
        seen.append(payload)

    ActionSubscription(listener=listener).attach(channel)

    assert await channel.emit('x') is None
    await asyncio.sleep(0)
    assert seen == ['x']


@pytest.mark.asyncio
async def test_both_listeners_run_for_every_action():
    channel = MemoryActionChannel()
    plain = MagicMock()
    sub = ActionSubscription(listener=plain, completable_listener=lambda payload: payload * 10)
    sub.attach(channel)

    assert await channel.emit(1) == 10
    assert await channel.emit(2) == 20
    assert [c.args for c in plain.call_args_list] == [(1,), (2,)]


class TestReservationDefects:
    def test_same_subscription_requesting_twice(self, caplog):
        caplog.set_level(logging.WARNING)
        handler = MagicMock(return_value='x')
        sub = ActionSubscription(completable_listener=handler)
        sub.attach(MemoryActionChannel())
        envelope = ActionEnvelope('a')

        sub.on_action(envelope)
        sub.on_action(envelope)

        assert handler.call_count == 1
        assert envelope.state is SlotState.FULFILLED
        assert any('DoubleReservationError' in r.getMessage() for r in caplog.records)

    def test_same_subscription_requesting_twice_in_debug(self):
        sub = ActionSubscription(completable_listener=lambda payload: 'x', debug=True)
        sub.attach(MemoryActionChannel())
        envelope = ActionEnvelope('a')
        sub.on_action(envelope)

        with pytest.raises(DoubleReservationError):
            sub.on_action(envelope)


@pytest.mark.asyncio
async def test_second_reserver_in_debug_fails_loudly():
    channel = MemoryActionChannel(ChannelSettings(debug=True))
    ActionSubscription(completable_listener=lambda payload: 1, debug=True).attach(channel)
    ActionSubscription(completable_listener=lambda payload: 2, debug=True).attach(channel)

    with pytest.raises(DoubleReservationError):
        await channel.emit('race')


class TestReentrantDetach:
    @pytest.mark.asyncio
    async def test_detaching_from_inside_the_callback_is_reported(self, caplog):
        caplog.set_level(logging.WARNING)
        channel = MemoryActionChannel()
        sub = ActionSubscription(listener=lambda payload: sub.detach())
        sub.attach(channel)

        await channel.emit('x')

        assert channel.subscriber_count == 0
        assert any('ReentrantDetachError' in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_detaching_from_inside_the_callback_raises_in_debug(self):
        channel = MemoryActionChannel()
        sub = ActionSubscription(listener=lambda payload: sub.detach(), debug=True)
        sub.attach(channel)

        with pytest.raises(ReentrantDetachError):
            await channel.emit('x')

    @pytest.mark.asyncio
    async def test_detaching_later_from_a_task_is_fine(self, caplog):
        caplog.set_level(logging.WARNING)
        channel = MemoryActionChannel()

        async def listener(payload):
            sub.detach()

        sub = ActionSubscription(listener=listener, debug=True)
        sub.attach(channel)

        await channel.emit('x')
        await asyncio.sleep(0)

        assert channel.subscriber_count == 0
        assert not any('ReentrantDetachError' in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_liveness_under_mixed_attach_detach_and_emit():
    channels = [MemoryActionChannel(), MemoryActionChannel()]
    subs = [ActionSubscription(completable_listener=_never_completes) for _ in range(3)]
    pending = []

    for round_no in range(4):
        for i, sub in enumerate(subs):
            sub.attach(channels[(round_no + i) % 2])
        pending.extend(asyncio.create_task(ch.emit(round_no)) for ch in channels)
        await asyncio.sleep(0)

    for sub in subs:
        sub.dispose()

    results = await asyncio.wait_for(asyncio.gather(*pending), timeout=2)
    assert results == [None] * len(pending)


class TestTeardownDuringFanOut:
    """Subscriptions torn down by another subscription while an action is being delivered."""

    @pytest.mark.asyncio
    async def test_subscription_disposed_by_an_earlier_listener_does_not_reserve(self):
        channel = MemoryActionChannel()
        victim = ActionSubscription(completable_listener=_never_completes)
        ActionSubscription(listener=lambda payload: victim.dispose()).attach(channel)
        victim.attach(channel)

        assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
        assert victim.is_disposed
        assert victim.outstanding_count == 0
        assert channel.get_stats()['unreserved'] == 1

    @pytest.mark.asyncio
    async def test_subscription_detached_by_an_earlier_listener_is_skipped(self):
        channel = MemoryActionChannel()
        handler = MagicMock(return_value='late')
        victim = ActionSubscription(completable_listener=handler)
        ActionSubscription(listener=lambda payload: victim.detach()).attach(channel)
        victim.attach(channel)

        assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
        handler.assert_not_called()
        assert channel.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_closing_the_channel_from_a_listener(self):
        channel = MemoryActionChannel(ChannelSettings(debug=True))
        handler = MagicMock(return_value='late')
        ActionSubscription(listener=lambda payload: channel.close(), debug=True).attach(channel)
        later = ActionSubscription(completable_listener=handler, debug=True)
        later.attach(channel)

        assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
        handler.assert_not_called()
        assert channel.is_closed
        assert not later.is_attached
        assert channel.get_stats()['defects'] == 0

    @pytest.mark.asyncio
    async def test_own_listener_closing_the_channel_skips_the_reservation(self):
        channel = MemoryActionChannel(ChannelSettings(debug=True))
        handler = MagicMock(return_value='late')
        sub = ActionSubscription(listener=lambda payload: channel.close(), completable_listener=handler, debug=True)
        sub.attach(channel)

        assert await asyncio.wait_for(channel.emit('x'), timeout=1) is None
        handler.assert_not_called()
        assert sub.outstanding_count == 0
