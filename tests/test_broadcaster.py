"""
tests/test_broadcaster.py — Change Broadcaster Unit Tests
==========================================================
"""

from __future__ import annotations

from unittest.mock import MagicMock

from vriksha.engine.broadcaster import ChangeBroadcaster


class TestSubscribeNotify:
    def test_callbacks_run_in_registration_order(self):
        b = ChangeBroadcaster()
        calls = []
        b.subscribe(lambda: calls.append("first"))
        b.subscribe(lambda: calls.append("second"))
        b.subscribe(lambda: calls.append("third"))

        b.notify()

        assert calls == ["first", "second", "third"]

    def test_no_observers_is_a_noop(self):
        ChangeBroadcaster().notify()

    def test_unsubscribe_stops_callbacks(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        unsubscribe = b.subscribe(cb)
        unsubscribe()

        b.notify()

        cb.assert_not_called()
        assert b.observer_count == 0

    def test_unsubscribe_is_idempotent(self):
        b = ChangeBroadcaster()
        unsubscribe = b.subscribe(MagicMock())
        unsubscribe()
        unsubscribe()
        assert b.observer_count == 0

    def test_same_callable_twice_gets_two_registrations(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        b.subscribe(cb)
        b.subscribe(cb)
        b.notify()
        assert cb.call_count == 2


class TestMutationDuringRound:
    def test_unsubscribing_a_later_observer_skips_it_this_round(self):
        b = ChangeBroadcaster()
        later = MagicMock()
        handles = {}

        def first():
            handles["later"]()

        b.subscribe(first)
        handles["later"] = b.subscribe(later)

        b.notify()

        later.assert_not_called()

    def test_self_unsubscribe_does_not_crash(self):
        b = ChangeBroadcaster()
        other = MagicMock()
        handles = {}

        def once():
            handles["once"]()

        handles["once"] = b.subscribe(once)
        b.subscribe(other)

        b.notify()
        b.notify()

        assert other.call_count == 2
        assert b.observer_count == 1

    def test_subscribe_during_round_takes_effect_next_round(self):
        b = ChangeBroadcaster()
        newcomer = MagicMock()
        b.subscribe(lambda: b.subscribe(newcomer) if b.observer_count == 1 else None)

        b.notify()
        newcomer.assert_not_called()

        b.notify()
        newcomer.assert_called_once()

    def test_failing_observer_does_not_block_the_rest(self, caplog):
        b = ChangeBroadcaster()
        after = MagicMock()
        b.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        b.subscribe(after)

        b.notify()

        after.assert_called_once()
        assert "Change observer" in caplog.text


class TestBatch:
    def test_batch_collapses_notifications(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        b.subscribe(cb)

        with b.batch():
            b.notify()
            b.notify()
            b.notify()
            cb.assert_not_called()

        cb.assert_called_once()

    def test_nested_batches_flush_once_at_outermost_exit(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        b.subscribe(cb)

        with b.batch():
            with b.batch():
                b.notify()
            cb.assert_not_called()
            b.notify()

        cb.assert_called_once()

    def test_empty_batch_sends_nothing(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        b.subscribe(cb)

        with b.batch():
            pass

        cb.assert_not_called()

    def test_batch_flushes_even_when_block_raises(self):
        b = ChangeBroadcaster()
        cb = MagicMock()
        b.subscribe(cb)

        try:
            with b.batch():
                b.notify()
                raise ValueError("abort")
        except ValueError:
            pass

        cb.assert_called_once()
