"""Tests for the single-slot debouncer and the write suppressor."""

import threading

from aitasks.debounce import Debouncer, EventKind, WriteSuppressor


class TestDebouncer:
    def test_burst_collapses_to_last_event(self, timer_cls):
        calls = []
        debouncer = Debouncer(lambda path, kind: calls.append((path, kind)), 0.3, timer_cls)

        debouncer.submit("/f/a.md", EventKind.CHANGED)
        debouncer.submit("/f/a.md", EventKind.CHANGED)
        debouncer.submit("/f/a.md", EventKind.DELETED)

        timers = timer_cls.created
        assert len(timers) == 3
        assert [t.cancelled for t in timers] == [True, True, False]
        assert all(t.interval == 0.3 and t.daemon for t in timers)

        for t in timers:
            t.fire()
        assert calls == [("/f/a.md", EventKind.DELETED)]
        assert debouncer.pending is None

    def test_unrelated_paths_share_the_slot(self, timer_cls):
        calls = []
        debouncer = Debouncer(lambda path, kind: calls.append(path), 0.3, timer_cls)
        debouncer.submit("/f/a.md", EventKind.CHANGED)
        debouncer.submit("/f/b.md", EventKind.CREATED)
        timer_cls.created[-1].fire()
        assert calls == ["/f/b.md"]

    def test_flush_runs_pending_now(self, timer_cls):
        calls = []
        debouncer = Debouncer(lambda path, kind: calls.append(path), 0.3, timer_cls)
        assert debouncer.flush() is False

        debouncer.submit("/f/a.md", EventKind.CHANGED)
        assert debouncer.pending == ("/f/a.md", EventKind.CHANGED)
        assert debouncer.flush() is True
        assert calls == ["/f/a.md"]
        assert timer_cls.created[-1].cancelled

    def test_cancel_drops_pending(self, timer_cls):
        calls = []
        debouncer = Debouncer(lambda path, kind: calls.append(path), 0.3, timer_cls)
        debouncer.submit("/f/a.md", EventKind.CHANGED)
        debouncer.cancel()
        timer_cls.created[-1].fire()
        assert calls == []
        assert debouncer.pending is None

    def test_superseded_timer_already_running_does_nothing(self, timer_cls):
        calls = []
        debouncer = Debouncer(lambda path, kind: calls.append(path), 0.3, timer_cls)
        debouncer.submit("/f/a.md", EventKind.CHANGED)
        stale = timer_cls.created[0]
        debouncer.submit("/f/b.md", EventKind.CHANGED)

        # the stale thread got past cancel() and runs its callback anyway
        stale.function()

        assert calls == []
        assert debouncer.pending == ("/f/b.md", EventKind.CHANGED)
        timer_cls.created[-1].fire()
        assert calls == ["/f/b.md"]

    def test_real_timer_fires_after_quiet_interval(self):
        fired = threading.Event()
        seen = []

        def callback(path, kind):
            seen.append((path, kind))
            fired.set()

        debouncer = Debouncer(callback, 0.01)
        debouncer.submit("/f/a.md", EventKind.CREATED)
        debouncer.submit("/f/a.md", EventKind.CHANGED)
        assert fired.wait(2.0)
        assert seen == [("/f/a.md", EventKind.CHANGED)]


class TestWriteSuppressor:
    def test_window_expires(self, fake_clock):
        suppressor = WriteSuppressor(1.0, fake_clock)
        suppressor.mark("/f/a.md")

        assert suppressor.is_suppressed("/f/a.md")
        assert suppressor.is_suppressed("/F/A.md")
        assert not suppressor.is_suppressed("/f/b.md")

        fake_clock.advance(0.99)
        assert suppressor.is_suppressed("/f/a.md")
        fake_clock.advance(0.02)
        assert not suppressor.is_suppressed("/f/a.md")

    def test_remark_extends_window(self, fake_clock):
        suppressor = WriteSuppressor(1.0, fake_clock)
        suppressor.mark("/f/a.md")
        fake_clock.advance(0.8)
        suppressor.mark("/f/a.md")
        fake_clock.advance(0.8)
        assert suppressor.is_suppressed("/f/a.md")
