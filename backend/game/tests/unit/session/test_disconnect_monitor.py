import asyncio

from game.session.disconnect_monitor import DisconnectionMonitor


class TestDisconnectionMonitor:
    async def test_expiry_reports_generation(self):
        expired = []

        async def on_expired(pid, generation):
            expired.append((pid, generation))

        monitor = DisconnectionMonitor("s", on_expired)
        generation = monitor.start_grace("alice", 0.02)
        assert monitor.is_pending("alice")
        await asyncio.sleep(0.06)
        assert expired == [("alice", generation)]
        assert monitor.is_current("alice", generation)

    async def test_second_start_keeps_running_timer(self):
        async def on_expired(_pid, _generation):
            pass

        monitor = DisconnectionMonitor("s", on_expired)
        assert monitor.start_grace("alice", 5) == 1
        assert monitor.start_grace("alice", 5) is None
        assert monitor.pending_count == 1
        monitor.cancel_all()

    async def test_cancel_makes_old_generation_stale(self):
        expired = []

        async def on_expired(pid, generation):
            expired.append((pid, generation))

        monitor = DisconnectionMonitor("s", on_expired)
        generation = monitor.start_grace("alice", 0.02)
        assert monitor.cancel_grace("alice")
        assert not monitor.is_current("alice", generation)
        await asyncio.sleep(0.05)
        assert expired == []
        assert not monitor.cancel_grace("alice")

    async def test_timers_are_per_participant(self):
        expired = []

        async def on_expired(pid, _generation):
            expired.append(pid)

        monitor = DisconnectionMonitor("s", on_expired)
        monitor.start_grace("alice", 0.02)
        monitor.start_grace("bob", 0.02)
        monitor.cancel_grace("alice")
        await asyncio.sleep(0.06)
        assert expired == ["bob"]
