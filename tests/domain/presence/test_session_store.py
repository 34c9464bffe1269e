"""Tests for SessionStore registration, liveness and eviction."""

import asyncio

from solitude.domain.presence import SessionOrigin, SessionStore, SessionStream, TouchResult
from tests.fixtures.presence_fixtures import FakeClock


class TestRegister:
    """Tests for SessionStore.register."""

    async def test_register_creates_record(self, session_store: SessionStore):
        """First registration creates exactly one record."""
        result = await session_store.register("a")

        assert result.created is True
        assert result.count == 1
        assert result.displaced is None
        assert await session_store.size() == 1

    async def test_reregister_refreshes_instead_of_duplicating(
        self, session_store: SessionStore, fake_clock: FakeClock
    ):
        """Registering the same id twice keeps one record and refreshes last_seen."""
        await session_store.register("a")
        fake_clock.advance(7)

        result = await session_store.register("a")

        assert result.created is False
        assert result.count == 1
        records = await session_store.snapshot()
        assert len(records) == 1
        assert records[0].last_seen == fake_clock.now

    async def test_register_attaches_stream_and_origin(self, session_store: SessionStore):
        """Stream and origin metadata are stored on the record."""
        stream = SessionStream("a")
        origin = SessionOrigin(address="10.0.0.1", user_agent="pytest")

        await session_store.register("a", stream=stream, origin=origin)

        records = await session_store.snapshot()
        assert records[0].stream is stream
        assert records[0].has_open_stream is True
        assert records[0].origin == origin

    async def test_new_stream_displaces_and_closes_old_one(self, session_store: SessionStore):
        """A re-registration with a new stream closes the previous stream."""
        old_stream = SessionStream("a")
        new_stream = SessionStream("a")
        await session_store.register("a", stream=old_stream)

        result = await session_store.register("a", stream=new_stream)

        assert result.displaced is old_stream
        assert old_stream.closed is True
        assert new_stream.closed is False

    async def test_register_without_stream_keeps_existing_stream(self, session_store: SessionStore):
        """Refreshing without a stream does not detach the current one."""
        stream = SessionStream("a")
        await session_store.register("a", stream=stream)

        result = await session_store.register("a")

        assert result.displaced is None
        records = await session_store.snapshot()
        assert records[0].stream is stream


class TestTouch:
    """Tests for SessionStore.touch."""

    async def test_touch_refreshes_known_session(
        self, session_store: SessionStore, fake_clock: FakeClock
    ):
        """Touch moves last_seen forward for an existing record."""
        await session_store.register("a")
        fake_clock.advance(4)

        assert await session_store.touch("a") is TouchResult.REFRESHED

        records = await session_store.snapshot()
        assert records[0].last_seen == fake_clock.now

    async def test_touch_unknown_session_does_not_create(self, session_store: SessionStore):
        """Touch for an unknown id reports NOT_FOUND and leaves the store empty."""
        assert await session_store.touch("ghost") is TouchResult.NOT_FOUND
        assert await session_store.size() == 0


class TestRemove:
    """Tests for SessionStore.remove, remove_with_stream and detach."""

    async def test_remove_is_idempotent(self, session_store: SessionStore):
        """Removing twice succeeds once and is a no-op the second time."""
        await session_store.register("a")

        assert await session_store.remove("a") is True
        assert await session_store.remove("a") is False
        assert await session_store.size() == 0

    async def test_remove_closes_stream(self, session_store: SessionStore):
        """The attached stream is closed when its record is removed."""
        stream = SessionStream("a")
        await session_store.register("a", stream=stream)

        await session_store.remove("a")

        assert stream.closed is True

    async def test_remove_with_stream_ignores_replaced_stream(self, session_store: SessionStore):
        """A stale stream cannot remove a record that now holds a newer stream."""
        old_stream = SessionStream("a")
        new_stream = SessionStream("a")
        await session_store.register("a", stream=old_stream)
        await session_store.register("a", stream=new_stream)

        assert await session_store.remove_with_stream("a", old_stream) is False
        assert await session_store.size() == 1

        assert await session_store.remove_with_stream("a", new_stream) is True
        assert await session_store.size() == 0

    async def test_detach_keeps_record(self, session_store: SessionStore):
        """Detach clears the handle but the session stays registered."""
        stream = SessionStream("a")
        await session_store.register("a", stream=stream)

        assert await session_store.detach("a", stream) is True

        records = await session_store.snapshot()
        assert len(records) == 1
        assert records[0].stream is None
        assert stream.closed is True


class TestEvictStale:
    """Tests for SessionStore.evict_stale."""

    async def test_evicts_only_sessions_past_threshold(
        self, session_store: SessionStore, fake_clock: FakeClock
    ):
        """Sessions idle longer than the threshold go, fresh ones stay."""
        await session_store.register("old")
        fake_clock.advance(10)
        await session_store.register("fresh")
        fake_clock.advance(6)

        evicted = await session_store.evict_stale(15)

        assert evicted == ["old"]
        assert await session_store.size() == 1

    async def test_exactly_at_threshold_is_kept(
        self, session_store: SessionStore, fake_clock: FakeClock
    ):
        """Idle time equal to the threshold is not yet stale."""
        await session_store.register("a")
        fake_clock.advance(15)

        assert await session_store.evict_stale(15) == []
        assert await session_store.size() == 1

    async def test_eviction_closes_stream(self, session_store: SessionStore, fake_clock: FakeClock):
        stream = SessionStream("a")
        await session_store.register("a", stream=stream)
        fake_clock.advance(20)

        await session_store.evict_stale(15)

        assert stream.closed is True


class TestForEachOpenStream:
    """Tests for SessionStore.for_each_open_stream."""

    async def test_visits_only_records_with_streams(self, session_store: SessionStore):
        """Records without a stream handle are skipped."""
        await session_store.register("a", stream=SessionStream("a"))
        await session_store.register("b")
        visited = []

        count = await session_store.for_each_open_stream(lambda sid, stream: visited.append(sid))

        assert count == 1
        assert visited == ["a"]

    async def test_callback_may_use_store(self, session_store: SessionStore):
        """The callback runs outside the lock, so it can schedule store work."""
        await session_store.register("a", stream=SessionStream("a"))
        tasks = []

        await session_store.for_each_open_stream(
            lambda sid, stream: tasks.append(asyncio.ensure_future(session_store.size()))
        )

        assert await asyncio.wait_for(tasks[0], timeout=1) == 1


class TestSizeInvariant:
    """size() always matches the set of live, non-removed sessions."""

    async def test_mixed_sequence(self, session_store: SessionStore, fake_clock: FakeClock):
        expected: set[str] = set()

        for session_id in ("a", "b", "c", "a"):
            await session_store.register(session_id)
            expected.add(session_id)
            assert await session_store.size() == len(expected)

        await session_store.touch("zzz")
        assert await session_store.size() == len(expected)

        await session_store.remove("b")
        expected.discard("b")
        assert await session_store.size() == len(expected)

        fake_clock.advance(10)
        await session_store.touch("c")
        fake_clock.advance(10)
        evicted = await session_store.evict_stale(15)
        expected.difference_update(evicted)

        assert evicted == ["a"]
        assert await session_store.size() == len(expected) == 1
