import asyncio

import pytest

from wishboard.exceptions import InvalidText, NoWishSelected, StoreError, SubmissionInProgress
from wishboard.schemas.wish import FeedState
from wishboard.services.board import (
    CommentThreadController,
    SubmissionRegistry,
    WishFeedController,
    clean_text,
)


def make_feed(store, device_id="device-a", **kwargs):
    return WishFeedController(store, device_id, **kwargs)


async def afail(*args, **kwargs):
    raise StoreError()


class TestCleanText:
    def test_trims(self):
        assert clean_text("  hello  ", 10) == "hello"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_rejects_blank(self, text):
        with pytest.raises(InvalidText):
            clean_text(text, 10)

    def test_rejects_too_long(self):
        with pytest.raises(InvalidText):
            clean_text("x" * 11, 10)


class TestFeedLoading:
    async def test_starts_idle_and_ends_loaded(self, store):
        await store.create_wish("one")
        feed = make_feed(store)
        assert feed.state is FeedState.IDLE

        snapshot = await feed.load()

        assert snapshot.state is FeedState.LOADED
        assert [w.text for w in snapshot.wishes] == ["one"]

    async def test_failed_fetch_clears_feed(self, store, monkeypatch):
        await store.create_wish("one")
        feed = make_feed(store)
        await feed.load()

        monkeypatch.setattr(store, "list_wishes", afail)
        snapshot = await feed.load()

        assert snapshot.wishes == ()
        assert snapshot.state is FeedState.LOADED

    @pytest.mark.parametrize("batch", [True, False])
    async def test_stats_are_resolved_for_every_wish(self, store, batch):
        a = await store.create_wish("a")
        b = await store.create_wish("b")
        await store.toggle_upvote(a.id, "device-a")
        await store.toggle_upvote(a.id, "device-z")
        await store.create_comment(b.id, "nice")

        feed = make_feed(store, batch_aggregation=batch)
        await feed.load()

        assert feed.get(a.id).likes == 2
        assert feed.get(a.id).is_liked is True
        assert feed.get(b.id).comments == 1
        assert feed.get(b.id).is_liked is False

    async def test_failing_vote_count_degrades_only_that_wish(self, store, monkeypatch):
        broken = await store.create_wish("broken")
        healthy = await store.create_wish("healthy")
        for wish in (broken, healthy):
            await store.toggle_upvote(wish.id, "device-a")
        await store.create_comment(broken.id, "still counted")

        real_count = store.count_upvotes

        async def flaky_count(wish_id):
            if wish_id == broken.id:
                raise StoreError()
            return await real_count(wish_id)

        monkeypatch.setattr(store, "aggregate_stats", afail)
        monkeypatch.setattr(store, "count_upvotes", flaky_count)

        feed = make_feed(store)
        await feed.load()

        assert feed.get(broken.id).likes == 0
        assert feed.get(broken.id).is_liked is False
        assert feed.get(broken.id).comments == 1
        assert feed.get(healthy.id).likes == 1
        assert feed.get(healthy.id).is_liked is True
        assert feed.get(broken.id).degraded is True
        assert feed.get(healthy.id).degraded is False


class TestSubmitWish:
    async def test_submit_trims_and_reloads(self, store):
        feed = make_feed(store)
        await feed.load()

        wish = await feed.submit_wish("   peace and quiet  ")

        assert wish.text == "peace and quiet"
        assert [w.text for w in feed.snapshot().wishes] == ["peace and quiet"]
        assert feed.state is FeedState.LOADED
        assert feed.snapshot().confirmation is False

    async def test_blank_text_never_reaches_the_store(self, store, monkeypatch):
        calls = []

        async def spy(text):
            calls.append(text)

        monkeypatch.setattr(store, "create_wish", spy)
        feed = make_feed(store)

        with pytest.raises(InvalidText):
            await feed.submit_wish("    ")
        assert calls == []

    async def test_second_submission_while_in_flight_is_rejected(self, store, monkeypatch):
        gate = asyncio.Event()
        real_create = store.create_wish

        async def slow_create(text):
            await gate.wait()
            return await real_create(text)

        monkeypatch.setattr(store, "create_wish", slow_create)
        feed = make_feed(store)

        first = asyncio.create_task(feed.submit_wish("first"))
        await asyncio.sleep(0)
        assert feed.state is FeedState.SUBMITTING
        assert feed.snapshot().confirmation is True

        with pytest.raises(SubmissionInProgress):
            await feed.submit_wish("second")

        gate.set()
        await first
        assert feed.state is FeedState.LOADED
        assert [w.text for w in feed.snapshot().wishes] == ["first"]

    async def test_store_failure_keeps_previous_feed(self, store, monkeypatch):
        await store.create_wish("kept")
        feed = make_feed(store)
        await feed.load()

        monkeypatch.setattr(store, "create_wish", afail)
        with pytest.raises(StoreError):
            await feed.submit_wish("lost")

        assert feed.state is FeedState.LOADED
        assert [w.text for w in feed.snapshot().wishes] == ["kept"]
        assert feed.snapshot().confirmation is False

        # The guard is released after a failure.
        monkeypatch.undo()
        await feed.submit_wish("retry")
        assert feed.snapshot().wishes[0].text == "retry"

    async def test_guard_spans_controllers_of_the_same_device(self, store, monkeypatch):
        gate = asyncio.Event()
        real_create = store.create_wish

        async def slow_create(text):
            await gate.wait()
            return await real_create(text)

        monkeypatch.setattr(store, "create_wish", slow_create)
        submissions = SubmissionRegistry()
        first_request = make_feed(store, submissions=submissions)
        second_request = make_feed(store, submissions=submissions)
        other_device = make_feed(store, device_id="device-b", submissions=submissions)

        first = asyncio.create_task(first_request.submit_wish("first"))
        await asyncio.sleep(0)

        with pytest.raises(SubmissionInProgress):
            await second_request.submit_wish("second")
        assert (await second_request.load()).state is FeedState.SUBMITTING
        assert other_device.state is FeedState.IDLE

        gate.set()
        await first
        await second_request.submit_wish("second")
        assert [w.text for w in second_request.snapshot().wishes] == ["second", "first"]

    async def test_untracked_devices_do_not_block_each_other(self, store, monkeypatch):
        gate = asyncio.Event()
        real_create = store.create_wish

        async def slow_create(text):
            await gate.wait()
            return await real_create(text)

        monkeypatch.setattr(store, "create_wish", slow_create)
        submissions = SubmissionRegistry()
        a = make_feed(store, device_id="", submissions=submissions)
        b = make_feed(store, device_id="", submissions=submissions)

        pending = [asyncio.create_task(a.submit_wish("a")), asyncio.create_task(b.submit_wish("b"))]
        await asyncio.sleep(0)
        gate.set()
        await asyncio.gather(*pending)

        assert len(await store.list_wishes()) == 2

    async def test_confirmation_is_held_after_the_request_returns(self, store):
        submissions = SubmissionRegistry()
        feed = make_feed(store, submissions=submissions, confirmation_delay=0.2)

        await feed.submit_wish("shining")

        later = make_feed(store, submissions=submissions)
        during = await later.load()
        assert during.state is FeedState.SUBMITTING
        assert during.confirmation is True
        assert [w.text for w in during.wishes] == ["shining"]
        with pytest.raises(SubmissionInProgress):
            await later.submit_wish("too soon")

        await asyncio.sleep(0.3)
        after = later.snapshot()
        assert after.state is FeedState.LOADED
        assert after.confirmation is False


class TestToggleLike:
    async def test_optimistic_flip_then_reconcile(self, store, monkeypatch):
        wish = await store.create_wish("like me")
        feed = make_feed(store)
        await feed.load()

        seen = {}
        real_toggle = store.toggle_upvote

        async def watching_toggle(wish_id, voter_id):
            seen["during"] = feed.get(wish_id)
            return await real_toggle(wish_id, voter_id)

        monkeypatch.setattr(store, "toggle_upvote", watching_toggle)
        after = await feed.toggle_like(wish.id)

        assert seen["during"].is_liked is True
        assert seen["during"].likes == 1
        assert after.is_liked is True
        assert after.likes == 1
        assert await store.count_upvotes(wish.id) == 1

    async def test_toggle_twice_is_net_zero(self, store):
        wish = await store.create_wish("flip flop")
        feed = make_feed(store)
        await feed.load()

        await feed.toggle_like(wish.id)
        after = await feed.toggle_like(wish.id)

        assert after.likes == 0
        assert after.is_liked is False

    async def test_other_devices_are_unaffected(self, store):
        wish = await store.create_wish("shared")
        other = make_feed(store, device_id="device-b")
        await other.load()
        await other.toggle_like(wish.id)

        mine = make_feed(store, device_id="device-a")
        await mine.load()
        await mine.toggle_like(wish.id)
        await mine.toggle_like(wish.id)

        assert await store.has_upvoted(wish.id, "device-b") is True
        await other.load()
        assert other.get(wish.id).is_liked is True
        assert other.get(wish.id).likes == 1

    async def test_write_failure_is_repaired_by_reload(self, store, monkeypatch):
        wish = await store.create_wish("unlucky")
        feed = make_feed(store)
        await feed.load()

        monkeypatch.setattr(store, "toggle_upvote", afail)
        with pytest.raises(StoreError):
            await feed.toggle_like(wish.id)

        assert feed.get(wish.id).likes == 0
        assert feed.get(wish.id).is_liked is False
        assert feed.state is FeedState.LOADED

    async def test_without_device_identity_likes_stay_local(self, store):
        wish = await store.create_wish("untracked")
        feed = make_feed(store, device_id="")
        await feed.load()

        after = await feed.toggle_like(wish.id)

        assert after.is_liked is True
        assert after.likes == 1
        assert await store.count_upvotes(wish.id) == 0


class TestCommentThread:
    async def test_select_loads_newest_first(self, store):
        wish = await store.create_wish("chatty")
        await store.create_comment(wish.id, "older")
        await store.create_comment(wish.id, "newer")
        thread = CommentThreadController(store, make_feed(store))

        snapshot = await thread.select_wish(wish.id)

        assert snapshot.wish_id == wish.id
        assert [c.text for c in snapshot.comments] == ["newer", "older"]

    async def test_deselect_clears_thread(self, store):
        wish = await store.create_wish("chatty")
        await store.create_comment(wish.id, "hi")
        thread = CommentThreadController(store, make_feed(store))
        await thread.select_wish(wish.id)

        thread.deselect()

        assert thread.snapshot().wish_id is None
        assert thread.snapshot().comments == ()

    async def test_submit_refreshes_thread_and_badge(self, store):
        wish = await store.create_wish("ask me")
        feed = make_feed(store)
        await feed.load()
        thread = CommentThreadController(store, feed)
        await thread.select_wish(wish.id)

        await thread.submit_comment("  answered  ")

        assert [c.text for c in thread.snapshot().comments] == ["answered"]
        assert feed.get(wish.id).comments == 1

    async def test_submit_requires_selection(self, store):
        thread = CommentThreadController(store, make_feed(store))
        with pytest.raises(NoWishSelected):
            await thread.submit_comment("hello")

    async def test_submit_rejects_blank_text(self, store):
        wish = await store.create_wish("quiet")
        thread = CommentThreadController(store, make_feed(store))
        await thread.select_wish(wish.id)

        with pytest.raises(InvalidText):
            await thread.submit_comment("   ")
        assert await store.count_comments(wish.id) == 0

    async def test_failed_fetch_clears_thread(self, store, monkeypatch):
        wish = await store.create_wish("quiet")
        await store.create_comment(wish.id, "hidden")
        monkeypatch.setattr(store, "list_comments", afail)
        thread = CommentThreadController(store, make_feed(store))

        snapshot = await thread.select_wish(wish.id)

        assert snapshot.comments == ()
