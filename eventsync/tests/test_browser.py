"""Tests for the event browser."""

import asyncio

import pytest

from eventsync.browser import CancellationToken, EventBrowser
from eventsync.errors import NetworkError
from eventsync.models.entities import Entity, FilterCriteria


@pytest.fixture
def browser(cache):
    return EventBrowser(cache)


def test_cancellation_token():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled


class TestCriteria:
    """Tests for criteria updates."""

    def test_search_and_categories(self, browser):
        browser.set_search("jazz")
        browser.toggle_category(1)
        browser.toggle_category("2")
        assert browser.criteria == FilterCriteria(search_text="jazz", selected_category_ids=["1", "2"])

        browser.set_categories([])
        assert browser.criteria.selected_category_ids == frozenset()

    def test_clear_filters(self, browser):
        browser.set_search("art")
        browser.set_categories([2])
        browser.clear_filters()
        assert browser.criteria.is_empty


class TestRefresh:
    """Tests for refresh."""

    @pytest.mark.asyncio
    async def test_refresh_applies_filter(self, browser, store, sample_events):
        store.list.return_value = sample_events

        assert await browser.refresh() == sample_events

        browser.set_search("JAZZ")
        visible = await browser.refresh()

        assert [event.id for event in visible] == [1]
        assert browser.visible == visible
        store.list.assert_awaited_once_with(Entity.EVENTS)

    @pytest.mark.asyncio
    async def test_superseded_refresh_discarded(self, browser, store, sample_events):
        gate = asyncio.Event()

        async def slow_list(entity):
            await gate.wait()
            return sample_events

        store.list.side_effect = slow_list

        stale = asyncio.ensure_future(browser.refresh())
        await asyncio.sleep(0)
        browser.set_categories(["2"])
        current = asyncio.ensure_future(browser.refresh())
        await asyncio.sleep(0)
        gate.set()

        assert await stale is None
        assert [event.id for event in await current] == [2]
        assert [event.id for event in browser.visible] == [2]
        assert store.list.await_count == 1

    @pytest.mark.asyncio
    async def test_criteria_change_cancels_pending(self, browser, store, sample_events):
        gate = asyncio.Event()

        async def slow_list(entity):
            await gate.wait()
            return sample_events

        store.list.side_effect = slow_list

        pending = asyncio.ensure_future(browser.refresh())
        await asyncio.sleep(0)
        browser.set_search("art")
        gate.set()

        assert await pending is None
        assert browser.visible == []

    @pytest.mark.asyncio
    async def test_superseded_failure_discarded(self, browser, store, sample_events):
        gate = asyncio.Event()

        async def failing_list(entity):
            await gate.wait()
            raise NetworkError("down")

        store.list.side_effect = failing_list

        pending = asyncio.ensure_future(browser.refresh())
        await asyncio.sleep(0)
        browser.set_search("jazz")
        gate.set()

        assert await pending is None
        assert browser.visible == []

        store.list.side_effect = None
        store.list.return_value = sample_events
        assert [event.id for event in await browser.refresh()] == [1]

    @pytest.mark.asyncio
    async def test_failure_raised_to_current_refresh(self, browser, store):
        store.list.side_effect = NetworkError("down")

        with pytest.raises(NetworkError):
            await browser.refresh()

        assert browser.visible == []

    @pytest.mark.asyncio
    async def test_close_discards_response(self, browser, store, sample_events):
        gate = asyncio.Event()

        async def slow_list(entity):
            await gate.wait()
            return sample_events

        store.list.side_effect = slow_list

        pending = asyncio.ensure_future(browser.refresh())
        await asyncio.sleep(0)
        browser.close()
        gate.set()

        assert await pending is None
        assert browser.visible == []

    @pytest.mark.asyncio
    async def test_refresh_after_invalidation_refetches(self, browser, store, cache, sample_events):
        store.list.return_value = sample_events
        await browser.refresh()

        cache.invalidate(Entity.EVENTS)
        store.list.return_value = sample_events[1:]

        assert [event.id for event in await browser.refresh()] == [2]
        assert store.list.await_count == 2

    @pytest.mark.asyncio
    async def test_categories(self, browser, store, sample_categories):
        store.list.return_value = sample_categories
        assert await browser.categories() == sample_categories
        store.list.assert_awaited_once_with(Entity.CATEGORIES)
