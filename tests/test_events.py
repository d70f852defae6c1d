import pytest

from services.events import EventBus, WinnerRemovedEvent


@pytest.mark.asyncio
async def test_publish_reaches_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    async def async_handler(event):
        seen.append(("async", event.ticket_number))

    bus.subscribe(WinnerRemovedEvent, lambda event: seen.append(("sync", event.ticket_number)))
    bus.subscribe(WinnerRemovedEvent, async_handler)

    delivered = await bus.publish(WinnerRemovedEvent("w1", "Sam", "T1"))

    assert delivered == 2
    assert seen == [("sync", "T1"), ("async", "T1")]


@pytest.mark.asyncio
async def test_failing_handler_does_not_block_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("nope")

    bus.subscribe(WinnerRemovedEvent, broken)
    bus.subscribe(WinnerRemovedEvent, seen.append)

    assert await bus.publish(WinnerRemovedEvent("w1", "Sam", None)) == 1
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(WinnerRemovedEvent, seen.append)
    unsubscribe()

    assert await bus.publish(WinnerRemovedEvent("w1", "Sam", "T1")) == 0
    assert seen == []


def test_event_to_dict():
    assert WinnerRemovedEvent("w1", "Sam", "T1").to_dict() == {
        "wheelId": "w1",
        "displayName": "Sam",
        "ticketNumber": "T1",
    }
