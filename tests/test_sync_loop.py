import queue

from core.exceptions import StoreUnavailable
from core.room_manager import RoomManager
from core.sync_loop import RoomGone, RoomPoller, RoomStateChanged, RoomSyncFailed


class FlakyStore:
    """第一次讀取失敗，之後委派給真正的 store"""

    def __init__(self, store):
        self.store = store
        self.failures = 1

    def get(self, code):
        if self.failures:
            self.failures -= 1
            raise StoreUnavailable("connection reset")
        return self.store.get(code)


def test_every_poll_emits_an_event(store):
    RoomManager.create_room(store, "AB3D", "p1", "Alice", False)
    events = []
    poller = RoomPoller(store, "AB3D", events.append, interval=60)

    assert poller.poll_once() is True
    assert poller.poll_once() is True
    assert len(events) == 2
    assert all(isinstance(event, RoomStateChanged) for event in events)
    assert events[0].room == events[1].room


def test_deleted_room_emits_gone(store):
    RoomManager.create_room(store, "AB3D", "p1", "Alice", False)
    events = []
    poller = RoomPoller(store, "AB3D", events.append, interval=60)

    store.delete("AB3D")
    assert poller.poll_once() is False
    assert events == [RoomGone("AB3D")]


def test_document_without_creator_is_gone(store, put_raw):
    put_raw("AB3D", {"player_x_id": "", "status": "playing"})
    events = []
    RoomPoller(store, "AB3D", events.append, interval=60).poll_once()
    assert events == [RoomGone("AB3D")]


def test_store_failure_keeps_polling(store):
    RoomManager.create_room(store, "AB3D", "p1", "Alice", False)
    events = []
    poller = RoomPoller(FlakyStore(store), "AB3D", events.append, interval=60)

    assert poller.poll_once() is True
    assert poller.poll_once() is True
    assert isinstance(events[0], RoomSyncFailed)
    assert isinstance(events[1], RoomStateChanged)


def test_stopped_poller_emits_nothing(store):
    RoomManager.create_room(store, "AB3D", "p1", "Alice", False)
    events = []
    poller = RoomPoller(store, "AB3D", events.append, interval=60)
    poller.stop()
    assert poller.poll_once() is False
    assert events == []


def test_background_thread_polls_until_room_is_gone(store):
    RoomManager.create_room(store, "AB3D", "p1", "Alice", False)
    events = queue.Queue()
    poller = RoomPoller(store, "AB3D", events.put, interval=0.01)
    poller.start()
    try:
        first = events.get(timeout=5)
        assert isinstance(first, RoomStateChanged)
        assert first.room.code == "AB3D"

        store.delete("AB3D")
        event = first
        while not isinstance(event, RoomGone):
            event = events.get(timeout=5)

        poller.thread.join(timeout=5)
        assert not poller.running
    finally:
        poller.stop(wait=True)
