"""
同步迴圈：固定間隔輪詢房間文件，並把結果以事件送給消費者

事件：
- RoomStateChanged(room)：每次輪詢成功都送，不做去重
- RoomGone(code)：房間不存在或沒有建立者，之後停止輪詢
- RoomSyncFailed(code, error)：store 暫時無法使用，下一次照常輪詢
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Union

from schemas import Room
from core.exceptions import StoreUnavailable
from core.room_store import RoomStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomStateChanged:
    room: Room


@dataclass(frozen=True)
class RoomGone:
    code: str


@dataclass(frozen=True)
class RoomSyncFailed:
    code: str
    error: StoreUnavailable


SyncEvent = Union[RoomStateChanged, RoomGone, RoomSyncFailed]


class RoomPoller:
    """
    單一房間的輪詢器（一個房間一個背景執行緒）

    參數：
        store: RoomStore
        code: 房間代碼
        sink: 接收事件的 callable（例如 queue.Queue.put）
        interval: 輪詢間隔（秒）
    """

    def __init__(self, store: RoomStore, code: str, sink: Callable[[SyncEvent], None], interval: float):
        self.store = store
        self.code = code
        self.sink = sink
        self.interval = interval
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        if self.running:
            return
        self.stop_event.clear()
        self.thread = threading.Thread(
            target=self._run, name=f"room-poller-{self.code}", daemon=True
        )
        self.thread.start()
        logger.info(f"Started polling room {self.code} every {self.interval:.2f}s")

    def stop(self, wait: bool = False):
        """停止輪詢；進行中的讀取不會被中斷，但結果不會再送出"""
        self.stop_event.set()
        if wait and self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=max(self.interval * 2, 1))

    def poll_once(self) -> bool:
        """
        執行一次輪詢

        返回：
            True 代表應該繼續輪詢
        """
        try:
            room = self.store.get(self.code)
        except StoreUnavailable as e:
            logger.warning(f"Polling room {self.code} failed: {e}")
            if not self.stop_event.is_set():
                self.sink(RoomSyncFailed(self.code, e))
            return True

        if self.stop_event.is_set():
            return False

        if room is None or not room.player_x_id:
            logger.info(f"Room {self.code} is gone, stopping poller")
            self.sink(RoomGone(self.code))
            return False

        self.sink(RoomStateChanged(room))
        return True

    def _run(self):
        # 先等一個間隔再讀，跟呼叫者剛寫入的狀態錯開
        while not self.stop_event.wait(self.interval):
            if not self.poll_once():
                break
        self.stop_event.set()
