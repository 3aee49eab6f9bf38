"""
Game Session：單一客戶端的工作階段

負責把「使用者輸入」和「同步事件」轉成對 RoomManager 的呼叫：
- 所有 store 操作都丟到背景執行緒，不卡住輸入處理
- 同一時間最多一個進行中的操作（busy），結果回來前不接受新的操作
- 本地的 Room 快取每次收到事件就整份替換，落子時用最新快取
- 離開房間後，舊房間的事件和操作結果一律丟棄（generation）

使用方式：
    session = GameSession(store, participant_id, "Alice")
    session.create_room(is_public=True)
    while running:
        session.pump()      # 在輸入迴圈裡定期呼叫
        ...
"""
import enum
import logging
import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from database import settings
from models import Mark, RoomStatus, RestartRule
from schemas import Room
from core.room_manager import RoomManager
from core.room_store import RoomStore
from core.sync_loop import RoomPoller, RoomStateChanged, RoomGone, RoomSyncFailed
from services.naming_service import clean_player_name, normalize_room_code, new_participant_id

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    MENU = "menu"
    LOBBY = "lobby"
    GAME = "game"


@dataclass(frozen=True)
class MutationDone:
    action: str
    future: Future


class GameSession:
    """
    參數：
        store: RoomStore
        participant_id: 傳輸層給的參與者 ID（空字串時自動產生）
        name: 顯示名稱
        interval: 輪詢間隔（秒），預設 settings.sync_interval_ms
        executor: 執行 store 操作的 Executor，預設單一背景執行緒
    """

    def __init__(
        self,
        store: RoomStore,
        participant_id: str,
        name: str,
        interval: Optional[float] = None,
        executor: Optional[Executor] = None
    ):
        self.store = store
        self.participant_id = participant_id or new_participant_id()
        self.name = clean_player_name(name)
        self.interval = interval if interval is not None else settings.sync_interval_ms / 1000
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="room-mutation")
        self.events: "queue.Queue" = queue.Queue()

        self.state = SessionState.MENU
        self.room: Optional[Room] = None
        self.side: Optional[Mark] = None
        self.public_rooms: List[Room] = []
        self.error: Optional[str] = None
        self.sync_error: Optional[str] = None
        self.busy = False
        self.generation = 0
        self.poller: Optional[RoomPoller] = None

    # ============ 使用者操作 ============

    @property
    def is_host(self) -> bool:
        return self.side == Mark.X

    @property
    def my_turn(self) -> bool:
        return (
            self.room is not None
            and self.room.status == RoomStatus.PLAYING
            and self.room.turn == self.side
        )

    def create_room(self, is_public: bool) -> bool:
        if self.state != SessionState.MENU:
            return False
        return self._submit(
            "create", RoomManager.open_room, self.store, self.participant_id, self.name, is_public
        )

    def join_room(self, code: str) -> bool:
        code = normalize_room_code(code)
        if self.state != SessionState.MENU or not code:
            return False
        return self._submit(
            "join", RoomManager.join_room, self.store, code, self.participant_id, self.name
        )

    def play(self, index: int) -> bool:
        """在 index 落子；不是自己的回合或格子不是空的時候忽略輸入"""
        if self.state != SessionState.GAME or not self.my_turn:
            return False
        if not 0 <= index < 9 or self.room.board[index] is not None:
            return False
        return self._submit(
            "move", RoomManager.make_move, self.store, self.room.code, self.side, index, self.room
        )

    def restart(self, rule: RestartRule = RestartRule.WINNER_STARTS) -> bool:
        if self.room is None or self.room.status != RoomStatus.FINISHED:
            return False
        return self._submit(
            "restart", RoomManager.restart_game, self.store, self.room.code, rule, self.room.winner
        )

    def leave(self) -> bool:
        """
        離開目前的房間

        先停止輪詢並回到選單，再在背景通知 store；
        進行中的操作不會被中斷，但它的結果會被丟棄。
        """
        if self.room is None:
            return False
        code, is_host = self.room.code, self.is_host
        self._abandon_room()
        self.error = None
        return self._submit("leave", RoomManager.leave_room, self.store, code, self.participant_id, is_host)

    def refresh_public_rooms(self) -> bool:
        return self._submit("list", RoomManager.list_public_rooms, self.store)

    def visible_public_rooms(self, search: str = "") -> List[Room]:
        """
        公開房間列表的顯示順序：還能加入的在前、已滿的在後

        search 會比對房間代碼和房主名稱（不分大小寫）
        """
        needle = search.strip().upper()
        matches = [
            room for room in self.public_rooms
            if not needle or needle in room.code or needle in room.player_x_name.upper()
        ]
        return [r for r in matches if not r.player_o_id] + [r for r in matches if r.player_o_id]

    def close(self):
        self._abandon_room()
        self.executor.shutdown(wait=False)

    # ============ 事件處理 ============

    def pump(self) -> int:
        """
        處理目前佇列裡所有的同步事件與操作結果（不阻塞）

        返回：
            處理（含丟棄）的事件數量
        """
        handled = 0
        while True:
            try:
                generation, event = self.events.get_nowait()
            except queue.Empty:
                return handled
            handled += 1
            if generation != self.generation:
                logger.debug(f"Discarding stale {type(event).__name__}")
                continue
            self._dispatch(event)

    def _dispatch(self, event):
        if isinstance(event, MutationDone):
            self._on_mutation_done(event)
        elif isinstance(event, RoomStateChanged):
            self._on_room_state(event.room)
        elif isinstance(event, RoomGone):
            self._abandon_room()
            self.error = f"Room {event.code} was closed"
        elif isinstance(event, RoomSyncFailed):
            self.sync_error = str(event.error)

    def _on_room_state(self, room: Room):
        # 同一份 Room 套用兩次結果相同
        self.room = room
        self.sync_error = None
        if self.state == SessionState.LOBBY and room.status != RoomStatus.WAITING:
            self.state = SessionState.GAME
            self.error = None
        elif self.state == SessionState.GAME and room.status == RoomStatus.WAITING and self.is_host:
            self.state = SessionState.LOBBY

    def _on_mutation_done(self, event: MutationDone):
        self.busy = False
        error = event.future.exception()
        if error is not None:
            logger.info(f"{event.action} failed: {error}")
            self.error = str(error)
            return

        result = event.future.result()
        self.error = None
        if event.action == "create":
            self._enter_room(result, Mark.X, SessionState.LOBBY)
        elif event.action == "join":
            self._enter_room(result, Mark.O, SessionState.GAME)
        elif event.action in ("move", "restart"):
            self.room = result
        elif event.action == "list":
            self.public_rooms = result

    # ============ 內部 ============

    def _submit(self, action: str, fn: Callable[..., Any], *args) -> bool:
        if self.busy:
            return False
        self.busy = True
        generation = self.generation
        future = self.executor.submit(fn, *args)
        future.add_done_callback(
            lambda f: self.events.put((generation, MutationDone(action, f)))
        )
        return True

    def _enter_room(self, room: Room, side: Mark, state: SessionState):
        self._abandon_room()
        self.room = room
        self.side = side
        self.state = state
        generation = self.generation
        self.poller = RoomPoller(
            self.store,
            room.code,
            lambda event: self.events.put((generation, event)),
            self.interval,
        )
        self.poller.start()

    def _abandon_room(self):
        if self.poller is not None:
            self.poller.stop()
            self.poller = None
        self.generation += 1
        self.room = None
        self.side = None
        self.state = SessionState.MENU
        self.busy = False
        self.sync_error = None
