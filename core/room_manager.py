"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 Room（房主為 X）
2. 加入 Room（加入者為 O，WAITING -> PLAYING）
3. 落子（PLAYING -> FINISHED）
4. 再來一局（FINISHED -> PLAYING，保留比分）
5. 離開 Room（房主刪除文件；加入者讓房間回到 WAITING）
6. 查詢 Room / 公開房間列表

並發策略：
- join / restart 是「先檢查再寫入」的閘門，兩個人同時搶時只能有一個成功，
  所以走 store.transact（樂觀交易）
- move 已經由 turn 保證只有一個人能動，直接整份覆寫
"""
import logging
import random
from typing import List, Optional

from database import settings
from models import Mark, RoomStatus, RestartRule
from schemas import Room
from core.room_store import RoomStore
from core.state_machine import RoomStateMachine
from core.exceptions import (
    RoomNotFound,
    RoomFull,
    RoomCodeCollision,
    AlreadyInRoom,
    NotRoomMember,
    InvalidMove,
    InvalidStateTransition,
)
from services.naming_service import (
    generate_room_code,
    normalize_room_code,
    is_valid_room_code,
    clean_player_name,
    display_name,
)
from services.rules_service import (
    apply_move,
    detect_outcome,
    empty_board,
    next_turn,
    opening_turn,
)

logger = logging.getLogger(__name__)


def _lookup_code(raw_code: str) -> str:
    """正規化使用者輸入的代碼；格式不對的代碼不可能存在"""
    code = normalize_room_code(raw_code)
    if not is_valid_room_code(code):
        raise RoomNotFound(code or raw_code)
    return code


class RoomManager:
    """Room 生命週期管理器"""

    @staticmethod
    def create_room(
        store: RoomStore,
        code: str,
        host_id: str,
        host_name: str,
        is_public: bool
    ) -> Room:
        """
        用指定代碼建立新房間

        流程：
        1. 確認代碼沒有被使用
        2. 寫入 WAITING 狀態的新文件（房主是 X，X 先手）

        參數：
            store: RoomStore
            code: 4 位房間代碼
            host_id: 房主的參與者 ID
            host_name: 房主顯示名稱
            is_public: 是否出現在公開列表

        返回：
            新的 Room

        異常：
            RoomCodeCollision: 代碼已被使用（呼叫者要換代碼重試）
        """
        code = normalize_room_code(code)
        if not is_valid_room_code(code):
            raise ValueError(f"Invalid room code: {code!r}")
        if not host_id:
            raise ValueError("host_id is required")

        if store.get(code) is not None:
            raise RoomCodeCollision(code)

        room = Room(
            code=code,
            board=empty_board(),
            turn=Mark.X,
            player_x_id=host_id,
            player_x_name=display_name(clean_player_name(host_name), Mark.X),
            is_public=is_public,
            status=RoomStatus.WAITING,
        )
        store.set(code, room)

        logger.info(f"Created {'public' if is_public else 'private'} room {code} for host {host_id}")
        return room

    @staticmethod
    def open_room(store: RoomStore, host_id: str, host_name: str, is_public: bool) -> Room:
        """
        自動產生代碼並建立房間，碰撞時換代碼重試

        異常：
            RoomCodeCollision: 重試 settings.room_code_attempts 次仍然碰撞
        """
        code = ""
        for _ in range(settings.room_code_attempts):
            code = generate_room_code()
            try:
                return RoomManager.create_room(store, code, host_id, host_name, is_public)
            except RoomCodeCollision:
                logger.warning(f"Room code collision detected on {code}, regenerating")
        raise RoomCodeCollision(code)

    @staticmethod
    def join_room(store: RoomStore, code: str, joiner_id: str, joiner_name: str) -> Room:
        """
        加入房間（WAITING -> PLAYING）

        前置條件（在交易內檢查）：
        1. Room 必須存在
        2. 還沒有加入者

        同一個參與者重複加入會直接返回目前的 Room。

        異常：
            RoomNotFound: Room 不存在（或在交易途中被刪除）
            RoomFull: 別人已經先加入
            AlreadyInRoom: 房主想加入自己的房間
        """
        code = _lookup_code(code)
        if not joiner_id:
            raise ValueError("joiner_id is required")
        name = display_name(clean_player_name(joiner_name), Mark.O)

        def claim_guest_slot(room: Optional[Room]) -> Room:
            if room is None:
                raise RoomNotFound(code)
            if room.player_x_id == joiner_id:
                raise AlreadyInRoom(f"Participant {joiner_id} already hosts room {code}")
            if room.player_o_id == joiner_id:
                return room
            if room.player_o_id or room.status != RoomStatus.WAITING:
                raise RoomFull(code)
            return RoomStateMachine.transition(
                room,
                RoomStatus.PLAYING,
                player_o_id=joiner_id,
                player_o_name=name,
            )

        room = store.transact(code, claim_guest_slot)
        logger.info(f"Participant {joiner_id} joined room {code} as O")
        return room

    @staticmethod
    def make_move(
        store: RoomStore,
        code: str,
        mover: Mark,
        index: int,
        cached: Optional[Room] = None
    ) -> Room:
        """
        落子並寫回整份文件

        流程：
        1. 以呼叫者最新的本地快取為基礎（沒有快取就讀一次）
        2. 用規則引擎算出下一份完整文件
        3. 覆寫 store（只在文件仍存在時）

        參數：
            mover: 落子的一方
            index: 0-8 的格子
            cached: 呼叫者本地最新的 Room

        異常：
            InvalidMove: 不在對局中、不是 mover 的回合、格子非法
            RoomNotFound: 房間已被刪除
        """
        code = _lookup_code(code)
        room = cached if cached is not None else RoomManager.get_room(store, code)

        if room.status != RoomStatus.PLAYING:
            raise InvalidMove(f"Room {code} is not in play (status: {room.status.value})")
        if room.turn != mover:
            raise InvalidMove(f"It is not {mover.value}'s turn")

        board = apply_move(room.board, index, mover)
        outcome = detect_outcome(board)

        if outcome.winner is not None:
            score_field = "score_x" if outcome.winner == Mark.X else "score_o"
            updated = RoomStateMachine.transition(
                room,
                RoomStatus.FINISHED,
                board=board,
                winner=outcome.winner,
                winning_line=outcome.line,
                **{score_field: getattr(room, score_field) + 1}
            )
        elif outcome.is_draw:
            updated = RoomStateMachine.transition(
                room,
                RoomStatus.FINISHED,
                board=board,
                winner=None,
                winning_line=[],
            )
        else:
            updated = room.model_copy(update={"board": board, "turn": next_turn(mover)})

        if not store.set(code, updated, must_exist=True):
            raise RoomNotFound(code)

        logger.info(f"Room {code}: {mover.value} played cell {index} (status: {updated.status.value})")
        return updated

    @staticmethod
    def restart_game(
        store: RoomStore,
        code: str,
        rule: RestartRule,
        prev_winner: Optional[Mark],
        rng: random.Random = None
    ) -> Room:
        """
        再來一局（FINISHED -> PLAYING）

        效果：
        - 清空棋盤、贏家、勝利線
        - 依 rule 決定先手
        - 比分保留

        異常：
            RoomNotFound: Room 不存在
            InvalidStateTransition: Room 不是 FINISHED（例如對方已經重開）
        """
        code = _lookup_code(code)

        def reset_board(room: Optional[Room]) -> Room:
            if room is None:
                raise RoomNotFound(code)
            # WAITING -> PLAYING 只屬於 join；沒有對手的房間不能重開
            if room.status != RoomStatus.FINISHED:
                raise InvalidStateTransition(
                    f"Room {code} cannot restart (status: {room.status.value})"
                )
            return RoomStateMachine.transition(
                room,
                RoomStatus.PLAYING,
                board=empty_board(),
                winner=None,
                winning_line=[],
                turn=opening_turn(rule, prev_winner, rng),
            )

        room = store.transact(code, reset_board)
        logger.info(f"Room {code} restarted ({rule.value}), {room.turn.value} starts")
        return room

    @staticmethod
    def leave_room(store: RoomStore, code: str, participant_id: str, is_host: bool) -> None:
        """
        離開房間

        - 房主離開：刪除整份文件，對手下次輪詢會看到房間消失
        - 加入者離開：清空 O 的欄位與棋盤，房間回到 WAITING（比分保留）

        房間已經不存在時什麼都不做。

        異常：
            NotRoomMember: participant_id 不是該位置的玩家
        """
        code = _lookup_code(code)
        room = store.get(code)
        if room is None:
            logger.info(f"Room {code} already gone, nothing to leave")
            return

        if is_host:
            if room.player_x_id != participant_id:
                raise NotRoomMember(f"{participant_id} is not the host of room {code}")
            store.delete(code)
            logger.info(f"Host {participant_id} closed room {code}")
            return

        if room.player_o_id != participant_id:
            raise NotRoomMember(f"{participant_id} is not the guest of room {code}")
        store.update_fields(code, {
            "player_o_id": "",
            "player_o_name": "",
            "status": RoomStatus.WAITING.value,
            "board": [None] * 9,
            "turn": Mark.X.value,
            "winner": None,
            "winning_line": [],
        })
        logger.info(f"Guest {participant_id} left room {code}")

    @staticmethod
    def get_room(store: RoomStore, code: str) -> Room:
        """
        透過房間代碼取得 Room

        異常：
            RoomNotFound: Room 不存在
        """
        code = _lookup_code(code)
        room = store.get(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    @staticmethod
    def list_public_rooms(store: RoomStore) -> List[Room]:
        return store.list_public()
