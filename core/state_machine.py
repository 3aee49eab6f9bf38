"""
狀態機：集中管理房間狀態轉換

合法轉換：
    WAITING  -> PLAYING   （有人加入）
    PLAYING  -> FINISHED  （分出勝負或平手）
    PLAYING  -> WAITING   （加入者離開）
    FINISHED -> PLAYING   （再來一局）
    FINISHED -> WAITING   （加入者離開）
"""
import logging

from models import RoomStatus
from schemas import Room
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class RoomStateMachine:
    """Room 狀態機"""

    TRANSITIONS = {
        RoomStatus.WAITING: {RoomStatus.PLAYING},
        RoomStatus.PLAYING: {RoomStatus.FINISHED, RoomStatus.WAITING},
        RoomStatus.FINISHED: {RoomStatus.PLAYING, RoomStatus.WAITING},
    }

    @classmethod
    def can_transition(cls, current: RoomStatus, target: RoomStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, room: Room, target: RoomStatus, **changes) -> Room:
        """
        返回狀態轉換後的新 Room（不修改原物件）

        參數：
            room: 目前的 Room
            target: 目標狀態
            changes: 同時要更新的其他欄位

        異常：
            InvalidStateTransition: 不允許的轉換
        """
        if not cls.can_transition(room.status, target):
            raise InvalidStateTransition(
                f"Room {room.code} cannot go from {room.status.value} to {target.value}"
            )
        logger.debug(f"Room {room.code}: {room.status.value} -> {target.value}")
        return room.model_copy(update={**changes, "status": target})
