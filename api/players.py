"""
Player API Endpoints

職責：
1. 玩家加入房間
2. 玩家落子
3. 玩家離開房間
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from database import get_store
from schemas import Room, PlayerJoin, MoveSubmit, LeaveRequest, StatusResponse
from core.room_manager import RoomManager
from core.room_store import RoomStore
from core.exceptions import (
    RoomNotFound,
    RoomFull,
    AlreadyInRoom,
    NotRoomMember,
    InvalidMove,
    StoreUnavailable
)

router = APIRouter(prefix="/api/rooms", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/{code}/join", response_model=Room)
def join_room(code: str, player_data: PlayerJoin, store: RoomStore = Depends(get_store)):
    """
    加入房間（玩家 endpoint）

    前置條件：
    - 房間必須存在
    - 房間狀態必須是 WAITING（還沒有對手）

    兩個人同時加入時只有一個會成功，另一個返回 409
    """
    try:
        return RoomManager.join_room(store, code, player_data.player_id, player_data.name)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except (RoomFull, AlreadyInRoom) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/move", response_model=Room)
def make_move(code: str, move: MoveSubmit, store: RoomStore = Depends(get_store)):
    """
    落子

    前置條件：
    - 房間狀態必須是 PLAYING
    - 必須輪到 move.mark
    - 格子必須是空的
    """
    try:
        return RoomManager.make_move(store, code, move.mark, move.index)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except InvalidMove as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to make move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/leave", response_model=StatusResponse)
def leave_room(code: str, request: LeaveRequest, store: RoomStore = Depends(get_store)):
    """
    離開房間

    - 房主離開：房間被刪除
    - 加入者離開：房間回到 WAITING
    """
    try:
        RoomManager.leave_room(store, code, request.player_id, request.is_host)
        return StatusResponse(status="ok")
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except NotRoomMember as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to leave room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
