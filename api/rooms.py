"""
Room API Endpoints

職責：
1. 建立房間
2. 查詢房間狀態（客戶端短輪詢用）
3. 公開房間列表
4. 再來一局
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from database import get_store
from schemas import Room, RoomCreate, RestartRequest
from core.room_manager import RoomManager
from core.room_store import RoomStore
from core.exceptions import (
    RoomNotFound,
    RoomCodeCollision,
    InvalidStateTransition,
    StoreUnavailable
)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[Room])
def list_public_rooms(store: RoomStore = Depends(get_store)):
    """公開房間列表（依代碼排序）"""
    try:
        return RoomManager.list_public_rooms(store)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to list rooms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("", response_model=Room, status_code=201)
def create_room(room_data: RoomCreate, store: RoomStore = Depends(get_store)):
    """
    建立房間（房主 endpoint）

    - 有指定 code：使用該代碼，碰撞時返回 409
    - 沒有指定：自動產生代碼
    """
    try:
        if room_data.code:
            return RoomManager.create_room(
                store, room_data.code, room_data.host_id, room_data.host_name, room_data.is_public
            )
        return RoomManager.open_room(
            store, room_data.host_id, room_data.host_name, room_data.is_public
        )
    except RoomCodeCollision as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}", response_model=Room)
def get_room(code: str, store: RoomStore = Depends(get_store)):
    """取得房間狀態（已清理過的文件）"""
    try:
        return RoomManager.get_room(store, code)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/restart", response_model=Room)
def restart_game(code: str, request: RestartRequest, store: RoomStore = Depends(get_store)):
    """
    再來一局

    前置條件：
    - 房間狀態必須是 FINISHED
    """
    try:
        return RoomManager.restart_game(store, code, request.rule, request.prev_winner)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except InvalidStateTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to restart room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
