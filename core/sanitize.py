"""
文件清理：把 store 裡沒有 schema 的文件轉成嚴格的 Room

store 不保證任何欄位型別，所以每個欄位都單獨解析，
解析失敗就用安全的預設值（空字串、空列表、None）。
缺少建立者 ID 的文件視為不存在，而不是一個壞掉的房間。
"""
import logging
from typing import Any, List, Optional

from models import Mark, RoomStatus
from schemas import Room

logger = logging.getLogger(__name__)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _as_count(value: Any) -> int:
    # bool 是 int 的子類別，要先排除
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return 0


def _as_mark(value: Any) -> Optional[Mark]:
    if isinstance(value, str):
        try:
            return Mark(value.strip().upper())
        except ValueError:
            return None
    return None


def _as_board(value: Any) -> List[Optional[Mark]]:
    board: List[Optional[Mark]] = [None] * 9
    if not isinstance(value, list):
        return board
    for i, cell in enumerate(value[:9]):
        board[i] = _as_mark(cell)
    return board


def _as_line(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    line = [
        idx for idx in value
        if isinstance(idx, int) and not isinstance(idx, bool) and 0 <= idx < 9
    ]
    return line if len(line) == 3 else []


def _as_status(value: Any, player_o_id: str) -> RoomStatus:
    # WAITING 若且唯若沒有加入者；和 O 欄位矛盾的 status 以 O 欄位為準
    if not player_o_id:
        return RoomStatus.WAITING
    if value == RoomStatus.FINISHED.value:
        return RoomStatus.FINISHED
    return RoomStatus.PLAYING


def sanitize_room(code: str, raw: Any) -> Optional[Room]:
    """
    把原始文件轉成 Room

    參數：
        code: 文件的 key（以 key 為準，忽略文件內的 code 欄位）
        raw: 從 store 讀到的原始內容

    返回：
        Room，或 None（文件不存在 / 缺少建立者）

    範例：
        sanitize_room("AB3D", {"player_x_id": "p1", "board": [1, "X", None]})
        -> board == [None, Mark.X, None, None, None, None, None, None, None]
    """
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Room {code} document is not an object ({type(raw).__name__}), ignoring")
        return None

    player_x_id = _as_str(raw.get("player_x_id"))
    if not player_x_id:
        return None

    player_o_id = _as_str(raw.get("player_o_id"))
    return Room(
        code=code,
        board=_as_board(raw.get("board")),
        turn=_as_mark(raw.get("turn")) or Mark.X,
        player_x_id=player_x_id,
        player_o_id=player_o_id,
        player_x_name=_as_str(raw.get("player_x_name")),
        player_o_name=_as_str(raw.get("player_o_name")),
        is_public=_as_bool(raw.get("is_public")),
        winner=_as_mark(raw.get("winner")),
        winning_line=_as_line(raw.get("winning_line")),
        status=_as_status(raw.get("status"), player_o_id),
        score_x=_as_count(raw.get("score_x")),
        score_o=_as_count(raw.get("score_o")),
    )
