from pydantic import BaseModel, Field
from typing import List, Optional

from models import Mark, RoomStatus, RestartRule


def _empty_board() -> List[Optional[Mark]]:
    return [None] * 9


class Room(BaseModel):
    """
    嚴格型別的房間狀態（一場對戰的完整狀態）

    board 固定 9 格，None 表示空格；winner 為 None 時
    代表「進行中」或「平手」，由 status 區分。
    """
    code: str
    board: List[Optional[Mark]] = Field(default_factory=_empty_board)
    turn: Mark = Mark.X
    player_x_id: str = ""
    player_o_id: str = ""
    player_x_name: str = ""
    player_o_name: str = ""
    is_public: bool = False
    winner: Optional[Mark] = None
    winning_line: List[int] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.WAITING
    score_x: int = 0
    score_o: int = 0

    def side_of(self, participant_id: str) -> Optional[Mark]:
        if participant_id and participant_id == self.player_x_id:
            return Mark.X
        if participant_id and participant_id == self.player_o_id:
            return Mark.O
        return None

    def to_document(self) -> dict:
        """轉成存進 store 的 JSON object"""
        return self.model_dump(mode="json")


# ============ API Schemas ============

class RoomCreate(BaseModel):
    host_id: str
    host_name: str = ""
    is_public: bool = False
    code: Optional[str] = None


class PlayerJoin(BaseModel):
    player_id: str
    name: str = ""


class MoveSubmit(BaseModel):
    mark: Mark
    index: int


class RestartRequest(BaseModel):
    rule: RestartRule = RestartRule.WINNER_STARTS
    prev_winner: Optional[Mark] = None


class LeaveRequest(BaseModel):
    player_id: str
    is_host: bool


class StatusResponse(BaseModel):
    status: str
