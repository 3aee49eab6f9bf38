"""
資料模型

- Mark / RoomStatus / RestartRule：遊戲用的列舉
- RoomDocument：遠端 key-value store 的一筆文件（一個房間一筆）

RoomDocument.data 是沒有 schema 的 JSON，讀取時一律經過 core.sanitize
轉成嚴格的 schemas.Room，不可直接信任它的形狀。
"""
import enum

from sqlalchemy import Column, String, Integer, JSON, DateTime, func

from database import Base


class Mark(str, enum.Enum):
    """棋子記號：X 是房主（建立者），O 是加入者"""
    X = "X"
    O = "O"


class RoomStatus(str, enum.Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class RestartRule(str, enum.Enum):
    """再來一局時誰先手"""
    WINNER_STARTS = "winner"
    RANDOM = "random"


class RoomDocument(Base):
    """
    房間文件

    欄位：
        code: 房間代碼（文件的 key）
        data: 文件內容（JSON object）
        version: compare-and-apply 用的版本號，每次寫入 +1
        updated_at: 最後寫入時間
    """
    __tablename__ = "room_documents"

    code = Column(String(16), primary_key=True)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
