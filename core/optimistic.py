"""
並發控制工具

store 沒有鎖，只提供 compare-and-apply：每份文件帶一個 version，
寫入時只有 version 沒變才會成功，否則代表有人搶先寫入，要重讀再試。

這裡提供：
- compare_and_apply / insert_if_absent：單次嘗試的 SQL 原語
- run_optimistic：通用的「重試直到成功或次數用完」helper
"""
import logging
from typing import Any, Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import RoomDocument
from core.exceptions import TransactionConflict

logger = logging.getLogger(__name__)

# attempt() 回傳 CONFLICT 代表這次被別人搶先，需要重試
CONFLICT = object()


def compare_and_apply(db: Session, code: str, expected_version: int, data: dict) -> bool:
    """
    只有在文件 version 仍然是 expected_version 時才寫入

    參數：
        db: SQLAlchemy Session
        code: 房間代碼
        expected_version: 讀取時看到的 version
        data: 新的文件內容

    返回：
        True 寫入成功；False 代表 version 已變（或文件已被刪除）

    注意：
        - 必須在 transaction 內使用（呼叫者負責 commit 或 rollback）
    """
    result = db.execute(
        update(RoomDocument)
        .where(RoomDocument.code == code, RoomDocument.version == expected_version)
        .values(data=data, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def insert_if_absent(db: Session, code: str, data: dict) -> bool:
    """
    文件不存在時建立；如果同時有人建立了同一個 code，返回 False
    """
    try:
        db.add(RoomDocument(code=code, data=data, version=1))
        db.flush()
        return True
    except IntegrityError:
        db.rollback()
        return False


def run_optimistic(attempt: Callable[[], Any], max_attempts: int, code: str) -> Any:
    """
    重複執行 attempt()，直到它不再回傳 CONFLICT

    參數：
        attempt: 單次嘗試（讀取 → 計算 → compare-and-apply）
        max_attempts: 最多嘗試次數
        code: 房間代碼（用於 log 和異常訊息）

    返回：
        attempt() 最後一次的回傳值

    異常：
        TransactionConflict: 次數用完仍然衝突
        attempt() 拋出的任何異常都會直接往上拋（視為 abort）
    """
    for n in range(1, max_attempts + 1):
        result = attempt()
        if result is not CONFLICT:
            return result
        logger.warning(f"Concurrent write on room {code}, retrying ({n}/{max_attempts})")
    raise TransactionConflict(code, max_attempts)


def read_document(db: Session, code: str) -> Optional[RoomDocument]:
    return db.query(RoomDocument).filter(RoomDocument.code == code).first()
