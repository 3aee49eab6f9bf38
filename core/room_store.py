"""
Room Store：唯一直接存取遠端 key-value store 的元件

職責：
1. get / set / update_fields / transact / delete 單一房間文件
2. list_public 列出公開房間

原則：
- 每個操作都是一次獨立的「遠端呼叫」：自己開 Session、自己 commit、自己關閉
- 所有讀取路徑都經過 sanitize_room，不信任文件形狀
- SQLAlchemy 的錯誤一律轉成 StoreUnavailable
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import transactional
from models import RoomDocument
from schemas import Room
from core.exceptions import StoreUnavailable
from core.optimistic import (
    CONFLICT,
    compare_and_apply,
    insert_if_absent,
    read_document,
    run_optimistic,
)
from core.sanitize import sanitize_room

logger = logging.getLogger(__name__)

TransactionFn = Callable[[Optional[Room]], Room]


def _fetch(db: Session, code: str) -> Optional[Room]:
    doc = read_document(db, code)
    if doc is None:
        return None
    return sanitize_room(code, doc.data)


def _fetch_all(db: Session) -> List[Room]:
    rooms = []
    for doc in db.query(RoomDocument).all():
        room = sanitize_room(doc.code, doc.data)
        if room is not None:
            rooms.append(room)
    return rooms


@transactional
def _overwrite(db: Session, code: str, data: dict, must_exist: bool) -> bool:
    doc = read_document(db, code)
    if doc is None:
        if must_exist:
            return False
        db.add(RoomDocument(code=code, data=data, version=1))
    else:
        doc.data = data
        doc.version = RoomDocument.version + 1
    return True


@transactional
def _merge_once(db: Session, code: str, fields: Dict[str, Any]):
    doc = read_document(db, code)
    if doc is None:
        return False
    data = dict(doc.data) if isinstance(doc.data, dict) else {}
    data.update(fields)
    if not compare_and_apply(db, code, doc.version, data):
        return CONFLICT
    return True


@transactional
def _transact_once(db: Session, code: str, fn: TransactionFn):
    doc = read_document(db, code)
    current = sanitize_room(code, doc.data) if doc is not None else None

    # fn 拋出異常 = abort，不寫入
    updated = fn(current)
    data = updated.to_document()

    if doc is None:
        applied = insert_if_absent(db, code, data)
    else:
        applied = compare_and_apply(db, code, doc.version, data)
    return updated if applied else CONFLICT


@transactional
def _remove(db: Session, code: str) -> bool:
    deleted = db.query(RoomDocument).filter(RoomDocument.code == code).delete(
        synchronize_session=False
    )
    return deleted > 0


class RoomStore:
    """
    房間文件的 store adapter

    參數：
        session_factory: 產生 SQLAlchemy Session 的 callable（例如 SessionLocal）
        max_attempts: transact / update_fields 遇到並發寫入時最多嘗試次數
    """

    def __init__(self, session_factory: Callable[[], Session], max_attempts: int = 25):
        self.session_factory = session_factory
        self.max_attempts = max_attempts

    def _call(self, func, *args):
        db = self.session_factory()
        try:
            return func(db, *args)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Room store unavailable: {e}") from e
        finally:
            db.close()

    def get(self, code: str) -> Optional[Room]:
        """
        讀取房間

        返回：
            Room，或 None（不存在、或缺少建立者）
        """
        return self._call(_fetch, code)

    def set(self, code: str, room: Room, must_exist: bool = False) -> bool:
        """
        整份覆寫，不檢查 version

        參數：
            must_exist: True 時文件不存在就不寫入（避免把已刪除的房間寫回來）

        返回：
            是否有寫入
        """
        return self._call(_overwrite, code, room.to_document(), must_exist)

    def update_fields(self, code: str, fields: Dict[str, Any]) -> bool:
        """
        只合併指定欄位，其他欄位保持原樣

        返回：
            False 代表文件不存在（不會建立文件）
        """
        return run_optimistic(
            lambda: self._call(_merge_once, code, fields),
            self.max_attempts,
            code,
        )

    def transact(self, code: str, fn: TransactionFn) -> Room:
        """
        樂觀交易：讀取 → fn(room) → 只有文件沒被別人改過才寫回

        fn 收到清理過的 Room（不存在時為 None），必須返回新的 Room；
        fn 拋出的異常會中止交易並原樣往上拋。

        異常：
            TransactionConflict: 重試次數用完
            StoreUnavailable: store 錯誤
        """
        return run_optimistic(
            lambda: self._call(_transact_once, code, fn),
            self.max_attempts,
            code,
        )

    def delete(self, code: str) -> bool:
        return self._call(_remove, code)

    def list_public(self) -> List[Room]:
        """
        列出所有公開房間（依 code 排序）

        store 沒有索引，所以讀出整個集合後在客戶端過濾
        """
        rooms = self._call(_fetch_all)
        public = [room for room in rooms if room.is_public]
        public.sort(key=lambda room: room.code)
        return public
