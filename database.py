from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

from core.exceptions import RoomSyncException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./tictactoe_rooms.db"
    # 輪詢間隔（毫秒）
    sync_interval_ms: int = 500
    # 樂觀交易最多嘗試次數
    transaction_max_attempts: int = 25
    # 建立房間時，代碼碰撞最多重試次數
    room_code_attempts: int = 10
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 需要特殊設定：connect_args={"check_same_thread": False}
# 輪詢執行緒與輸入處理執行緒會各自開 Session
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_store():
    """
    FastAPI dependency：提供 RoomStore

    RoomStore 每個操作自己開關 Session，所以這裡不需要 yield
    """
    from core.room_store import RoomStore
    return RoomStore(SessionLocal, max_attempts=settings.transaction_max_attempts)


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def write_document(db: Session, code, data):
            # 所有 DB 操作都在一個 transaction 內
            db.add(RoomDocument(code=code, data=data))
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）
        - 業務異常（RoomSyncException，例如房間已滿）是預期中的中止，不記錄為錯誤

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except RoomSyncException as e:
            logger.debug(f"Transaction aborted in {func.__name__}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
