from concurrent.futures import Executor, Future

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401  (registers RoomDocument on Base.metadata)
from database import Base, get_store
from models import RoomDocument
from core.room_store import RoomStore
from core.session import GameSession
from main import app


class InlineExecutor(Executor):
    """在呼叫者的執行緒上立即執行，讓 session 測試可以預測"""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rooms.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def store(session_factory):
    return RoomStore(session_factory, max_attempts=5)


@pytest.fixture()
def put_raw(session_factory):
    """直接寫入一份原始文件（模擬其他客戶端寫入的髒資料）"""
    def _put(code, data):
        db = session_factory()
        try:
            db.add(RoomDocument(code=code, data=data, version=1))
            db.commit()
        finally:
            db.close()
    return _put


@pytest.fixture()
def make_session(store):
    sessions = []

    def _make(participant_id, name):
        session = GameSession(store, participant_id, name, interval=60, executor=InlineExecutor())
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
