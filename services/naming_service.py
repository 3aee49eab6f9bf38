"""
命名服務：生成 Room Code、參與者 ID 和顯示名稱

純計算邏輯，不涉及狀態轉換
"""
import random
import uuid

from models import Mark

# 去掉容易混淆的字元（I, O, 0, 1）
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4
MAX_NAME_LENGTH = 12


def generate_room_code() -> str:
    """
    生成隨機的 4 位房間代碼

    範例：AB3D, K7QP

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 32^4 = 1,048,576 種可能，碰撞時由 RoomManager 換代碼重試
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def normalize_room_code(raw: str) -> str:
    """使用者輸入的代碼不分大小寫"""
    return (raw or "").strip().upper()


def is_valid_room_code(code: str) -> bool:
    return len(code) == ROOM_CODE_LENGTH and all(ch in ROOM_CODE_ALPHABET for ch in code)


def clean_player_name(raw: str) -> str:
    """去掉前後空白並截斷到 12 個字元"""
    return (raw or "").strip()[:MAX_NAME_LENGTH]


def display_name(name: str, mark: Mark) -> str:
    """
    顯示用名稱；沒有名字的玩家顯示為「Player X」或「Player O」
    """
    return name or f"Player {mark.value}"


def new_participant_id() -> str:
    """沒有傳輸層身分時（例如本機測試）使用的參與者 ID"""
    return f"user_{uuid.uuid4().hex}"
