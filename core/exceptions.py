"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層與 Session 統一處理
"""


class RoomSyncException(Exception):
    """所有房間同步異常的基類"""
    pass


# ============ Room 相關異常 ============

class RoomNotFound(RoomSyncException):
    """房間不存在（文件不存在或缺少建立者）"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room {code} not found")


class RoomFull(RoomSyncException):
    """房間已有對手（加入競賽輸了）"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room {code} is full")


class RoomCodeCollision(RoomSyncException):
    """房間代碼已被使用，需要換一個代碼重試"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room code {code} is already in use")


class AlreadyInRoom(RoomSyncException):
    """房主不能加入自己的房間"""
    pass


class NotRoomMember(RoomSyncException):
    """參與者不是這個房間的成員"""
    pass


# ============ 遊戲相關異常 ============

class InvalidMove(RoomSyncException):
    """非法的落子（超出範圍、格子已有棋子、不是你的回合）"""
    pass


# ============ 狀態轉換異常 ============

class InvalidStateTransition(RoomSyncException):
    """非法的狀態轉換"""
    pass


# ============ Store 相關異常 ============

class StoreUnavailable(RoomSyncException):
    """遠端 store 無法使用（連線或寫入失敗）"""
    pass


class TransactionConflict(StoreUnavailable):
    """樂觀交易重試次數用完仍然衝突"""
    def __init__(self, code, attempts):
        self.code = code
        self.attempts = attempts
        super().__init__(f"Transaction on room {code} conflicted {attempts} times")
