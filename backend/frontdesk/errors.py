"""
预订引擎错误类型

所有业务结果都以带类型的异常返回给调用方，由路由层翻译为 HTTP 响应。
这些都是业务事实而非瞬时故障，引擎内部从不自动重试。
"""
from datetime import date
from typing import Any, Dict, Optional


class BookingError(Exception):
    """
    预订引擎错误基类

    Attributes:
        code: 稳定的错误码，供前端区分处理
        status_code: 对应的 HTTP 状态码
        message: 可读的错误信息
        context: 附加上下文（如预订 ID、入住日期）
    """

    code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.context:
            data["context"] = self.context
        return data


class ValidationError(BookingError):
    """日期格式错误、离店日期不晚于入住日期等，未触达存储即被拒绝"""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFound(BookingError):
    """预订或房间不存在"""

    code = "NOT_FOUND"
    status_code = 404


class OverlapConflict(BookingError):
    """提交时房间在该日期区间已被占用"""

    code = "ROOM_UNAVAILABLE"
    status_code = 409


class RoomNoLongerAvailable(OverlapConflict):
    """聊天预订提议被接受时房间已被他人订走，前端应引导重新搜索"""

    code = "ROOM_NO_LONGER_AVAILABLE"


class WriteConflict(BookingError):
    """预订行写入时违反存储约束（如预订号并发碰撞），调用方可重新提交"""

    code = "WRITE_CONFLICT"
    status_code = 409


class RoomOutOfService(BookingError):
    """房间维修中，不可预订或入住"""

    code = "ROOM_OUT_OF_SERVICE"
    status_code = 409


class IllegalTransition(BookingError):
    """非法状态转换，如取消已入住的预订"""

    code = "INVALID_STATUS_TRANSITION"
    status_code = 409


class AlreadyCheckedOut(IllegalTransition):
    """重复退房，前端以轻提示展示"""

    code = "ALREADY_CHECKED_OUT"


class EarlyCheckInRequired(BookingError):
    """
    提前入住需要确认

    不是失败，而是请求调用方确认后携带 confirm_early 重新提交。
    """

    code = "EARLY_CHECK_IN_REQUIRED"
    status_code = 428

    def __init__(self, booking_id: int, check_in_date: date, today: date):
        self.booking_id = booking_id
        self.check_in_date = check_in_date
        self.today = today
        super().__init__(
            f"入住日期为 {check_in_date.isoformat()}，请确认提前入住后重试",
            context={
                "booking_id": booking_id,
                "check_in_date": check_in_date.isoformat(),
                "today": today.isoformat(),
            },
        )
