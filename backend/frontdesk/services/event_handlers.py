"""
事件处理器
把预订生命周期事件写入审计日志
"""
import logging

from frontdesk.models.events import EventType
from frontdesk.services.event_bus import Event, EventBus, event_bus

logger = logging.getLogger("frontdesk.audit")


def log_event(event: Event) -> None:
    """审计日志：一行记录一次状态变化"""
    data = event.data
    if event.event_type == EventType.ROOM_STATUS_CHANGED:
        logger.info(
            f"[{event.source}] room {data.get('room_number')} "
            f"{data.get('old_status')} -> {data.get('new_status')} ({data.get('reason')})"
        )
    else:
        logger.info(
            f"[{event.source}] {event.event_type} {data.get('reference')} "
            f"room={data.get('room_id')} {data.get('check_in_date')}..{data.get('check_out_date')} "
            f"status={data.get('status')} actor={data.get('actor_id')}"
        )


def register_event_handlers(bus: EventBus = event_bus) -> None:
    """注册所有事件处理器（应用启动时调用）"""
    for event_type in EventType:
        bus.subscribe(event_type.value, log_event)
