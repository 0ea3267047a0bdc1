"""
事件总线与审计日志单元测试
"""
import logging
import pytest
from datetime import date, datetime

from frontdesk.models.events import BookingEventData, EventType, RoomStatusChangedData
from frontdesk.services.event_bus import EventBus, Event
from frontdesk.services.event_handlers import log_event, register_event_handlers


class TestEventBus:
    """事件总线测试"""

    @pytest.fixture
    def event_bus(self):
        """创建新的事件总线实例"""
        return EventBus()

    @pytest.fixture
    def sample_event(self):
        return Event(
            event_type=EventType.BOOKING_CREATED.value,
            timestamp=datetime.now(),
            data={"reference": "BK-20260301-AB12"},
            source="test"
        )

    def test_subscribe_and_publish(self, event_bus, sample_event):
        """测试订阅和发布"""
        received_events = []
        event_bus.subscribe(EventType.BOOKING_CREATED.value, received_events.append)
        event_bus.publish(sample_event)

        assert len(received_events) == 1
        assert received_events[0].data["reference"] == "BK-20260301-AB12"

    def test_unsubscribe(self, event_bus, sample_event):
        received_events = []
        event_bus.subscribe(sample_event.event_type, received_events.append)
        event_bus.unsubscribe(sample_event.event_type, received_events.append)
        event_bus.publish(sample_event)

        assert received_events == []

    def test_handler_exception_isolation(self, event_bus, sample_event):
        """测试处理器异常隔离"""
        successful_calls = []

        def failing_handler(event):
            raise ValueError("Test error")

        event_bus.subscribe(sample_event.event_type, failing_handler)
        event_bus.subscribe(sample_event.event_type, successful_calls.append)

        # 不应该抛出异常
        event_bus.publish(sample_event)

        assert len(successful_calls) == 1

    def test_duplicate_subscription(self, event_bus, sample_event):
        """测试重复订阅"""
        call_count = [0]

        def handler(event):
            call_count[0] += 1

        event_bus.subscribe(sample_event.event_type, handler)
        event_bus.subscribe(sample_event.event_type, handler)
        event_bus.publish(sample_event)

        assert call_count[0] == 1

    def test_event_history(self, event_bus):
        """测试事件历史（最新的在前）"""
        for i in range(5):
            event_bus.publish(Event(
                event_type="booking.created" if i % 2 else "booking.cancelled",
                timestamp=datetime.now(),
                data={"index": i},
                source="test"
            ))

        history = event_bus.get_history()
        assert len(history) == 5
        assert history[0].data["index"] == 4
        assert [e.data["index"] for e in event_bus.get_history(event_type="booking.created")] == [3, 1]

    def test_history_is_bounded(self):
        bus = EventBus(history_size=10)
        for i in range(15):
            bus.publish(Event(event_type="x", timestamp=datetime.now(), data={"i": i}, source="test"))

        assert len(bus.get_history(limit=100)) == 10

    def test_clear(self, event_bus, sample_event):
        received_events = []
        event_bus.subscribe(sample_event.event_type, received_events.append)
        event_bus.clear_subscribers()
        event_bus.publish(sample_event)
        event_bus.clear_history()

        assert received_events == []
        assert event_bus.get_history() == []


class TestEventData:
    def test_booking_event_dates_serialized(self):
        data = BookingEventData(
            booking_id=1, reference="BK-20260301-AB12", room_id=1, guest_name="张三",
            check_in_date=date(2026, 3, 10), check_out_date=date(2026, 3, 12),
            status="upcoming", creation_source="staff", actor_id=2,
        ).to_dict()

        assert data["check_in_date"] == "2026-03-10"
        assert isinstance(data["timestamp"], str)


class TestAuditLog:
    """审计日志处理器"""

    def test_register_subscribes_every_event(self):
        bus = EventBus()
        register_event_handlers(bus)

        for event_type in EventType:
            assert bus._subscribers[event_type.value] == [log_event]

    def test_booking_event_logged(self, caplog):
        event = Event(
            event_type=EventType.GUEST_CHECKED_IN.value,
            timestamp=datetime.now(),
            data={"reference": "BK-20260301-AB12", "room_id": 1, "check_in_date": "2026-03-01",
                  "check_out_date": "2026-03-03", "status": "checked_in", "actor_id": 2},
            source="booking_service",
        )
        with caplog.at_level(logging.INFO, logger="frontdesk.audit"):
            log_event(event)

        assert "guest.checked_in BK-20260301-AB12" in caplog.text

    def test_room_event_logged(self, caplog):
        event = Event(
            event_type=EventType.ROOM_STATUS_CHANGED.value,
            timestamp=datetime.now(),
            data=RoomStatusChangedData(room_id=1, room_number="101", old_status="available",
                                       new_status="occupied", reason="check_in").to_dict(),
            source="room_service",
        )
        with caplog.at_level(logging.INFO, logger="frontdesk.audit"):
            log_event(event)

        assert "room 101 available -> occupied" in caplog.text
