# Persistent models
from frontdesk.models.ontology import (
    Room, Booking, BookingNight,
    RoomType, RoomStatus, BookingStatus, CreationSource,
)

__all__ = [
    'Room', 'Booking', 'BookingNight',
    'RoomType', 'RoomStatus', 'BookingStatus', 'CreationSource',
]
