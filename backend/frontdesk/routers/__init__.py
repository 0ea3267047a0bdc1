# API Routers
from frontdesk.routers import rooms, bookings, guest_bookings

__all__ = ['rooms', 'bookings', 'guest_bookings']
