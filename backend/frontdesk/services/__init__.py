# Booking engine services
from frontdesk.services.room_service import RoomService
from frontdesk.services.availability_service import AvailabilityService
from frontdesk.services.conflict_guard import ReservationConflictGuard
from frontdesk.services.booking_service import BookingService
from frontdesk.services.proposal_bridge import ProposalBridge

__all__ = [
    'RoomService', 'AvailabilityService', 'ReservationConflictGuard',
    'BookingService', 'ProposalBridge'
]
