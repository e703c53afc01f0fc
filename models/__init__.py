from models.room import Room, RoomCategory, RoomScope
from models.reservation import Equipment, RequestStatus, ReservationRequest
from models.block import ManualBlock
from models.class_schedule import ClassSchedule

__all__ = [
    "Room",
    "RoomCategory",
    "RoomScope",
    "Equipment",
    "RequestStatus",
    "ReservationRequest",
    "ManualBlock",
    "ClassSchedule",
]
