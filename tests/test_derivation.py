from __future__ import annotations

from dataclasses import replace

from app.residence.derivation import changed_rooms, derive_rooms, occupancy_by_room
from app.residence.domain import (
    Resident,
    ResidentId,
    ResidentStatus,
    RoomStatus,
    RoomType,
    new_room,
)


def _resident(resident_id: str, room_id: str, status: ResidentStatus = ResidentStatus.ACTIVE) -> Resident:
    return Resident(id=ResidentId(resident_id), first_name=resident_id, room_id=room_id, status=status)


def test_only_active_residents_with_room_are_counted():
    residents = [
        _resident("a", "r1"),
        _resident("b", "r1"),
        _resident("c", "r1", ResidentStatus.PENDING),
        _resident("d", "r2", ResidentStatus.INACTIVE),
        _resident("e", ""),
    ]
    assert occupancy_by_room(residents) == {"r1": 2}


def test_derive_rooms_sets_occupancy_and_status():
    rooms = (new_room("r1", "101", RoomType.TRIPLE), new_room("r2", "102", RoomType.DOUBLE))
    derived = derive_rooms(rooms, [_resident("a", "r1"), _resident("b", "r1")])

    first, second = derived
    assert first.current_occupancy == 2
    assert first.status == RoomStatus.OCCUPIED
    assert first.available_beds == 1
    assert not first.is_full
    assert second.current_occupancy == 0
    assert second.status == RoomStatus.AVAILABLE


def test_derive_rooms_clears_stale_values():
    stale = replace(new_room("r1", "101", RoomType.DOUBLE), current_occupancy=2, status=RoomStatus.MAINTENANCE)
    (room,) = derive_rooms((stale,), [])
    assert room.current_occupancy == 0
    assert room.status == RoomStatus.AVAILABLE


def test_full_room_has_no_available_beds():
    (room,) = derive_rooms((new_room("r1", "101", RoomType.INDIVIDUAL),), [_resident("a", "r1")])
    assert room.is_full
    assert room.available_beds == 0
    assert room.status == RoomStatus.OCCUPIED


def test_derive_rooms_keeps_unchanged_rooms_and_order():
    rooms = derive_rooms(
        (new_room("r2", "102", RoomType.DOUBLE), new_room("r1", "101", RoomType.DOUBLE)),
        [_resident("a", "r1")],
    )
    again = derive_rooms(rooms, [_resident("a", "r1")])
    assert [room.id for room in again] == ["r2", "r1"]
    assert again[0] is rooms[0]
    assert again[1] is rooms[1]


def test_changed_rooms_reports_only_differences():
    before = derive_rooms((new_room("r1", "101", RoomType.DOUBLE), new_room("r2", "102", RoomType.DOUBLE)), [])
    after = derive_rooms(before, [_resident("a", "r2")])
    assert [room.id for room in changed_rooms(before, after)] == ["r2"]
