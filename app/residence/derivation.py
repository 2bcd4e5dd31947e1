from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from app.residence.domain import Resident, ResidentStatus, Room, RoomStatus


def occupancy_by_room(residents: Iterable[Resident]) -> Counter[str]:
    return Counter(
        resident.room_id
        for resident in residents
        if resident.room_id and resident.status == ResidentStatus.ACTIVE
    )


def derive_rooms(rooms: Iterable[Room], residents: Iterable[Resident]) -> tuple[Room, ...]:
    """Recompute occupancy and status of every room from the resident roster.

    Only active residents occupy a bed. A room is ``available`` when nobody
    occupies it and ``occupied`` otherwise; fullness is not a stored status,
    see ``Room.available_beds``.
    """
    occupancy = occupancy_by_room(residents)
    derived: list[Room] = []
    for room in rooms:
        count = occupancy.get(room.id, 0)
        status = RoomStatus.OCCUPIED if count > 0 else RoomStatus.AVAILABLE
        if room.current_occupancy == count and room.status == status:
            derived.append(room)
        else:
            derived.append(replace(room, current_occupancy=count, status=status))
    return tuple(derived)


def changed_rooms(before: Iterable[Room], after: Iterable[Room]) -> list[Room]:
    previous = {room.id: room for room in before}
    changed: list[Room] = []
    for room in after:
        old = previous.get(room.id)
        if old is None:
            continue
        if old.current_occupancy != room.current_occupancy or old.status != room.status:
            changed.append(room)
    return changed
