from __future__ import annotations

import pytest

from app.core.demo_data import demo_resident_names, sample_data
from app.residence.derivation import derive_rooms
from app.residence.domain import GENERAL_INCOME_ID, PaymentType, ResidentStatus


def test_demo_names_are_stable_and_distinct():
    names = demo_resident_names(60)
    assert names == demo_resident_names(60)
    assert len(set(names)) == 60


@pytest.mark.parametrize("total", [-1, 61])
def test_demo_names_reject_out_of_range_totals(total):
    with pytest.raises(ValueError):
        demo_resident_names(total)


def test_sample_data_is_consistent():
    sample = sample_data()
    room_ids = {room.id for room in sample.rooms}
    resident_ids = {resident.id for resident in sample.residents}

    assert sample.rooms == derive_rooms(sample.rooms, sample.residents)
    assert all(room.current_occupancy <= room.capacity for room in sample.rooms)
    assert all(r.room_id in room_ids for r in sample.residents if r.room_id)
    assert all(p.resident_id in resident_ids for p in sample.payments)
    assert GENERAL_INCOME_ID in resident_ids

    (reservation,) = sample.reservations
    placeholder = next(r for r in sample.residents if r.id == reservation.resident_id)
    assert placeholder.status == ResidentStatus.PENDING
    matricula = [p for p in sample.payments if p.type == PaymentType.MATRICULA]
    assert [p.resident_id for p in matricula] == [placeholder.id]


def test_sample_ids_are_unique():
    sample = sample_data()
    for collection in (sample.rooms, sample.residents, sample.payments, sample.expenses, sample.maintenance_tasks):
        ids = [item.id for item in collection]
        assert len(ids) == len(set(ids))
