import logging

from skybook.schemas.booking import Passenger
from skybook.schemas.flight import Seat
from skybook.services.seat_reconciler import reconcile


def seat(name, seat_id):
    return Seat(id=seat_id, name=name, row=int(name[:-1]), column=ord(name[-1]) - 64, is_authoritative=True)


def test_seat_ids_attached_case_insensitively():
    passengers = [Passenger(seat=" 5a "), Passenger(seat="5B")]
    enriched = reconcile(passengers, [seat("5A", 525), seat("5B", 526)])
    assert [p.flight_seat_id for p in enriched] == [525, 526]


def test_empty_manifest_gives_null_ids(caplog):
    passengers = [Passenger(seat="5A"), Passenger(seat="5B")]
    with caplog.at_level(logging.WARNING, logger="skybook.services.seat_reconciler"):
        enriched = reconcile(passengers, [])
    assert [p.flight_seat_id for p in enriched] == [None, None]
    misses = [r for r in caplog.records if "reconciliation miss" in r.getMessage()]
    assert len(misses) == 2


def test_record_without_id_counts_as_miss(caplog):
    with caplog.at_level(logging.WARNING, logger="skybook.services.seat_reconciler"):
        enriched = reconcile([Passenger(seat="7C")], [seat("7C", None)])
    assert enriched[0].flight_seat_id is None
    assert "7C" in caplog.text


def test_inputs_not_mutated():
    passengers = [Passenger(seat="5A", name="Budi")]
    enriched = reconcile(passengers, [seat("5A", 525)])
    assert passengers[0].flight_seat_id is None
    assert enriched[0].flight_seat_id == 525
    assert enriched[0].name == "Budi"


def test_no_passengers():
    assert reconcile([], [seat("5A", 525)]) == []
