"""Integration tests for starting and completing batches."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlmodel import Session, select

from cellar.domain.exceptions import (
    BatchCompletedError,
    BatchNotFoundError,
    CapacityExceededError,
    ErrorKind,
    InvalidBatchNameError,
    TankNotFoundError,
    TankOccupiedError,
    UnknownTransactionTypeError,
)
from cellar.domain.lookup import TransactionTypeCache
from cellar.domain.models import Batch, Transaction, as_utc
from cellar.domain.services.batch_service import AUTO_WASTE_NOTE, BatchService
from cellar.domain.services.ledger_service import LedgerService
from cellar.domain.services.tank_service import TankService


@pytest.fixture(name="batches")
def batches_fixture(session: Session, transaction_types: TransactionTypeCache) -> BatchService:
    return BatchService(session, transaction_types)


class TestStartBatch:
    def test_start_fills_and_occupies_tank(self, session, batches, types, make_tank):
        tank = make_tank("FV-1", capacity="100")

        batch = batches.start_batch(
            tank.id, "Left Turn IPA", types["Transfer In"].id, Decimal("92"), note="From kettle"
        )

        tank = TankService(session).get_tank(tank.id)
        assert batch.is_active
        assert tank.current_batch_id == batch.id
        assert tank.current_quantity == Decimal("92")

        opening = LedgerService(session, batches.transaction_types).list_transactions(batch.id)
        assert len(opening) == 1
        assert opening[0].transaction_type_name == "Transfer In"
        assert opening[0].quantity == Decimal("92")
        assert opening[0].note == "From kettle"

    def test_default_opening_type_is_transfer_in(self, session, batches, make_tank):
        batch = batches.start_batch(make_tank("FV-1").id, "Saison", None, "20")

        opening = LedgerService(session, batches.transaction_types).list_transactions(batch.id)
        assert opening[0].transaction_type_name == "Transfer In"

    def test_explicit_start_time(self, session, batches, make_tank):
        started = datetime(2025, 5, 1, 7, 0, tzinfo=timezone.utc)

        batch = batches.start_batch(make_tank("FV-1").id, "Saison", None, "20", started_at=started)

        assert as_utc(batch.started_at) == started
        opening = LedgerService(session, batches.transaction_types).list_transactions(batch.id)
        assert as_utc(opening[0].occurred_at) == started

    def test_name_is_stripped(self, batches, make_tank):
        batch = batches.start_batch(make_tank("FV-1").id, "  Stout  ", None, "20")
        assert batch.name == "Stout"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_name(self, batches, make_tank, name):
        with pytest.raises(InvalidBatchNameError):
            batches.start_batch(make_tank("FV-1").id, name, None, "20")

    def test_occupied_tank_rejected(self, session, batches, make_tank):
        tank = make_tank("FV-1")
        first = batches.start_batch(tank.id, "First", None, "20")
        before = len(session.exec(select(Transaction)).all())

        with pytest.raises(TankOccupiedError) as exc_info:
            batches.start_batch(tank.id, "Second", None, "20")

        assert exc_info.value.kind == ErrorKind.CONFLICT
        assert exc_info.value.context["current_batch_id"] == first.id
        assert len(session.exec(select(Batch)).all()) == 1
        assert len(session.exec(select(Transaction)).all()) == before

    def test_over_capacity_leaves_no_batch(self, session, batches, make_tank):
        tank = make_tank("FV-1", capacity="100")

        with pytest.raises(CapacityExceededError):
            batches.start_batch(tank.id, "Too Big", None, "100.01")

        assert session.exec(select(Batch)).all() == []
        tank = TankService(session).get_tank(tank.id)
        assert tank.current_batch_id is None
        assert tank.current_quantity == Decimal("0")

    def test_unknown_opening_type_leaves_no_batch(self, session, batches, make_tank):
        tank = make_tank("FV-1")

        with pytest.raises(UnknownTransactionTypeError):
            batches.start_batch(tank.id, "Mystery", 999, "10")

        assert session.exec(select(Batch)).all() == []

    def test_deleted_tank_rejected(self, session, batches, make_tank):
        tank = make_tank("FV-1")
        TankService(session).delete_tank("FV-1")

        with pytest.raises(TankNotFoundError):
            batches.start_batch(tank.id, "Ghost", None, "10")

    def test_unknown_tank_rejected(self, batches):
        with pytest.raises(TankNotFoundError):
            batches.start_batch(999, "Ghost", None, "10")


class TestCompleteBatch:
    def test_remaining_quantity_written_off(self, session, batches, types, make_tank):
        tank = make_tank("FV-1")
        batch = batches.start_batch(tank.id, "Left Turn IPA", None, "50")

        completed = batches.complete_batch(batch.id)

        assert not completed.is_active
        assert completed.completed_at is not None
        tank = TankService(session).get_tank(tank.id)
        assert tank.current_quantity == Decimal("0")
        assert tank.current_batch_id is None

        waste = LedgerService(session, batches.transaction_types).list_transactions_by_type(
            batch.id, types["Waste"].id
        )
        assert len(waste) == 1
        assert waste[0].quantity == Decimal("50")
        assert waste[0].note == AUTO_WASTE_NOTE

    def test_empty_tank_gets_no_waste(self, session, batches, types, make_tank):
        tank = make_tank("FV-1")
        batch = batches.start_batch(tank.id, "Left Turn IPA", None, "50")
        LedgerService(session, batches.transaction_types).record(
            batch.id, types["Transfer Out"].id, Decimal("50")
        )

        batches.complete_batch(batch.id)

        waste = LedgerService(session, batches.transaction_types).list_transactions_by_type(
            batch.id, types["Waste"].id
        )
        assert waste == []

    def test_tank_reusable_after_completion(self, session, batches, make_tank):
        tank = make_tank("FV-1")
        first = batches.start_batch(tank.id, "First", None, "50")
        batches.complete_batch(first.id)

        second = batches.start_batch(tank.id, "Second", None, "70")

        assert TankService(session).get_tank(tank.id).current_batch_id == second.id
        assert [b.id for b in batches.list_batches_for_tank(tank.id)] == [second.id, first.id]

    def test_complete_twice(self, batches, make_tank, caplog):
        batch = batches.start_batch(make_tank("FV-1").id, "Left Turn IPA", None, "50")
        batches.complete_batch(batch.id)

        with caplog.at_level(logging.WARNING, logger="cellar.domain.services.batch_service"):
            with pytest.raises(BatchCompletedError):
                batches.complete_batch(batch.id)

        rejected = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(rejected) == 1
        assert rejected[0].batch_id == batch.id
        assert "Rejected completion" in rejected[0].getMessage()

    def test_complete_unknown_batch(self, batches):
        with pytest.raises(BatchNotFoundError):
            batches.complete_batch(999)

    def test_complete_batch_in_deleted_tank(self, session, batches, make_tank):
        tank = make_tank("FV-1")
        batch = batches.start_batch(tank.id, "Left Turn IPA", None, "50")
        TankService(session).delete_tank("FV-1")

        batches.complete_batch(batch.id)

        tank = TankService(session).get_tank(tank.id, include_deleted=True)
        assert tank.current_batch_id is None
        assert tank.current_quantity == Decimal("0")


class TestListBatches:
    def test_active_and_completed(self, batches, make_tank):
        done = batches.start_batch(make_tank("FV-1").id, "Done", None, "10")
        running = batches.start_batch(make_tank("FV-2").id, "Running", None, "10")
        batches.complete_batch(done.id)

        assert [b.id for b in batches.list_active_batches()] == [running.id]
        assert [b.id for b in batches.list_completed_batches()] == [done.id]

    def test_history_of_unknown_tank(self, batches):
        with pytest.raises(TankNotFoundError):
            batches.list_batches_for_tank(999)
