"""Unit tests for domain logic."""

import json
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cellar.domain.exceptions import (
    BatchCompletedError,
    BatchNotFoundError,
    CapacityExceededError,
    DuplicateTankLabelError,
    ErrorKind,
    StorageUnavailableError,
    TankOccupiedError,
    UnknownTransactionTypeError,
)
from cellar.domain.lookup import TransactionTypeCache, TransactionTypeDef
from cellar.domain.models import Batch, Tank
from cellar.domain.value_objects import Milestone, MilestonePolicy, TankStatus
from cellar.logging_config import JsonFormatter, configure_logging


def make_type(type_id: int, name: str, multiplier: int = 0, **kwargs) -> TransactionTypeDef:
    return TransactionTypeDef(
        id=type_id,
        name=name,
        description=None,
        unit_id=1,
        affects_tank_quantity=multiplier != 0,
        quantity_multiplier=multiplier,
        **kwargs,
    )


class TestTankProperties:
    """Tests for Tank computed properties."""

    def test_new_tank_is_empty_and_active(self):
        tank = Tank(label="FV-1", capacity=Decimal("100"), capacity_unit_id=1)
        assert tank.current_quantity == Decimal("0")
        assert tank.status == TankStatus.ACTIVE
        assert tank.version == 1
        assert not tank.is_occupied
        assert not tank.is_deleted

    @pytest.mark.parametrize(
        "quantity,capacity,expected",
        [
            ("0", "100", Decimal("0.00")),
            ("50", "100", Decimal("50.00")),
            ("100", "100", Decimal("100.00")),
            ("1", "3", Decimal("33.33")),
            ("2", "3", Decimal("66.67")),
        ],
    )
    def test_percent_full(self, quantity, capacity, expected):
        tank = Tank(
            label="FV-1",
            capacity=Decimal(capacity),
            capacity_unit_id=1,
            current_quantity=Decimal(quantity),
        )
        assert tank.percent_full == expected

    def test_mark_deleted_and_restored(self):
        tank = Tank(label="FV-1", capacity=Decimal("100"), capacity_unit_id=1)

        tank.mark_deleted()
        assert tank.is_deleted
        assert tank.deleted_at is not None

        tank.mark_restored()
        assert not tank.is_deleted
        assert tank.deleted_at is None


class TestBatchProperties:
    """Tests for Batch computed properties."""

    def test_active_until_completed(self):
        batch = Batch(tank_id=1, name="Left Turn IPA")
        assert batch.is_active

        batch.completed_at = datetime.now(timezone.utc)
        assert not batch.is_active

    def test_days_in_fermentation_while_active(self):
        started = datetime.now(timezone.utc) - timedelta(days=12, hours=3)
        batch = Batch(tank_id=1, name="Left Turn IPA", started_at=started)
        assert batch.days_in_fermentation == 12

    def test_days_in_fermentation_stops_at_completion(self):
        started = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
        batch = Batch(
            tank_id=1,
            name="Left Turn IPA",
            started_at=started,
            completed_at=started + timedelta(days=21, hours=5),
        )
        assert batch.days_in_fermentation == 21

    def test_days_in_fermentation_handles_naive_datetimes(self):
        """SQLite hands datetimes back without tzinfo; they are read as UTC."""
        batch = Batch(
            tank_id=1,
            name="Left Turn IPA",
            started_at=datetime(2025, 3, 1, 8, 0),
            completed_at=datetime(2025, 3, 4, 9, 0, tzinfo=timezone.utc),
        )
        assert batch.days_in_fermentation == 3


class TestTransactionTypeCache:
    """Tests for the in-memory transaction type lookup."""

    @pytest.fixture
    def cache(self) -> TransactionTypeCache:
        return TransactionTypeCache(
            [
                make_type(2, "Transfer Out", -1),
                make_type(1, "Transfer In", 1),
                make_type(5, "Yeast Addition", milestone=Milestone.YEAST),
            ]
        )

    def test_lookup_by_id_and_name(self, cache):
        assert cache.require(1).name == "Transfer In"
        assert cache.require_name("Transfer Out").id == 2
        assert cache.get(99) is None
        assert cache.get_by_name("Dry Hop") is None

    def test_unknown_id_raises_validation_error(self, cache):
        with pytest.raises(UnknownTransactionTypeError, match="Invalid transaction type: 99") as exc_info:
            cache.require(99)
        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_unknown_name_raises(self, cache):
        with pytest.raises(UnknownTransactionTypeError):
            cache.require_name("Dry Hop")

    def test_iterates_in_id_order(self, cache):
        assert [t.id for t in cache] == [1, 2, 5]
        assert len(cache) == 3

    def test_defaults_to_first_occurrence_policy(self, cache):
        assert cache.require(5).milestone_policy == MilestonePolicy.FIRST_OCCURRENCE

    def test_is_read_only(self, cache):
        with pytest.raises(TypeError):
            cache._by_id[3] = make_type(3, "Waste", -1)  # type: ignore[index]

    def test_empty_cache(self):
        cache = TransactionTypeCache()
        assert len(cache) == 0
        with pytest.raises(UnknownTransactionTypeError):
            cache.require(1)


class TestErrorKinds:
    """Each error carries a kind and a context naming the entities involved."""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (BatchNotFoundError(batch_id=7), ErrorKind.NOT_FOUND),
            (DuplicateTankLabelError(label="FV-1"), ErrorKind.CONFLICT),
            (TankOccupiedError(tank_id=1, label="FV-1", current_batch_id=3), ErrorKind.CONFLICT),
            (BatchCompletedError(batch_id=7), ErrorKind.CONFLICT),
            (
                CapacityExceededError(
                    tank_id=1, capacity=Decimal("100"), resulting=Decimal("100.01")
                ),
                ErrorKind.VALIDATION,
            ),
            (StorageUnavailableError(reason="connection reset"), ErrorKind.INFRASTRUCTURE),
        ],
    )
    def test_kind(self, error, kind):
        assert error.kind == kind

    def test_completed_batch_message(self):
        error = BatchCompletedError(batch_id=7)
        assert str(error) == "Cannot modify completed batch 7"
        assert error.context == {"batch_id": 7}

    def test_capacity_context(self):
        error = CapacityExceededError(
            tank_id=1, capacity=Decimal("100"), resulting=Decimal("100.01")
        )
        assert error.context["resulting"] == Decimal("100.01")
        assert error.context["capacity"] == Decimal("100")


class TestJsonFormatter:
    """Tests for structured log output."""

    def test_extra_fields_land_in_context(self):
        record = logging.LogRecord(
            "cellar.test", logging.INFO, __file__, 1, "Recorded %s", ("txn",), None
        )
        record.batch_id = 4
        record.quantity = Decimal("12.5")
        record.correlation_id = "abc"

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "Recorded txn"
        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "abc"
        assert entry["context"] == {"batch_id": 4, "quantity": "12.5"}

    def test_no_context_without_extra(self):
        record = logging.LogRecord("cellar.test", logging.INFO, __file__, 1, "hi", None, None)

        entry = json.loads(JsonFormatter().format(record))

        assert "context" not in entry
        assert entry["correlation_id"] == "N/A"

    def test_service_name(self):
        record = logging.LogRecord("cellar.test", logging.INFO, __file__, 1, "hi", None, None)

        entry = json.loads(JsonFormatter(service="cellar-worker").format(record))

        assert entry["service"] == "cellar-worker"


class TestConfigureLogging:
    def test_installs_one_json_handler(self):
        root = logging.getLogger()
        level = root.level
        try:
            configure_logging("DEBUG")
            configure_logging("WARNING")

            json_handlers = [h for h in root.handlers if isinstance(h.formatter, JsonFormatter)]
            assert len(json_handlers) == 1
            assert root.level == logging.WARNING
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            for handler in [h for h in root.handlers if isinstance(h.formatter, JsonFormatter)]:
                root.removeHandler(handler)
            root.setLevel(level)
