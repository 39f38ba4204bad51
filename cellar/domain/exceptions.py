"""Domain-specific exception classes.

Every error carries an ``ErrorKind`` so callers branch on the kind instead
of parsing messages, plus a ``context`` dict naming the entities and the
rule involved.
"""

from decimal import Decimal
from enum import Enum


class ErrorKind(str, Enum):
    """Discriminates how a caller should react to a rejected operation."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INFRASTRUCTURE = "infrastructure"


class CellarError(Exception):
    """Base exception for tank, batch and transaction errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **context: object):
        self.message = message
        self.context = context
        super().__init__(message)


class NotFoundError(CellarError):
    """A referenced tank, batch, unit or type does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(CellarError):
    """A uniqueness or state-exclusivity rule would be violated."""

    kind = ErrorKind.CONFLICT


class RuleViolationError(CellarError):
    """A supplied value violates a business rule."""

    kind = ErrorKind.VALIDATION


class StorageUnavailableError(CellarError):
    """The database could not complete the unit of work; safe to retry."""

    kind = ErrorKind.INFRASTRUCTURE

    def __init__(self, reason: str):
        super().__init__(f"Storage unavailable: {reason}", reason=reason)


# ---------------------------------------------------------------------- #
# Not found                                                              #
# ---------------------------------------------------------------------- #


class TankNotFoundError(NotFoundError):
    """Raised when a tank cannot be found by id or label."""

    def __init__(self, tank_id: int | None = None, label: str | None = None):
        self.tank_id = tank_id
        self.label = label
        ref = f"label '{label}'" if label is not None else f"ID {tank_id}"
        super().__init__(f"Tank with {ref} not found", tank_id=tank_id, label=label)


class BatchNotFoundError(NotFoundError):
    """Raised when batch cannot be found."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Batch with ID {batch_id} not found", batch_id=batch_id)


class UnitNotFoundError(NotFoundError):
    """Raised when a unit abbreviation is unknown."""

    def __init__(self, abbreviation: str):
        self.abbreviation = abbreviation
        super().__init__(f"Unit '{abbreviation}' not found", abbreviation=abbreviation)


# ---------------------------------------------------------------------- #
# Conflict                                                               #
# ---------------------------------------------------------------------- #


class DuplicateTankLabelError(ConflictError):
    """Raised when a tank label is already taken, deleted tanks included."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Tank label '{label}' already exists", label=label)


class TankOccupiedError(ConflictError):
    """Raised when starting a batch in a tank that already holds one."""

    def __init__(self, tank_id: int, label: str, current_batch_id: int):
        self.tank_id = tank_id
        self.current_batch_id = current_batch_id
        super().__init__(
            f"Tank {label} already has an active batch ({current_batch_id})",
            tank_id=tank_id,
            current_batch_id=current_batch_id,
        )


class BatchCompletedError(ConflictError):
    """Raised when modifying or completing a batch that is already completed."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(
            f"Cannot modify completed batch {batch_id}", batch_id=batch_id
        )


class TankDeletedError(ConflictError):
    """Raised when soft-deleting a tank that is already deleted."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Tank {label} has already been deleted", label=label)


class TankNotDeletedError(ConflictError):
    """Raised when restoring a tank that was never deleted."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Tank {label} is not deleted", label=label)


class TransactionImmutableError(ConflictError):
    """Raised when something tries to change or remove a recorded transaction."""

    def __init__(self, transaction_id: int | None):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} is immutable",
            transaction_id=transaction_id,
        )


# ---------------------------------------------------------------------- #
# Validation                                                             #
# ---------------------------------------------------------------------- #


class UnknownTransactionTypeError(RuleViolationError):
    """Raised when a transaction type is absent from the lookup cache."""

    def __init__(self, transaction_type: int | str):
        self.transaction_type = transaction_type
        super().__init__(
            f"Invalid transaction type: {transaction_type}",
            transaction_type=transaction_type,
        )


class InvalidQuantityError(RuleViolationError):
    """Raised when a quantity is negative, non-finite or too precise to store."""

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        super().__init__(
            f"Invalid quantity {quantity}: {reason}", quantity=quantity, rule=reason
        )


class InsufficientQuantityError(RuleViolationError):
    """Raised when a removal would take the tank below zero."""

    def __init__(self, tank_id: int, available: Decimal, requested: Decimal):
        self.tank_id = tank_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient quantity in tank {tank_id}: "
            f"current={available}, attempted removal={requested}",
            tank_id=tank_id,
            available=available,
            requested=requested,
        )


class CapacityExceededError(RuleViolationError):
    """Raised when an addition would take the tank above its capacity."""

    def __init__(self, tank_id: int, capacity: Decimal, resulting: Decimal):
        self.tank_id = tank_id
        self.capacity = capacity
        self.resulting = resulting
        super().__init__(
            f"Transaction exceeds capacity of tank {tank_id}: "
            f"capacity={capacity}, resulting quantity={resulting}",
            tank_id=tank_id,
            capacity=capacity,
            resulting=resulting,
        )


class CapacityBelowContentsError(RuleViolationError):
    """Raised when shrinking a tank below what it currently holds."""

    def __init__(self, label: str, capacity: Decimal, current_quantity: Decimal):
        self.label = label
        super().__init__(
            f"Capacity {capacity} of tank {label} is below its current "
            f"quantity {current_quantity}",
            label=label,
            capacity=capacity,
            current_quantity=current_quantity,
        )


class InvalidCapacityError(RuleViolationError):
    """Raised when a capacity is not strictly positive."""

    def __init__(self, capacity: object):
        super().__init__(
            f"Capacity must be greater than zero, got {capacity}", capacity=capacity
        )


class InvalidTankLabelError(RuleViolationError):
    """Raised when a tank label is not URL-safe."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(
            f"Invalid tank label '{label}': use only letters, numbers, "
            "hyphens and underscores",
            label=label,
        )


class InvalidBatchNameError(RuleViolationError):
    """Raised when a batch name is blank or too long."""

    def __init__(self, name: str):
        super().__init__("Batch name is required (max 100 characters)", name=name)


class NonVolumeUnitError(RuleViolationError):
    """Raised when a tank capacity is given in a weight unit."""

    def __init__(self, abbreviation: str):
        self.abbreviation = abbreviation
        super().__init__(
            f"Tank capacity must use a volume unit, not '{abbreviation}'",
            abbreviation=abbreviation,
        )


class NothingToTransferError(RuleViolationError):
    """Raised when the source tank of a transfer is empty."""

    def __init__(self, batch_id: int, tank_id: int):
        super().__init__(
            f"Nothing to transfer: tank {tank_id} of batch {batch_id} is empty",
            batch_id=batch_id,
            tank_id=tank_id,
        )


class DestinationNotActiveError(RuleViolationError):
    """Raised when a transfer targets a tank without an active batch."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(
            f"Destination tank {label} has no active batch", label=label
        )


class SameTankTransferError(RuleViolationError):
    """Raised when a transfer's source and destination are the same tank."""

    def __init__(self, label: str):
        super().__init__(f"Cannot transfer tank {label} into itself", label=label)


class UnitMismatchError(RuleViolationError):
    """Raised when a quantity event is measured in a unit other than the tank's."""

    def __init__(self, tank_id: int, tank_unit_id: int, transaction_unit_id: int):
        self.tank_id = tank_id
        super().__init__(
            f"Transaction unit {transaction_unit_id} does not match the capacity "
            f"unit {tank_unit_id} of tank {tank_id}",
            tank_id=tank_id,
            tank_unit_id=tank_unit_id,
            transaction_unit_id=transaction_unit_id,
        )
