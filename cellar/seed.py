"""Reference data seeding: measurement units and the transaction type catalog."""

import logging

from sqlmodel import Session

from cellar.database import unit_of_work
from cellar.domain.exceptions import UnitNotFoundError
from cellar.domain.models import TransactionType, Unit
from cellar.domain.value_objects import Milestone, MilestonePolicy
from cellar.repositories.reference_repository import ReferenceDataRepository

logger = logging.getLogger(__name__)

# (name, abbreviation, is_volume)
UNITS = [
    ("Barrels", "bbls", True),
    ("Gallons", "gal", True),
    ("Liters", "L", True),
    ("Grams", "g", False),
    ("Kilograms", "kg", False),
    ("Pounds", "lbs", False),
    ("Ounces", "oz", False),
]

# (name, description, unit, affects_tank_quantity, multiplier, milestone)
TRANSACTION_TYPES = [
    ("Transfer In", "Transfer from previous tank or brew kettle", "bbls", True, 1, None),
    ("Transfer Out", "Transfer to bright tank or next stage", "bbls", True, -1, None),
    ("Waste", "Waste or drain from tank", "bbls", True, -1, None),
    ("Sample", "Sample taken for testing", "bbls", True, -1, None),
    ("Yeast Addition", "Add yeast to start fermentation", "g", False, 0, Milestone.YEAST),
    ("Lysozyme Addition", "Add lysozyme for stability", "g", False, 0, Milestone.STABILIZER),
    ("Nutrient Addition", "Add yeast nutrients", "g", False, 0, None),
    ("Temperature Reading", "Record temperature observation", "g", False, 0, None),
    ("pH Reading", "Record pH measurement", "g", False, 0, None),
    ("Gravity Reading", "Record specific gravity", "g", False, 0, None),
    ("Note", "General note or observation", "g", False, 0, None),
]


def seed_reference_data(session: Session) -> int:
    """
    Insert any missing units and transaction types.

    Rows are matched by name/abbreviation, so running this again is a no-op.

    Returns:
        Number of rows inserted
    """
    repository = ReferenceDataRepository(session)
    inserted = 0

    with unit_of_work(session):
        units: dict[str, Unit] = {}
        for name, abbreviation, is_volume in UNITS:
            try:
                unit = repository.get_unit_by_abbreviation(abbreviation)
            except UnitNotFoundError:
                unit = repository.add_unit(
                    Unit(name=name, abbreviation=abbreviation, is_volume=is_volume)
                )
                inserted += 1
            units[abbreviation] = unit

        for name, description, unit, affects, multiplier, milestone in TRANSACTION_TYPES:
            if repository.get_transaction_type_by_name(name) is not None:
                continue
            repository.add_transaction_type(
                TransactionType(
                    name=name,
                    description=description,
                    unit_id=units[unit].id,
                    affects_tank_quantity=affects,
                    quantity_multiplier=multiplier,
                    milestone=milestone,
                    milestone_policy=MilestonePolicy.FIRST_OCCURRENCE,
                )
            )
            inserted += 1

    if inserted:
        logger.info("Seeded %d reference rows", inserted)
    return inserted
