from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..models import NumberSequence, utcnow

# sequence name -> document prefix
LOT = ("lot", "INV")
MOVEMENT = ("movement", "MOV")
PUTAWAY = ("putaway", "PUT")
ISSUE = ("issue", "ISS")
CYCLE_COUNT = ("cycle_count", "CC")
LABEL = ("label", "BC")

UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _seed_counter(db: Session, sequence_name: str, prefix: str, year: int) -> None:
    """Create the (name, year) counter row unless another writer already has"""
    insert = UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is None:
        # No ON CONFLICT support: a racing first-of-year writer fails on
        # uq_sequence_name_year and its transaction rolls back.
        db.add(NumberSequence(
            sequence_name=sequence_name, year=year, prefix=prefix,
            current_number=0, padding=6,
        ))
        db.flush()
        return

    stmt = insert(NumberSequence).values(
        sequence_name=sequence_name,
        year=year,
        prefix=prefix,
        current_number=0,
        padding=6,
        updated_at=utcnow(),
    ).on_conflict_do_nothing(index_elements=["sequence_name", "year"])
    db.execute(stmt)


def get_next_sequence(db: Session, sequence: tuple, now: Optional[datetime] = None) -> str:
    """
    Next document number for `sequence`, formatted PREFIX-YEAR-000001.

    The counter row for (name, year) is seeded with INSERT ... ON CONFLICT DO
    NOTHING and then locked with SELECT FOR UPDATE, so the number is taken
    inside the caller's transaction and two writers, including the first two
    of a year, never receive the same value. Counters restart at 1 every
    calendar year.
    """
    sequence_name, prefix = sequence
    year = (now or utcnow()).year

    def locked():
        return db.query(NumberSequence).filter(
            NumberSequence.sequence_name == sequence_name,
            NumberSequence.year == year,
        ).with_for_update().first()

    seq = locked()
    if not seq:
        _seed_counter(db, sequence_name, prefix, year)
        seq = locked()

    seq.current_number += 1
    db.flush()

    return f"{seq.prefix}-{year}-{str(seq.current_number).zfill(seq.padding)}"
