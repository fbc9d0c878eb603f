from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pos_service.domain.models import DailyCounter
from pos_service.domain.restaurant import business_day

UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TokenSequencer:
    """
    Hands out kitchen token numbers that restart at 1 every business day.

    The counter row for the day is incremented in a single statement inside
    the caller's transaction, so two tills creating orders at the same moment
    never receive the same token, and a rolled back order gives its token back.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_token(self, now: datetime, tz_name: str) -> int:
        day = business_day(now, tz_name)
        insert = UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            return self._next_token_locked(day)

        stmt = (
            insert(DailyCounter)
            .values(day=day, seq=1)
            .on_conflict_do_update(
                index_elements=[DailyCounter.day],
                set_={"seq": DailyCounter.seq + 1},
            )
            .returning(DailyCounter.seq)
        )
        return self.db.execute(stmt).scalar_one()

    def _next_token_locked(self, day) -> int:
        counter = self.db.execute(
            select(DailyCounter).where(DailyCounter.day == day).with_for_update()
        ).scalar_one_or_none()
        if counter is None:
            self.db.add(DailyCounter(day=day, seq=1))
            self.db.flush()
            return 1
        self.db.execute(
            update(DailyCounter).where(DailyCounter.day == day).values(seq=DailyCounter.seq + 1)
        )
        return self.db.scalar(select(DailyCounter.seq).where(DailyCounter.day == day))
