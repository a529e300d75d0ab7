"""
Lab statistics - pivots of tests by test/result, by test, and by
category, each broken down by patient rank.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, literal_column
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.config import settings
from ..core.exceptions import ValidationError
from ..models.lab_test import TestCategory, TestDefinition
from ..models.patient import Patient, PatientRank
from ..models.test_instance import TestInstance, TestStatus

# Result shown for a completed test that has no result rows
EMPTY_RESULT = "—"


@dataclass
class RankCounts:
    army: int = 0
    army_family: int = 0
    civil: int = 0
    pension: int = 0
    total: int = 0

    def tally(self, rank: Optional[str]) -> None:
        if rank == PatientRank.ARMY:
            self.army += 1
        elif rank == PatientRank.ARMY_FAMILY:
            self.army_family += 1
        elif rank == PatientRank.CIVIL:
            self.civil += 1
        elif rank == PatientRank.PENSION:
            self.pension += 1
        self.total += 1

    def merge(self, other: "RankCounts") -> None:
        self.army += other.army
        self.army_family += other.army_family
        self.civil += other.civil
        self.pension += other.pension
        self.total += other.total

    def as_list(self) -> List[int]:
        return [self.army, self.army_family, self.civil, self.pension, self.total]


@dataclass
class PivotRow:
    key: Tuple[str, ...]
    counts: RankCounts = field(default_factory=RankCounts)


@dataclass
class PivotTable:
    key_columns: Tuple[str, ...]
    rows: List[PivotRow] = field(default_factory=list)

    @property
    def totals(self) -> RankCounts:
        totals = RankCounts()
        for row in self.rows:
            totals.merge(row.counts)
        return totals

    @property
    def grand_total(self) -> int:
        return self.totals.total


class _PivotBuilder:
    """Groups tallies by key, keeping first-seen order."""

    def __init__(self, key_columns: Tuple[str, ...]):
        self.key_columns = key_columns
        self._rows: Dict[Tuple[str, ...], PivotRow] = {}

    def tally(self, key: Tuple[str, ...], rank: Optional[str]) -> None:
        row = self._rows.get(key)
        if row is None:
            row = self._rows[key] = PivotRow(key=key)
        row.counts.tally(rank)

    def build(self) -> PivotTable:
        return PivotTable(key_columns=self.key_columns, rows=list(self._rows.values()))


def _day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """Half-open datetime window covering both dates in full."""
    lower = datetime(start.year, start.month, start.day)
    upper = datetime(end.year, end.month, end.day) + timedelta(days=1)
    return lower, upper


def _category_of(lab_test: Optional[TestDefinition]) -> str:
    if lab_test is None or not lab_test.category:
        return TestCategory.UNCATEGORIZED
    return lab_test.category


class AggregationEngine:
    """
    Read-only reporting over assigned tests. Only the per-test report counts
    tests still pending.
    Each pivot is one bulk read followed by an in-memory grouping pass;
    rows come out in discovery order (oldest test first).
    """

    TEST_RESULT_COLUMNS = ("Test Name", "Result")
    TEST_COLUMNS = ("Test Name",)
    CATEGORY_COLUMNS = ("Category",)

    def _instances(self, db: Session) -> Query:
        return db.query(TestInstance).options(
            joinedload(TestInstance.patient), joinedload(TestInstance.lab_test)
        )

    def _completed(self, db: Session, window: Optional[Tuple[datetime, datetime]] = None) -> Query:
        q = self._instances(db).filter(TestInstance.status == TestStatus.COMPLETED)
        if window is not None:
            q = q.filter(TestInstance.created_at >= window[0], TestInstance.created_at < window[1])
        return q.order_by(TestInstance.created_at, TestInstance.id)

    def summary_by_test_result(self, db: Session) -> PivotTable:
        """One row per (test name, result value); tests without results count once under a dash."""
        builder = _PivotBuilder(self.TEST_RESULT_COLUMNS)
        instances = self._completed(db).options(selectinload(TestInstance.results)).all()
        for instance in instances:
            test_name = instance.lab_test.name if instance.lab_test else EMPTY_RESULT
            rank = instance.patient.rank if instance.patient else None
            if not instance.results:
                builder.tally((test_name, EMPTY_RESULT), rank)
                continue
            for record in instance.results:
                builder.tally((test_name, record.field_value or EMPTY_RESULT), rank)
        return builder.build()

    def summary_by_test(
        self,
        db: Session,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PivotTable:
        """One row per test name over pending and completed tests; either date bound may be left open."""
        if start_date and end_date and start_date > end_date:
            raise ValidationError("Start date must not be after end date.")
        q = self._instances(db)
        if start_date:
            q = q.filter(TestInstance.created_at >= _day_bounds(start_date, start_date)[0])
        if end_date:
            q = q.filter(TestInstance.created_at < _day_bounds(end_date, end_date)[1])

        builder = _PivotBuilder(self.TEST_COLUMNS)
        for instance in q.order_by(TestInstance.created_at, TestInstance.id).all():
            test_name = instance.lab_test.name if instance.lab_test else EMPTY_RESULT
            builder.tally((test_name,), instance.patient.rank if instance.patient else None)
        return builder.build()

    def summary_by_category(
        self,
        db: Session,
        start_date: Optional[date],
        end_date: Optional[date],
        pushdown: Optional[bool] = None,
    ) -> PivotTable:
        """One row per category for tests created within [start_date, end_date]."""
        if start_date is None or end_date is None:
            raise ValidationError("Please select both start and end dates.")
        if start_date > end_date:
            raise ValidationError("Start date must not be after end date.")

        use_pushdown = settings.AGGREGATION_PUSHDOWN if pushdown is None else pushdown
        if use_pushdown:
            return self.category_rows_pushdown(db, start_date, end_date)

        builder = _PivotBuilder(self.CATEGORY_COLUMNS)
        for instance in self._completed(db, _day_bounds(start_date, end_date)).all():
            builder.tally((_category_of(instance.lab_test),), instance.patient.rank if instance.patient else None)
        return builder.build()

    def category_rows_pushdown(self, db: Session, start_date: date, end_date: date) -> PivotTable:
        """Same pivot as summary_by_category, grouped by the database in one query."""
        lower, upper = _day_bounds(start_date, end_date)
        # Inline literals so the grouped expression matches the selected one exactly
        category = func.coalesce(
            func.nullif(TestDefinition.category, literal_column("''")),
            literal_column(f"'{TestCategory.UNCATEGORIZED}'"),
        )

        def rank_count(rank: str):
            return func.sum(case((Patient.rank == rank, 1), else_=0))

        rows = (
            db.query(
                category.label("category"),
                rank_count(PatientRank.ARMY),
                rank_count(PatientRank.ARMY_FAMILY),
                rank_count(PatientRank.CIVIL),
                rank_count(PatientRank.PENSION),
                func.count(TestInstance.id),
            )
            .select_from(TestInstance)
            .join(TestDefinition, TestInstance.lab_test_id == TestDefinition.id)
            .join(Patient, TestInstance.patient_id == Patient.id)
            .filter(
                TestInstance.status == TestStatus.COMPLETED,
                TestInstance.created_at >= lower,
                TestInstance.created_at < upper,
            )
            .group_by(category)
            .order_by(func.min(TestInstance.created_at))
            .all()
        )
        return PivotTable(
            key_columns=self.CATEGORY_COLUMNS,
            rows=[
                PivotRow(
                    key=(name,),
                    counts=RankCounts(
                        army=int(army or 0),
                        army_family=int(army_family or 0),
                        civil=int(civil or 0),
                        pension=int(pension or 0),
                        total=int(total or 0),
                    ),
                )
                for name, army, army_family, civil, pension, total in rows
            ],
        )


aggregation_engine = AggregationEngine()
