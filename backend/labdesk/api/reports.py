from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from datetime import date
from ..models.base import get_db
from ..services.aggregation import PivotTable, aggregation_engine
from ..services.export import category_csv_filename, export_category_csv

router = APIRouter(prefix="/reports", tags=["reports"])


class PivotRowResponse(BaseModel):
    key: List[str]
    army: int
    army_family: int
    civil: int
    pension: int
    total: int


class PivotTableResponse(BaseModel):
    key_columns: List[str]
    rows: List[PivotRowResponse]
    totals: PivotRowResponse
    grand_total: int


def _to_response(table: PivotTable) -> PivotTableResponse:
    def row(key, counts) -> PivotRowResponse:
        return PivotRowResponse(
            key=list(key),
            army=counts.army,
            army_family=counts.army_family,
            civil=counts.civil,
            pension=counts.pension,
            total=counts.total,
        )

    totals = table.totals
    return PivotTableResponse(
        key_columns=list(table.key_columns),
        rows=[row(r.key, r.counts) for r in table.rows],
        totals=row(["Total"], totals),
        grand_total=totals.total,
    )


@router.get("/by-test-result", response_model=PivotTableResponse)
def summary_by_test_result(db: Session = Depends(get_db)):
    """Completed tests grouped by test name and result value, per rank."""
    return _to_response(aggregation_engine.summary_by_test_result(db))


@router.get("/by-test", response_model=PivotTableResponse)
def summary_by_test(
    from_date: Optional[date] = Query(None, description="Include tests created on or after this date"),
    to_date: Optional[date] = Query(None, description="Include tests created on or before this date"),
    db: Session = Depends(get_db),
):
    return _to_response(aggregation_engine.summary_by_test(db, from_date, to_date))


@router.get("/by-category", response_model=PivotTableResponse)
def summary_by_category(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return _to_response(aggregation_engine.summary_by_category(db, start_date, end_date))


@router.get("/by-category.csv")
def download_by_category(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    table = aggregation_engine.summary_by_category(db, start_date, end_date)
    return Response(
        content=export_category_csv(table),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{category_csv_filename(start_date, end_date)}"'},
    )
