"""CSV export of the lab-tests-by-category report."""
import csv
import io
from datetime import date
from typing import List

from .aggregation import AggregationEngine, PivotRow, PivotTable, RankCounts

CATEGORY_CSV_HEADER = ["Category", "Army", "Army Family", "Civil", "Pension", "Total"]


def export_category_csv(table: PivotTable) -> str:
    """Header row plus one line per category, without a totals line."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CATEGORY_CSV_HEADER)
    for row in table.rows:
        writer.writerow([row.key[0], *row.counts.as_list()])
    return buffer.getvalue()


def read_category_csv(text: str) -> PivotTable:
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header != CATEGORY_CSV_HEADER:
        raise ValueError(f"Unexpected CSV header: {header}")

    rows: List[PivotRow] = []
    for line in reader:
        if not line:
            continue
        category, army, army_family, civil, pension, total = line
        rows.append(
            PivotRow(
                key=(category,),
                counts=RankCounts(
                    army=int(army),
                    army_family=int(army_family),
                    civil=int(civil),
                    pension=int(pension),
                    total=int(total),
                ),
            )
        )
    return PivotTable(key_columns=AggregationEngine.CATEGORY_COLUMNS, rows=rows)


def category_csv_filename(start_date: date, end_date: date) -> str:
    return f"lab_report_{start_date.isoformat()}_to_{end_date.isoformat()}.csv"
