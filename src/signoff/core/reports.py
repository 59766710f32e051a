from __future__ import annotations

import csv
import io
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from signoff.core.catalog import Department
from signoff.core.scoring import RATING_BANDS
from signoff.core.workflow import AppraisalStatus
from signoff.types import DepartmentSummary, DepartmentSummaryRow

CSV_COLUMNS = ["Employee Name", "Score", "Rating", "Appraiser Comment", "Status"]


def summarize_department(appraisals: Iterable[Any], department: Department | str) -> DepartmentSummary:
    dept = Department(department)
    rows = [item for item in appraisals if item.department == dept.value]

    ratings = Counter(row.overall_rating for row in rows)
    distribution = {label: ratings.get(label, 0) for _, label in RATING_BANDS}
    for label, count in ratings.items():
        distribution.setdefault(label, count)

    mean = round(sum(row.overall_score for row in rows) / len(rows), 2) if rows else 0.0
    completed = sum(1 for row in rows if row.status == AppraisalStatus.COMPLETED.value)

    return DepartmentSummary(
        department=dept.value,
        generated_at=datetime.now(UTC).isoformat(),
        count=len(rows),
        completed=completed,
        mean_overall_score=mean,
        rating_distribution=distribution,
        rows=[
            DepartmentSummaryRow(
                appraisal_id=row.id,
                employee_name=row.employee_name,
                overall_score=f"{row.overall_score:.2f}%",
                overall_rating=row.overall_rating,
                comments=row.comments or "N/A",
                status=AppraisalStatus(row.status).label,
            )
            for row in rows
        ],
    )


def summary_to_csv(summary: DepartmentSummary) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for row in summary.rows:
        writer.writerow([row.employee_name, row.overall_score, row.overall_rating, row.comments, row.status])
    return buffer.getvalue()
