from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.api.deps import get_db, require_staff
from portal.core.config import get_settings
from portal.models.user import User
from portal.schemas.report import ClassTermReportRow, TermReport
from portal.services.report_sources import SqlReportSources
from portal.services.term_report import build_class_term_report, build_term_report

router = APIRouter()


@router.get("/reports/term-report/student/{student_id}", response_model=TermReport)
def student_term_report(
    student_id: str,
    academic_year_id: str = Query(min_length=1),
    term_id: str = Query(min_length=1),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> TermReport:
    return build_term_report(
        student_id,
        academic_year_id,
        term_id,
        SqlReportSources(db),
        division_best_subjects=get_settings().division_best_subjects,
    )


@router.get("/reports/class-term-report", response_model=list[ClassTermReportRow])
def class_term_report(
    academic_year_id: str = Query(min_length=1),
    class_id: str = Query(min_length=1),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> list[ClassTermReportRow]:
    return build_class_term_report(class_id, academic_year_id, SqlReportSources(db))
