import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.api.deps import get_db, require_staff
from portal.models.exam import Assessment, Exam
from portal.models.mark import Mark
from portal.models.user import User, UserRole
from portal.schemas.mark import MarkBatchOut, MarkBatchRequest, MarkOut

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/marks/assessment/{assessment_id}", response_model=list[MarkOut])
def list_assessment_marks(
    assessment_id: str,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> list[MarkOut]:
    if db.get(Assessment, assessment_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found")
    return list(db.execute(select(Mark).where(Mark.assessment_id == assessment_id)).scalars())


@router.post("/marks/batch", response_model=MarkBatchOut)
def save_marks(
    payload: MarkBatchRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> MarkBatchOut:
    assessment = db.get(Assessment, payload.assessment_id)
    if assessment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found")
    exam = db.get(Exam, assessment.exam_id)

    over_limit = [
        entry.student_id
        for entry in payload.marks
        if entry.marks_obtained is not None and entry.marks_obtained > assessment.max_marks
    ]
    if over_limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Marks exceed the maximum of {assessment.max_marks:g} for student(s): {', '.join(over_limit)}",
        )

    student_ids = {entry.student_id for entry in payload.marks}
    known_students = set(
        db.execute(select(User.id).where(User.id.in_(student_ids), User.role == UserRole.student)).scalars()
    )
    unknown = sorted(student_ids - known_students)
    if unknown:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown student id(s): {', '.join(unknown)}")

    existing = {
        mark.student_id: mark
        for mark in db.execute(
            select(Mark).where(Mark.assessment_id == assessment.id, Mark.student_id.in_(student_ids))
        ).scalars()
    }
    created = updated = 0
    saved: list[Mark] = []
    for entry in payload.marks:
        mark = existing.get(entry.student_id)
        if mark is None:
            mark = Mark(
                assessment_id=assessment.id,
                student_id=entry.student_id,
                academic_year_id=exam.academic_year_id,
                term_id=exam.term_id,
                recorded_by_id=current_user.id,
            )
            db.add(mark)
            existing[entry.student_id] = mark
            created += 1
        else:
            updated += 1
        mark.marks_obtained = entry.marks_obtained
        mark.comments = entry.comments
        mark.recorded_by_id = current_user.id
        saved.append(mark)

    if payload.mark_assessment_graded:
        assessment.is_graded = True
    db.commit()
    for mark in saved:
        db.refresh(mark)
    logger.info(
        "Marks saved for assessment %s by %s: %d created, %d updated",
        assessment.id,
        current_user.id,
        created,
        updated,
    )
    return MarkBatchOut(created=created, updated=updated, marks=saved)
