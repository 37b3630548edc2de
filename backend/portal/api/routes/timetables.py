import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from portal.api.deps import get_current_user, get_db, require_roles
from portal.models.academic_year import AcademicYear, Term
from portal.models.school_class import SchoolClass
from portal.models.subject import Subject
from portal.models.timetable import Timetable, TimetablePeriod
from portal.models.user import User, UserRole
from portal.schemas.timetable import (
    ConflictCheckOut,
    ConflictCheckRequest,
    ConflictOut,
    PeriodPayload,
    TimetableBase,
    TimetableCopyRequest,
    TimetableCreate,
    TimetableOut,
    TimetableUpdate,
)
from portal.services.conflict_service import TimetableConflict, TimetableScope, detect_conflicts
from portal.services.timetable_snapshots import NameLookup, load_active_snapshots

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_timetable(db: Session, timetable_id: str) -> Timetable:
    timetable = db.execute(
        select(Timetable).options(selectinload(Timetable.periods)).where(Timetable.id == timetable_id)
    ).scalar_one_or_none()
    if timetable is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable not found")
    return timetable


def _validate_references(
    db: Session,
    *,
    academic_year_id: str,
    class_id: str,
    term_id: str | None,
    periods: list[PeriodPayload],
) -> None:
    if db.get(AcademicYear, academic_year_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Academic year not found")
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class not found")
    if term_id is not None:
        term = db.get(Term, term_id)
        if term is None or term.academic_year_id != academic_year_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Term not found for the selected academic year",
            )

    subject_ids = {period.subject_id for period in periods}
    if subject_ids:
        known = set(db.execute(select(Subject.id).where(Subject.id.in_(subject_ids))).scalars())
        unknown = sorted(subject_ids - known)
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown subject id(s): {', '.join(unknown)}",
            )

    teacher_ids = {period.teacher_id for period in periods if period.teacher_id}
    if teacher_ids:
        known = set(
            db.execute(
                select(User.id).where(User.id.in_(teacher_ids), User.role.in_([UserRole.teacher, UserRole.admin]))
            ).scalars()
        )
        unknown = sorted(teacher_ids - known)
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown teacher id(s): {', '.join(unknown)}",
            )


def _ensure_unique_name(
    db: Session,
    *,
    name: str,
    academic_year_id: str,
    class_id: str,
    term_id: str | None,
    exclude_id: str | None = None,
) -> None:
    query = select(Timetable.id).where(
        Timetable.name == name,
        Timetable.academic_year_id == academic_year_id,
        Timetable.class_id == class_id,
        Timetable.term_id.is_(None) if term_id is None else Timetable.term_id == term_id,
    )
    if exclude_id is not None:
        query = query.where(Timetable.id != exclude_id)
    if db.execute(query).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A timetable with this name already exists for the selected class, academic year, and term.",
        )


def _find_conflict(db: Session, payload: TimetableBase, timetable_id: str | None) -> TimetableConflict | None:
    names = NameLookup(db).load(payload.periods)
    others = load_active_snapshots(db, payload.academic_year_id, payload.term_id, names)
    scope = TimetableScope(
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        timetable_id=timetable_id,
    )
    return detect_conflicts([names.slot(period) for period in payload.periods], scope, others)


def _reject_on_conflict(db: Session, payload: TimetableBase, timetable_id: str | None) -> None:
    conflict = _find_conflict(db, payload, timetable_id)
    if conflict is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict.message)


def _build_periods(periods: list[PeriodPayload]) -> list[TimetablePeriod]:
    return [
        TimetablePeriod(position=index, **period.model_dump())
        for index, period in enumerate(periods)
    ]


def _save(db: Session, timetable: Timetable) -> None:
    try:
        db.flush()
        if timetable.is_active:
            _deactivate_siblings(db, timetable)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Timetable name, class, academic year, and term combination must be unique.",
        ) from exc


def _deactivate_siblings(db: Session, timetable: Timetable) -> None:
    """Keep a single active timetable per (class, academic year, term)."""
    db.execute(
        update(Timetable)
        .where(
            Timetable.class_id == timetable.class_id,
            Timetable.academic_year_id == timetable.academic_year_id,
            Timetable.term_id.is_(None) if timetable.term_id is None else Timetable.term_id == timetable.term_id,
            Timetable.is_active.is_(True),
            Timetable.id != timetable.id,
        )
        .values(is_active=False)
    )


@router.get("/timetables", response_model=list[TimetableOut])
def list_timetables(
    academic_year_id: str | None = Query(default=None),
    class_id: str | None = Query(default=None),
    term_id: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableOut]:
    query = select(Timetable).options(selectinload(Timetable.periods)).order_by(Timetable.name)
    if academic_year_id:
        query = query.where(Timetable.academic_year_id == academic_year_id)
    if class_id:
        query = query.where(Timetable.class_id == class_id)
    if term_id:
        query = query.where(Timetable.term_id == term_id)
    if is_active is not None:
        query = query.where(Timetable.is_active.is_(is_active))
    return list(db.execute(query).scalars())


@router.post("/timetables/check-conflicts", response_model=ConflictCheckOut)
def check_timetable_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ConflictCheckOut:
    conflict = _find_conflict(db, payload, payload.timetable_id)
    if conflict is None:
        return ConflictCheckOut(has_conflict=False)
    return ConflictCheckOut(
        has_conflict=True,
        conflict=ConflictOut(
            conflict_type=conflict.conflict_type,
            message=conflict.message,
            day_of_week=conflict.day_of_week,
            other_timetable_id=conflict.other_timetable_id,
        ),
    )


@router.get("/timetables/{timetable_id}", response_model=TimetableOut)
def get_timetable(
    timetable_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return _get_timetable(db, timetable_id)


@router.post("/timetables", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def create_timetable(
    payload: TimetableCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> TimetableOut:
    _validate_references(
        db,
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        periods=payload.periods,
    )
    _ensure_unique_name(
        db,
        name=payload.name,
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
    )
    _reject_on_conflict(db, payload, None)

    timetable = Timetable(
        name=payload.name,
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        description=payload.description,
        is_active=payload.is_active,
        version=1,
        periods=_build_periods(payload.periods),
    )
    db.add(timetable)
    _save(db, timetable)
    logger.info("Timetable %s created by %s with %d periods", timetable.id, current_user.id, len(payload.periods))
    return _get_timetable(db, timetable.id)


@router.put("/timetables/{timetable_id}", response_model=TimetableOut)
def update_timetable(
    timetable_id: str,
    payload: TimetableUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> TimetableOut:
    timetable = _get_timetable(db, timetable_id)
    _validate_references(
        db,
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        periods=payload.periods,
    )
    _ensure_unique_name(
        db,
        name=payload.name,
        academic_year_id=payload.academic_year_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        exclude_id=timetable_id,
    )
    _reject_on_conflict(db, payload, timetable_id)

    timetable.name = payload.name
    timetable.academic_year_id = payload.academic_year_id
    timetable.class_id = payload.class_id
    timetable.term_id = payload.term_id
    timetable.description = payload.description
    timetable.periods = _build_periods(payload.periods)
    if payload.is_active is not None:
        timetable.is_active = payload.is_active
    timetable.version = (timetable.version or 0) + 1
    _save(db, timetable)
    logger.info("Timetable %s updated to version %d by %s", timetable.id, timetable.version, current_user.id)
    db.expire_all()
    return _get_timetable(db, timetable_id)


@router.post("/timetables/{timetable_id}/copy", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def copy_timetable(
    timetable_id: str,
    payload: TimetableCopyRequest,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> TimetableOut:
    source = _get_timetable(db, timetable_id)
    academic_year_id = payload.academic_year_id or source.academic_year_id
    class_id = payload.class_id or source.class_id
    term_id = payload.term_id if "term_id" in payload.model_fields_set else source.term_id
    name = payload.name

    periods = [
        PeriodPayload(
            day_of_week=period.day_of_week,
            start_time=period.start_time,
            end_time=period.end_time,
            subject_id=period.subject_id,
            teacher_id=period.teacher_id,
            location=period.location,
        )
        for period in source.periods
    ]
    _validate_references(db, academic_year_id=academic_year_id, class_id=class_id, term_id=term_id, periods=periods)
    _ensure_unique_name(db, name=name, academic_year_id=academic_year_id, class_id=class_id, term_id=term_id)

    # Copies start inactive, so they cannot clash with anything until activated.
    copy = Timetable(
        name=name,
        academic_year_id=academic_year_id,
        class_id=class_id,
        term_id=term_id,
        description=payload.description or source.description,
        is_active=False,
        version=1,
        periods=_build_periods(periods),
    )
    db.add(copy)
    _save(db, copy)
    logger.info("Timetable %s copied to %s by %s", timetable_id, copy.id, current_user.id)
    return _get_timetable(db, copy.id)


@router.delete("/timetables/{timetable_id}")
def delete_timetable(
    timetable_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    timetable = _get_timetable(db, timetable_id)
    db.delete(timetable)
    db.commit()
    logger.info("Timetable %s deleted by %s", timetable_id, current_user.id)
    return {"success": True}
