from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.api.deps import get_current_user, get_db, require_roles
from portal.models.academic_year import AcademicYear
from portal.models.grading_scale import GradingScale
from portal.models.user import User, UserRole
from portal.schemas.grading_scale import GradingScaleCreate, GradingScaleOut, GradingScaleUpdate

router = APIRouter()


def _get_scale(db: Session, scale_id: str) -> GradingScale:
    scale = db.get(GradingScale, scale_id)
    if scale is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grading scale not found")
    return scale


def _ensure_name_free(db: Session, name: str, exclude_id: str | None = None) -> None:
    query = select(GradingScale.id).where(GradingScale.name == name)
    if exclude_id is not None:
        query = query.where(GradingScale.id != exclude_id)
    if db.execute(query).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Grading scale name already exists")


def _ensure_year(db: Session, academic_year_id: str | None) -> None:
    if academic_year_id is not None and db.get(AcademicYear, academic_year_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")


@router.get("/grading-scales", response_model=list[GradingScaleOut])
def list_grading_scales(
    academic_year_id: str | None = Query(default=None),
    level: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[GradingScaleOut]:
    query = select(GradingScale).order_by(GradingScale.name)
    if academic_year_id:
        query = query.where(GradingScale.academic_year_id == academic_year_id)
    if level:
        query = query.where(GradingScale.level == level)
    return list(db.execute(query).scalars())


@router.get("/grading-scales/{scale_id}", response_model=GradingScaleOut)
def get_grading_scale(
    scale_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GradingScaleOut:
    return _get_scale(db, scale_id)


@router.post("/grading-scales", response_model=GradingScaleOut, status_code=status.HTTP_201_CREATED)
def create_grading_scale(
    payload: GradingScaleCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> GradingScaleOut:
    _ensure_name_free(db, payload.name)
    _ensure_year(db, payload.academic_year_id)
    data = payload.model_dump(mode="json")
    scale = GradingScale(**data)
    db.add(scale)
    db.commit()
    db.refresh(scale)
    return scale


@router.put("/grading-scales/{scale_id}", response_model=GradingScaleOut)
def update_grading_scale(
    scale_id: str,
    payload: GradingScaleUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> GradingScaleOut:
    scale = _get_scale(db, scale_id)
    data = payload.model_dump(mode="json", exclude_unset=True)
    if "name" in data:
        _ensure_name_free(db, data["name"], exclude_id=scale_id)
    if "academic_year_id" in data:
        _ensure_year(db, data["academic_year_id"])
    for key, value in data.items():
        setattr(scale, key, value)
    db.commit()
    db.refresh(scale)
    return scale


@router.delete("/grading-scales/{scale_id}")
def delete_grading_scale(
    scale_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    scale = _get_scale(db, scale_id)
    db.delete(scale)
    db.commit()
    return {"success": True}
