"""
Training data routes for managing a user's labeled examples.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import case, func
from typing import Optional

from ..database import get_db
from ..models.training_example import TrainingExample
from ..models.user import User
from ..auth import get_required_user
from ..logging_config import db_logger
from ..responses import NotFoundError, ValidationError, clamp, paginated, success
from ..schemas.training_example import (
    TrainingExampleCreate,
    TrainingExampleBulkCreate,
    TrainingExampleUpdate,
    TrainingStatistics,
)

router = APIRouter(prefix="/api/data/training", tags=["training-data"])

MIN_TEXT_LENGTH = 3
HIGH_QUALITY = 4.0
MAX_BULK_EXAMPLES = 500


def _get_owned_example(db: Session, user_id: int, example_id: int) -> TrainingExample:
    example = db.query(TrainingExample).filter(
        TrainingExample.id == example_id,
        TrainingExample.user_id == user_id
    ).first()
    if not example:
        raise NotFoundError("Training data", example_id)
    return example


def _clamp_rating(value: float) -> float:
    return clamp(value, 1.0, 5.0)


def _build_example(example: TrainingExampleCreate, user_id: int, source: str = "manual") -> TrainingExample:
    """Validate and normalize one example; raises ValidationError"""
    if not example.input or not example.output:
        raise ValidationError("Input and output are required")

    input_text = example.input.strip()
    output_text = example.output.strip()
    if len(input_text) < MIN_TEXT_LENGTH or len(output_text) < MIN_TEXT_LENGTH:
        raise ValidationError("Input and output must be at least 3 characters")

    return TrainingExample(
        user_id=user_id,
        input=input_text,
        output=output_text,
        category=example.category.strip() if example.category else None,
        quality_score=_clamp_rating(example.quality_score),
        tags=[tag.strip() for tag in example.tags if tag and tag.strip()],
        extra_data={"source": source},
        auto_collected=False,
    )


def get_training_statistics(db: Session, user_id: int) -> TrainingStatistics:
    """Counts across all of the user's examples."""
    total, used, high_quality = (
        db.query(
            func.count(TrainingExample.id),
            func.sum(case((TrainingExample.used_in_training.is_(True), 1), else_=0)),
            func.sum(case((TrainingExample.quality_score >= HIGH_QUALITY, 1), else_=0)),
        )
        .filter(TrainingExample.user_id == user_id)
        .one()
    )

    categories = [
        category for (category,) in (
            db.query(TrainingExample.category)
            .filter(TrainingExample.user_id == user_id, TrainingExample.category.isnot(None))
            .distinct()
            .order_by(TrainingExample.category)
            .all()
        )
    ]

    used = used or 0
    return TrainingStatistics(
        total=total,
        used_in_training=used,
        unused=total - used,
        high_quality=high_quality or 0,
        categories=categories,
    )


@router.get("")
def list_training_data(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    category: Optional[str] = None,
    used_in_training: Optional[bool] = None,
    min_quality: float = 0,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """List training examples, newest first, with statistics."""
    query = db.query(TrainingExample).filter(TrainingExample.user_id == current_user.id)
    if category:
        query = query.filter(TrainingExample.category == category)
    if used_in_training is not None:
        query = query.filter(TrainingExample.used_in_training.is_(used_in_training))
    if min_quality:
        query = query.filter(TrainingExample.quality_score >= min_quality)

    total = query.count()
    examples = (
        query.order_by(TrainingExample.created_at.desc(), TrainingExample.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return paginated(
        [example.to_dict() for example in examples],
        total=total,
        page=page,
        per_page=limit,
        statistics=get_training_statistics(db, current_user.id).model_dump(),
    )


@router.post("")
def create_training_data(
    example: TrainingExampleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Create a new training example for the current user."""
    db_example = _build_example(example, current_user.id)
    db.add(db_example)
    db.commit()
    db.refresh(db_example)

    db_logger.info("Training data added", user_id=current_user.id, example_id=db_example.id)
    return success(data=db_example.to_dict(), message="Training data added")


@router.post("/bulk")
def bulk_create_training_data(
    batch: TrainingExampleBulkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """
    Import several training examples at once.

    Every row is checked before anything is written; one invalid row
    rejects the whole batch.
    """
    if not batch.examples:
        raise ValidationError("At least one training example is required")
    if len(batch.examples) > MAX_BULK_EXAMPLES:
        raise ValidationError(
            f"At most {MAX_BULK_EXAMPLES} training examples per import",
            count=len(batch.examples),
        )

    source = batch.source.strip() or "import"
    rows = []
    for index, example in enumerate(batch.examples):
        try:
            rows.append(_build_example(example, current_user.id, source=source))
        except ValidationError as e:
            raise ValidationError(e.detail, index=index)

    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)

    db_logger.info("Training data imported", user_id=current_user.id, count=len(rows), source=source)
    return success(
        data=[row.to_dict() for row in rows],
        message=f"{len(rows)} training examples added",
        count=len(rows),
    )


@router.put("")
def update_training_data(
    update: TrainingExampleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Update a training example (must belong to current user)."""
    if update.id is None:
        raise ValidationError("Training data ID required")

    example = _get_owned_example(db, current_user.id, update.id)

    update_data = update.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})

    if example.used_in_training and ({"input", "output"} & set(update_data)):
        raise ValidationError("Cannot edit input or output of training data used in model training")

    for field in ("input", "output"):
        if field in update_data:
            value = update_data[field].strip()
            if len(value) < MIN_TEXT_LENGTH:
                raise ValidationError("Input and output must be at least 3 characters")
            update_data[field] = value

    for field in ("quality_score", "feedback"):
        if field in update_data:
            update_data[field] = _clamp_rating(update_data[field])

    for field, value in update_data.items():
        setattr(example, field, value)

    db.commit()
    db.refresh(example)
    return success(data=example.to_dict(), message="Training data updated")


@router.delete("")
def delete_training_data(
    id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Delete a training example that has not been used in training."""
    if id is None:
        raise ValidationError("Training data ID required")

    example = _get_owned_example(db, current_user.id, id)
    if example.used_in_training:
        raise ValidationError("Cannot delete training data that has been used in model training")

    db.delete(example)
    db.commit()
    return success(message="Training data deleted")
