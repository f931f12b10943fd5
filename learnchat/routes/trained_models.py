"""
Model routes: list, activate, rename and archive trained models.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..models import TrainedModel, TrainingExample, User
from ..auth import get_required_user
from ..logging_config import get_logger
from ..responses import NotFoundError, ValidationError, success
from ..schemas.training import ModelActivate, ModelUpdate

router = APIRouter(prefix="/api/ai/models", tags=["models"])

logger = get_logger("models")

ACTIVATABLE_STATUSES = ("trained", "deployed")


def _get_owned_model(db: Session, user_id: int, model_id: int) -> TrainedModel:
    model = db.query(TrainedModel).filter(
        TrainedModel.id == model_id,
        TrainedModel.user_id == user_id
    ).first()
    if not model:
        raise NotFoundError("Model", model_id)
    return model


@router.get("")
def list_models(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Get the user's models, newest first."""
    models = (
        db.query(TrainedModel)
        .filter(TrainedModel.user_id == current_user.id)
        .order_by(TrainedModel.created_at.desc(), TrainedModel.id.desc())
        .all()
    )

    training_data_used = db.query(TrainingExample).filter(
        TrainingExample.user_id == current_user.id,
        TrainingExample.used_in_training.is_(True)
    ).count()

    return success(
        models=[{**model.to_dict(), "training_data_used": training_data_used} for model in models],
    )


@router.post("")
def activate_model(
    data: ModelActivate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Make one model the user's active model."""
    if data.model_id is None:
        raise ValidationError("Model ID required")

    model = _get_owned_model(db, current_user.id, data.model_id)
    if model.status == "archived":
        raise ValidationError("Archived models cannot be activated")
    if model.status not in ACTIVATABLE_STATUSES:
        raise ValidationError("Model must be trained before activation")

    others = db.query(TrainedModel).filter(
        TrainedModel.user_id == current_user.id,
        TrainedModel.id != model.id
    ).all()
    for other in others:
        other.is_active = False
        if other.status == "deployed":
            other.status = "trained"

    model.is_active = True
    model.status = "deployed"
    db.commit()
    db.refresh(model)

    logger.info("Model activated", user_id=current_user.id, model_id=model.id)
    return success(model=model.to_dict(), message=f"Model '{model.name}' activated")


@router.put("")
def update_model(
    data: ModelUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Rename or describe a model."""
    if data.model_id is None:
        raise ValidationError("Model ID required")

    model = _get_owned_model(db, current_user.id, data.model_id)
    if data.name is not None:
        if not data.name.strip():
            raise ValidationError("Model name cannot be empty")
        model.name = data.name.strip()
    if data.description is not None:
        model.description = data.description

    db.commit()
    db.refresh(model)
    return success(model=model.to_dict())


@router.delete("")
def archive_model(
    modelId: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Archive a model. The active model cannot be archived."""
    if modelId is None:
        raise ValidationError("Model ID required")

    model = _get_owned_model(db, current_user.id, modelId)
    if model.is_active:
        raise ValidationError("Cannot archive the active model. Activate another model first")

    model.status = "archived"
    db.commit()

    logger.info("Model archived", user_id=current_user.id, model_id=model.id)
    return success(message="Model archived")
