"""
Training routes: start, poll and cancel simulated training jobs.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..models import TrainedModel, TrainingJob, User
from ..auth import get_required_user
from ..config import get_settings
from ..logging_config import training_logger
from ..responses import ConflictError, NotFoundError, ValidationError, success
from ..schemas.training import TrainingRequest
from ..worker.seed_data import seed_sample_examples
from ..worker.trainer import (
    TrainingConfig,
    TrainingJobRunner,
    TrainingRegistry,
    fail_job,
    find_active_job,
    get_job_runner,
    get_profile,
    get_training_registry,
    select_eligible_examples,
)

settings = get_settings()

router = APIRouter(prefix="/api/ai/train", tags=["training"])

RECENT_JOBS = 10


def _get_owned_job(db: Session, user_id: int, job_id: int) -> TrainingJob:
    job = db.query(TrainingJob).filter(
        TrainingJob.id == job_id,
        TrainingJob.user_id == user_id
    ).first()
    if not job:
        raise NotFoundError("Training job", job_id)
    return job


def _in_progress(db: Session, user_id: int) -> ConflictError:
    active = find_active_job(db, user_id)
    return ConflictError("Training job already in progress", jobId=active.id if active else None)


@router.post("")
def start_training(
    background_tasks: BackgroundTasks,
    body: Optional[TrainingRequest] = None,
    type: str = "regular",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
    runner: TrainingJobRunner = Depends(get_job_runner),
):
    """Start a regular or advanced training run on the user's unused examples."""
    profile = get_profile(type)
    body = body or TrainingRequest()

    examples = select_eligible_examples(db, current_user.id, profile)

    seed_if_empty = settings.seed_sample_data if body.seed_if_empty is None else body.seed_if_empty
    if not examples and seed_if_empty:
        seed_sample_examples(db, current_user.id)
        examples = select_eligible_examples(db, current_user.id, profile)

    if len(examples) < profile.min_examples:
        raise ValidationError(profile.insufficient_message, currentCount=len(examples))

    if find_active_job(db, current_user.id):
        raise _in_progress(db, current_user.id)

    config = TrainingConfig.resolve(
        profile,
        **body.model_dump(exclude={"seed_if_empty"}),
    )

    job = TrainingJob(
        user_id=current_user.id,
        status="pending",
        training_type=profile.name,
        specialization=config.specialization,
        training_data_count=len(examples),
        epochs=config.epochs,
        batch_size=config.batch_size,
        learning_rate=config.learning_rate,
        current_epoch=0,
        progress_percentage=0.0,
        model_config=config.to_dict(),
    )
    db.add(job)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent request for the same user
        db.rollback()
        raise _in_progress(db, current_user.id)
    db.refresh(job)

    background_tasks.add_task(runner.run, job.id, [example.id for example in examples], config)

    training_logger.info(
        "Training job queued",
        job_id=job.id,
        user_id=current_user.id,
        training_type=profile.name,
        examples=len(examples),
    )

    return {
        "success": True,
        "jobId": job.id,
        "trainingDataCount": len(examples),
        "trainingType": profile.name,
        "specialization": config.specialization,
        "status": "started",
    }


@router.get("")
def get_training_status(
    jobId: Optional[int] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """One job with its model, or the most recent jobs."""
    if jobId is not None:
        job = _get_owned_job(db, current_user.id, jobId)
        result = job.to_dict()
        model = None
        if job.model_id:
            model = db.query(TrainedModel).filter(
                TrainedModel.id == job.model_id,
                TrainedModel.user_id == current_user.id
            ).first()
        result["model"] = model.summary() if model else None
        return success(job=result)

    query = db.query(TrainingJob).filter(TrainingJob.user_id == current_user.id)
    if type == "advanced":
        query = query.filter(TrainingJob.training_type == "advanced")
    jobs = query.order_by(TrainingJob.created_at.desc(), TrainingJob.id.desc()).limit(RECENT_JOBS).all()
    return success(jobs=[job.to_dict() for job in jobs])


@router.delete("")
def cancel_training(
    jobId: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
    registry: TrainingRegistry = Depends(get_training_registry),
):
    """Cancel a pending or running job."""
    if jobId is None:
        raise ValidationError("Training job ID required")

    job = _get_owned_job(db, current_user.id, jobId)
    if job.is_terminal:
        raise ValidationError(f"Training job already {job.status}", jobId=job.id)

    if registry.cancel(job.id):
        # The runner fails the job at its next epoch boundary
        training_logger.info("Cancellation requested", job_id=job.id)
        return success(jobId=job.id, status="cancelling")

    if not fail_job(db, job.id, "Training cancelled"):
        db.refresh(job)
        raise ValidationError(f"Training job already {job.status}", jobId=job.id)

    training_logger.info("Training cancelled", job_id=job.id)
    return success(jobId=job.id, status="failed")
