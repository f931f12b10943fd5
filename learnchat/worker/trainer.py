"""
LearnChat Training Pipeline
===========================
Simulated model training:
1. Profiles describing the regular and advanced training runs
2. A Trainer that yields per-epoch loss/accuracy (synthetic curves)
3. A registry of cancellation tokens for live runs
4. The job runner driving pending -> running -> completed | failed

No real optimization happens; accuracy and loss come from fixed formulas
with a little noise.
"""

import asyncio
import math
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import SessionScope, get_session_scope
from ..logging_config import StructuredLogger, training_logger
from ..models import TrainedModel, TrainingExample, TrainingJob
from ..models.training_job import ACTIVE_STATUSES
from ..responses import ValidationError


# ============================================================
# PROFILES
# ============================================================

@dataclass(frozen=True)
class TrainingProfile:
    """Eligibility rules, defaults and curve parameters for one training type"""
    name: str
    model_type: str
    min_examples: int
    quality_threshold: float
    fetch_limit: int
    insufficient_message: str
    default_epochs: int
    default_learning_rate: float
    default_batch_size: int
    default_model_name: str
    use_memory_default: bool
    use_auto_learning_default: bool

    # Curve parameters
    base_accuracy: Dict[str, float] = field(default_factory=dict)
    default_base_accuracy: float = 0.72
    accuracy_cap: float = 0.95
    accuracy_log_weight: float = 0.10
    accuracy_noise: float = 0.05
    memory_bonus: float = 0.0
    auto_learning_bonus: float = 0.0
    loss_start: float = 2.5
    loss_decay: float = 0.4
    loss_floor: float = 0.10
    loss_noise: float = 0.05

    def base_accuracy_for(self, specialization: str) -> float:
        return self.base_accuracy.get(specialization, self.default_base_accuracy)


PROFILES: Dict[str, TrainingProfile] = {
    "regular": TrainingProfile(
        name="regular",
        model_type="fine_tune",
        min_examples=5,
        quality_threshold=3.0,
        fetch_limit=1000,
        insufficient_message="Need at least 5 quality training examples",
        default_epochs=5,
        default_learning_rate=0.001,
        default_batch_size=16,
        default_model_name="Custom Model",
        use_memory_default=False,
        use_auto_learning_default=False,
        base_accuracy={"code": 0.75, "support": 0.80, "creative": 0.70, "analysis": 0.85, "general": 0.72},
        default_base_accuracy=0.72,
    ),
    "advanced": TrainingProfile(
        name="advanced",
        model_type="advanced",
        min_examples=10,
        quality_threshold=4.0,
        fetch_limit=2000,
        insufficient_message="Advanced training requires at least 10 quality examples",
        default_epochs=10,
        default_learning_rate=0.0001,
        default_batch_size=32,
        default_model_name="Advanced Model",
        use_memory_default=True,
        use_auto_learning_default=True,
        base_accuracy={"code": 0.82, "support": 0.87, "creative": 0.78, "analysis": 0.91, "general": 0.80},
        default_base_accuracy=0.80,
        accuracy_cap=0.98,
        accuracy_log_weight=0.15,
        accuracy_noise=0.03,
        memory_bonus=0.05,
        auto_learning_bonus=0.03,
        loss_start=3.0,
        loss_decay=0.25,
        loss_floor=0.05,
        loss_noise=0.03,
    ),
}


def get_profile(training_type: Optional[str]) -> TrainingProfile:
    profile = PROFILES.get(training_type or "regular")
    if profile is None:
        raise ValidationError("Invalid training type. Use regular or advanced", type=training_type)
    return profile


@dataclass
class TrainingConfig:
    """Resolved settings for one run, stored as the job's and model's model_config"""
    training_type: str
    epochs: int
    learning_rate: float
    batch_size: int
    model_name: str
    specialization: str = "general"
    use_memory_system: bool = False
    use_auto_learning: bool = False

    @classmethod
    def resolve(cls, profile: TrainingProfile, **overrides) -> "TrainingConfig":
        """Fill unset request fields from the profile"""
        def pick(key, default):
            value = overrides.get(key)
            return default if value is None else value

        return cls(
            training_type=profile.name,
            epochs=pick("epochs", profile.default_epochs),
            learning_rate=pick("learning_rate", profile.default_learning_rate),
            batch_size=pick("batch_size", profile.default_batch_size),
            model_name=pick("model_name", f"{profile.default_model_name} {int(time.time() * 1000)}"),
            specialization=pick("specialization", "general"),
            use_memory_system=pick("use_memory_system", profile.use_memory_default),
            use_auto_learning=pick("use_auto_learning", profile.use_auto_learning_default),
        )

    @property
    def profile(self) -> TrainingProfile:
        return PROFILES[self.training_type]

    def to_dict(self) -> Dict:
        return asdict(self)


# ============================================================
# TRAINERS
# ============================================================

@dataclass
class EpochMetrics:
    epoch: int
    loss: float
    accuracy: float


class Trainer(ABC):
    """Produces the metrics for one epoch of a run"""

    @abstractmethod
    def epoch_metrics(self, epoch: int, config: TrainingConfig) -> EpochMetrics:
        ...


class SimulatedTrainer(Trainer):
    """Synthetic learning curves from the profile's formulas"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _noise(self, width: float) -> float:
        return (self.rng.random() - 0.5) * width

    def epoch_metrics(self, epoch: int, config: TrainingConfig) -> EpochMetrics:
        profile = config.profile

        accuracy = profile.base_accuracy_for(config.specialization) + math.log(epoch + 1) * profile.accuracy_log_weight
        if config.use_memory_system:
            accuracy += profile.memory_bonus
        if config.use_auto_learning:
            accuracy += profile.auto_learning_bonus
        accuracy = min(profile.accuracy_cap, accuracy + self._noise(profile.accuracy_noise))

        loss = max(
            profile.loss_floor,
            profile.loss_start - epoch * profile.loss_decay + abs(self._noise(profile.loss_noise)),
        )

        return EpochMetrics(epoch=epoch, loss=round(loss, 4), accuracy=round(accuracy, 4))


# ============================================================
# CANCELLATION
# ============================================================

class TrainingCancelled(Exception):
    def __init__(self, message: str = "Training cancelled"):
        super().__init__(message)


class TrainingRegistry:
    """Cancellation tokens for runs in this process, keyed by job id"""

    def __init__(self):
        self._tokens: Dict[int, threading.Event] = {}
        self._lock = threading.Lock()

    def register(self, job_id: int) -> threading.Event:
        with self._lock:
            token = self._tokens.get(job_id)
            if token is None:
                token = threading.Event()
                self._tokens[job_id] = token
            return token

    def cancel(self, job_id: int) -> bool:
        """Signal a live run. Returns False when no runner holds the job."""
        with self._lock:
            token = self._tokens.get(job_id)
        if token is None:
            return False
        token.set()
        return True

    def release(self, job_id: int):
        with self._lock:
            self._tokens.pop(job_id, None)

    def is_running(self, job_id: int) -> bool:
        with self._lock:
            return job_id in self._tokens


def get_training_registry(request: Request) -> TrainingRegistry:
    return request.app.state.training_registry


# ============================================================
# ELIGIBILITY
# ============================================================

def select_eligible_examples(db: Session, user_id: int, profile: TrainingProfile) -> List[TrainingExample]:
    """Unused examples at or above the quality threshold, newest first"""
    return (
        db.query(TrainingExample)
        .filter(
            TrainingExample.user_id == user_id,
            TrainingExample.used_in_training.is_(False),
            TrainingExample.quality_score >= profile.quality_threshold,
        )
        .order_by(TrainingExample.created_at.desc(), TrainingExample.id.desc())
        .limit(profile.fetch_limit)
        .all()
    )


def find_active_job(db: Session, user_id: int) -> Optional[TrainingJob]:
    return (
        db.query(TrainingJob)
        .filter(TrainingJob.user_id == user_id, TrainingJob.status.in_(ACTIVE_STATUSES))
        .order_by(TrainingJob.created_at.desc())
        .first()
    )


def fail_job(db: Session, job_id: int, message: str) -> bool:
    """Move a non-terminal job to failed. Returns False if it was already terminal."""
    updated = (
        db.query(TrainingJob)
        .filter(TrainingJob.id == job_id, TrainingJob.status.in_(ACTIVE_STATUSES))
        .update(
            {
                TrainingJob.status: "failed",
                TrainingJob.error_message: message,
                TrainingJob.completed_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return bool(updated)


# ============================================================
# JOB RUNNER
# ============================================================

class TrainingJobRunner:
    """
    Runs one training job to a terminal state.

    Opens its own session, so it can be scheduled after the HTTP response.
    Any exception, including cancellation, fails the job; nothing is retried.
    """

    def __init__(
        self,
        session_scope: SessionScope,
        registry: TrainingRegistry,
        trainer: Optional[Trainer] = None,
        epoch_delay: float = 3.0,
    ):
        self.session_scope = session_scope
        self.registry = registry
        self.trainer = trainer or SimulatedTrainer()
        self.epoch_delay = epoch_delay

    async def run(self, job_id: int, example_ids: Sequence[int], config: TrainingConfig):
        token = self.registry.register(job_id)
        log = training_logger.bind(job_id=job_id)
        started = time.monotonic()
        try:
            with self.session_scope() as db:
                job = db.get(TrainingJob, job_id)
                if job is None or job.is_terminal:
                    log.warning("Skipping training run")
                    return

                try:
                    await self._train(db, job, token, example_ids, config, started, log)
                except Exception as e:
                    db.rollback()
                    message = str(e) or type(e).__name__
                    if fail_job(db, job_id, message):
                        if isinstance(e, TrainingCancelled):
                            log.info("Training cancelled")
                        else:
                            log.error("Training failed", error=e)
        finally:
            self.registry.release(job_id)

    async def _train(
        self,
        db: Session,
        job: TrainingJob,
        token: threading.Event,
        example_ids: Sequence[int],
        config: TrainingConfig,
        started: float,
        log: StructuredLogger,
    ):
        if token.is_set():
            raise TrainingCancelled()

        job.status = "running"
        job.started_at = datetime.now(timezone.utc)
        db.commit()
        log.info(
            "Training started",
            training_type=config.training_type,
            epochs=config.epochs,
            examples=len(example_ids),
        )

        history: List[EpochMetrics] = []
        for epoch in range(1, config.epochs + 1):
            await asyncio.sleep(self.epoch_delay)
            if token.is_set():
                raise TrainingCancelled()

            metrics = self.trainer.epoch_metrics(epoch, config)
            history.append(metrics)

            job.current_epoch = epoch
            job.progress_percentage = round(epoch / config.epochs * 100, 2)
            job.loss_value = metrics.loss
            job.accuracy_value = metrics.accuracy
            db.commit()
            log.debug("Epoch finished", **asdict(metrics))

        self._complete(db, job, example_ids, config, history, started, log)

    def _complete(
        self,
        db: Session,
        job: TrainingJob,
        example_ids: Sequence[int],
        config: TrainingConfig,
        history: List[EpochMetrics],
        started: float,
        log: StructuredLogger,
    ):
        """Model insert, example marking and job completion in one transaction"""
        best_accuracy = max((m.accuracy for m in history), default=0.0)
        final = history[-1] if history else None

        model = TrainedModel(
            user_id=job.user_id,
            name=config.model_name,
            status="trained",
            model_type=config.profile.model_type,
            specialization=config.specialization,
            accuracy=best_accuracy,
            training_examples=len(example_ids),
            training_duration_seconds=int(time.monotonic() - started),
            performance_metrics={
                "final_loss": final.loss if final else None,
                "final_accuracy": final.accuracy if final else None,
                "best_accuracy": best_accuracy,
                "loss_curve": [m.loss for m in history],
                "accuracy_curve": [m.accuracy for m in history],
                "samples_processed": len(example_ids) * config.epochs,
                "specialization": config.specialization,
            },
            model_config=config.to_dict(),
            is_active=False,
            training_job_id=job.id,
        )
        db.add(model)
        db.flush()

        if example_ids:
            (
                db.query(TrainingExample)
                .filter(TrainingExample.id.in_(list(example_ids)), TrainingExample.user_id == job.user_id)
                .update(
                    {TrainingExample.used_in_training: True, TrainingExample.training_job_id: job.id},
                    synchronize_session=False,
                )
            )

        updated = (
            db.query(TrainingJob)
            .filter(TrainingJob.id == job.id, TrainingJob.status.in_(ACTIVE_STATUSES))
            .update(
                {
                    TrainingJob.status: "completed",
                    TrainingJob.model_id: model.id,
                    TrainingJob.progress_percentage: 100.0,
                    TrainingJob.completed_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            db.rollback()
            log.warning("Job left running state before completion")
            return

        db.commit()
        log.info("Training completed", model_id=model.id, accuracy=best_accuracy)


def get_job_runner(
    registry: TrainingRegistry = Depends(get_training_registry),
    session_scope: SessionScope = Depends(get_session_scope),
) -> TrainingJobRunner:
    return TrainingJobRunner(
        session_scope=session_scope,
        registry=registry,
        trainer=SimulatedTrainer(),
        epoch_delay=get_settings().training_epoch_delay_seconds,
    )
