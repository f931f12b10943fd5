"""
Tests for training jobs: starting, running, polling and cancelling.
"""
import asyncio
import random
from contextlib import contextmanager

import pytest
from sqlalchemy.exc import IntegrityError

from learnchat.models import TrainedModel, TrainingExample, TrainingJob
from learnchat.responses import ValidationError
from learnchat.worker.trainer import (
    PROFILES,
    SimulatedTrainer,
    Trainer,
    TrainingConfig,
    TrainingJobRunner,
    TrainingRegistry,
    get_profile,
)


def insert_job(db, user, status="pending", **fields):
    job = TrainingJob(user_id=user.id, status=status, epochs=fields.get("epochs", 5), progress_percentage=0.0)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def runner_for(db, trainer=None, registry=None):
    @contextmanager
    def scope():
        yield db

    return TrainingJobRunner(
        session_scope=scope,
        registry=registry or TrainingRegistry(),
        trainer=trainer or SimulatedTrainer(random.Random(7)),
        epoch_delay=0,
    )


class RecordingTrainer(SimulatedTrainer):
    """Records the job's stored progress as each epoch begins."""

    def __init__(self, db, job_id):
        super().__init__(random.Random(1))
        self.db = db
        self.job_id = job_id
        self.seen = []

    def epoch_metrics(self, epoch, config):
        self.seen.append(self.db.get(TrainingJob, self.job_id).progress_percentage)
        return super().epoch_metrics(epoch, config)


class CancellingTrainer(SimulatedTrainer):
    """Requests cancellation of its own job during the given epoch."""

    def __init__(self, registry, job_id, at_epoch):
        super().__init__(random.Random(1))
        self.registry = registry
        self.job_id = job_id
        self.at_epoch = at_epoch

    def epoch_metrics(self, epoch, config):
        if epoch == self.at_epoch:
            self.registry.cancel(self.job_id)
        return super().epoch_metrics(epoch, config)


class ExplodingTrainer(Trainer):
    def epoch_metrics(self, epoch, config):
        raise RuntimeError("GPU on fire")


class TestProfiles:

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            get_profile("turbo")

    def test_resolve_uses_profile_defaults(self):
        config = TrainingConfig.resolve(PROFILES["advanced"])
        assert config.epochs == 10
        assert config.learning_rate == 0.0001
        assert config.batch_size == 32
        assert config.use_memory_system is True
        assert config.model_name.startswith("Advanced Model ")

    def test_resolve_overrides(self):
        config = TrainingConfig.resolve(PROFILES["regular"], epochs=2, model_name="Mine", use_memory_system=None)
        assert config.epochs == 2
        assert config.model_name == "Mine"
        assert config.use_memory_system is False

    def test_simulated_curve_bounds(self):
        trainer = SimulatedTrainer(random.Random(3))
        config = TrainingConfig.resolve(PROFILES["advanced"], use_memory_system=True, use_auto_learning=True)
        for epoch in range(1, 11):
            metrics = trainer.epoch_metrics(epoch, config)
            assert metrics.accuracy <= 0.98
            assert metrics.loss >= 0.05


class TestStartTraining:
    """Test POST /api/ai/train."""

    def test_not_enough_examples(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 3)

        response = client.post("/api/ai/train", headers=auth_headers)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Need at least 5 quality training examples"
        assert data["currentCount"] == 3

    def test_low_quality_examples_not_counted(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 4, quality_score=4.5)
        make_examples(test_user, 6, quality_score=2.0)

        response = client.post("/api/ai/train", headers=auth_headers)
        assert response.json()["currentCount"] == 4

    def test_advanced_needs_ten_high_quality(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 9, quality_score=4.5)
        make_examples(test_user, 5, quality_score=3.5)

        response = client.post("/api/ai/train?type=advanced", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Advanced training requires at least 10 quality examples"
        assert response.json()["currentCount"] == 9

    def test_invalid_type(self, client, auth_headers):
        response = client.post("/api/ai/train?type=turbo", headers=auth_headers)
        assert response.status_code == 400

    def test_invalid_epochs(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 5)
        response = client.post("/api/ai/train", headers=auth_headers, json={"epochs": 0})
        assert response.status_code == 400

    def test_training_completes(self, client, auth_headers, db, test_user, make_examples):
        examples = make_examples(test_user, 5)

        response = client.post(
            "/api/ai/train",
            headers=auth_headers,
            json={"epochs": 3, "modelName": "Tutor", "specialization": "code"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "started"
        assert data["trainingDataCount"] == 5
        assert data["trainingType"] == "regular"
        assert data["specialization"] == "code"

        job = db.get(TrainingJob, data["jobId"])
        db.refresh(job)
        assert job.status == "completed"
        assert job.progress_percentage == 100.0
        assert job.current_epoch == 3
        assert job.model_id is not None

        model = db.get(TrainedModel, job.model_id)
        assert model.name == "Tutor"
        assert model.model_type == "fine_tune"
        assert model.status == "trained"
        assert model.is_active is False
        assert model.training_examples == 5
        assert len(model.performance_metrics["loss_curve"]) == 3
        assert model.performance_metrics["samples_processed"] == 15
        assert model.accuracy == max(model.performance_metrics["accuracy_curve"])

        for example in examples:
            db.refresh(example)
            assert example.used_in_training is True
            assert example.training_job_id == job.id

    def test_used_examples_not_reused(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 5)
        client.post("/api/ai/train", headers=auth_headers, json={"epochs": 1})

        response = client.post("/api/ai/train", headers=auth_headers, json={"epochs": 1})
        assert response.status_code == 400
        assert response.json()["currentCount"] == 0

    def test_active_job_conflict(self, client, auth_headers, db, test_user, make_examples):
        make_examples(test_user, 5)
        running = insert_job(db, test_user, status="running")

        response = client.post("/api/ai/train", headers=auth_headers)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Training job already in progress"
        assert data["jobId"] == running.id
        assert db.query(TrainingJob).count() == 1

    def test_other_users_job_does_not_conflict(self, client, auth_headers, db, test_user, other_user, make_examples):
        make_examples(test_user, 5)
        insert_job(db, other_user, status="running")

        response = client.post("/api/ai/train", headers=auth_headers, json={"epochs": 1})
        assert response.status_code == 200

    def test_one_active_job_per_user_enforced_by_index(self, db, test_user):
        insert_job(db, test_user, status="pending")

        db.add(TrainingJob(user_id=test_user.id, status="running"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        # Terminal jobs are not limited
        db.add(TrainingJob(user_id=test_user.id, status="failed"))
        db.add(TrainingJob(user_id=test_user.id, status="completed"))
        db.commit()
        assert db.query(TrainingJob).count() == 3

    def test_seed_if_empty(self, client, auth_headers, db, test_user):
        response = client.post("/api/ai/train", headers=auth_headers, json={"seedIfEmpty": True, "epochs": 1})
        assert response.status_code == 200
        assert response.json()["trainingDataCount"] == 10
        assert db.query(TrainingExample).filter_by(user_id=test_user.id).count() == 10

    def test_no_seeding_by_default(self, client, auth_headers, db):
        response = client.post("/api/ai/train", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["currentCount"] == 0
        assert db.query(TrainingExample).count() == 0


class TestTrainingStatus:
    """Test GET /api/ai/train."""

    def test_job_with_model(self, client, auth_headers, test_user, make_examples):
        make_examples(test_user, 5)
        job_id = client.post("/api/ai/train", headers=auth_headers, json={"epochs": 2}).json()["jobId"]

        response = client.get(f"/api/ai/train?jobId={job_id}", headers=auth_headers)
        assert response.status_code == 200
        job = response.json()["job"]
        assert job["status"] == "completed"
        assert job["model"]["status"] == "trained"
        assert job["model"]["id"] == job["model_id"]

    def test_pending_job_has_no_model(self, client, auth_headers, db, test_user):
        job = insert_job(db, test_user)
        data = client.get(f"/api/ai/train?jobId={job.id}", headers=auth_headers).json()
        assert data["job"]["status"] == "pending"
        assert data["job"]["model"] is None

    def test_other_users_job_not_found(self, client, auth_headers, db, other_user):
        job = insert_job(db, other_user)
        response = client.get(f"/api/ai/train?jobId={job.id}", headers=auth_headers)
        assert response.status_code == 404

    def test_recent_jobs(self, client, auth_headers, db, test_user):
        for _ in range(12):
            insert_job(db, test_user, status="failed")
        advanced = TrainingJob(user_id=test_user.id, status="completed", training_type="advanced")
        db.add(advanced)
        db.commit()

        jobs = client.get("/api/ai/train", headers=auth_headers).json()["jobs"]
        assert len(jobs) == 10

        jobs = client.get("/api/ai/train?type=advanced", headers=auth_headers).json()["jobs"]
        assert [job["id"] for job in jobs] == [advanced.id]


class TestCancelTraining:
    """Test DELETE /api/ai/train."""

    def test_cancel_pending_job(self, client, auth_headers, db, test_user):
        job = insert_job(db, test_user)

        response = client.delete(f"/api/ai/train?jobId={job.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "failed"

        db.refresh(job)
        assert job.status == "failed"
        assert job.error_message == "Training cancelled"
        assert job.completed_at is not None

    def test_cancel_running_job_signals_runner(self, client, auth_headers, db, test_user):
        job = insert_job(db, test_user, status="running")
        registry = client.app.state.training_registry
        registry.register(job.id)
        try:
            response = client.delete(f"/api/ai/train?jobId={job.id}", headers=auth_headers)
        finally:
            registry.release(job.id)

        assert response.status_code == 200
        assert response.json()["status"] == "cancelling"

    def test_cancel_terminal_job(self, client, auth_headers, db, test_user):
        job = insert_job(db, test_user, status="completed")

        response = client.delete(f"/api/ai/train?jobId={job.id}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Training job already completed"

    def test_cancel_requires_job_id(self, client, auth_headers):
        assert client.delete("/api/ai/train", headers=auth_headers).status_code == 400

    def test_cancelled_job_can_be_followed_by_new_one(self, client, auth_headers, db, test_user, make_examples):
        make_examples(test_user, 5)
        job = insert_job(db, test_user)
        client.delete(f"/api/ai/train?jobId={job.id}", headers=auth_headers)

        response = client.post("/api/ai/train", headers=auth_headers, json={"epochs": 1})
        assert response.status_code == 200


class TestJobRunner:
    """Drive TrainingJobRunner directly."""

    def _config(self, epochs=5):
        return TrainingConfig.resolve(PROFILES["regular"], epochs=epochs)

    def test_progress_is_monotonic(self, db, test_user, make_examples):
        examples = make_examples(test_user, 5)
        job = insert_job(db, test_user)
        trainer = RecordingTrainer(db, job.id)

        asyncio.run(runner_for(db, trainer).run(job.id, [e.id for e in examples], self._config(5)))

        assert trainer.seen == [0.0, 20.0, 40.0, 60.0, 80.0]
        db.refresh(job)
        assert job.status == "completed"
        assert job.progress_percentage == 100.0
        assert job.started_at is not None
        assert job.completed_at is not None

    def test_cancel_mid_run(self, db, test_user, make_examples):
        examples = make_examples(test_user, 5)
        job = insert_job(db, test_user)
        registry = TrainingRegistry()
        trainer = CancellingTrainer(registry, job.id, at_epoch=2)

        asyncio.run(runner_for(db, trainer, registry).run(job.id, [e.id for e in examples], self._config(5)))

        db.refresh(job)
        assert job.status == "failed"
        assert job.error_message == "Training cancelled"
        assert job.current_epoch == 2
        assert job.model_id is None
        assert db.query(TrainedModel).count() == 0
        assert db.query(TrainingExample).filter_by(used_in_training=True).count() == 0
        assert not registry.is_running(job.id)

    def test_trainer_error_fails_job(self, db, test_user, make_examples):
        examples = make_examples(test_user, 5)
        job = insert_job(db, test_user)

        asyncio.run(runner_for(db, ExplodingTrainer()).run(job.id, [e.id for e in examples], self._config(3)))

        db.refresh(job)
        assert job.status == "failed"
        assert job.error_message == "GPU on fire"
        assert db.query(TrainingExample).filter_by(used_in_training=True).count() == 0

    def test_terminal_job_skipped(self, db, test_user):
        job = insert_job(db, test_user, status="failed")

        asyncio.run(runner_for(db).run(job.id, [], self._config(2)))

        db.refresh(job)
        assert job.status == "failed"
        assert db.query(TrainedModel).count() == 0

    def test_missing_job_skipped(self, db):
        registry = TrainingRegistry()
        asyncio.run(runner_for(db, registry=registry).run(424242, [], self._config(2)))
        assert not registry.is_running(424242)

    def test_job_failed_elsewhere_is_not_completed(self, db, test_user, make_examples):
        examples = make_examples(test_user, 5)
        job = insert_job(db, test_user)
        job_id = job.id

        class FailingElsewhere(SimulatedTrainer):
            def epoch_metrics(self, epoch, config):
                if epoch == config.epochs:
                    # Another worker marks the job failed before this run finishes
                    db.query(TrainingJob).filter(TrainingJob.id == job_id).update(
                        {TrainingJob.status: "failed", TrainingJob.error_message: "Training cancelled"},
                        synchronize_session=False,
                    )
                return super().epoch_metrics(epoch, config)

        asyncio.run(runner_for(db, FailingElsewhere()).run(job_id, [e.id for e in examples], self._config(2)))

        db.refresh(job)
        assert job.status == "failed"
        assert job.model_id is None
        assert db.query(TrainedModel).count() == 0
