"""
Tests for trained model endpoints.
"""
from learnchat.models import TrainedModel


def add_model(db, user, name="Model", status="trained", is_active=False):
    model = TrainedModel(user_id=user.id, name=name, status=status, is_active=is_active, accuracy=0.8)
    db.add(model)
    db.commit()
    db.refresh(model)
    return model


class TestModelEndpoints:
    """Test /api/ai/models."""

    def test_list(self, client, auth_headers, db, test_user, other_user, make_examples):
        add_model(db, test_user, "First")
        add_model(db, test_user, "Second")
        add_model(db, other_user, "Theirs")
        make_examples(test_user, 2, used_in_training=True)
        make_examples(test_user, 3)

        response = client.get("/api/ai/models", headers=auth_headers)
        assert response.status_code == 200
        models = response.json()["models"]
        assert [m["name"] for m in models] == ["Second", "First"]
        assert all(m["training_data_used"] == 2 for m in models)

    def test_activate_deactivates_others(self, client, auth_headers, db, test_user):
        old = add_model(db, test_user, "Old", status="deployed", is_active=True)
        new = add_model(db, test_user, "New")

        response = client.post("/api/ai/models", headers=auth_headers, json={"modelId": new.id})
        assert response.status_code == 200
        assert response.json()["message"] == "Model 'New' activated"

        db.refresh(old)
        db.refresh(new)
        assert new.is_active is True
        assert new.status == "deployed"
        assert old.is_active is False
        assert old.status == "trained"
        assert db.query(TrainedModel).filter_by(user_id=test_user.id, is_active=True).count() == 1

    def test_activate_leaves_other_users_alone(self, client, auth_headers, db, test_user, other_user):
        theirs = add_model(db, other_user, status="deployed", is_active=True)
        mine = add_model(db, test_user)

        client.post("/api/ai/models", headers=auth_headers, json={"modelId": mine.id})

        db.refresh(theirs)
        assert theirs.is_active is True

    def test_activate_archived(self, client, auth_headers, db, test_user):
        model = add_model(db, test_user, status="archived")
        response = client.post("/api/ai/models", headers=auth_headers, json={"modelId": model.id})
        assert response.status_code == 400
        assert response.json()["error"] == "Archived models cannot be activated"

    def test_activate_missing(self, client, auth_headers):
        response = client.post("/api/ai/models", headers=auth_headers, json={"modelId": 77})
        assert response.status_code == 404

    def test_activate_requires_id(self, client, auth_headers):
        response = client.post("/api/ai/models", headers=auth_headers, json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Model ID required"

    def test_update(self, client, auth_headers, test_user, db):
        model = add_model(db, test_user)

        response = client.put(
            "/api/ai/models",
            headers=auth_headers,
            json={"modelId": model.id, "name": "  Renamed  ", "description": "For SQL questions"},
        )
        assert response.status_code == 200
        updated = response.json()["model"]
        assert updated["name"] == "Renamed"
        assert updated["description"] == "For SQL questions"

    def test_update_blank_name(self, client, auth_headers, test_user, db):
        model = add_model(db, test_user)
        response = client.put("/api/ai/models", headers=auth_headers, json={"modelId": model.id, "name": " "})
        assert response.status_code == 400

    def test_archive(self, client, auth_headers, db, test_user):
        model = add_model(db, test_user)

        response = client.delete(f"/api/ai/models?modelId={model.id}", headers=auth_headers)
        assert response.status_code == 200

        db.refresh(model)
        assert model.status == "archived"

    def test_archive_active_model_blocked(self, client, auth_headers, db, test_user):
        model = add_model(db, test_user, status="deployed", is_active=True)

        response = client.delete(f"/api/ai/models?modelId={model.id}", headers=auth_headers)
        assert response.status_code == 400

        db.refresh(model)
        assert model.status == "deployed"

    def test_archive_other_users_model(self, client, auth_headers, db, other_user):
        model = add_model(db, other_user)
        response = client.delete(f"/api/ai/models?modelId={model.id}", headers=auth_headers)
        assert response.status_code == 404
