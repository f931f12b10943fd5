"""
Tests for memory endpoints.
"""
from learnchat.models import BrainMemory


def add_memory(db, user, content, importance=0.5, **fields):
    memory = BrainMemory(
        user_id=user.id,
        type=fields.get("type", "episodic"),
        content=content,
        summary=fields.get("summary", content),
        importance=importance,
        category=fields.get("category"),
        tags=[],
    )
    db.add(memory)
    db.commit()
    db.refresh(memory)
    return memory


class TestMemoryEndpoints:
    """Test /api/ai/memory."""

    def test_create(self, client, auth_headers):
        response = client.post(
            "/api/ai/memory",
            headers=auth_headers,
            json={"content": "Prefers TypeScript examples", "importance": 0.9, "tags": ["preference"]},
        )
        assert response.status_code == 200
        memory = response.json()["memory"]
        assert memory["type"] == "episodic"
        assert memory["summary"] == "Prefers TypeScript examples"
        assert memory["importance"] == 0.9
        assert memory["tags"] == ["preference"]
        assert memory["source_type"] == "manual"

    def test_create_summarizes_long_content(self, client, auth_headers):
        content = "a" * 250
        memory = client.post("/api/ai/memory", headers=auth_headers, json={"content": content}).json()["memory"]
        assert memory["summary"] == "a" * 200 + "..."

    def test_create_clamps_importance(self, client, auth_headers):
        memory = client.post(
            "/api/ai/memory", headers=auth_headers, json={"content": "note", "importance": 3}
        ).json()["memory"]
        assert memory["importance"] == 1.0

    def test_create_requires_content(self, client, auth_headers):
        response = client.post("/api/ai/memory", headers=auth_headers, json={"content": "  "})
        assert response.status_code == 400
        assert response.json()["error"] == "Memory content is required"

    def test_search_orders_by_importance(self, client, auth_headers, db, test_user):
        add_memory(db, test_user, "low", importance=0.4)
        add_memory(db, test_user, "high", importance=0.95)
        add_memory(db, test_user, "ignored", importance=0.1)

        data = client.get("/api/ai/memory", headers=auth_headers).json()
        assert [m["content"] for m in data["memories"]] == ["high", "low"]
        assert data["total"] == 2

    def test_search_text(self, client, auth_headers, db, test_user):
        add_memory(db, test_user, "Working on a React dashboard")
        add_memory(db, test_user, "Learning SQL joins")

        data = client.get("/api/ai/memory?query=react", headers=auth_headers).json()
        assert [m["content"] for m in data["memories"]] == ["Working on a React dashboard"]

    def test_search_counts_access(self, client, auth_headers, db, test_user):
        memory = add_memory(db, test_user, "remember me")

        client.get("/api/ai/memory", headers=auth_headers)
        data = client.get("/api/ai/memory", headers=auth_headers).json()

        assert data["memories"][0]["access_count"] == 2
        assert data["memories"][0]["last_accessed"] is not None
        db.refresh(memory)
        assert memory.access_count == 2

    def test_search_scoped_to_user(self, client, auth_headers, db, other_user):
        add_memory(db, other_user, "not yours", importance=0.9)
        data = client.get("/api/ai/memory", headers=auth_headers).json()
        assert data["memories"] == []

    def test_update(self, client, auth_headers, db, test_user):
        memory = add_memory(db, test_user, "note")

        response = client.put(
            "/api/ai/memory",
            headers=auth_headers,
            json={"id": memory.id, "importance": -1, "tags": ["x"], "summary": "short"},
        )
        assert response.status_code == 200
        updated = response.json()["memory"]
        assert updated["importance"] == 0.0
        assert updated["tags"] == ["x"]
        assert updated["summary"] == "short"

    def test_update_other_users_memory(self, client, auth_headers, db, other_user):
        memory = add_memory(db, other_user, "theirs")
        response = client.put("/api/ai/memory", headers=auth_headers, json={"id": memory.id, "importance": 1})
        assert response.status_code == 404

    def test_delete(self, client, auth_headers, db, test_user):
        memory_id = add_memory(db, test_user, "forget me").id

        response = client.delete(f"/api/ai/memory?id={memory_id}", headers=auth_headers)
        assert response.status_code == 200
        assert db.get(BrainMemory, memory_id) is None

    def test_delete_requires_id(self, client, auth_headers):
        response = client.delete("/api/ai/memory", headers=auth_headers)
        assert response.status_code == 400
