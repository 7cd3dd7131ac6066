# -*- coding: utf-8 -*-
import pytest
from fastapi.testclient import TestClient

from smartflow.app import create_app


@pytest.fixture
def client(manager):
    return TestClient(create_app(manager))


def _create_provider(client, **overrides):
    body = {
        "name": "OpenAI",
        "endpoint": "https://api.openai.com/v1",
        "api_keys": ["sk-first-key-0001"],
    }
    body.update(overrides)
    response = client.post("/providers", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _create_model(client, provider_id, **overrides):
    body = {"name": "gpt-4o-mini"}
    body.update(overrides)
    response = client.post(f"/providers/{provider_id}/models", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestProviders:
    def test_create_and_list_masks_keys(self, client, saved):
        created = _create_provider(client)
        assert created["has_api_key"] is True
        assert created["key_count"] == 1
        assert "first" not in created["current_api_key"]
        assert created["current_api_key"].endswith("0001")

        listed = client.get("/providers").json()
        assert [p["id"] for p in listed] == [created["id"]]
        assert saved

    def test_create_with_rotation_list(self, client):
        created = _create_provider(
            client,
            api_keys=["sk-a-000000001", "sk-b-000000002"],
            secret_ids=["shared-one"],
        )
        assert created["key_count"] == 3

        rotated = client.post(f"/providers/{created['id']}/rotate-key")
        assert rotated.status_code == 200
        assert rotated.json()["current_key_index"] == 1

    def test_create_rejects_blank_name(self, client):
        response = client.post(
            "/providers",
            json={"name": " ", "endpoint": "https://x"},
        )
        assert response.status_code == 400

    def test_update_and_delete(self, client, manager):
        created = _create_provider(client)
        pid = created["id"]

        response = client.put(
            f"/providers/{pid}",
            json={"name": "Renamed", "secret_id": "shared-one"},
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert manager.get_api_key(pid) == "sk-shared-111"

        assert client.delete(f"/providers/{pid}").status_code == 204
        assert client.delete(f"/providers/{pid}").status_code == 404

    def test_update_rejects_both_key_kinds(self, client):
        pid = _create_provider(client)["id"]
        response = client.put(
            f"/providers/{pid}",
            json={"api_key": "sk-x", "secret_id": "y"},
        )
        assert response.status_code == 400

    def test_keys(self, client):
        pid = _create_provider(client)["id"]
        added = client.post(
            f"/providers/{pid}/keys",
            json={"api_key": "sk-second-0002"},
        )
        assert added.status_code == 201
        assert added.json()["key_count"] == 2

        removed = client.delete(f"/providers/{pid}/keys/0")
        assert removed.status_code == 200
        assert removed.json()["current_api_key"].endswith("0002")

        assert client.delete(f"/providers/{pid}/keys/9").status_code == 400

    def test_presets(self, client):
        presets = client.get("/providers/presets").json()
        assert {"openai", "deepseek", "custom"} <= {p["id"] for p in presets}

    def test_unknown_provider(self, client):
        assert client.get("/providers/nope/models").status_code == 404
        assert client.post("/providers/nope/rotate-key").status_code == 404
        response = client.post(
            "/providers/nope/models",
            json={"name": "x"},
        )
        assert response.status_code == 404


class TestModels:
    def test_crud(self, client):
        pid = _create_provider(client)["id"]
        model = _create_model(client, pid, temperature=0.2)
        assert model["temperature"] == 0.2
        assert model["api_format"] == "chat-completions"

        updated = client.put(
            f"/providers/{pid}/models/{model['id']}",
            json={"api_format": "responses", "reasoning_effort": "low"},
        )
        assert updated.status_code == 200
        body = updated.json()
        assert body["api_format"] == "responses"
        assert body["temperature"] == 0.2

        listed = client.get(f"/providers/{pid}/models").json()
        assert [m["id"] for m in listed] == [model["id"]]

        options = client.get("/providers/options").json()
        assert options[0]["label"] == "OpenAI / gpt-4o-mini"

        url = f"/providers/{pid}/models/{model['id']}"
        assert client.delete(url).status_code == 204
        assert client.delete(url).status_code == 404

    @pytest.mark.parametrize(
        "fields",
        [
            {"temperature": 2.1},
            {"top_p": -0.5},
            {"reasoning_effort": "extreme"},
        ],
    )
    def test_invalid_parameters(self, client, fields):
        pid = _create_provider(client)["id"]
        response = client.post(
            f"/providers/{pid}/models",
            json={"name": "gpt-4o", **fields},
        )
        assert response.status_code == 400

    def test_invalid_api_format_is_rejected_by_schema(self, client):
        pid = _create_provider(client)["id"]
        response = client.post(
            f"/providers/{pid}/models",
            json={"name": "gpt-4o", "api_format": "completions"},
        )
        assert response.status_code == 422


class TestFeatures:
    def test_bind_resolve_unbind(self, client):
        pid = _create_provider(client)["id"]
        mid = _create_model(client, pid)["id"]

        listed = client.get("/features").json()
        assert listed["naming"] == {"binding": None, "resolved": False}

        response = client.put(
            "/features/naming",
            json={"provider_id": pid, "model_id": mid},
        )
        assert response.status_code == 200

        resolved = client.get("/features/naming/resolve").json()
        assert resolved["provider_id"] == pid
        assert resolved["model"]["id"] == mid
        assert "{{content}}" in resolved["prompt_template"]
        assert "api_key" not in str(resolved)

        assert client.get("/features").json()["naming"]["resolved"] is True
        assert client.delete("/features/naming").status_code == 204
        assert client.delete("/features/naming").status_code == 404
        response = client.get("/features/naming/resolve")
        assert response.status_code == 404

    def test_bind_to_missing_model(self, client):
        pid = _create_provider(client)["id"]
        response = client.put(
            "/features/naming",
            json={"provider_id": pid, "model_id": "nope"},
        )
        assert response.status_code == 404

    def test_deleting_model_unbinds_feature(self, client):
        pid = _create_provider(client)["id"]
        mid = _create_model(client, pid)["id"]
        client.put(
            "/features/tagging",
            json={"provider_id": pid, "model_id": mid},
        )
        client.delete(f"/providers/{pid}/models/{mid}")
        listed = client.get("/features").json()
        assert listed["tagging"]["binding"] is None
