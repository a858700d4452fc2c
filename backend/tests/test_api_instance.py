"""
Instance API tests.
"""

from unittest.mock import patch

from model.instance import InstanceListRsp

LINE = "[19:32:49 - DEBUG] Target: 1.1.1.1, Port: 53, Method: UDP PPS: 54.06k, BPS: 55.36 MB / 95%"


class TestInstanceAPI:
    """Worker registration and telemetry ingestion."""

    def test_connect_with_body(self, api_client, repository):
        response = api_client.post(
            "/connect", json={"instanceId": "w-1", "region": "eu-west"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["instanceId"] == "w-1"
        assert repository.instances["w-1"]["status"] == "online"
        assert repository.instances["w-1"]["region"] == "eu-west"

    def test_connect_without_body_generates_id(self, api_client, repository):
        response = api_client.post("/connect")
        assert response.status_code == 200
        instance_id = response.json()["instanceId"]
        assert instance_id in repository.instances
        assert repository.instances[instance_id]["region"] == "None"

    def test_update_ingests_output(self, api_client, repository):
        repository.add_instance("w-1", "10.0.0.1")
        response = api_client.post(
            "/update",
            json={
                "instanceId": "w-1",
                "rps": 120.5,
                "gps": 3,
                "campaign": "campaign-1",
                "processes": {"ATK": {"output": [LINE], "pid": 42}},
            },
        )
        assert response.status_code == 200
        assert response.json()["logsStored"] == 1
        assert repository.logs[0]["Target"] == "1.1.1.1"
        assert repository.instances["w-1"]["rps"] == 120.5

    def test_update_unknown_instance(self, api_client):
        response = api_client.post("/update", json={"instanceId": "ghost"})
        assert response.status_code == 404
        assert response.json()["message"] == "Instance not found"

    def test_update_missing_instance_id(self, api_client):
        response = api_client.post("/update", json={"rps": 1})
        assert response.status_code == 400

    def test_update_rejects_negative_counters(self, api_client):
        response = api_client.post("/update", json={"instanceId": "w-1", "rps": -1})
        assert response.status_code == 422

    @patch("api.api_instance.list_instances_svc")
    def test_list_instances(self, mock_list, api_client):
        mock_list.return_value = InstanceListRsp(
            data=[{"instanceId": "w-1", "status": "online"}], status="success"
        )

        response = api_client.get("/api/instances?status=online")

        assert response.status_code == 200
        assert response.json()["data"][0]["instanceId"] == "w-1"
        mock_list.assert_called_once()
        assert mock_list.call_args.args[1] == "online"

    def test_list_instances_rejects_unknown_status(self, api_client):
        response = api_client.get("/api/instances?status=sleeping")
        assert response.status_code == 422
