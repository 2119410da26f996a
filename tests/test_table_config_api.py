from app.engine.headers import default_headers, dump_headers

API = "/api/v1/table-config"


def test_default_config_is_created_on_first_read(client):
    response = client.get(API)

    assert response.status_code == 200
    body = response.json()
    assert body["configType"] == "admin-table"
    assert body["headers"] == dump_headers(default_headers())


def test_save_and_read_back(client):
    headers = dump_headers(default_headers())
    headers.insert(3, {"id": "custom_1700", "label": "Tag", "field": "custom_1", "editable": True})

    response = client.post(API, json={"headers": headers})

    assert response.status_code == 200
    assert response.json()["message"] == "Table configuration saved successfully"
    assert client.get(API).json()["headers"] == headers


def test_duplicate_ids_are_rejected(client):
    headers = dump_headers(default_headers())
    headers.insert(0, dict(headers[0]))

    response = client.post(API, json={"headers": headers})

    assert response.status_code == 400
    assert "Duplicate column id 'name'" in response.json()["errors"][0]["message"]


def test_status_column_is_required(client):
    headers = [h for h in dump_headers(default_headers()) if h["field"] != "status"]

    response = client.post(API, json={"headers": headers})

    assert response.status_code == 400


def test_malformed_descriptor_is_rejected(client):
    response = client.post(API, json={"headers": [{"label": "No id"}]})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "headers.0"


def test_reset_restores_defaults(client):
    headers = dump_headers(default_headers())
    headers[0]["label"] = "Client"
    client.post(API, json={"headers": headers})

    response = client.post(f"{API}/reset")

    assert response.status_code == 200
    assert response.json()["config"]["headers"] == dump_headers(default_headers())
    assert client.get(API).json()["headers"][0]["label"] == "Full Name"
