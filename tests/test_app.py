from pymongo.errors import PyMongoError


def test_database_errors_become_500(mock_client, mock_collection):
    mock_collection.count_documents.side_effect = PyMongoError("connection refused")

    response = mock_client.get("/users?page=1&limit=10")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Database error: connection refused"}


def test_unexpected_errors_become_500(mock_client, mock_collection):
    mock_collection.aggregate.side_effect = RuntimeError("boom")

    response = mock_client.get("/users/stats")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error: boom"}


def test_unknown_route_is_json(client):
    response = client.get("/theatres")

    assert response.status_code == 404
    assert "error" in response.get_json()


def test_wrong_method_is_json(client):
    response = client.patch("/movies/id/1", json={"title": "x"})

    assert response.status_code == 405
    assert "error" in response.get_json()


def test_create_indexes_command(mock_app, mock_collection):
    mock_collection.create_index.return_value = "geometry_2dsphere"

    result = mock_app.test_cli_runner().invoke(args=["create-indexes"])

    assert result.exit_code == 0
    assert "geometry_2dsphere" in result.output
    mock_collection.create_index.assert_called_once_with([("geometry", "2dsphere")])


def test_cors_headers(client):
    response = client.get("/users/stats", headers={"Origin": "http://localhost:3000"})

    assert response.headers["Access-Control-Allow-Origin"] == "*"
