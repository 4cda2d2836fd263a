import pytest
from bson import ObjectId

from cinema_api.api_cinemas.cinemas_functions import parse_coordinates

from .conftest import CINEMA_WITH_MOVIES, CINEMA_WITHOUT_MOVIES


def test_attach_skips_missing_movies(client, db):
    response = client.put(f"/cinemas/id/{CINEMA_WITHOUT_MOVIES}", json={"movies": [1, 99]})

    assert response.status_code == 200
    body = response.get_json()
    assert body["notFound"] == [99]
    assert "99" in body["message"]
    assert db["cinemas"].find_one({"_id": CINEMA_WITHOUT_MOVIES})["movies"] == [1]


def test_attach_does_not_duplicate(client, db):
    response = client.put(f"/cinemas/id/{CINEMA_WITH_MOVIES}", json={"movies": [1, 3]})

    assert response.status_code == 200
    assert response.get_json()["notFound"] == []
    assert db["cinemas"].find_one({"_id": CINEMA_WITH_MOVIES})["movies"] == [1, 3]


def test_attach_fails_when_no_movie_exists(client, db):
    response = client.put(f"/cinemas/id/{CINEMA_WITH_MOVIES}", json={"movies": [98, 99]})

    assert response.status_code == 404
    assert db["cinemas"].find_one({"_id": CINEMA_WITH_MOVIES})["movies"] == [1]


def test_attach_empty_list_counts_as_all_missing(client):
    assert client.put(f"/cinemas/id/{CINEMA_WITH_MOVIES}", json={"movies": []}).status_code == 404


@pytest.mark.parametrize("body", [{}, {"movies": 1}, [1, 2]])
def test_attach_body_shape(client, body):
    assert client.put(f"/cinemas/id/{CINEMA_WITH_MOVIES}", json=body).status_code == 400


def test_attach_unknown_cinema(client):
    assert client.put(f"/cinemas/id/{ObjectId()}", json={"movies": [1]}).status_code == 404
    assert client.put("/cinemas/id/12", json={"movies": [1]}).status_code == 400


def test_movies_showing(client):
    response = client.get(f"/cinemas/movies/{CINEMA_WITH_MOVIES}")

    assert response.status_code == 200
    assert response.get_json() == [{"_id": 1, "title": "Toy Story", "year": 1995, "genres": ["Animation", "Comedy"]}]


def test_movies_showing_errors(client):
    assert client.get(f"/cinemas/movies/{CINEMA_WITHOUT_MOVIES}").status_code == 404
    assert client.get(f"/cinemas/movies/{ObjectId()}").status_code == 404
    assert client.get("/cinemas/movies/lisbon").status_code == 400


def test_parse_coordinates_rejects_zero():
    assert parse_coordinates("-9.14", "38.72") == [-9.14, 38.72]
    assert parse_coordinates("-9.14", "0") is None
    assert parse_coordinates("x", "38.72") is None


def test_near(mock_client, mock_collection):
    cinema_id = ObjectId()
    mock_collection.find.return_value = [{"_id": cinema_id}]

    response = mock_client.get("/cinemas/near/lng_lat/-9.14/38.72")

    assert response.status_code == 200
    assert response.get_json() == [{"_id": str(cinema_id)}]
    query, projection = mock_collection.find.call_args.args
    assert query == {
        "geometry": {
            "$near": {"$geometry": {"type": "Point", "coordinates": [-9.14, 38.72]}, "$maxDistance": 5000}
        }
    }
    assert projection == {"_id": 1}


@pytest.mark.parametrize("path", ["/cinemas/near/lng_lat/-9.14/0", "/cinemas/near/lng_lat/west/38.72"])
def test_near_rejects_invalid_coordinates(mock_client, mock_collection, path):
    assert mock_client.get(path).status_code == 400
    mock_collection.find.assert_not_called()


def test_near_without_results(mock_client, mock_collection):
    mock_collection.find.return_value = []

    assert mock_client.get("/cinemas/near/lng_lat/-9.14/38.72").status_code == 404


def test_line(mock_client, mock_collection):
    mock_collection.find.return_value = [{"_id": ObjectId()}]

    response = mock_client.get("/cinemas/near/line/lng_lat/-9.14/38.72/-9.13/38.71")

    assert response.status_code == 200
    query, _ = mock_collection.find.call_args.args
    assert query["geometry"]["$geoIntersects"]["$geometry"] == {
        "type": "LineString",
        "coordinates": [[-9.14, 38.72], [-9.13, 38.71]],
    }


def test_line_needs_both_points(mock_client):
    assert mock_client.get("/cinemas/near/line/lng_lat/-9.14/38.72/0/38.71").status_code == 400


def test_count_near(mock_client, mock_collection):
    mock_collection.count_documents.return_value = 3

    response = mock_client.get("/cinemas/near/sum/lng_lat/-9.14/38.72")

    assert response.get_json() == {"Cinemas": 3}
    query = mock_collection.count_documents.call_args.args[0]
    center, radius = query["geometry"]["$geoWithin"]["$centerSphere"]
    assert center == [-9.14, 38.72]
    assert radius == pytest.approx(5 / 6378.1)


def test_count_near_zero(mock_client, mock_collection):
    mock_collection.count_documents.return_value = 0

    assert mock_client.get("/cinemas/near/sum/lng_lat/-9.14/38.72").status_code == 404


def test_within_festival(mock_client, mock_collection):
    mock_collection.find.return_value = [{"_id": ObjectId(), "properties": {"name": "Festival"}}]

    response = mock_client.get("/cinemas/within/long_lat/-9.14/38.72")

    assert response.status_code == 200
    query = mock_collection.find.call_args.args[0]
    assert query == {"geometry": {"$geoIntersects": {"$geometry": {"type": "Point", "coordinates": [-9.14, 38.72]}}}}


def test_outside_festival(mock_client, mock_collection):
    mock_collection.find.return_value = []

    assert mock_client.get("/cinemas/within/long_lat/-9.14/38.72").status_code == 404
    assert mock_client.get("/cinemas/within/long_lat/0/38.72").status_code == 400
