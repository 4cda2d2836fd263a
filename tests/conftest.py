from unittest.mock import MagicMock

import mongomock
import pytest
from bson import ObjectId

from cinema_api import create_app

CINEMA_WITH_MOVIES = ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")
CINEMA_WITHOUT_MOVIES = ObjectId("65a1f0c2e4b0a1b2c3d4e5f7")

MOVIES = [
    {"_id": 1, "title": "Toy Story", "year": 1995, "genres": ["Animation", "Comedy"]},
    {"_id": 2, "title": "Shichinin no samurai (Seven Samurai)", "year": 1954, "genres": ["Drama"]},
    {"_id": 3, "title": "Heat", "year": 1995, "genres": ["Action", "Crime"]},
    {"_id": 4, "title": "Cidade de Deus (City of God) extended", "year": 2002, "genres": ["Crime", "Drama"]},
]

USERS = [
    {
        "_id": 1, "name": "Ana", "gender": "F", "age": 25, "occupation": "writer",
        "movies": [
            {"movieid": 1, "rating": 5, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
            {"movieid": 2, "rating": 3, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
            {"movieid": 3, "rating": 5, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
        ],
        "num_ratings": 3,
    },
    {
        "_id": 2, "name": "Rui", "gender": "M", "age": 40, "occupation": "doctor",
        "movies": [
            {"movieid": 1, "rating": 4, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
            {"movieid": 3, "rating": 5, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
            {"movieid": 2, "rating": 5, "timestamp": 978300760, "date": "2001-01-01T00:12:40.000Z"},
        ],
        "num_ratings": 3,
    },
    {"_id": 3, "name": "Ines", "gender": "F", "age": 30, "occupation": "artist", "movies": [], "num_ratings": 0},
]

CINEMAS = [
    {
        "_id": CINEMA_WITH_MOVIES, "properties": {"name": "Cinema City"}, "movies": [1],
        "geometry": {"type": "Point", "coordinates": [-9.1393, 38.7223]},
    },
    {
        "_id": CINEMA_WITHOUT_MOVIES, "properties": {"name": "Cinema Ideal"},
        "geometry": {"type": "Point", "coordinates": [-9.1427, 38.7101]},
    },
]


@pytest.fixture
def db():
    database = mongomock.MongoClient()["cinema_test"]
    database["movies"].insert_many([dict(movie) for movie in MOVIES])
    database["users"].insert_many([dict(user) for user in USERS])
    database["cinemas"].insert_many([dict(cinema) for cinema in CINEMAS])
    return database


@pytest.fixture
def empty_db():
    return mongomock.MongoClient()["cinema_empty"]


@pytest.fixture
def app(db):
    application = create_app(database=db)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def empty_client(empty_db):
    return create_app(database=empty_db).test_client()


@pytest.fixture
def mock_collection():
    """Collection returned for every name, for operators mongomock cannot evaluate."""
    return MagicMock()


@pytest.fixture
def mock_app(mock_collection):
    database = MagicMock()
    database.__getitem__.return_value = mock_collection
    return create_app(database=database)


@pytest.fixture
def mock_client(mock_app):
    return mock_app.test_client()
