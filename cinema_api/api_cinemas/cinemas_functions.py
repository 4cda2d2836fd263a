from pymongo.collection import Collection

from ..common import parse_coordinate
from ..config import EARTH_RADIUS_KM, NEAR_DISTANCE_METERS


def parse_coordinates(*raw_values: str):
    """
    Parse path coordinates, rejecting the whole set when any of them is unusable.

    Zero counts as unusable, the same as a value that is not a number.

    Args:
        *raw_values (str): Raw coordinates from the URL.

    Returns:
        list[float] | None: Parsed coordinates in the given order, or None.
    """
    values = [parse_coordinate(raw) for raw in raw_values]
    if not all(values):
        return None
    return values


def merge_showing_movies(current: list, requested: list, movies_collection: Collection):
    """
    Add the requested movies that exist to a cinema's list of movies.

    Each id is looked up on its own. Ids already showing are not repeated.

    Args:
        current (list): Movie ids the cinema already shows.
        requested (list): Movie ids sent by the client.
        movies_collection (Collection): Collection used to check that each movie exists.

    Returns:
        tuple[list, list]: Merged list of ids and the ids that do not exist.
    """
    merged = list(current)
    not_found = []
    for movie_id in requested:
        if movies_collection.find_one({"_id": movie_id}) is None:
            not_found.append(movie_id)
        elif movie_id not in merged:
            merged.append(movie_id)
    return merged, not_found


def point(lng: float, lat: float):
    return {"type": "Point", "coordinates": [lng, lat]}


def near_query(lng: float, lat: float):
    return {"geometry": {"$near": {"$geometry": point(lng, lat), "$maxDistance": NEAR_DISTANCE_METERS}}}


def line_intersects_query(lng1: float, lat1: float, lng2: float, lat2: float):
    line = {"type": "LineString", "coordinates": [[lng1, lat1], [lng2, lat2]]}
    return {"geometry": {"$geoIntersects": {"$geometry": line}}}


def within_sphere_query(lng: float, lat: float):
    """Cinemas inside a sphere of radius NEAR_DISTANCE_METERS, expressed in radians."""
    radius = (NEAR_DISTANCE_METERS / 1000) / EARTH_RADIUS_KM
    return {"geometry": {"$geoWithin": {"$centerSphere": [[lng, lat], radius]}}}


def point_intersects_query(lng: float, lat: float):
    return {"geometry": {"$geoIntersects": {"$geometry": point(lng, lat)}}}
