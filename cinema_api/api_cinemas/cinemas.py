from flask import Blueprint, jsonify, request
from loguru import logger

from ..common import check_object_id, paginated_response, serialize_document
from ..database import cinemas_collection, movies_collection
from .cinemas_functions import (
    line_intersects_query,
    merge_showing_movies,
    near_query,
    parse_coordinates,
    point_intersects_query,
    within_sphere_query,
)

cinemas_bp = Blueprint("cinemas", __name__, url_prefix="/cinemas")

ID_PROJECTION = {"_id": 1}


@cinemas_bp.route("", methods=["GET"])
def list_cinemas():
    """
    Handle GET requests for the paginated cinemas collection.

    Returns:
        Response: Page envelope, redirect to the default page or error payload.
    """
    return paginated_response(cinemas_collection(), "cinemas")


@cinemas_bp.route("/id/<cinema_id>", methods=["PUT"])
def add_cinema_movies(cinema_id: str):
    """
    Handle PUT requests that add movies to the ones a cinema is showing.

    Movies that do not exist are skipped and reported. The request fails
    only when none of the given movies exist.

    Args:
        cinema_id (str): ObjectId of the cinema.

    Returns:
        Response: Confirmation with the skipped ids, or error payload.
    """
    identifier = check_object_id(cinema_id)
    if identifier is None:
        return jsonify({"error": "Invalid cinema id"}), 400

    collection = cinemas_collection()
    cinema = collection.find_one({"_id": identifier})
    if not cinema:
        return jsonify({"error": "Cinema not found"}), 404

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or "movies" not in payload:
        return jsonify({"error": "The request body must contain the 'movies' property"}), 400
    requested = payload["movies"]
    if not isinstance(requested, list):
        return jsonify({"error": "The 'movies' property must be an array"}), 400

    merged, not_found = merge_showing_movies(cinema.get("movies") or [], requested, movies_collection())
    if len(not_found) == len(requested):
        return jsonify({"error": "Movies not found, provide existing movie ids"}), 404

    collection.update_one({"_id": identifier}, {"$set": {"movies": merged}})

    message = "Movies added successfully"
    if not_found:
        message += f", except movies {', '.join(map(str, not_found))} because they do not exist"
    logger.info(f"[API] PUT /cinemas/id/{cinema_id} now shows {len(merged)} movies, skipped {not_found}")
    return jsonify({"message": message, "notFound": serialize_document(not_found)})


@cinemas_bp.route("/movies/<cinema_id>", methods=["GET"])
def get_cinema_movies(cinema_id: str):
    """
    Handle GET requests for the movies a cinema is showing.

    Args:
        cinema_id (str): ObjectId of the cinema.

    Returns:
        Response: Movie documents in the cinema's order, or error payload.
    """
    identifier = check_object_id(cinema_id)
    if identifier is None:
        return jsonify({"error": "Invalid cinema id"}), 400

    cinema = cinemas_collection().find_one({"_id": identifier})
    if not cinema:
        return jsonify({"error": "Cinema not found"}), 404
    if not cinema.get("movies"):
        return jsonify({"error": "There are no movies showing at this cinema"}), 404

    movies = movies_collection()
    results = [movies.find_one({"_id": movie_id}) for movie_id in cinema["movies"]]
    return jsonify(serialize_document(results))


@cinemas_bp.route("/near/lng_lat/<lng>/<lat>", methods=["GET"])
def get_cinemas_near(lng: str, lat: str):
    """
    Handle GET requests for the cinemas within 5 km of a point, nearest first.

    Args:
        lng (str): Longitude.
        lat (str): Latitude.

    Returns:
        Response: Cinema identifiers or error payload.
    """
    coordinates = parse_coordinates(lng, lat)
    if coordinates is None:
        return jsonify({"error": "Latitude and longitude are required"}), 400

    results = list(cinemas_collection().find(near_query(*coordinates), ID_PROJECTION))
    if not results:
        return jsonify({"error": "There are no cinemas near the given location"}), 404
    return jsonify(serialize_document(results))


@cinemas_bp.route("/near/line/lng_lat/<lng1>/<lat1>/<lng2>/<lat2>", methods=["GET"])
def get_cinemas_on_line(lng1: str, lat1: str, lng2: str, lat2: str):
    """
    Handle GET requests for the cinemas lying on the segment between two points.

    Returns:
        Response: Cinema identifiers or error payload.
    """
    coordinates = parse_coordinates(lng1, lat1, lng2, lat2)
    if coordinates is None:
        return jsonify({"error": "Latitude and longitude are required for both points"}), 400

    results = list(cinemas_collection().find(line_intersects_query(*coordinates), ID_PROJECTION))
    if not results:
        return jsonify({"error": "There are no cinemas on the given line"}), 404
    return jsonify(serialize_document(results))


@cinemas_bp.route("/near/sum/lng_lat/<lng>/<lat>", methods=["GET"])
def count_cinemas_near(lng: str, lat: str):
    """
    Handle GET requests for the number of cinemas within 5 km of a point.

    Args:
        lng (str): Longitude.
        lat (str): Latitude.

    Returns:
        Response: ``{"Cinemas": count}`` or error payload.
    """
    coordinates = parse_coordinates(lng, lat)
    if coordinates is None:
        return jsonify({"error": "Latitude and longitude are required"}), 400

    count = cinemas_collection().count_documents(within_sphere_query(*coordinates))
    if count == 0:
        return jsonify({"error": "There are no cinemas near the given location"}), 404
    return jsonify({"Cinemas": count})


@cinemas_bp.route("/within/long_lat/<lng>/<lat>", methods=["GET"])
def get_festival_coverage(lng: str, lat: str):
    """
    Handle GET requests checking whether a point lies inside the film festival area.

    Args:
        lng (str): Longitude.
        lat (str): Latitude.

    Returns:
        Response: Cinemas whose geometry contains the point, or error payload.
    """
    coordinates = parse_coordinates(lng, lat)
    if coordinates is None:
        return jsonify({"error": "Latitude and longitude must be provided"}), 400

    results = list(cinemas_collection().find(point_intersects_query(*coordinates)))
    if not results:
        return jsonify({"error": "The location is not inside the film festival area"}), 404
    return jsonify(serialize_document(results))
