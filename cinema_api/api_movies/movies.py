import re
from datetime import datetime

from flask import Blueprint, jsonify, request
from loguru import logger
from pymongo import ASCENDING, DESCENDING

from ..common import (
    DIGITS_PATTERN,
    check_id,
    delete_result_payload,
    insert_result_payload,
    paginated_response,
    serialize_document,
    update_result_payload,
)
from ..config import MIN_MOVIE_YEAR
from ..database import movies_collection, users_collection
from .movies_functions import (
    NO_RATINGS_PLACEHOLDER,
    available_genres,
    build_average_rating_pipeline,
    build_five_stars_pipeline,
    build_top_average_pipeline,
    build_total_ratings_pipeline,
    filter_valid_fields,
    split_original_title,
    validate_movie,
    validate_movie_to_update,
)

movies_bp = Blueprint("movies", __name__, url_prefix="/movies")

GENRE_PATTERN = re.compile(r"[a-zA-Z]+")
ORDERS = {"asc": ASCENDING, "desc": DESCENDING}


@movies_bp.route("", methods=["GET"])
def list_movies():
    """
    Handle GET requests for the paginated movies collection.

    Returns:
        Response: Page envelope with the movies under ``filmes``.
    """
    return paginated_response(movies_collection(), "filmes")


@movies_bp.route("", methods=["POST"])
def create_movies():
    """
    Handle POST requests that insert a batch of movies.

    Returns:
        Response: Insertion result with status 201, or the validation errors of each movie.
    """
    movies = request.get_json(silent=True)
    if not isinstance(movies, list):
        return jsonify({"error": "The data must be an array"}), 400

    collection = movies_collection()
    errors_array = []
    documents = []
    for index, raw_movie in enumerate(movies):
        movie = filter_valid_fields(raw_movie)
        errors = validate_movie(movie, collection)
        if errors:
            errors_array.append({"movieIndex": index, "errors": errors})
        documents.append(movie)

    if errors_array:
        logger.warning(f"[API] POST /movies rejected {len(errors_array)} of {len(movies)} movies")
        return jsonify({"error": "Invalid movie data", "details": errors_array}), 400
    if not documents:
        return jsonify({"error": "The array must contain at least one movie"}), 400

    result = collection.insert_many(documents)
    logger.info(f"[API] POST /movies inserted {len(result.inserted_ids)} movies")
    return jsonify({"message": "Movies added successfully", "results": insert_result_payload(result)}), 201


@movies_bp.route("/id/<movie_id>", methods=["GET"])
def get_movie(movie_id: str):
    """
    Handle GET requests for a movie together with its average rating.

    Args:
        movie_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: Movie document with ``averageRating`` or error payload.
    """
    identifier = check_id(movie_id)
    if identifier is None:
        return jsonify({"error": "Invalid movie id"}), 400

    movie = movies_collection().find_one({"_id": identifier})
    if not movie:
        return jsonify({"error": "Movie not found"}), 404

    ratings = list(users_collection().aggregate(build_average_rating_pipeline(identifier)))
    average = ratings[0].get("averageRating") if ratings else None
    movie["averageRating"] = average if average is not None else NO_RATINGS_PLACEHOLDER
    return jsonify(serialize_document(movie))


@movies_bp.route("/id/<movie_id>", methods=["PUT"])
def update_movie(movie_id: str):
    """
    Handle PUT requests that change some fields of a movie.

    Args:
        movie_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: Update result or error payload.
    """
    identifier = check_id(movie_id)
    if identifier is None:
        return jsonify({"error": "Invalid movie id"}), 400

    collection = movies_collection()
    if not collection.find_one({"_id": identifier}):
        return jsonify({"error": "Movie does not exist"}), 404

    payload = request.get_json(silent=True)
    if isinstance(payload, list):
        return jsonify({"error": "The data must be an object"}), 400
    if not isinstance(payload, dict):
        return jsonify({"error": "The request body must be a JSON object"}), 400

    update = filter_valid_fields(payload)
    errors = validate_movie_to_update(update, collection)
    if errors:
        logger.warning(f"[API] PUT /movies/id/{movie_id} rejected: {errors}")
        return jsonify({"error": "Invalid movie data", "details": errors}), 400
    if not update:
        return jsonify({"error": "No valid fields were provided to update"}), 400

    result = collection.update_one({"_id": identifier}, {"$set": update})
    logger.info(f"[API] PUT /movies/id/{movie_id} updated fields {sorted(update)}")
    return jsonify({"message": "Movie updated successfully", "result": update_result_payload(result)})


@movies_bp.route("/id/<movie_id>", methods=["DELETE"])
def delete_movie(movie_id: str):
    """
    Handle DELETE requests that remove a movie.

    Ratings pointing at the movie are left in place.

    Args:
        movie_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: Deletion result or error payload.
    """
    identifier = check_id(movie_id)
    if identifier is None:
        return jsonify({"error": "Invalid movie id"}), 400

    collection = movies_collection()
    if not collection.find_one({"_id": identifier}):
        return jsonify({"error": "Movie does not exist"}), 404

    result = collection.delete_one({"_id": identifier})
    logger.info(f"[API] DELETE /movies/id/{movie_id}")
    return jsonify({"message": "Movie deleted successfully", "result": delete_result_payload(result)})


@movies_bp.route("/higher/<num_movies>", methods=["GET"])
def get_top_rated_movies(num_movies: str):
    """
    Handle GET requests for the N movies with the highest average rating.

    Args:
        num_movies (str): Number of movies to return, from the path.

    Returns:
        Response: Ranked movies or error payload.
    """
    if not DIGITS_PATTERN.fullmatch(num_movies) or int(num_movies) <= 0:
        return jsonify({"error": "The number of movies must be a positive integer"}), 400

    results = list(users_collection().aggregate(build_top_average_pipeline(int(num_movies))))
    if not results:
        return jsonify({"error": "No movies were found"}), 404

    logger.info(f"[API] GET /movies/higher/{num_movies} served {len(results)} movies")
    return jsonify(serialize_document(results))


@movies_bp.route("/ratings/<order>", methods=["GET"])
def get_movies_by_total_ratings(order: str):
    """
    Handle GET requests for every rated movie sorted by the sum of its ratings.

    Args:
        order (str): ``asc`` or ``desc``.

    Returns:
        Response: Ranked movies or error payload.
    """
    if order not in ORDERS:
        return jsonify({"error": "Invalid sort order. It must be 'asc' or 'desc'"}), 400

    results = list(users_collection().aggregate(build_total_ratings_pipeline(ORDERS[order])))
    if not results:
        return jsonify({"error": "No movies were found"}), 404
    return jsonify(serialize_document(results))


@movies_bp.route("/star", methods=["GET"])
def get_movies_by_five_stars():
    """
    Handle GET requests for movies ranked by how many 5 star ratings they got.

    Returns:
        Response: Ranked movies or error payload.
    """
    results = list(users_collection().aggregate(build_five_stars_pipeline()))
    if not results:
        return jsonify({"error": "No movies were found"}), 404
    return jsonify(serialize_document(results))


@movies_bp.route("/genres/<genre_name>/year/<year>", methods=["GET"])
def get_movies_by_genre_and_year(genre_name: str, year: str):
    """
    Handle GET requests for the movies of one genre released in one year.

    Args:
        genre_name (str): Genre, letters only and matched case sensitively.
        year (str): Release year, digits only.

    Returns:
        Response: Matching movies without their ``_id`` or error payload.
    """
    if not GENRE_PATTERN.fullmatch(genre_name) or not DIGITS_PATTERN.fullmatch(year):
        return jsonify({"error": "The genre must contain only letters and the year must be an integer"}), 400

    collection = movies_collection()
    genres = available_genres(collection)
    if genre_name not in genres:
        return jsonify({
            "error": "Genre not found. Check that it starts with a capital letter and is spelled the same way",
            "genresAvailable": genres,
        }), 404

    year_value = int(year)
    if year_value < MIN_MOVIE_YEAR or year_value > datetime.now().year:
        return jsonify({"error": "The year is invalid"}), 400

    results = list(collection.find({"genres": genre_name, "year": year_value}, {"_id": 0}))
    if not results:
        return jsonify({"error": "No movie was found with these characteristics"}), 404

    logger.info(f"[API] GET /movies/genres/{genre_name}/year/{year} served {len(results)} movies")
    return jsonify(serialize_document(results))


@movies_bp.route("/originaltitle", methods=["GET"])
def get_movies_original_title():
    """
    Handle GET requests for movies whose title carries the original title in parentheses.

    Returns:
        Response: ``{_id, title, original_title}`` rows sorted by identifier.
    """
    cursor = movies_collection().find({"title": {"$regex": r"\(.*\)"}}, {"title": 1}).sort("_id", ASCENDING)
    results = [split_original_title(movie) for movie in cursor]
    return jsonify(serialize_document(results))
