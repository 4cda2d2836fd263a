from flask import Blueprint, jsonify, request
from loguru import logger

from ..common import (
    check_id,
    delete_result_payload,
    insert_result_payload,
    paginated_response,
    serialize_document,
    update_result_payload,
)
from ..database import movies_collection, users_collection
from .users_functions import (
    build_stats_pipeline,
    build_top_movies_pipeline,
    build_user_without_ratings,
    filter_valid_fields,
    prepare_new_user,
    prepare_user_update,
    validate_user,
    validate_user_to_update,
)

users_bp = Blueprint("users", __name__, url_prefix="/users")


@users_bp.route("", methods=["GET"])
def list_users():
    """
    Handle GET requests for the paginated users collection.

    Returns:
        Response: Page envelope, redirect to the default page or error payload.
    """
    return paginated_response(users_collection(), "users")


@users_bp.route("", methods=["POST"])
def create_users():
    """
    Handle POST requests that insert a batch of users.

    The batch is all-or-nothing: one invalid user rejects every user.

    Returns:
        Response: Insertion result with status 201, or the validation errors of each user.
    """
    users = request.get_json(silent=True)
    if not isinstance(users, list):
        return jsonify({"error": "The data must be an array"}), 400

    movies = movies_collection()
    errors_array = []
    documents = []
    for index, raw_user in enumerate(users):
        user = filter_valid_fields(raw_user)
        errors = validate_user(user, movies)
        if errors:
            errors_array.append({"userIndex": index, "errors": errors})
        documents.append(user)

    if errors_array:
        logger.warning(f"[API] POST /users rejected {len(errors_array)} of {len(users)} users")
        return jsonify({"error": "Invalid user data", "details": errors_array}), 400
    if not documents:
        return jsonify({"error": "The array must contain at least one user"}), 400

    documents = [prepare_new_user(user) for user in documents]
    result = users_collection().insert_many(documents)
    logger.info(f"[API] POST /users inserted {len(result.inserted_ids)} users")
    return jsonify({"message": "Users added successfully", "results": insert_result_payload(result)}), 201


@users_bp.route("/id/<user_id>", methods=["GET"])
def get_user(user_id: str):
    """
    Handle GET requests for a user and their five best rated movies.

    Args:
        user_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: User document with ``topMovies`` or error payload.
    """
    identifier = check_id(user_id)
    if identifier is None:
        return jsonify({"error": "Invalid user id"}), 400

    collection = users_collection()
    user = collection.find_one({"_id": identifier})
    if not user:
        return jsonify({"error": "User not found"}), 404

    if not user.get("movies"):
        return jsonify(serialize_document(build_user_without_ratings(user)))

    results = list(collection.aggregate(build_top_movies_pipeline(identifier)))
    logger.debug(f"[API] GET /users/id/{user_id} top movies computed")
    return jsonify(serialize_document(results[0]))


@users_bp.route("/id/<user_id>", methods=["PUT"])
def update_user(user_id: str):
    """
    Handle PUT requests that change some fields of a user.

    Args:
        user_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: Update result or error payload.
    """
    identifier = check_id(user_id)
    if identifier is None:
        return jsonify({"error": "Invalid user id"}), 400

    collection = users_collection()
    if not collection.find_one({"_id": identifier}):
        return jsonify({"error": "User does not exist"}), 404

    payload = request.get_json(silent=True)
    if isinstance(payload, list):
        return jsonify({"error": "The data must be an object"}), 400
    if not isinstance(payload, dict):
        return jsonify({"error": "The request body must be a JSON object"}), 400

    update = filter_valid_fields(payload)
    errors = validate_user_to_update(update, movies_collection())
    if errors:
        logger.warning(f"[API] PUT /users/id/{user_id} rejected: {errors}")
        return jsonify({"error": "Invalid user data", "details": errors}), 400
    if not update:
        return jsonify({"error": "No valid fields were provided to update"}), 400

    update = prepare_user_update(update)
    result = collection.update_one({"_id": identifier}, {"$set": update})
    logger.info(f"[API] PUT /users/id/{user_id} updated fields {sorted(update)}")
    return jsonify({"message": "User updated successfully", "result": update_result_payload(result)})


@users_bp.route("/id/<user_id>", methods=["DELETE"])
def delete_user(user_id: str):
    """
    Handle DELETE requests that remove a user.

    Args:
        user_id (str): Numeric or ObjectId identifier from the path.

    Returns:
        Response: Deletion result or error payload.
    """
    identifier = check_id(user_id)
    if identifier is None:
        return jsonify({"error": "Invalid user id"}), 400

    collection = users_collection()
    if not collection.find_one({"_id": identifier}):
        return jsonify({"error": "User does not exist"}), 404

    result = collection.delete_one({"_id": identifier})
    logger.info(f"[API] DELETE /users/id/{user_id}")
    return jsonify({"message": "User deleted successfully", "result": delete_result_payload(result)})


@users_bp.route("/stats", methods=["GET"])
def get_users_stats():
    """
    Handle GET requests for the rating statistics of every user.

    Returns:
        Response: List of ``{_id, name, max_rating, min_rating, avg_rating}`` rows.
    """
    stats = list(users_collection().aggregate(build_stats_pipeline()))
    logger.info(f"[API] GET /users/stats served {len(stats)} rows")
    return jsonify(serialize_document(stats))
