from datetime import datetime, timezone

from pymongo.collection import Collection

from ..common import is_non_empty_string, is_number
from ..config import TOP_RATED_PER_USER

ALLOWED_FIELDS = ("name", "gender", "age", "occupation", "movies")
RATING_FIELDS = ("movieid", "rating")
GENDERS = ("M", "F")

# field -> (check, message shown when the value is present but invalid)
USER_FIELD_RULES = {
    "name": (is_non_empty_string, "Field 'name' must be a non-empty string"),
    "gender": (lambda value: value in GENDERS, "Field 'gender' must be 'M' or 'F'"),
    "age": (lambda value: is_number(value) and value > 0, "Field 'age' must be a positive number"),
    "occupation": (is_non_empty_string, "Field 'occupation' must be a non-empty string"),
}

NO_RATINGS_MESSAGE = "The user has not rated any movie"


def filter_valid_fields(user: dict):
    """
    Keep only the fields a client may write on a user.

    Args:
        user (dict): Raw user payload.

    Returns:
        dict: Payload restricted to name, gender, age, occupation and movies.
    """
    if not isinstance(user, dict):
        return {}
    return {field: user[field] for field in ALLOWED_FIELDS if field in user}


def validate_rating_entries(movies, movies_collection: Collection):
    """
    Validate the embedded list of movie ratings.

    Every entry is checked and every problem is reported. Movie references
    are looked up one at a time.

    Args:
        movies (Any): Value of the ``movies`` field.
        movies_collection (Collection): Collection used to check references.

    Returns:
        list[str]: Error messages, empty when the list is valid.
    """
    if not isinstance(movies, list):
        return ["Field 'movies' must be an array"]

    errors = []
    for position, entry in enumerate(movies):
        if not isinstance(entry, dict):
            errors.append(f"Item at position {position} of 'movies' must be an object")
            continue

        movie_id = entry.get("movieid")
        if is_number(movie_id) and movie_id > 0:
            if movies_collection.find_one({"_id": movie_id}) is None:
                errors.append(f"Movie with id {movie_id} does not exist")
        else:
            errors.append(f"Field 'movieid' of item at position {position} is invalid or missing")

        rating = entry.get("rating")
        if not (is_number(rating) and 1 <= rating <= 5):
            errors.append(f"Field 'rating' of item at position {position} must be a number between 1 and 5")

        extra_fields = [key for key in entry if key not in RATING_FIELDS]
        if extra_fields:
            errors.append(f"Item at position {position} contains fields that are not allowed: {', '.join(extra_fields)}")

    return errors


def _validate(user: dict, movies_collection: Collection, required: bool):
    errors = []
    for field, (check, message) in USER_FIELD_RULES.items():
        if field not in user:
            if required:
                errors.append(f"Field '{field}' is missing")
            continue
        if not check(user[field]):
            errors.append(message)

    if "movies" in user:
        errors.extend(validate_rating_entries(user["movies"], movies_collection))
    return errors


def validate_user(user: dict, movies_collection: Collection):
    """
    Validate a user about to be created. Every profile field is mandatory.

    Args:
        user (dict): Filtered user payload.
        movies_collection (Collection): Collection used to check rating references.

    Returns:
        list[str]: Error messages.
    """
    return _validate(user, movies_collection, required=True)


def validate_user_to_update(user: dict, movies_collection: Collection):
    """
    Validate a partial user update. Absent fields are fine, present ones must be valid.

    Args:
        user (dict): Filtered update payload.
        movies_collection (Collection): Collection used to check rating references.

    Returns:
        list[str]: Error messages.
    """
    return _validate(user, movies_collection, required=False)


def add_timestamp_and_date(movies: list[dict]):
    """
    Stamp every rating of a write with the same capture time.

    Args:
        movies (list[dict]): Validated rating entries.

    Returns:
        list[dict]: New entries carrying ``timestamp`` (epoch seconds) and ``date`` (ISO 8601).
    """
    now = datetime.now(timezone.utc)
    timestamp = int(now.timestamp())
    date = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return [{**movie, "timestamp": timestamp, "date": date} for movie in movies]


def prepare_new_user(user: dict):
    """Stamp ratings and set ``num_ratings`` on a validated user before insertion."""
    movies = user.get("movies") or []
    user["movies"] = add_timestamp_and_date(movies)
    user["num_ratings"] = len(movies)
    return user


def prepare_user_update(update: dict):
    """Stamp ratings and recompute ``num_ratings`` when an update replaces them."""
    if "movies" in update:
        update["num_ratings"] = len(update["movies"])
        update["movies"] = add_timestamp_and_date(update["movies"])
    return update


def build_top_movies_pipeline(user_id):
    """
    Aggregation returning a user with the five best rated entries.

    Args:
        user_id (int | ObjectId): User identifier.

    Returns:
        list[dict]: Aggregation pipeline.
    """
    return [
        {"$match": {"_id": user_id}},
        {"$unwind": "$movies"},
        {"$sort": {"movies.rating": -1}},
        {"$limit": TOP_RATED_PER_USER},
        {
            "$group": {
                "_id": "$_id",
                "name": {"$first": "$name"},
                "gender": {"$first": "$gender"},
                "age": {"$first": "$age"},
                "occupation": {"$first": "$occupation"},
                "num_ratings": {"$first": "$num_ratings"},
                "topMovies": {"$push": "$movies"},
            }
        },
        {"$project": {"_id": 1, "name": 1, "gender": 1, "age": 1, "occupation": 1, "num_ratings": 1, "topMovies": 1}},
    ]


def build_user_without_ratings(user: dict):
    return {
        "_id": user.get("_id"),
        "name": user.get("name"),
        "gender": user.get("gender"),
        "age": user.get("age"),
        "occupation": user.get("occupation"),
        "num_ratings": user.get("num_ratings", 0),
        "topMovies": NO_RATINGS_MESSAGE,
    }


def build_stats_pipeline():
    """Aggregation with the max, min and average rating of every user, lowest average first."""
    return [
        {"$unwind": "$movies"},
        {
            "$group": {
                "_id": "$_id",
                "name": {"$first": "$name"},
                "max_rating": {"$max": "$movies.rating"},
                "min_rating": {"$min": "$movies.rating"},
                "avg_rating": {"$avg": "$movies.rating"},
            }
        },
        {"$sort": {"avg_rating": 1, "_id": 1}},
    ]
