from pymongo.collection import Collection

from ..common import is_non_empty_string, is_number
from ..config import MIN_MOVIE_YEAR

ALLOWED_FIELDS = ("title", "year", "genres")
NO_RATINGS_PLACEHOLDER = "No ratings yet"
TITLE_SEPARATOR = " ("


def filter_valid_fields(movie: dict):
    """
    Keep only the fields a client may write on a movie.

    Args:
        movie (dict): Raw movie payload.

    Returns:
        dict: Payload restricted to title, year and genres.
    """
    if not isinstance(movie, dict):
        return {}
    return {field: movie[field] for field in ALLOWED_FIELDS if field in movie}


def available_genres(movies_collection: Collection):
    """
    Read the genres currently used by stored movies.

    Args:
        movies_collection (Collection): Movies collection.

    Returns:
        list[str]: Distinct genre names.
    """
    return movies_collection.distinct("genres")


def validate_genres(genres, movies_collection: Collection):
    """
    Validate a genres list against the genres already present in the collection.

    A genre nobody used before is rejected, so a movie cannot introduce one.

    Args:
        genres (Any): Value of the ``genres`` field.
        movies_collection (Collection): Movies collection.

    Returns:
        list[str]: Error messages.
    """
    if not isinstance(genres, list) or not genres:
        return ["Field 'genres' must be an array with at least one genre"]

    errors = []
    known_genres = available_genres(movies_collection)
    for genre in genres:
        if not isinstance(genre, str):
            errors.append("Genres must be strings")
        elif genre not in known_genres:
            errors.append(f"Genre '{genre}' is not valid. Available genres are: {', '.join(map(str, known_genres))}")
    return errors


def _validate(movie: dict, movies_collection: Collection, required: bool):
    errors = []

    if "title" in movie:
        if not is_non_empty_string(movie["title"]):
            errors.append("Field 'title' must be a non-empty string")
    elif required:
        errors.append("Field 'title' is missing")

    if "year" in movie:
        year = movie["year"]
        if not (is_number(year) and year > MIN_MOVIE_YEAR):
            errors.append(f"Field 'year' must be a number greater than {MIN_MOVIE_YEAR}")
    elif required:
        errors.append("Field 'year' is missing")

    if "genres" in movie:
        errors.extend(validate_genres(movie["genres"], movies_collection))
    elif required:
        errors.append("Field 'genres' is missing")

    return errors


def validate_movie(movie: dict, movies_collection: Collection):
    """
    Validate a movie about to be created. Title, year and genres are mandatory.

    Args:
        movie (dict): Filtered movie payload.
        movies_collection (Collection): Movies collection, used for the genre check.

    Returns:
        list[str]: Error messages.
    """
    return _validate(movie, movies_collection, required=True)


def validate_movie_to_update(movie: dict, movies_collection: Collection):
    """
    Validate a partial movie update.

    Args:
        movie (dict): Filtered update payload.
        movies_collection (Collection): Movies collection, used for the genre check.

    Returns:
        list[str]: Error messages.
    """
    return _validate(movie, movies_collection, required=False)


def build_average_rating_pipeline(movie_id):
    return [
        {"$unwind": "$movies"},
        {"$match": {"movies.movieid": movie_id}},
        {"$group": {"_id": None, "averageRating": {"$avg": "$movies.rating"}}},
    ]


def _ratings_per_movie(accumulator: dict, projection: dict, sort: dict):
    """
    Aggregation over the users collection grouping embedded ratings per movie.

    Args:
        accumulator (dict): Extra ``$group`` fields computed per movie.
        projection (dict): Fields kept after joining the movie document.
        sort (dict): Sort applied to the joined rows.

    Returns:
        list[dict]: Aggregation pipeline.
    """
    return [
        {"$unwind": "$movies"},
        {"$group": {"_id": "$movies.movieid", **accumulator}},
        {"$lookup": {"from": "movies", "localField": "_id", "foreignField": "_id", "as": "movieinfo"}},
        {"$unwind": "$movieinfo"},
        {"$project": {"_id": 1, **projection}},
        {"$sort": {**sort, "_id": 1}},
    ]


def build_top_average_pipeline(limit: int):
    pipeline = _ratings_per_movie(
        {"averageRating": {"$avg": "$movies.rating"}},
        {"averageRating": 1, "title": "$movieinfo.title", "genres": "$movieinfo.genres", "year": "$movieinfo.year"},
        {"averageRating": -1},
    )
    pipeline.append({"$limit": limit})
    return pipeline


def build_total_ratings_pipeline(direction: int):
    return _ratings_per_movie(
        {"totalRatings": {"$sum": "$movies.rating"}},
        {"totalRatings": 1, "title": "$movieinfo.title"},
        {"totalRatings": direction},
    )


def build_five_stars_pipeline():
    return _ratings_per_movie(
        {"Ratings5": {"$sum": {"$cond": [{"$eq": ["$movies.rating", 5]}, 1, 0]}}},
        {"Ratings5": 1, "title": "$movieinfo.title"},
        {"Ratings5": -1},
    )


def split_original_title(movie: dict):
    """
    Split a title such as ``"Shichinin no samurai (Seven Samurai)"``.

    Only the first parenthesised group is read and anything after its closing
    parenthesis is dropped. Titles without the ``" ("`` separator are kept
    whole and get a null ``original_title``.

    Args:
        movie (dict): Movie document with ``_id`` and ``title``.

    Returns:
        dict: ``{_id, title, original_title}``.
    """
    parts = movie["title"].split(TITLE_SEPARATOR)
    original_title = parts[1].split(")")[0] if len(parts) > 1 else None
    return {"_id": movie["_id"], "title": parts[0], "original_title": original_title}
