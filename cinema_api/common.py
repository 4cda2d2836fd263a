import math
import re
from datetime import datetime

from bson import ObjectId
from flask import jsonify, redirect, request
from loguru import logger
from pymongo import ASCENDING
from pymongo.collection import Collection

from .config import DEFAULT_LIMIT, DEFAULT_PAGE

DIGITS_PATTERN = re.compile(r"[0-9]+", re.ASCII)
LEADING_FLOAT_PATTERN = re.compile(r"\s*[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?", re.ASCII)


def serialize_document(document):
    """
    Convert a MongoDB document (or aggregation row) into JSON-friendly data.

    Args:
        document (Any): Document, list of documents or scalar value.

    Returns:
        Any: Copy with ObjectId values as strings and datetimes in ISO 8601.
    """
    if isinstance(document, list):
        return [serialize_document(item) for item in document]
    if isinstance(document, dict):
        return {key: serialize_document(value) for key, value in document.items()}
    if isinstance(document, ObjectId):
        return str(document)
    if isinstance(document, datetime):
        return document.isoformat()
    return document


def is_number(value):
    """
    Check for a JSON number.

    Args:
        value (Any): Candidate value.

    Returns:
        bool: True for ints and finite floats, False for booleans, ``Infinity``,
        ``NaN`` and everything else.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def is_non_empty_string(value):
    return isinstance(value, str) and bool(value.strip())


def check_id(raw_id: str):
    """
    Resolve a path segment into a document identifier.

    Args:
        raw_id (str): Identifier taken from the URL.

    Returns:
        int | ObjectId | None: Integer for digit-only values, ObjectId for
        24 character hex strings, None when the value is neither.
    """
    if DIGITS_PATTERN.fullmatch(raw_id or ""):
        return int(raw_id)
    return check_object_id(raw_id)


def check_object_id(raw_id: str):
    """
    Resolve a path segment that may only be an ObjectId.

    Args:
        raw_id (str): Identifier taken from the URL.

    Returns:
        ObjectId | None: Parsed identifier or None when invalid.
    """
    if isinstance(raw_id, str) and len(raw_id) == 24 and ObjectId.is_valid(raw_id):
        return ObjectId(raw_id)
    return None


def parse_coordinate(raw_value: str):
    """
    Read the leading decimal number of a path segment.

    ``"12.5abc"`` gives ``12.5`` and ``"abc"`` gives ``None``. Callers treat
    ``None`` and ``0`` the same way, so a coordinate sitting exactly on the
    equator or the prime meridian is rejected.

    Args:
        raw_value (str): Raw coordinate from the URL.

    Returns:
        float | None: Parsed value or None when no number leads the string.
    """
    match = LEADING_FLOAT_PATTERN.match(raw_value or "")
    if not match:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


def paginated_response(collection: Collection, key: str):
    """
    Build the paginated listing response for a collection.

    Missing ``page`` or ``limit`` redirects to the same path with the
    default values. Both must be positive integers written with digits only.

    Args:
        collection (Collection): Collection to list.
        key (str): Name of the field holding the page items.

    Returns:
        Response | tuple: Redirect, error payload or page envelope.
    """
    page_param = request.args.get("page")
    limit_param = request.args.get("limit")

    if not page_param or not limit_param:
        return redirect(f"{request.path}?page={DEFAULT_PAGE}&limit={DEFAULT_LIMIT}")

    if not DIGITS_PATTERN.fullmatch(page_param) or not DIGITS_PATTERN.fullmatch(limit_param):
        logger.warning(f"[API] {request.path} rejected page={page_param!r} limit={limit_param!r}")
        return jsonify({"error": "Page and limit must be integers"}), 400

    page = int(page_param)
    limit = int(limit_param)
    if page <= 0 or limit <= 0:
        return jsonify({"error": "Page and limit must be positive integers"}), 400

    total_docs = collection.count_documents({})
    total_pages = math.ceil(total_docs / limit)

    # an empty collection has no pages at all
    if page > total_pages:
        return jsonify({"error": "Page does not exist"}), 404

    cursor = collection.find({}).sort("_id", ASCENDING).skip((page - 1) * limit).limit(limit)
    results = [serialize_document(doc) for doc in cursor]

    payload = {
        key: results,
        "totalDocs": total_docs,
        "currentPageDocs": len(results),
        "totalPages": total_pages,
        "currentPage": page,
    }
    if page > 1:
        payload["prevPage"] = page - 1
    if page < total_pages:
        payload["nextPage"] = page + 1

    logger.info(f"[API] {request.path} page {page}/{total_pages} served {len(results)} {key}")
    return jsonify(payload)


def insert_result_payload(result):
    return {"acknowledged": result.acknowledged, "insertedIds": serialize_document(list(result.inserted_ids))}


def update_result_payload(result):
    return {"acknowledged": result.acknowledged, "matchedCount": result.matched_count, "modifiedCount": result.modified_count}


def delete_result_payload(result):
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
