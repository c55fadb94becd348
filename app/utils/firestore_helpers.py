"""
Firestore query helpers.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply one where-clause to a collection or query.

    Usage:
        query = where_filter(collection, "city_key", "==", "chennai")
        query = where_filter(query, "author_id", "==", "u-03")
    """
    return query.where(field_path, op_string, value)
