"""
Maps a single decoded value to its type descriptor.
"""

import datetime
import decimal
import re
import uuid
from collections.abc import Mapping
from functools import reduce
from typing import Any

from bson.binary import Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

from .types import (
    ANY,
    BIGINT,
    BOOLEAN,
    BUFFER,
    DATETIME,
    MAX_KEY,
    MIN_KEY,
    NULL,
    NUMBER,
    OBJECT_ID,
    STRING,
    TIMESTAMP,
    UNDEFINED,
    TypeScriptType,
    array_of,
    merge,
    object_of,
)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


def classify(value: Any, mongodb_types: bool = False) -> TypeScriptType:
    """
    Infer the descriptor of one value.

    ``mongodb_types`` enables the database specific descriptors
    (ObjectId, Timestamp, DateTime, MaxKey, MinKey). When it is off,
    ObjectIds are typed as strings and the other kinds fall back to ``any``.
    """
    if isinstance(value, (list, tuple)):
        element = UNDEFINED
        if value:
            element = reduce(merge, (classify(item, mongodb_types) for item in value))
        return array_of(element)

    if isinstance(value, Mapping):
        return classify_document(value, mongodb_types)

    # bool is a subclass of int
    if isinstance(value, bool):
        return BOOLEAN

    if isinstance(value, (Int64, Decimal128, decimal.Decimal)):
        return BIGINT

    if isinstance(value, int):
        return NUMBER if INT32_MIN <= value <= INT32_MAX else BIGINT

    if isinstance(value, float):
        return NUMBER

    # Code is a subclass of str; code carrying a scope has no string equivalent
    if isinstance(value, Code):
        return STRING if value.scope is None else ANY

    if isinstance(value, (str, Regex, re.Pattern)):
        return STRING

    if isinstance(value, (bytes, bytearray, Binary, uuid.UUID)):
        return BUFFER

    if value is None:
        return NULL

    if isinstance(value, ObjectId):
        return OBJECT_ID if mongodb_types else STRING

    if not mongodb_types:
        return ANY

    if isinstance(value, Timestamp):
        return TIMESTAMP
    if isinstance(value, (datetime.datetime, DatetimeMS)):
        return DATETIME
    if isinstance(value, MaxKey):
        return MAX_KEY
    if isinstance(value, MinKey):
        return MIN_KEY

    return ANY


def classify_document(document: Mapping, mongodb_types: bool = False) -> TypeScriptType:
    """Type a nested document field by field."""
    return object_of({str(name): classify(value, mongodb_types) for name, value in document.items()})
