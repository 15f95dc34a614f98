"""
mongots - infer TypeScript types from the documents of MongoDB collections.

Documents are classified value by value, merged into one schema per
collection (fields missing from some documents become optional) and
rendered as TypeScript classes.
"""

from .accumulator import CollectionSchema, InferenceOptions, fold_document
from .classifier import classify
from .config import Config, ParseAsMap
from .orchestrator import CollectionReport, InferenceResult, infer_database, parse_collections
from .render import render, render_collection, render_type, write_declarations
from .types import TypeScriptType, merge, union_of

__version__ = "0.1.0"

__all__ = [
    "CollectionSchema",
    "InferenceOptions",
    "fold_document",
    "classify",
    "Config",
    "ParseAsMap",
    "CollectionReport",
    "InferenceResult",
    "infer_database",
    "parse_collections",
    "render",
    "render_collection",
    "render_type",
    "write_declarations",
    "TypeScriptType",
    "merge",
    "union_of",
    "__version__",
]
