"""
Per-collection schema accumulation.

A ``CollectionSchema`` is folded one document at a time. Each fold widens the
descriptors of the fields the document carries, and marks every field known
before the fold but absent from the document as optional.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from .classifier import classify
from .errors import PoisonedSchemaError
from .types import MAP, UNDEFINED, TypeScriptType, merge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceOptions:
    """Resolved switches threaded through every fold."""
    mongodb_types: bool = False
    # (collection, field) pairs typed as an opaque map
    parse_field_as_map: FrozenSet[Tuple[str, str]] = field(default_factory=frozenset)

    def parses_as_map(self, collection: str, field_name: str) -> bool:
        return (collection, field_name) in self.parse_field_as_map


class CollectionSchema:
    """
    Mutable field name -> descriptor mapping for one collection.

    ``fold`` holds the schema lock for the whole document, so folds may be
    called from several threads.
    """

    def __init__(self, collection: str, fields: Optional[Mapping[str, TypeScriptType]] = None):
        self.collection = collection
        self._fields: Dict[str, TypeScriptType] = dict(fields or {})
        self._lock = threading.Lock()
        self._poisoned: Optional[BaseException] = None
        self.documents = 0

    def fold(self, document: Mapping, options: InferenceOptions = InferenceOptions()):
        """Incorporate one document into the schema."""
        with self._lock:
            self._check_poisoned()
            try:
                self._fold_locked(document, options)
            except Exception as e:
                self._poisoned = e
                raise PoisonedSchemaError(
                    f"Fold failed in collection {self.collection}, partial schema discarded: {e}"
                ) from e

    def _fold_locked(self, document: Mapping, options: InferenceOptions):
        missing = set(self._fields)

        for name, value in document.items():
            name = str(name)
            if options.parses_as_map(self.collection, name):
                new_type = MAP
            else:
                new_type = classify(value, options.mongodb_types)

            existing = self._fields.get(name)
            if existing is not None:
                new_type = merge(existing, new_type)
            else:
                logger.debug("New field %s in collection %s", name, self.collection)

            self._fields[name] = new_type
            missing.discard(name)

        for name in missing:
            self._fields[name] = merge(self._fields[name], UNDEFINED)

        self.documents += 1

    def _check_poisoned(self):
        if self._poisoned is not None:
            raise PoisonedSchemaError(
                f"Schema for collection {self.collection} is unusable after an earlier failure: {self._poisoned}"
            )

    @property
    def poisoned(self) -> bool:
        return self._poisoned is not None

    def snapshot(self) -> Dict[str, TypeScriptType]:
        """Return a copy of the fields, sorted by name."""
        with self._lock:
            self._check_poisoned()
            return dict(sorted(self._fields.items()))

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __getitem__(self, name: str) -> TypeScriptType:
        return self._fields[name]

    def __repr__(self) -> str:
        return f"CollectionSchema({self.collection!r}, {len(self._fields)} fields)"


def fold_document(schema: CollectionSchema, document: Mapping, options: InferenceOptions = InferenceOptions()):
    """Fold ``document`` into ``schema``; see ``CollectionSchema.fold``."""
    schema.fold(document, options)
