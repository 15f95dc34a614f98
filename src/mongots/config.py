"""
Run configuration, read from a JSON file with camelCase keys.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .accumulator import InferenceOptions
from .errors import ConfigError

DEFAULT_CONFIG_FILE = Path("./config.json")


@dataclass(frozen=True)
class ParseAsMap:
    """A (collection, field) pair typed as an opaque map instead of an object."""
    collection: str
    field: str

    @classmethod
    def from_dict(cls, obj: Any) -> "ParseAsMap":
        if not isinstance(obj, dict) or not isinstance(obj.get("collection"), str) \
                or not isinstance(obj.get("field"), str):
            raise ConfigError(f"parseFieldAsMap entries need string 'collection' and 'field' keys, got {obj!r}")
        return cls(obj["collection"], obj["field"])


@dataclass
class Config:
    uri: Optional[str] = None
    database: Optional[str] = None
    data_dir: Optional[str] = None
    pool_size: Optional[int] = None
    document_workers: int = 1
    collections: Optional[List[str]] = None
    exclude_collections: Optional[List[str]] = None
    mongodb_types: bool = False
    parse_field_as_map: List[ParseAsMap] = field(default_factory=list)
    sort_documents_by_size: bool = True

    # camelCase key -> attribute
    KEYS = {
        "uri": "uri",
        "database": "database",
        "dataDir": "data_dir",
        "poolSize": "pool_size",
        "documentWorkers": "document_workers",
        "collections": "collections",
        "excludeCollections": "exclude_collections",
        "mongodbTypes": "mongodb_types",
        "parseFieldAsMap": "parse_field_as_map",
        "sortDocumentsBySize": "sort_documents_by_size",
    }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "Config":
        if not isinstance(obj, dict):
            raise ConfigError("Configuration must be a JSON object")

        unknown = set(obj) - set(cls.KEYS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        kwargs = {cls.KEYS[key]: value for key, value in obj.items() if value is not None}
        kwargs["parse_field_as_map"] = [ParseAsMap.from_dict(entry) for entry in kwargs.get("parse_field_as_map", [])]

        config = cls(**kwargs)
        config.validate()
        return config

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "Config":
        path = Path(path) if path is not None else DEFAULT_CONFIG_FILE
        try:
            with open(path, 'r', encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Error when processing config {path}: {e}") from e
        return cls.from_dict(data)

    def validate(self):
        has_mongo = self.uri is not None or self.database is not None
        if has_mongo and self.data_dir is not None:
            raise ConfigError("Use either 'uri' and 'database' or 'dataDir', not both")
        if self.data_dir is None and (self.uri is None or self.database is None):
            raise ConfigError("Both 'uri' and 'database' are required unless 'dataDir' is set")
        if self.collections is not None and self.exclude_collections is not None:
            raise ConfigError("'collections' and 'excludeCollections' cannot be used together")

        for name, value in (("poolSize", self.pool_size), ("documentWorkers", self.document_workers)):
            if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 1):
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
        for name, value in (("mongodbTypes", self.mongodb_types), ("sortDocumentsBySize", self.sort_documents_by_size)):
            if not isinstance(value, bool):
                raise ConfigError(f"'{name}' must be a boolean, got {value!r}")
        for name, value in (("collections", self.collections), ("excludeCollections", self.exclude_collections)):
            if value is not None and (not isinstance(value, list) or not all(isinstance(v, str) for v in value)):
                raise ConfigError(f"'{name}' must be a list of collection names")

    def select_collections(self, available: List[str]) -> List[str]:
        """
        Apply the inclusion policy.

        An include list is used as given, without checking ``available``;
        an exclude list filters ``available``; otherwise every available
        collection is selected.
        """
        if self.collections:
            return list(self.collections)
        excluded = set(self.exclude_collections or [])
        return [name for name in available if name not in excluded]

    @property
    def lists_collections(self) -> bool:
        """Whether the source has to be asked for its collection names."""
        return not self.collections

    def inference_options(self) -> InferenceOptions:
        return InferenceOptions(
            mongodb_types=self.mongodb_types,
            parse_field_as_map=frozenset((p.collection, p.field) for p in self.parse_field_as_map),
        )
