"""
Document sources: where the records of each collection come from.

A source lists collection names, streams the raw records of one collection
and decodes each record separately, so that one malformed record never ends
the stream of the others.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterator, List, Protocol

import ijson
from bson import decode as bson_decode
from bson.codec_options import CodecOptions
from bson.json_util import DEFAULT_JSON_OPTIONS, object_hook
from bson.raw_bson import RawBSONDocument
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .errors import CollectionFetchError, DocumentDecodeError

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
JSON_LINES_SUFFIXES = (".jsonl", ".ndjson")


class DocumentSource(Protocol):
    def list_collections(self) -> List[str]:
        ...

    def records(self, collection: str) -> Iterator[Any]:
        """Yield the raw records of a collection. Raises CollectionFetchError."""
        ...

    def decode(self, record: Any) -> Mapping:
        """Turn one raw record into a document. Raises DocumentDecodeError."""
        ...

    def close(self):
        ...


class MongoDocumentSource:
    """
    Reads collections from a MongoDB database.

    Documents are fetched as ``RawBSONDocument`` and decoded one by one in
    ``decode``, so invalid BSON in one document only costs that document.
    """

    def __init__(self, uri: str, database: str, client: MongoClient = None):
        self.uri = uri
        self.database_name = database
        self._client = client if client is not None else MongoClient(uri)
        self._db = self._client[database]
        self._codec_options = CodecOptions()

    def list_collections(self) -> List[str]:
        return sorted(self._db.list_collection_names())

    def records(self, collection: str) -> Iterator[RawBSONDocument]:
        raw_collection = self._db.get_collection(
            collection, codec_options=CodecOptions(document_class=RawBSONDocument)
        )
        try:
            yield from raw_collection.find()
        except PyMongoError as e:
            raise CollectionFetchError(collection, e) from e

    def decode(self, record: RawBSONDocument) -> Mapping:
        try:
            return bson_decode(record.raw, codec_options=self._codec_options)
        except Exception as e:
            raise DocumentDecodeError(f"Invalid BSON document: {e!r}") from e

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class JsonDocumentSource:
    """
    Reads collections exported as JSON files, one file per collection.

    ``<name>.json`` holds an array of documents and is streamed with ijson;
    ``<name>.jsonl`` / ``<name>.ndjson`` hold one document per line.
    MongoDB Extended JSON values such as ``{"$oid": ...}`` are revived into
    their BSON types.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Directory not found: {self.directory}")

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _files(self) -> Dict[str, Path]:
        files = {}
        for path in sorted(self.directory.iterdir()):
            if path.is_file() and path.suffix in JSON_SUFFIXES + JSON_LINES_SUFFIXES:
                if path.stem in files:
                    logger.warning("Ignoring %s: collection %s already read from %s", path.name, path.stem, files[path.stem].name)
                    continue
                files[path.stem] = path
        return files

    def list_collections(self) -> List[str]:
        return list(self._files())

    def records(self, collection: str) -> Iterator[Any]:
        path = self._files().get(collection)
        if path is None:
            raise CollectionFetchError(collection, f"no JSON file for collection in {self.directory}")

        try:
            with open(path, 'rb') as f:
                if path.suffix in JSON_LINES_SUFFIXES:
                    for line in f:
                        if line.strip():
                            yield line
                else:
                    # use_float=True keeps numbers as float/int instead of Decimal
                    yield from ijson.items(f, 'item', use_float=True)
        except (OSError, ijson.JSONError) as e:
            raise CollectionFetchError(collection, e) from e

    def decode(self, record: Any) -> Mapping:
        if isinstance(record, bytes):
            try:
                record = json.loads(record)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise DocumentDecodeError(f"Invalid JSON line: {e}") from e

        if not isinstance(record, Mapping):
            raise DocumentDecodeError(f"Expected a JSON object, got {type(record).__name__}")

        try:
            return self._revive(record)
        # json_util raises whatever the wrapped constructor raises (InvalidOperation, OverflowError, ...)
        except Exception as e:
            raise DocumentDecodeError(f"Invalid Extended JSON value: {e!r}") from e

    def _revive(self, value: Any) -> Any:
        """Convert Extended JSON wrappers bottom-up, the way json_util.loads does."""
        if isinstance(value, Mapping):
            revived = {k: self._revive(v) for k, v in value.items()}
            return object_hook(revived, DEFAULT_JSON_OPTIONS)
        if isinstance(value, list):
            return [self._revive(v) for v in value]
        return value
