"""
Exceptions raised by mongots.
"""


class MongoTsError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(MongoTsError):
    """The configuration file is missing, unreadable or invalid."""


class CollectionFetchError(MongoTsError):
    """A collection's document stream could not be opened or read."""

    def __init__(self, collection: str, cause: object):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Error when fetching documents in collection {collection}: {cause}")


class DocumentDecodeError(MongoTsError):
    """A single record could not be decoded into a document."""


class PoisonedSchemaError(MongoTsError):
    """
    Raised when a collection schema is used after a fold failed part way
    through. The partial schema can no longer be trusted.
    """
