"""
Runs schema inference over many collections.

Collections are independent and processed on a thread pool. Inside a
collection, records may also be decoded and folded on a second pool; the
collection's ``CollectionSchema`` is the only shared state and every fold
holds its lock for the whole document.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from tqdm import tqdm

from .accumulator import CollectionSchema, InferenceOptions
from .config import Config
from .errors import CollectionFetchError, DocumentDecodeError, PoisonedSchemaError
from .sources import DocumentSource
from .types import CollectionFields, DatabaseSchema

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_FETCH_ERROR = "fetch_error"
STATUS_FAILED = "failed"

IN_FLIGHT_PER_WORKER = 4


@dataclass
class CollectionReport:
    """Outcome of processing one collection."""
    name: str
    status: str = STATUS_OK
    documents: int = 0
    skipped: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass
class InferenceResult:
    schema: DatabaseSchema = field(default_factory=dict)
    reports: List[CollectionReport] = field(default_factory=list)

    @property
    def skipped_collections(self) -> List[str]:
        return [r.name for r in self.reports if not r.ok]

    @property
    def skipped_documents(self) -> int:
        return sum(r.skipped for r in self.reports)


def document_size(document: Mapping) -> int:
    """Size used to order documents before folding: the number of top-level fields."""
    return len(document)


class CollectionProcessor:
    """Folds the records of a single collection into a fresh schema."""

    def __init__(self, source: DocumentSource, collection: str, options: InferenceOptions,
                 document_workers: int = 1, sort_by_size: bool = True, show_progress: bool = False):
        self.source = source
        self.collection = collection
        self.options = options
        self.document_workers = document_workers
        self.sort_by_size = sort_by_size
        self.show_progress = show_progress
        self.schema = CollectionSchema(collection)
        self.report = CollectionReport(collection)
        self._report_lock = threading.Lock()

    def _decode(self, record: Any) -> Optional[Mapping]:
        try:
            return self.source.decode(record)
        except DocumentDecodeError as e:
            logger.warning("Document in %s contains error. Cause: %s", self.collection, e)
            with self._report_lock:
                self.report.skipped += 1
            return None

    def _process_record(self, record: Any):
        document = self._decode(record)
        if document is not None:
            self.schema.fold(document, self.options)

    def _records(self):
        return tqdm(self.source.records(self.collection), desc=self.collection,
                    unit=" docs", disable=not self.show_progress, leave=False)

    def run(self) -> CollectionReport:
        logger.info("Processing: %s", self.collection)
        try:
            if self.sort_by_size:
                self._fold_sorted()
            elif self.document_workers > 1:
                self._fold_parallel()
            else:
                for record in self._records():
                    self._process_record(record)
        except CollectionFetchError as e:
            logger.error("%s", e)
            self.report.status = STATUS_FETCH_ERROR
            self.report.error = str(e)
        except PoisonedSchemaError as e:
            logger.error("Error when folding documents, resulting collection %s could not be processed: %s",
                         self.collection, e)
            self.report.status = STATUS_FAILED
            self.report.error = str(e)
        except Exception as e:
            logger.exception("Unexpected error while processing collection %s", self.collection)
            self.report.status = STATUS_FAILED
            self.report.error = f"{type(e).__name__}: {e}"

        self.report.documents = self.schema.documents
        logger.info("Done processing: %s", self.collection)
        return self.report

    def _fold_parallel(self):
        # at most IN_FLIGHT_PER_WORKER records per worker are buffered ahead of the folds
        max_in_flight = self.document_workers * IN_FLIGHT_PER_WORKER
        pending = set()
        with ThreadPoolExecutor(max_workers=self.document_workers,
                                thread_name_prefix=f"fold-{self.collection}") as executor:
            for record in self._records():
                if len(pending) >= max_in_flight:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        future.result()
                pending.add(executor.submit(self._process_record, record))
            for future in pending:
                future.result()

    def _fold_sorted(self):
        documents = [d for d in (self._decode(r) for r in self._records()) if d is not None]
        # sorted() is stable: equally sized documents keep their stream order
        documents = sorted(documents, key=document_size, reverse=True)
        for document in documents:
            self.schema.fold(document, self.options)

    def result(self) -> Optional[CollectionFields]:
        if not self.report.ok:
            return None
        return self.schema.snapshot()


def parse_collections(source: DocumentSource, collections: List[str], config: Optional[Config] = None,
                      show_progress: bool = False) -> InferenceResult:
    """
    Infer the schema of every collection in ``collections``.

    Collections whose documents cannot be fetched, or whose fold fails, are
    reported and left out of the resulting schema.
    """
    options = config.inference_options() if config else InferenceOptions()
    pool_size = config.pool_size if config else None
    document_workers = config.document_workers if config else 1
    sort_by_size = config.sort_documents_by_size if config else True

    def process(collection: str) -> CollectionProcessor:
        processor = CollectionProcessor(source, collection, options, document_workers=document_workers,
                                        sort_by_size=sort_by_size, show_progress=show_progress)
        processor.run()
        return processor

    with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="collection") as executor:
        processors = list(executor.map(process, collections))

    result = InferenceResult()
    for processor in sorted(processors, key=lambda p: p.collection):
        result.reports.append(processor.report)
        fields = processor.result()
        if fields is not None:
            result.schema[processor.collection] = fields
    return result


def infer_database(source: DocumentSource, config: Config, show_progress: bool = False) -> InferenceResult:
    """Resolve the collections to process from ``config`` and run ``parse_collections``."""
    available = source.list_collections() if config.lists_collections else []
    collections = config.select_collections(available)
    return parse_collections(source, collections, config, show_progress=show_progress)
