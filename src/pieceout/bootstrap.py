"""
Wiring of store, aggregator, image storage and product lookup from Settings.
Call once during application start-up (the runtime's lifespan does).
"""

import logging

from .config import Settings
from .lookup import HttpProductLookup, ProductLookup, SampleProductLookup
from .persistence.store import RecordStore

logger = logging.getLogger(__name__)


def open_store(settings: Settings, store: RecordStore | None = None) -> RecordStore:
    """
    Open the configured database file, evolving its schema if needed.

    ``reset_on_start`` deletes the file first; it is off unless configured.
    """
    store = store or RecordStore()
    if settings.reset_on_start:
        logger.warning("PIECEOUT_RESET_ON_START is set; deleting %s", settings.db_path)
        RecordStore.destroy(settings.db_path)
    report = store.open(settings.db_path)
    logger.info(report.message)
    return store


def build_lookup(settings: Settings) -> ProductLookup:
    if settings.lookup_url:
        return HttpProductLookup(settings.lookup_url, timeout=settings.lookup_timeout)
    logger.info("No PIECEOUT_LOOKUP_URL configured; using the sample product catalog")
    return SampleProductLookup()
