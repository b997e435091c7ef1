"""Client construction and collection provisioning. Usage: python -m balance_ledger.db.init"""

import asyncio

import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from balance_ledger.core.config import Settings, get_settings
from balance_ledger.core.logging import configure_logging, get_logger
from balance_ledger.models.transaction import TransactionDocument
from balance_ledger.models.user import UserDocument
from balance_ledger.store.base import LedgerStore

log = get_logger(__name__)

DOCUMENT_MODELS = [
    UserDocument,
    TransactionDocument,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def create_client(settings: Settings) -> AsyncIOMotorClient:
    kwargs = {}
    if _use_tls(settings.mongodb_uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    return AsyncIOMotorClient(settings.mongodb_uri, **kwargs)


async def init_db(settings: Settings) -> AsyncIOMotorClient:
    """Connect and create the users/transactions collections with their unique indexes."""
    client = create_client(settings)
    database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    log.info("db_initialized", db=settings.mongodb_db_name)
    return client


async def init_store(settings: Settings) -> LedgerStore:
    if settings.store_backend == "memory":
        from balance_ledger.store.memory import InMemoryLedgerStore
        return InMemoryLedgerStore()
    from balance_ledger.store.mongo import MongoLedgerStore
    client = await init_db(settings)
    return MongoLedgerStore(client)


async def main() -> None:
    settings = get_settings()
    configure_logging(debug=settings.debug)
    client = await init_db(settings)
    client.close()


if __name__ == "__main__":
    asyncio.run(main())
