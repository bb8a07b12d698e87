# Infrastructure clients
from clients.store import RecordStore, Record
from clients.memory_store import InMemoryStore
from clients.postgres_client import PostgresClient
from clients.postgres_store import PostgresStore
from clients.identity import (
    IdentityProvider,
    ProfileDirectory,
    InMemoryProfileDirectory,
    StaticTokenIdentity,
    UnknownIdentityError,
)
