"""Status store: the shared table of per-collection export progress."""

from export_completion.store.dynamodb import DynamoDBStatusStore
from export_completion.store.errors import StatusStoreUnavailableError
from export_completion.store.memory import InMemoryStatusStore
from export_completion.store.protocols import StatusStore

__all__ = [
    "DynamoDBStatusStore",
    "InMemoryStatusStore",
    "StatusStore",
    "StatusStoreUnavailableError",
]
