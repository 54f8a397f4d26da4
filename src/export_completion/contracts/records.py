"""Status table contracts.

The status table is shared with the producer workers, so reads are lenient:
absent attributes become empty strings or zero rather than errors.
"""

from dataclasses import dataclass

from export_completion.contracts.enums import CollectionStatus


@dataclass(frozen=True, slots=True)
class CollectionKey:
    """Composite primary key of a status record."""

    run_id: str
    collection_name: str


@dataclass(frozen=True, slots=True)
class CollectionStatusRecord:
    """One row of the status table, keyed by (run_id, collection_name).

    status holds the raw stored string. Compare it against CollectionStatus
    members directly (they are StrEnums), or use collection_status for the
    parsed value.
    """

    run_id: str
    collection_name: str
    status: str = ""
    files_exported: int = 0
    files_sent: int = 0

    @property
    def key(self) -> CollectionKey:
        return CollectionKey(self.run_id, self.collection_name)

    @property
    def collection_status(self) -> CollectionStatus | None:
        return CollectionStatus.parse(self.status)

    @property
    def is_eligible_for_sent(self) -> bool:
        """Exported, every file delivered, and at least one file exported."""
        return (
            self.status == CollectionStatus.EXPORTED
            and self.files_exported == self.files_sent
            and self.files_exported > 0
        )

    @property
    def has_no_files(self) -> bool:
        """Finished exporting without writing any file."""
        return self.status == CollectionStatus.EXPORTED and self.files_exported == 0
