"""Parsing of export topic names.

Exports are named after the topic they were read from, in the form
<prefix>.<database>.<collection>, e.g. ``db.core.contract``. The full topic
name is the collection's key in the status table; the database and
collection parts name the collection's success indicator file.
"""

import re
from dataclasses import dataclass

from export_completion.contracts.errors import TopicNameError

TOPIC_PATTERN = re.compile(r"^\w+\.(?P<database>[\w-]+)\.(?P<collection>[\w-]+)")


@dataclass(frozen=True, slots=True)
class ExportTopic:
    """A parsed export topic name."""

    name: str
    database: str
    collection: str

    @classmethod
    def parse(cls, topic_name: str) -> "ExportTopic":
        """Parse a topic name.

        Raises:
            TopicNameError: If the name is blank or does not match the pattern
        """
        match = TOPIC_PATTERN.match(topic_name)
        if match is None:
            raise TopicNameError(f"Topic name {topic_name!r} does not match <prefix>.<database>.<collection>")
        return cls(name=topic_name, database=match.group("database"), collection=match.group("collection"))

    @classmethod
    def try_parse(cls, topic_name: str | None) -> "ExportTopic | None":
        if not topic_name or not topic_name.strip():
            return None
        try:
            return cls.parse(topic_name)
        except TopicNameError:
            return None

    @property
    def success_file_name(self) -> str:
        return f"_{self.database}_{self.collection}_successful.gz"
