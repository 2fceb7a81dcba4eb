"""Column types that work on both PostgreSQL and SQLite."""

from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

# native uuid on PostgreSQL, CHAR(32) on SQLite; values are always uuid.UUID
GUID = Uuid

# image reference lists and preference maps.
# In-place mutation is not tracked: assign a new list/dict to persist a change.
JSONType = JSON().with_variant(JSONB(), "postgresql")
