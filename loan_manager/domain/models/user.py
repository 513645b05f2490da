"""User record — one entry of the `users` collection in the record store.

Records written before registration validated anything may hold any JSON
value in any field (numeric phones, string ids, missing passwords). Fields
keep whatever value was read so one odd record never blocks loading the
rest, and a rewrite leaves untouched records byte-for-byte the same.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, JsonValue


def utc_timestamp() -> str:
    """ISO-8601 with milliseconds and a Z suffix, e.g. 2024-01-31T09:15:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class User(BaseModel):
    # Legacy records may carry keys we don't know about; keep them on rewrite
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: JsonValue = None
    name: JsonValue = None
    email: JsonValue = None
    password: JsonValue = None  # bcrypt hash, or plaintext for accounts that predate hashing
    phone: JsonValue = None
    created_at: JsonValue = Field(default=None, alias="createdAt")

    @property
    def normalized_email(self) -> str:
        return self.email.lower() if isinstance(self.email, str) else ""

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk / wire representation.

        Keys a record never had stay absent, so rewriting the store leaves
        untouched records as they were.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def __repr__(self):
        return f"<User {self.id} {self.email}>"
