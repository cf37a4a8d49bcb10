"""
Base model for all MongoDB document models.

Documents in this service use natural string keys (canonical phone number for
OTP challenges, principal uid for profiles) instead of ObjectIds, so `_id` is
a plain string. DocumentModel provides to_mongo() / from_mongo() for
round-tripping between Python objects and raw MongoDB dicts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.datetime_utils import ensure_utc


class DocumentModel(BaseModel):
    """
    Base for all document models.

    Stores the MongoDB _id as `id`. Subclasses add collection-specific fields
    on top, usually with camelCase aliases matching the stored field names.

    to_mongo()  — converts model → dict suitable for pymongo insert/update
    from_mongo() — converts raw pymongo dict → model instance (returns None
                    gracefully when passed None)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[str] = Field(default=None, alias="_id")

    @field_validator("*", mode="after")
    @classmethod
    def _datetimes_are_utc(cls, value: Any) -> Any:
        # pymongo hands back naive datetimes unless tz_aware=True
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value

    def to_mongo(self) -> dict:
        """Return a dict ready for MongoDB insertion.

        - Renames `id` → `_id`
        - Excludes None `_id` so MongoDB can auto-generate it on insert
        - Uses field aliases (camelCase stored names)
        """
        data = self.model_dump(by_alias=True, exclude_none=False)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["DocumentModel"]:
        """Build a model instance from a raw MongoDB document dict.

        Returns None when data is None (e.g. find_one returns None).
        Missing optional fields are filled with their defaults.
        """
        if data is None:
            return None
        return cls.model_validate(data)
