"""Shared base for records served from either store."""
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class CrmRecord(BaseModel):
    """Canonical read model.

    Fields list their accepted source names with AliasChoices; the first
    non-empty one wins, so a blank sheet cell never hides the other shape's
    value. Timestamps from the relational store are served as ISO strings.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if value is None or value == "":
                continue
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            cleaned[key] = value
        return cleaned

    @classmethod
    def normalize(cls, record: dict) -> dict:
        return cls.model_validate(record).model_dump(exclude_none=True)
