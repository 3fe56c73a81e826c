"""Contact schemas: Official (CORE) and Potential (RAW business cards)."""
from typing import Optional

from pydantic import AliasChoices, Field

from schemas.base import CrmRecord


class OfficialContact(CrmRecord):
    contactId: str = ""
    sourceId: str = ""
    name: str = ""
    companyId: str = ""
    companyName: str = ""
    department: str = ""
    position: str = Field("", validation_alias=AliasChoices("jobTitle", "position"))
    jobTitle: str = Field("", validation_alias=AliasChoices("jobTitle", "position"))
    mobile: str = ""
    phone: str = Field("", validation_alias=AliasChoices("phone", "tel"))
    email: str = ""
    createdTime: str = ""
    lastUpdateTime: str = Field(
        "", validation_alias=AliasChoices("lastUpdateTime", "updatedTime")
    )
    creator: str = Field("", validation_alias=AliasChoices("creator", "createdBy"))
    lastModifier: str = Field(
        "", validation_alias=AliasChoices("lastModifier", "updatedBy")
    )
    rowIndex: Optional[int] = None


class PotentialContact(CrmRecord):
    rowIndex: int
    createdTime: str = ""
    name: str = ""
    company: str = ""
    position: str = ""
    department: str = ""
    phone: str = ""
    mobile: str = ""
    email: str = ""
    website: str = ""
    address: str = ""
    confidence: str = ""
    driveLink: str = ""
    cardImage: str = ""
    status: str = ""
    notes: str = ""
    lineUserId: str = ""
    userNickname: str = ""


class LinkedContact(CrmRecord):
    contactId: str = ""
    sourceId: str = ""
    name: str = ""
    companyId: str = ""
    companyName: str = ""
    department: str = ""
    position: str = ""
    mobile: str = ""
    phone: str = ""
    email: str = ""
    driveLink: str = ""
