"""Opportunity-contact link schema."""
from pydantic import AliasChoices, Field

from schemas.base import CrmRecord


class ContactLink(CrmRecord):
    linkId: str = ""
    opportunityId: str = ""
    contactId: str = ""
    status: str = ""
    createTime: str = Field("", validation_alias=AliasChoices("createTime", "createdTime"))
    creator: str = Field("", validation_alias=AliasChoices("creator", "createdBy"))
