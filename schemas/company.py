"""Company schema, normalized across the sheet and relational shapes."""
from typing import Optional

from pydantic import AliasChoices, Field

from schemas.base import CrmRecord


class Company(CrmRecord):
    companyId: str = Field("", validation_alias=AliasChoices("companyId", "company_id"))
    companyName: str = Field(
        "", validation_alias=AliasChoices("companyName", "company_name")
    )
    phone: str = ""
    address: str = ""
    county: str = Field("", validation_alias=AliasChoices("county", "city"))
    introduction: str = Field(
        "", validation_alias=AliasChoices("introduction", "description")
    )
    companyType: str = Field(
        "", validation_alias=AliasChoices("companyType", "company_type")
    )
    customerStage: str = Field(
        "", validation_alias=AliasChoices("customerStage", "customer_stage")
    )
    engagementRating: str = Field(
        "",
        validation_alias=AliasChoices(
            "engagementRating", "interactionRating", "interaction_rating"
        ),
    )
    createdTime: str = Field(
        "", validation_alias=AliasChoices("createdTime", "created_time")
    )
    lastUpdateTime: str = Field(
        "",
        validation_alias=AliasChoices("lastUpdateTime", "updatedTime", "updated_time"),
    )
    creator: str = Field(
        "", validation_alias=AliasChoices("creator", "createdBy", "created_by")
    )
    lastModifier: str = Field(
        "", validation_alias=AliasChoices("lastModifier", "updatedBy", "updated_by")
    )
    rowIndex: Optional[int] = None
