from .base import CrmRecord
from .company import Company
from .contact import LinkedContact, OfficialContact, PotentialContact
from .link import ContactLink

__all__ = [
    "CrmRecord", "Company",
    "OfficialContact", "PotentialContact", "LinkedContact",
    "ContactLink",
]
