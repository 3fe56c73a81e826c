"""Repository layer for the CRM core zone.

Table bindings and column mappings for the relational store:
- relational: SqlAlchemyStore (query, insert, update, delete, upsert)
- contacts: crm.contacts, C<millis> ids, camelCase <-> snake_case payloads
- companies: crm.companies, COMP_<millis>_<rand> ids
- links: crm.opportunity_contact_links, upsert on (opportunity_id, contact_id)
- promotions: crm.promotion_intents saga records
"""
from db.repositories import companies, contacts, links, promotions

# table -> SQL reader cache keys expired after a write
SQL_CACHE_KEYS = {
    contacts.TABLE: (contacts.CONTACTS.cache_key,),
    companies.TABLE: (companies.COMPANIES.cache_key,),
    links.TABLE: (links.LINKS.cache_key,),
    promotions.TABLE: (promotions.PROMOTION_INTENTS.cache_key,),
}
