"""Field accessors for the CRM entity types.

Field names follow the list endpoints' camelCase payloads. Relationship
objects (``company``, ``stage``, ``assignedUser``...) are preloaded by the
backend, so derived fields read through them instead of issuing lookups.
"""

from __future__ import annotations

from typing import Any, Mapping

from .fields import AccessorRegistry, FieldAccessor, lookup
from .models import Record

UNASSIGNED = "Unassigned"
TASK_PRIORITY_RANK = {"LOW": 1, "MEDIUM": 2, "HIGH": 3, "URGENT": 4}


def full_name(person: Any) -> str | None:
    if not isinstance(person, Mapping):
        return None
    name = f"{person.get('firstName') or ''} {person.get('lastName') or ''}".strip()
    return name or None


def primary_item(items: Any, key: str) -> Any:
    if not isinstance(items, list):
        return None
    candidates = [item for item in items if isinstance(item, Mapping)]
    for item in candidates:
        if item.get("isPrimary") and item.get(key):
            return item.get(key)
    for item in candidates:
        if item.get(key):
            return item.get(key)
    return None


def name_of(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("name") or full_name(value)
    return value


def owner_name(record: Record) -> str:
    return full_name(record.get("assignedUser")) or name_of(record.get("owner")) or UNASSIGNED


def _person_name(record: Record) -> str | None:
    return full_name(record) or record.get("name")


def _email(record: Record) -> Any:
    return primary_item(record.get("emailAddresses"), "email") or record.get("email")


def _phone(record: Record) -> Any:
    return primary_item(record.get("phoneNumbers"), "number") or record.get("phone")


def _address_part(part: str):
    def derive(record: Record) -> Any:
        return primary_item(record.get("addresses"), part) or record.get(part)

    return derive


def _related(key: str):
    def derive(record: Record) -> Any:
        return name_of(record.get(key))

    return derive


def _task_priority_rank(record: Record) -> int | None:
    priority = record.get("priority")
    if not isinstance(priority, str):
        return None
    return TASK_PRIORITY_RANK.get(priority.strip().upper())


CONTACTS = FieldAccessor(
    entity_type="contacts",
    searchable_fields=("name", "email", "phone", "company", "title", "department", "owner"),
    sortable_fields=("name", "firstName", "lastName", "email", "company", "title", "owner", "createdAt", "updatedAt"),
    derivers={
        "name": _person_name,
        "email": _email,
        "phone": _phone,
        "company": _related("company"),
        "owner": owner_name,
        "city": _address_part("city"),
        "country": _address_part("country"),
    },
    field_kinds={
        "createdAt": "date",
        "updatedAt": "date",
        "emailOptIn": "boolean",
        "smsOptIn": "boolean",
        "callOptIn": "boolean",
    },
    labels={"name": "Name", "email": "Email", "phone": "Phone", "company": "Company", "owner": "Contact owner", "createdAt": "Create date"},
    columns=("name", "email", "phone", "company", "owner", "createdAt"),
)

COMPANIES = FieldAccessor(
    entity_type="companies",
    searchable_fields=("name", "email", "phone", "website", "domain", "industry", "city", "country", "owner"),
    sortable_fields=("name", "industry", "city", "country", "size", "revenue", "owner", "createdAt", "updatedAt"),
    derivers={
        "email": _email,
        "phone": _phone,
        "industry": _related("industry"),
        "size": _related("size"),
        "city": _address_part("city"),
        "country": _address_part("country"),
        "owner": owner_name,
    },
    field_kinds={"revenue": "number", "createdAt": "date", "updatedAt": "date"},
    labels={"name": "Company name", "industry": "Industry", "phone": "Phone", "city": "City", "country": "Country", "owner": "Company owner"},
    columns=("name", "industry", "phone", "city", "country", "owner"),
)

DEALS = FieldAccessor(
    entity_type="deals",
    searchable_fields=("name", "stage", "pipeline", "company", "contact", "owner"),
    sortable_fields=("name", "amount", "probability", "stage", "company", "contact", "owner", "expectedCloseDate", "createdAt"),
    derivers={
        "stage": _related("stage"),
        "pipeline": _related("pipeline"),
        "company": _related("company"),
        "contact": lambda record: full_name(record.get("contact")) or name_of(record.get("contact")),
        "owner": owner_name,
    },
    field_kinds={
        "amount": "number",
        "probability": "number",
        "expectedCloseDate": "date",
        "actualCloseDate": "date",
        "createdAt": "date",
        "updatedAt": "date",
    },
    labels={"name": "Deal name", "stage": "Deal stage", "amount": "Amount", "expectedCloseDate": "Close date", "owner": "Deal owner"},
    columns=("name", "stage", "amount", "probability", "company", "owner", "expectedCloseDate"),
)

LEADS = FieldAccessor(
    entity_type="leads",
    searchable_fields=("name", "email", "phone", "company", "title", "source", "campaign", "status", "owner"),
    sortable_fields=("name", "company", "source", "status", "temperature", "score", "owner", "createdAt"),
    derivers={
        "name": _person_name,
        "email": lambda record: _email(record) or lookup(record, "contact.email"),
        "phone": _phone,
        "company": _related("company"),
        "status": _related("status"),
        "temperature": _related("temperature"),
        "owner": owner_name,
    },
    field_kinds={"score": "number", "createdAt": "date", "convertedAt": "date", "updatedAt": "date"},
    labels={"name": "Name", "status": "Lead status", "temperature": "Temperature", "score": "Score", "owner": "Lead owner"},
    columns=("name", "company", "source", "status", "score", "owner"),
)

TASKS = FieldAccessor(
    entity_type="tasks",
    searchable_fields=("title", "description", "type", "priority", "status", "owner", "deal", "lead"),
    sortable_fields=("title", "type", "priority", "priorityRank", "status", "dueDate", "owner", "createdAt"),
    derivers={
        "type": _related("type"),
        "owner": owner_name,
        "deal": _related("deal"),
        "lead": lambda record: full_name(record.get("lead")),
        "priorityRank": _task_priority_rank,
    },
    field_kinds={
        "priorityRank": "number",
        "dueDate": "date",
        "completedAt": "date",
        "createdAt": "date",
        "updatedAt": "date",
    },
    labels={"title": "Title", "priority": "Priority", "status": "Status", "dueDate": "Due date", "owner": "Assigned to"},
    columns=("title", "type", "priority", "status", "dueDate", "owner"),
)

BUILTIN_ACCESSORS = (CONTACTS, COMPANIES, DEALS, LEADS, TASKS)


def default_registry() -> AccessorRegistry:
    return AccessorRegistry(BUILTIN_ACCESSORS)


def get_accessor(entity_type: str) -> FieldAccessor:
    return default_registry().get(entity_type)
