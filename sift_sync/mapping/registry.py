"""Destination schema registry."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError, DestinationSchemaNotFoundError
from ..schemas.mapping import DestinationField, DestinationSchema
from ..utils.config import get_service_configuration

# Destination types that accept included columns as-is, keyed by target name.
PASSTHROUGH_DESTINATIONS: frozenset[str] = frozenset({"custom"})

_SCHEMA_REGISTRY: dict[str, DestinationSchema] = {}


def _field(name: str, *aliases: str, label: str = "") -> DestinationField:
    return DestinationField(field=name, label=label, aliases=list(aliases))


MEMBERS_SCHEMA = DestinationSchema(
    type="members",
    label="Members",
    required_fields=[_field("email", "email_address", "e_mail", "mail")],
    optional_fields=[
        _field("first_name", "first", "fname", "given_name"),
        _field("last_name", "last", "lname", "surname", "family_name"),
        _field("phone", "phone_number", "mobile", "cell", "telephone"),
        _field("membership_status", "status", "member_status"),
        _field("date_of_birth", "dob", "birthday", "birth_date"),
        _field("address_line1", "address", "street", "address1", label="Address Line 1"),
        _field("address_line2", "address2", "apt", "suite", label="Address Line 2"),
        _field("city", "town"),
        _field("state", "province", "region"),
        _field("postal_code", "zip", "zip_code", "postcode"),
        _field("tags", "labels"),
    ],
)

TRANSACTIONS_SCHEMA = DestinationSchema(
    type="transactions",
    label="Transactions",
    required_fields=[
        _field("member_email", "email", "customer_email"),
        _field("amount", "total", "price", "value"),
        _field("transaction_date", "date", "purchase_date", "paid_at"),
    ],
    optional_fields=[
        _field("transaction_type", "type", "category"),
        _field("description", "memo", "note"),
        _field("payment_method", "method", "payment_type"),
        _field("reference_number", "reference", "ref", "transaction_id", "invoice"),
    ],
)

VISITS_SCHEMA = DestinationSchema(
    type="visits",
    label="Visits",
    required_fields=[
        _field("member_email", "email", "customer_email"),
        _field("visit_date", "date", "visited_at"),
    ],
    optional_fields=[
        _field("check_in_time", "check_in", "checkin", "arrival_time"),
        _field("check_out_time", "check_out", "checkout", "departure_time"),
        _field("visit_type", "type"),
        _field("service_name", "service", "class_name"),
        _field("notes", "note", "comments"),
    ],
)


def register_destination_schema(schema: DestinationSchema) -> None:
    """Register (or replace) a destination schema by its type."""

    _SCHEMA_REGISTRY[schema.type] = schema


def _configured_schemas() -> dict[str, DestinationSchema]:
    schemas: dict[str, DestinationSchema] = {}
    for entry in get_service_configuration().destinations:
        try:
            schema = DestinationSchema.model_validate(entry)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid destination schema in service configuration: {exc}") from exc
        schemas[schema.type] = schema
    return schemas


def get_destination_schema(destination_type: str) -> DestinationSchema | None:
    """Return the schema for ``destination_type``.

    Passthrough destinations have no schema and return ``None``.

    Raises:
        DestinationSchemaNotFoundError: If the type is neither registered nor passthrough.
    """

    if destination_type in PASSTHROUGH_DESTINATIONS:
        return None
    if destination_type in _SCHEMA_REGISTRY:
        return _SCHEMA_REGISTRY[destination_type]

    configured = _configured_schemas()
    if destination_type in configured:
        return configured[destination_type]

    available = sorted({*_SCHEMA_REGISTRY, *configured, *PASSTHROUGH_DESTINATIONS})
    raise DestinationSchemaNotFoundError(
        f"Destination schema '{destination_type}' is not registered. "
        f"Available destinations: {', '.join(available)}."
    )


def list_destination_schemas() -> list[DestinationSchema]:
    """Return registered and configured schemas ordered by type."""

    merged = {**_configured_schemas(), **_SCHEMA_REGISTRY}
    return [merged[key] for key in sorted(merged)]


register_destination_schema(MEMBERS_SCHEMA)
register_destination_schema(TRANSACTIONS_SCHEMA)
register_destination_schema(VISITS_SCHEMA)
