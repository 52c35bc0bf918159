"""
Appwrite database / collection / attribute layout for contact submissions.

`provision_schema` is idempotent: every create call that answers 409
(already exists) is counted as present and skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from appwrite.enums.index_type import IndexType
from appwrite.exception import AppwriteException

from portfolio_api.schemas.submission import SubmissionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributeSpec:
    key: str
    kind: str  # string | enum | integer
    required: bool = False
    size: int = 255
    array: bool = False
    elements: Tuple[str, ...] = ()
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    default: Optional[object] = None


CONTACT_ATTRIBUTES: Tuple[AttributeSpec, ...] = (
    AttributeSpec("name", "string", required=True, size=255),
    AttributeSpec("email", "string", required=True, size=255),
    AttributeSpec("subject", "string", required=True, size=255),
    AttributeSpec("message", "string", required=True, size=10000),
    AttributeSpec("timestamp", "string", size=255),
    AttributeSpec("userAgent", "string", size=1000),
    AttributeSpec("source", "string", size=255),
    AttributeSpec("ipAddress", "string", size=45),
    AttributeSpec(
        "status",
        "enum",
        elements=tuple(s.value for s in SubmissionStatus),
        default=SubmissionStatus.NEW.value,
    ),
    AttributeSpec("statusLog", "string", size=1000, array=True),
    AttributeSpec("priority", "integer", minimum=1, maximum=5),
    AttributeSpec("tags", "string", size=50, array=True),
    AttributeSpec("lastUpdated", "string", size=255),
)

# (key, type, attributes)
CONTACT_INDEXES: Tuple[Tuple[str, IndexType, Tuple[str, ...]], ...] = (
    ("status_idx", IndexType.KEY, ("status",)),
    ("name_search", IndexType.FULLTEXT, ("name",)),
    ("email_search", IndexType.FULLTEXT, ("email",)),
    ("subject_search", IndexType.FULLTEXT, ("subject",)),
    ("message_search", IndexType.FULLTEXT, ("message",)),
)


@dataclass
class ProvisionReport:
    created: List[str] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)


def _already_exists(exc: AppwriteException) -> bool:
    return getattr(exc, "code", None) == 409


def _create_attribute(databases, database_id: str, collection_id: str, attr: AttributeSpec):
    if attr.kind == "string":
        return databases.create_string_attribute(
            database_id=database_id,
            collection_id=collection_id,
            key=attr.key,
            size=attr.size,
            required=attr.required,
            default=attr.default,
            array=attr.array,
        )
    if attr.kind == "enum":
        return databases.create_enum_attribute(
            database_id=database_id,
            collection_id=collection_id,
            key=attr.key,
            elements=list(attr.elements),
            required=attr.required,
            default=attr.default,
        )
    if attr.kind == "integer":
        return databases.create_integer_attribute(
            database_id=database_id,
            collection_id=collection_id,
            key=attr.key,
            required=attr.required,
            min=attr.minimum,
            max=attr.maximum,
            default=attr.default,
        )
    raise ValueError(f"Unsupported attribute kind: {attr.kind}")


def provision_schema(
    databases,
    database_id: str,
    collection_id: str,
    *,
    database_name: str = "Contact Form Database",
    collection_name: str = "Contact Submissions",
    dry_run: bool = False,
) -> ProvisionReport:
    report = ProvisionReport()

    steps = [
        (
            f"database:{database_id}",
            lambda: databases.create(database_id=database_id, name=database_name),
        ),
        (
            f"collection:{collection_id}",
            lambda: databases.create_collection(
                database_id=database_id,
                collection_id=collection_id,
                name=collection_name,
            ),
        ),
    ]
    for attr in CONTACT_ATTRIBUTES:
        steps.append(
            (
                f"attribute:{attr.key}",
                lambda attr=attr: _create_attribute(databases, database_id, collection_id, attr),
            )
        )
    for key, index_type, attributes in CONTACT_INDEXES:
        steps.append(
            (
                f"index:{key}",
                lambda key=key, index_type=index_type, attributes=attributes: databases.create_index(
                    database_id=database_id,
                    collection_id=collection_id,
                    key=key,
                    type=index_type,
                    attributes=list(attributes),
                ),
            )
        )

    for label, create in steps:
        if dry_run:
            report.planned.append(label)
            continue
        try:
            create()
        except AppwriteException as exc:
            if not _already_exists(exc):
                logger.error("Failed to create %s: %s", label, exc)
                raise
            logger.info("%s already exists", label)
            report.existing.append(label)
        else:
            logger.info("%s created", label)
            report.created.append(label)

    return report
