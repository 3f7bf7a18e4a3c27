"""Derive the resource references an invocation acts upon."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping

from .policy import OperationPolicy, ResourceType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceReference:
    type: ResourceType
    id: uuid.UUID


def parse_identifier(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def extract_references(policy: OperationPolicy, arguments: Mapping[str, Any]) -> tuple[ResourceReference, ...]:
    """
    Resolve each declared slot against the invocation's arguments.

    A slot whose argument is missing or unparseable contributes nothing; the
    caller decides what an empty result means.
    """

    references: list[ResourceReference] = []
    for slot in policy.resources:
        raw = arguments.get(slot.argument)
        resource_id = parse_identifier(raw)
        if resource_id is None:
            logger.debug(
                "No %s reference from argument=%s operation=%s",
                slot.type.value,
                slot.argument,
                policy.operation,
            )
            continue
        references.append(ResourceReference(type=slot.type, id=resource_id))
    return tuple(references)
