"""
EventHub Backend — Resource Registry
=====================================

What:  Declares every collection the API exposes.
How:   Each `Resource` names a collection and the singular label used in
       response messages. `create_app()` turns each one into a router with
       the router factory in `eventhub.routes.resources`.

Mutable resources get list / create / update (upsert) / soft-delete.
Read-only resources get a plain listing of whatever is stored.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Resource:
    """A named collection and how to talk about one of its records."""

    collection: str
    label: str
    read_only: bool = False

    @property
    def path(self) -> str:
        return f"/{self.collection}"


MUTABLE_RESOURCES: Tuple[Resource, ...] = (
    Resource(collection="events", label="Event"),
    Resource(collection="recent", label="Recent item"),
    Resource(collection="services", label="Service"),
)

READ_ONLY_RESOURCES: Tuple[Resource, ...] = (
    Resource(collection="pricing", label="Pricing plan", read_only=True),
    Resource(collection="reviews", label="Review", read_only=True),
    Resource(collection="featured", label="Featured item", read_only=True),
)

ALL_RESOURCES: Tuple[Resource, ...] = MUTABLE_RESOURCES + READ_ONLY_RESOURCES
