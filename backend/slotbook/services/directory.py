"""
Master-data collaborators consumed by the booking core.

Business, staff, service and client records live in other systems.
The core only needs the lookups below; hosts plug in adapters over their
own stores. ``StaticDirectory`` is an in-memory implementation used by
tests and by embedding applications that preload their catalog.

Every name lookup returns ``None`` when the record is unknown; callers
choose the placeholder through ``display_name``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Set


@dataclass(frozen=True)
class ServiceInfo:
    name: str
    duration_minutes: int
    price: Optional[Decimal] = None


@dataclass(frozen=True)
class StaffInfo:
    name: str
    business_id: str
    business_name: Optional[str] = None


class ServiceCatalog(Protocol):
    def get_service_info(self, service_id: str) -> Optional[ServiceInfo]:
        ...


class StaffDirectory(Protocol):
    def get_staff_info(self, staff_id: str) -> Optional[StaffInfo]:
        ...

    def get_business_name(self, business_id: str) -> Optional[str]:
        ...


class StaffServiceEligibility(Protocol):
    def services_for_staff(self, staff_id: str) -> List[str]:
        ...

    def staff_for_service(self, service_id: str) -> List[str]:
        ...

    def can_perform(self, staff_id: str, service_id: str) -> bool:
        ...


class ClientDirectory(Protocol):
    def get_client_name(self, client_id: str) -> Optional[str]:
        ...


def display_name(value: Optional[str], placeholder: str) -> str:
    """The looked-up name, or ``placeholder`` when the lookup found nothing."""
    return value if value else placeholder


class MasterDataDirectory(
    ServiceCatalog, StaffDirectory, StaffServiceEligibility, ClientDirectory, Protocol
):
    """Single object answering every master-data lookup."""


class StaticDirectory:
    """In-memory catalog satisfying every collaborator protocol above."""

    def __init__(self) -> None:
        self._services: Dict[str, ServiceInfo] = {}
        self._staff: Dict[str, StaffInfo] = {}
        self._businesses: Dict[str, str] = {}
        self._clients: Dict[str, str] = {}
        self._assignments: Dict[str, Set[str]] = {}

    # Registration

    def add_business(self, business_id: str, name: str) -> None:
        self._businesses[business_id] = name

    def add_service(
        self,
        service_id: str,
        name: str,
        duration_minutes: int,
        price: Optional[Decimal] = None,
    ) -> None:
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        self._services[service_id] = ServiceInfo(name, duration_minutes, price)

    def add_staff(self, staff_id: str, name: str, business_id: str) -> None:
        self._staff[staff_id] = StaffInfo(name, business_id, self._businesses.get(business_id))

    def add_client(self, client_id: str, name: str) -> None:
        self._clients[client_id] = name

    def assign_service(self, staff_id: str, service_id: str) -> None:
        self._assignments.setdefault(staff_id, set()).add(service_id)

    def unassign_service(self, staff_id: str, service_id: str) -> None:
        self._assignments.get(staff_id, set()).discard(service_id)

    # ServiceCatalog

    def get_service_info(self, service_id: str) -> Optional[ServiceInfo]:
        return self._services.get(service_id)

    # StaffDirectory

    def get_staff_info(self, staff_id: str) -> Optional[StaffInfo]:
        return self._staff.get(staff_id)

    def get_business_name(self, business_id: str) -> Optional[str]:
        return self._businesses.get(business_id)

    # StaffServiceEligibility

    def services_for_staff(self, staff_id: str) -> List[str]:
        return sorted(self._assignments.get(staff_id, ()))

    def staff_for_service(self, service_id: str) -> List[str]:
        return sorted(
            staff for staff, services in self._assignments.items() if service_id in services
        )

    def can_perform(self, staff_id: str, service_id: str) -> bool:
        return service_id in self._assignments.get(staff_id, ())

    # ClientDirectory

    def get_client_name(self, client_id: str) -> Optional[str]:
        return self._clients.get(client_id)
