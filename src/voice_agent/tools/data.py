from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class BusinessDataStore(Protocol):
    """Tenant data access used by the built-in tools.

    Persistence and booking atomicity live behind this interface; the turn
    pipeline only calls it.
    """

    async def get_business(self, tenant_id: str) -> Optional[Dict[str, Any]]: ...

    async def get_knowledge(self, tenant_id: str, categories: List[str]) -> List[str]: ...

    # entries: {id, category, title, content}
    async def list_knowledge(self, tenant_id: str) -> List[Dict[str, Any]]: ...

    async def count_reservations(self, tenant_id: str, *, date: str, time: str | None = None) -> int: ...

    async def insert_reservation(self, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def find_reservation(
        self, tenant_id: str, *, reservation_id: str | None = None, phone: str | None = None
    ) -> Optional[Dict[str, Any]]: ...

    async def update_reservation(
        self, tenant_id: str, reservation_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]: ...

    async def insert_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def find_appointment(
        self, tenant_id: str, *, appointment_id: str | None = None, phone: str | None = None
    ) -> Optional[Dict[str, Any]]: ...

    async def update_appointment(
        self, tenant_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]: ...

    async def record_event(self, call_id: str, event_type: str, data: Dict[str, Any]) -> None: ...
