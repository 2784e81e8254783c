# voice_agent/tools/memory_store.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional


class InMemoryBusinessStore:
    """BusinessDataStore kept in process memory, optionally seeded from a JSON file.

    Serves single-instance deployments and tests; `fail_on` makes the named
    methods raise so store outages can be exercised.
    """

    def __init__(
        self,
        *,
        businesses: Optional[Dict[str, Dict[str, Any]]] = None,
        knowledge: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        fail_on: Optional[set] = None,
    ):
        self.businesses = dict(businesses or {})
        self.knowledge = {k: list(v) for k, v in (knowledge or {}).items()}
        self.reservations: List[Dict[str, Any]] = []
        self.appointments: List[Dict[str, Any]] = []
        self.events: List[Dict[str, Any]] = []
        self.fail_on = set(fail_on or ())

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryBusinessStore":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(businesses=data.get("businesses"), knowledge=data.get("knowledge"))

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"store unavailable: {name}")

    async def get_business(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        self._check("get_business")
        return self.businesses.get(tenant_id)

    async def get_knowledge(self, tenant_id: str, categories: List[str]) -> List[str]:
        self._check("get_knowledge")
        return [
            e.get("content") or ""
            for e in self.knowledge.get(tenant_id, [])
            if e.get("category") in categories
        ]

    async def list_knowledge(self, tenant_id: str) -> List[Dict[str, Any]]:
        self._check("list_knowledge")
        return list(self.knowledge.get(tenant_id, []))

    async def count_reservations(self, tenant_id: str, *, date: str, time: str | None = None) -> int:
        self._check("count_reservations")
        return sum(
            1
            for r in self.reservations
            if r["tenant_id"] == tenant_id
            and r.get("date") == date
            and (time is None or r.get("time") == time)
            and r.get("status") != "cancelled"
        )

    async def insert_reservation(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self._check("insert_reservation")
        self.reservations.append(dict(record))
        return dict(record)

    async def find_reservation(
        self, tenant_id: str, *, reservation_id: str | None = None, phone: str | None = None
    ) -> Optional[Dict[str, Any]]:
        self._check("find_reservation")
        return self._find(self.reservations, tenant_id, reservation_id, phone)

    async def update_reservation(
        self, tenant_id: str, reservation_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        self._check("update_reservation")
        return self._update(self.reservations, tenant_id, reservation_id, changes)

    async def insert_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self._check("insert_appointment")
        self.appointments.append(dict(record))
        return dict(record)

    async def find_appointment(
        self, tenant_id: str, *, appointment_id: str | None = None, phone: str | None = None
    ) -> Optional[Dict[str, Any]]:
        self._check("find_appointment")
        return self._find(self.appointments, tenant_id, appointment_id, phone)

    async def update_appointment(
        self, tenant_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        self._check("update_appointment")
        return self._update(self.appointments, tenant_id, appointment_id, changes)

    async def record_event(self, call_id: str, event_type: str, data: Dict[str, Any]) -> None:
        self._check("record_event")
        self.events.append({"call_id": call_id, "event_type": event_type, "data": dict(data)})

    @staticmethod
    def _find(rows, tenant_id, record_id, phone) -> Optional[Dict[str, Any]]:
        for row in reversed(rows):
            if row["tenant_id"] != tenant_id or row.get("status") == "cancelled":
                continue
            if record_id and row.get("id") == record_id:
                return dict(row)
            if not record_id and phone and row.get("phone") == phone:
                return dict(row)
        return None

    @staticmethod
    def _update(rows, tenant_id, record_id, changes) -> Optional[Dict[str, Any]]:
        for row in rows:
            if row["tenant_id"] == tenant_id and row.get("id") == record_id:
                row.update(changes)
                return dict(row)
        return None
