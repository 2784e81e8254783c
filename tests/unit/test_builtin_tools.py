import json

import pytest

from conftest import TENANT
from voice_agent.tools import builtin
from voice_agent.tools.memory_store import InMemoryBusinessStore
from voice_agent.tools.registry import ToolExecutionContext


def _ctx(store, locale="es", **entities):
    return ToolExecutionContext(tenant_id=TENANT, call_id="call-1", locale=locale, data=store, entities=entities)


def test_make_booking_id_prefix():
    booking_id = builtin.make_booking_id("RES")
    assert booking_id.startswith("RES-")
    assert booking_id != builtin.make_booking_id("RES")


@pytest.mark.asyncio
async def test_knowledge_lookups(store):
    hours = await builtin.get_business_hours({}, _ctx(store))
    location = await builtin.get_location({}, _ctx(store))
    menu = await builtin.get_menu({}, _ctx(store))

    assert hours.data == {"hours": "Abrimos de martes a domingo de 13:00 a 23:00"}
    assert location.voice_message == "Estamos en la calle Mayor 12, Madrid"
    assert menu.voice_message == "Cocina mediterránea, arroces y pescados. Tenemos estacionamiento gratuito para clientes"


@pytest.mark.asyncio
async def test_knowledge_lookup_missing_and_failing():
    empty = await builtin.get_business_hours({}, _ctx(InMemoryBusinessStore(), locale="en"))
    assert empty.success is True
    assert empty.voice_message == "I don't have the business hours information available right now."

    broken = await builtin.get_location({}, _ctx(InMemoryBusinessStore(fail_on={"get_knowledge"})))
    assert broken.success is False
    assert broken.voice_message == "No pude obtener la información de ubicación."


@pytest.mark.asyncio
async def test_business_info(store):
    result = await builtin.get_business_info({}, _ctx(store, locale="en"))
    assert result.voice_message == "You're speaking with La Terraza. How can I help you?"


@pytest.mark.asyncio
async def test_check_availability_needs_date(store):
    result = await builtin.check_availability({}, _ctx(store))
    assert result.data == {"needs_info": True, "missing": ["date"]}


@pytest.mark.asyncio
async def test_check_availability_full_suggests_other_slots(store):
    for i in range(2):
        await store.insert_reservation(
            {"id": f"R{i}", "tenant_id": TENANT, "date": "12/05", "time": "20:00", "status": "confirmed"}
        )
    result = await builtin.check_availability({"date": "12/05", "time": "20:00"}, _ctx(store))

    assert result.data["available"] is False
    assert result.data["suggested_times"] == ["13:00", "14:00", "21:00"]
    assert "13:00, 14:00, 21:00" in result.voice_message


@pytest.mark.asyncio
async def test_create_reservation_asks_for_missing_fields(store):
    result = await builtin.create_reservation({"date": "12/05", "time": "20:00"}, _ctx(store))

    assert result.success is True
    assert result.data == {"needs_info": True, "missing": ["name"]}
    assert store.reservations == []


@pytest.mark.asyncio
async def test_create_reservation_uses_entities_and_default_guests(store):
    result = await builtin.create_reservation({"name": "Ana"}, _ctx(store, date="12/05", time="20:00"))

    assert result.success is True
    assert result.forward_to_client is True
    assert result.data["reservation_id"].startswith("RES-")
    assert result.data["guests"] == 2
    assert store.reservations[0]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_cancel_reservation_by_phone(store):
    await store.insert_reservation(
        {"id": "RES-1", "tenant_id": TENANT, "date": "12/05", "phone": "600123456", "status": "confirmed"}
    )
    result = await builtin.cancel_reservation({"phone": "600123456"}, _ctx(store))

    assert result.data == {"cancelled": True, "reservation_id": "RES-1"}
    assert store.reservations[0]["status"] == "cancelled"

    again = await builtin.cancel_reservation({"phone": "600123456"}, _ctx(store))
    assert again.data == {"found": False}


@pytest.mark.asyncio
async def test_cancel_reservation_needs_identifier(store):
    result = await builtin.cancel_reservation({}, _ctx(store))
    assert result.data["missing"] == ["reservation_id", "phone"]


@pytest.mark.asyncio
async def test_modify_reservation(store):
    await store.insert_reservation({"id": "RES-1", "tenant_id": TENANT, "date": "12/05", "time": "20:00"})

    result = await builtin.modify_reservation({"reservation_id": "RES-1", "new_time": "21:00"}, _ctx(store))
    assert result.success is True
    assert store.reservations[0]["time"] == "21:00"

    missing = await builtin.modify_reservation({"reservation_id": "RES-404", "new_time": "21:00"}, _ctx(store))
    assert missing.success is False
    assert missing.error == "reservation_not_found"

    no_changes = await builtin.modify_reservation({"reservation_id": "RES-1"}, _ctx(store))
    assert no_changes.data == {"needs_info": True, "missing": ["changes"]}


@pytest.mark.asyncio
async def test_transfer_to_human_records_event(store):
    result = await builtin.transfer_to_human({}, _ctx(store))

    assert result.forward_to_client is True
    assert result.data == {"action": "transfer", "destination": "human_agent", "reason": "user_requested"}
    assert store.events[0]["event_type"] == "transfer_requested"


@pytest.mark.asyncio
async def test_appointments(store):
    created = await builtin.create_appointment(
        {"date": "12/05", "time": "10:00", "name": "Luis", "phone": "600999888", "service": "corte"}, _ctx(store)
    )
    assert created.data["appointment_id"].startswith("APT-")
    assert store.appointments[0]["status"] == "scheduled"

    cancelled = await builtin.cancel_appointment({"phone": "600999888"}, _ctx(store, locale="en"))
    assert cancelled.voice_message == "Your appointment for 12/05 has been cancelled."
    assert store.appointments[0]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_store_failure_is_a_failed_result():
    store = InMemoryBusinessStore(fail_on={"insert_appointment"})
    result = await builtin.create_appointment({"date": "12/05", "time": "10:00", "name": "Luis"}, _ctx(store))
    assert result.success is False
    assert result.error == "store unavailable: insert_appointment"


@pytest.mark.asyncio
async def test_memory_store_seeded_from_file(tmp_path):
    seed = tmp_path / "business.json"
    seed.write_text(
        json.dumps(
            {
                "businesses": {TENANT: {"name": "La Terraza"}},
                "knowledge": {TENANT: [{"id": "k-1", "category": "hours", "content": "Abrimos a las 13:00."}]},
            }
        ),
        encoding="utf-8",
    )
    store = InMemoryBusinessStore.from_file(seed)

    assert (await store.get_business(TENANT))["name"] == "La Terraza"
    assert await store.get_knowledge(TENANT, ["hours"]) == ["Abrimos a las 13:00."]
    assert store.reservations == []
