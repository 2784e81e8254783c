"""Default business tools: information lookups, reservations, appointments, transfer."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List
from uuid import uuid4

from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.tools.registry import ToolDefinition, ToolExecutionContext, ToolRegistry, spoken_date

logger = logging.getLogger(__name__)

DEFAULT_SLOTS = ["12:00", "13:00", "14:00", "18:00", "19:00", "20:00"]
DEFAULT_CAPACITY = 10


def _say(ctx: ToolExecutionContext, es: str, en: str) -> str:
    return en if ctx.en() else es


def _pick(params: Dict[str, Any], ctx: ToolExecutionContext, *keys: str) -> Any:
    for key in keys:
        value = params.get(key)
        if value not in (None, ""):
            return value
    for key in keys:
        value = ctx.entities.get(key)
        if value not in (None, ""):
            return value
    return None


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def make_booking_id(prefix: str) -> str:
    return f"{prefix}-{_base36(int(time.time() * 1000))}{uuid4().hex[:2].upper()}"


def _store_failure(ctx: ToolExecutionContext, tool: str, exc: Exception, es: str, en: str) -> ToolExecutionResult:
    logger.warning(
        json.dumps(
            {"event": "tool_store_error", "tool": tool, "call_id": ctx.call_id, "error": str(exc)},
            ensure_ascii=False,
        )
    )
    return ToolExecutionResult(success=False, error=str(exc), voice_message=_say(ctx, es, en))


async def _knowledge_lookup(
    ctx: ToolExecutionContext,
    *,
    tool: str,
    categories: List[str],
    data_key: str,
    missing: tuple[str, str],
    failed: tuple[str, str],
) -> ToolExecutionResult:
    try:
        entries = await ctx.data.get_knowledge(ctx.tenant_id, categories)
    except Exception as e:
        return _store_failure(ctx, tool, e, *failed)
    if not entries:
        return ToolExecutionResult(success=True, data=None, voice_message=_say(ctx, *missing))
    content = ". ".join(e.strip().rstrip(".") for e in entries if e and e.strip())
    return ToolExecutionResult(success=True, data={data_key: content}, voice_message=content)


async def get_business_hours(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    return await _knowledge_lookup(
        ctx,
        tool="get_business_hours",
        categories=["hours"],
        data_key="hours",
        missing=(
            "No tengo la información del horario disponible en este momento.",
            "I don't have the business hours information available right now.",
        ),
        failed=(
            "No pude obtener el horario. Por favor intente de nuevo.",
            "I couldn't retrieve the business hours. Please try again.",
        ),
    )


async def get_menu(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    return await _knowledge_lookup(
        ctx,
        tool="get_menu",
        categories=["menu", "services"],
        data_key="menu",
        missing=(
            "La información del menú no está disponible en este momento.",
            "Menu information is not available at the moment.",
        ),
        failed=("No pude obtener la información del menú.", "I couldn't retrieve the menu information."),
    )


async def get_location(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    return await _knowledge_lookup(
        ctx,
        tool="get_location",
        categories=["location"],
        data_key="location",
        missing=("La información de ubicación no está disponible.", "Location information is not available."),
        failed=("No pude obtener la información de ubicación.", "I couldn't retrieve the location information."),
    )


async def get_business_info(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    try:
        business = await ctx.data.get_business(ctx.tenant_id)
    except Exception as e:
        return _store_failure(
            ctx,
            "get_business_info",
            e,
            "No pude obtener la información del negocio.",
            "I couldn't retrieve the business information.",
        )
    if not business:
        return ToolExecutionResult(
            success=True,
            data=None,
            voice_message=_say(
                ctx, "La información del negocio no está disponible.", "Business information is not available."
            ),
        )
    name = business.get("name") or ""
    return ToolExecutionResult(
        success=True,
        data={"name": name, "settings": business.get("settings") or {}},
        voice_message=_say(
            ctx,
            f"Está hablando con {name}. ¿En qué puedo ayudarle?",
            f"You're speaking with {name}. How can I help you?",
        ),
    )


async def check_availability(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    date = _pick(params, ctx, "date")
    time_ = _pick(params, ctx, "time")
    guests = _pick(params, ctx, "guests") or 2
    if not date:
        return ToolExecutionResult(
            success=True,
            data={"needs_info": True, "missing": ["date"]},
            voice_message=_say(
                ctx,
                "¿Para qué fecha desea verificar la disponibilidad?",
                "For what date would you like to check availability?",
            ),
        )
    try:
        business = await ctx.data.get_business(ctx.tenant_id) or {}
        settings = business.get("settings") or {}
        slots = list(settings.get("slots") or DEFAULT_SLOTS)
        capacity = int(settings.get("capacity") or DEFAULT_CAPACITY)
        booked = await ctx.data.count_reservations(ctx.tenant_id, date=date, time=time_)
    except Exception as e:
        return _store_failure(
            ctx,
            "check_availability",
            e,
            "No pude verificar la disponibilidad. Por favor intente de nuevo.",
            "I couldn't check availability. Please try again.",
        )

    if booked < capacity:
        slot = time_ or slots[0]
        return ToolExecutionResult(
            success=True,
            data={"available": True, "date": date, "time": slot, "guests": guests},
            voice_message=_say(
                ctx,
                f"Sí, tenemos disponibilidad para {guests} personas {spoken_date(date, 'es')}. ¿Desea que haga la reservación?",
                f"Yes, we have availability for {guests} guests {spoken_date(date, 'en')}. Would you like me to make a reservation?",
            ),
        )
    alternatives = [s for s in slots if s != time_][:3]
    suggested = ", ".join(alternatives)
    return ToolExecutionResult(
        success=True,
        data={"available": False, "date": date, "suggested_times": alternatives},
        voice_message=_say(
            ctx,
            f"Desafortunadamente no tenemos disponibilidad a esa hora {spoken_date(date, 'es')}. Tenemos espacios a las {suggested}.",
            f"Unfortunately, we don't have availability at that time {spoken_date(date, 'en')}. We have openings at {suggested}.",
        ),
    )


def _needs_info(ctx: ToolExecutionContext, missing: List[str], es: str, en: str) -> ToolExecutionResult:
    return ToolExecutionResult(
        success=True,
        data={"needs_info": True, "missing": missing},
        voice_message=_say(ctx, es, en),
    )


async def create_reservation(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    date = _pick(params, ctx, "date")
    time_ = _pick(params, ctx, "time")
    guests = _pick(params, ctx, "guests") or 2
    name = _pick(params, ctx, "name")

    missing = [key for key, value in (("date", date), ("time", time_), ("name", name)) if not value]
    if missing:
        missing_str = ", ".join(missing)
        return _needs_info(
            ctx,
            missing,
            f"Necesito algunos datos más: {missing_str}. ¿Me los puede proporcionar?",
            f"I need a few more details: {missing_str}. Could you provide that?",
        )

    reservation_id = make_booking_id("RES")
    try:
        await ctx.data.insert_reservation(
            {
                "id": reservation_id,
                "tenant_id": ctx.tenant_id,
                "call_id": ctx.call_id,
                "date": date,
                "time": time_,
                "guests": guests,
                "name": name,
                "phone": _pick(params, ctx, "phone"),
                "status": "confirmed",
            }
        )
    except Exception as e:
        return _store_failure(
            ctx,
            "create_reservation",
            e,
            "Hubo un error al crear su reservación. Por favor intente de nuevo.",
            "There was an error creating your reservation. Please try again.",
        )
    return ToolExecutionResult(
        success=True,
        data={"reservation_id": reservation_id, "date": date, "time": time_, "guests": guests, "name": name},
        voice_message=_say(
            ctx,
            f"Su reservación está confirmada. Número de reservación {reservation_id} para {guests} personas "
            f"{spoken_date(date, 'es')} a las {time_} a nombre de {name}.",
            f"Your reservation is confirmed. Reservation number {reservation_id} for {guests} guests "
            f"{spoken_date(date, 'en')} at {time_} under the name {name}.",
        ),
        forward_to_client=True,
    )


async def cancel_reservation(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    reservation_id = params.get("reservation_id")
    phone = _pick(params, ctx, "phone")
    if not reservation_id and not phone:
        return _needs_info(
            ctx,
            ["reservation_id", "phone"],
            "Para cancelar una reservación, necesito su número de reservación o el teléfono que utilizó.",
            "To cancel a reservation, I need either your reservation number or the phone number used.",
        )
    try:
        reservation = await ctx.data.find_reservation(ctx.tenant_id, reservation_id=reservation_id, phone=phone)
        if not reservation:
            return ToolExecutionResult(
                success=True,
                data={"found": False},
                voice_message=_say(
                    ctx,
                    "No encontré una reservación con esa información.",
                    "I couldn't find a reservation with that information.",
                ),
            )
        await ctx.data.update_reservation(ctx.tenant_id, reservation["id"], {"status": "cancelled"})
    except Exception as e:
        return _store_failure(
            ctx,
            "cancel_reservation",
            e,
            "Hubo un error al cancelar su reservación.",
            "There was an error cancelling your reservation.",
        )
    return ToolExecutionResult(
        success=True,
        data={"cancelled": True, "reservation_id": reservation["id"]},
        voice_message=_say(
            ctx,
            f"Su reservación para {spoken_date(reservation.get('date'), 'es')} ha sido cancelada.",
            f"Your reservation for {reservation.get('date')} has been cancelled.",
        ),
        forward_to_client=True,
    )


async def modify_reservation(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    reservation_id = params.get("reservation_id")
    if not reservation_id:
        return _needs_info(
            ctx, ["reservation_id"], "¿Cuál es su número de reservación?", "What is your reservation number?"
        )
    changes = {
        field: params[key]
        for key, field in (("new_date", "date"), ("new_time", "time"), ("new_guests", "guests"))
        if params.get(key)
    }
    if not changes:
        return _needs_info(
            ctx,
            ["changes"],
            "¿Qué desea cambiar de su reservación?",
            "What would you like to change about your reservation?",
        )
    try:
        updated = await ctx.data.update_reservation(ctx.tenant_id, reservation_id, changes)
    except Exception as e:
        return _store_failure(
            ctx,
            "modify_reservation",
            e,
            "Hubo un error al modificar su reservación.",
            "There was an error modifying your reservation.",
        )
    if not updated:
        return ToolExecutionResult(
            success=False,
            error="reservation_not_found",
            voice_message=_say(ctx, "No pude modificar la reservación.", "I couldn't modify the reservation."),
        )
    return ToolExecutionResult(
        success=True,
        data={"modified": True, "reservation_id": reservation_id, "changes": changes},
        voice_message=_say(ctx, "Su reservación ha sido actualizada.", "Your reservation has been updated."),
        forward_to_client=True,
    )


async def transfer_to_human(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    reason = params.get("reason") or "user_requested"
    await ctx.data.record_event(ctx.call_id, "transfer_requested", {"reason": reason})
    return ToolExecutionResult(
        success=True,
        data={"action": "transfer", "destination": "human_agent", "reason": reason},
        voice_message=_say(
            ctx,
            "Lo estoy transfiriendo con un agente humano. Por favor espere.",
            "I'm transferring you to a human agent. Please hold.",
        ),
        forward_to_client=True,
    )


async def create_appointment(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    date = _pick(params, ctx, "date")
    time_ = _pick(params, ctx, "time")
    name = _pick(params, ctx, "name")

    missing = [key for key, value in (("date", date), ("time", time_), ("name", name)) if not value]
    if missing:
        missing_str = ", ".join(missing)
        return _needs_info(
            ctx,
            missing,
            f"Necesito más información para agendar su cita: {missing_str}.",
            f"I need some more information to schedule your appointment: {missing_str}.",
        )

    appointment_id = make_booking_id("APT")
    try:
        await ctx.data.insert_appointment(
            {
                "id": appointment_id,
                "tenant_id": ctx.tenant_id,
                "call_id": ctx.call_id,
                "date": date,
                "time": time_,
                "service": params.get("service"),
                "name": name,
                "phone": _pick(params, ctx, "phone"),
                "status": "scheduled",
            }
        )
    except Exception as e:
        return _store_failure(
            ctx,
            "create_appointment",
            e,
            "Hubo un error al agendar su cita.",
            "There was an error scheduling your appointment.",
        )
    return ToolExecutionResult(
        success=True,
        data={"appointment_id": appointment_id, "date": date, "time": time_, "name": name},
        voice_message=_say(
            ctx,
            f"Su cita está agendada para {spoken_date(date, 'es')} a las {time_}. Su número de confirmación es {appointment_id}.",
            f"Your appointment is scheduled for {date} at {time_}. Your confirmation number is {appointment_id}.",
        ),
        forward_to_client=True,
    )


async def cancel_appointment(params: Dict[str, Any], ctx: ToolExecutionContext) -> ToolExecutionResult:
    appointment_id = params.get("appointment_id")
    phone = _pick(params, ctx, "phone")
    if not appointment_id and not phone:
        return _needs_info(
            ctx,
            ["appointment_id", "phone"],
            "Para cancelar una cita, necesito su número de confirmación o teléfono.",
            "To cancel an appointment, I need your confirmation number or phone number.",
        )
    try:
        appointment = await ctx.data.find_appointment(ctx.tenant_id, appointment_id=appointment_id, phone=phone)
        if not appointment:
            return ToolExecutionResult(
                success=True,
                data={"found": False},
                voice_message=_say(
                    ctx,
                    "No encontré una cita con esa información.",
                    "I couldn't find an appointment with that information.",
                ),
            )
        await ctx.data.update_appointment(ctx.tenant_id, appointment["id"], {"status": "cancelled"})
    except Exception as e:
        return _store_failure(
            ctx,
            "cancel_appointment",
            e,
            "Hubo un error al cancelar su cita.",
            "There was an error cancelling your appointment.",
        )
    return ToolExecutionResult(
        success=True,
        data={"cancelled": True, "appointment_id": appointment["id"]},
        voice_message=_say(
            ctx,
            f"Su cita para {spoken_date(appointment.get('date'), 'es')} ha sido cancelada.",
            f"Your appointment for {appointment.get('date')} has been cancelled.",
        ),
        forward_to_client=True,
    )


def _schema(properties: Dict[str, str], required: List[str] | None = None) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {key: {"type": kind} for key, kind in properties.items()},
        "required": list(required or []),
    }


def default_tools() -> Dict[str, ToolDefinition]:
    """Built-in tool set. Missing booking details are asked for by the tools themselves,
    so their schemas only type-check what was supplied."""
    tools = [
        ToolDefinition("get_business_hours", "Get business operating hours", get_business_hours),
        ToolDefinition("get_business_info", "Get general business information", get_business_info),
        ToolDefinition("get_menu", "Get menu or services information", get_menu),
        ToolDefinition("get_location", "Get business location and directions", get_location),
        ToolDefinition(
            "check_availability",
            "Check availability for a reservation",
            check_availability,
            parameters=_schema({"date": "date", "time": "time", "guests": "integer"}),
        ),
        ToolDefinition(
            "create_reservation",
            "Create a new reservation",
            create_reservation,
            requires_confirmation=True,
            parameters=_schema(
                {"date": "date", "time": "time", "guests": "integer", "name": "string", "phone": "string"}
            ),
        ),
        ToolDefinition(
            "cancel_reservation",
            "Cancel an existing reservation",
            cancel_reservation,
            requires_confirmation=True,
            parameters=_schema({"reservation_id": "string", "phone": "string"}),
        ),
        ToolDefinition(
            "modify_reservation",
            "Modify an existing reservation",
            modify_reservation,
            requires_confirmation=True,
            parameters=_schema(
                {"reservation_id": "string", "new_date": "date", "new_time": "time", "new_guests": "integer"}
            ),
        ),
        ToolDefinition(
            "transfer_to_human",
            "Transfer the call to a human agent",
            transfer_to_human,
            requires_confirmation=True,
            parameters=_schema({"reason": "string"}),
        ),
        ToolDefinition(
            "create_appointment",
            "Create a new appointment",
            create_appointment,
            requires_confirmation=True,
            parameters=_schema(
                {"date": "date", "time": "time", "service": "string", "name": "string", "phone": "string"}
            ),
        ),
        ToolDefinition(
            "cancel_appointment",
            "Cancel an existing appointment",
            cancel_appointment,
            requires_confirmation=True,
            parameters=_schema({"appointment_id": "string", "phone": "string"}),
        ),
    ]
    return {tool.name: tool for tool in tools}


def available_tools() -> List[str]:
    return list(default_tools().keys())


def default_registry() -> ToolRegistry:
    return ToolRegistry(default_tools())
