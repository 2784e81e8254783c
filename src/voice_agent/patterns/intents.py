"""Keyword tables for intent, sub-intent and entity extraction.

All patterns are written against normalized text (lowercase, no accents,
no punctuation) unless stated otherwise. Tables are keyed by locale and then
by category so a new language is a data change.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

INTENT_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "es": {
        "tool": [
            r"\b(reserv\w*|mesa)\b",
            r"\b(cita|citas|agendar|agenda|apartar)\b",
            r"\b(cancelar|cancela|cancelo|anular)\b",
            r"\b(cambiar|modificar|mover|reprogramar)\b",
            r"\b(disponibilidad|disponible|hay lugar|hay espacio)\b",
            r"\b(horario|horarios|abren|cierran|a que hora)\b",
            r"\b(menu|carta|platillos)\b",
            r"\b(direccion|ubicacion|ubicados|donde estan|como llego)\b",
        ],
        "rag": [
            r"\b(precio|precios|cuanto cuesta|cuanto cuestan|costo|costos|cuanto sale)\b",
            r"\b(servicio|servicios|ofrecen|manejan)\b",
            r"\b(tienen|hay) (estacionamiento|wifi|terraza|opciones|promociones)\b",
            r"\b(informacion|informes|detalles)\b",
            r"\b(aceptan|forma de pago|tarjeta|efectivo|politica|politicas)\b",
            r"\b(vegetariano|vegano|sin gluten|alergia|alergias|ingredientes)\b",
        ],
        "transfer": [
            r"\b(humano|persona|agente|operador|gerente|encargado|recepcionista)\b",
            r"\b(transferir|transfiere|transfiera|comunicar|comunicame|comuniqueme|pasame|paseme)\b",
            r"\bhablar con (alguien|una persona|un humano|el gerente)\b",
        ],
        "direct": [
            r"\b(hola|buenos dias|buenas tardes|buenas noches|buenas|que tal)\b",
            r"\b(adios|hasta luego|hasta pronto|chao|nos vemos)\b",
            r"\b(gracias|muchas gracias)\b",
            r"^(ok|vale|entendido|perfecto|de acuerdo|muy bien)$",
        ],
    },
    "en": {
        "tool": [
            r"\b(reservation|reserve|book|booking|table)\b",
            r"\b(appointment|schedule)\b",
            r"\b(cancel|cancellation)\b",
            r"\b(change|modify|move|reschedule)\b",
            r"\b(availability|available)\b",
            r"\b(hours|open|close|closing)\b",
            r"\b(menu|dishes)\b",
            r"\b(address|location|directions|where are you)\b",
        ],
        "rag": [
            r"\b(price|prices|how much|cost|costs)\b",
            r"\b(service|services|offer)\b",
            r"\bdo you have (parking|wifi|a terrace|options|promotions)\b",
            r"\b(information|details)\b",
            r"\b(accept|payment|credit card|cash|policy|policies)\b",
            r"\b(vegetarian|vegan|gluten free|allergy|allergies|ingredients)\b",
        ],
        "transfer": [
            r"\b(human|person|agent|operator|manager|representative|receptionist)\b",
            r"\b(transfer|connect me|put me through)\b",
            r"\b(speak|talk) (to|with) (someone|somebody)\b",
        ],
        "direct": [
            r"\b(hello|hi|hey|good morning|good afternoon|good evening)\b",
            r"\b(bye|goodbye|see you)\b",
            r"\b(thanks|thank you)\b",
            r"^(ok|okay|got it|perfect|alright|great)$",
        ],
    },
}

# Ties on score are resolved in this order.
INTENT_PRIORITY: Tuple[str, ...] = ("transfer", "tool", "rag", "direct")

# Ordered: the first rule whose patterns all match wins, so the specific
# actions (cancel, modify, check) come before the generic "create".
SUB_INTENT_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("reservation.cancel", (r"\b(cancel\w*|anular|anula)\b", r"\b(reserv\w*|mesa|booking|table)\b")),
    ("reservation.modify", (r"\b(cambiar|modificar|mover|reprogramar|change|modify|move|reschedule)\b", r"\b(reserv\w*|mesa|booking|table)\b")),
    ("appointment.cancel", (r"\b(cancel\w*|anular|anula)\b", r"\b(cita|citas|appointment)\b")),
    ("reservation.check", (r"\b(disponibilidad|disponible|hay lugar|hay espacio|availability|available)\b",)),
    ("appointment.create", (r"\b(cita|citas|agendar|appointment|schedule)\b",)),
    ("reservation.create", (r"\b(reserv\w*|mesa|apartar|book|booking|table)\b",)),
    ("info.hours", (r"\b(horario|horarios|abren|cierran|a que hora|hours|open|close|closing)\b",)),
    ("info.location", (r"\b(direccion|ubicacion|ubicados|donde estan|como llego|address|location|directions|where are you)\b",)),
    ("info.menu", (r"\b(menu|carta|platillos|dishes)\b",)),
    ("info.prices", (r"\b(precio|precios|cuanto cuesta|cuanto cuestan|costo|price|prices|how much|cost)\b",)),
    ("transfer.human", (r"\b(humano|persona|agente|operador|gerente|encargado|human|person|agent|operator|manager|representative)\b",)),
    ("greeting", (r"\b(hola|buenos dias|buenas tardes|buenas noches|buenas|hello|hi|hey|good morning|good afternoon|good evening)\b",)),
    ("farewell", (r"\b(adios|hasta luego|hasta pronto|chao|nos vemos|bye|goodbye|see you)\b",)),
    ("acknowledgment", (r"^(ok|okay|vale|bien|entendido|claro|perfecto|de acuerdo|muy bien|gracias|muchas gracias|thanks|thank you|got it|alright|great)$",)),
]

SUB_INTENT_TOOLS: Dict[str, str] = {
    "reservation.create": "create_reservation",
    "reservation.cancel": "cancel_reservation",
    "reservation.modify": "modify_reservation",
    "reservation.check": "check_availability",
    "appointment.create": "create_appointment",
    "appointment.cancel": "cancel_appointment",
    "info.hours": "get_business_hours",
    "info.location": "get_location",
    "info.menu": "get_menu",
    "transfer.human": "transfer_to_human",
}

TRANSFER_TOOL = "transfer_to_human"

# Entity patterns run on lowercased, accent-stripped text that still has
# its punctuation, so "20:30" and "12/05" survive.
MONTHS: Dict[str, int] = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}

# match key -> spoken form stored as the date entity
RELATIVE_DAYS: Dict[str, str] = {
    "pasado manana": "pasado mañana",
    "manana": "mañana",
    "hoy": "hoy",
    "tomorrow": "tomorrow",
    "today": "today",
}

WEEKDAYS: Tuple[str, ...] = (
    "lunes", "martes", "miercoles", "jueves", "viernes", "sabado", "domingo",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)

NUMBER_WORDS: Dict[str, int] = {
    "un": 1, "uno": 1, "una": 1, "dos": 2, "tres": 3, "cuatro": 4, "cinco": 5,
    "seis": 6, "siete": 7, "ocho": 8, "nueve": 9, "diez": 10, "once": 11, "doce": 12,
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7,
    "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}

GUEST_NOUNS = r"(personas|persona|gente|comensales|adultos|people|persons|guests|adults)"

NAME_TRIGGERS = r"(?:me llamo|mi nombre es|a nombre de|my name is|under the name|name is)"

NAME_STOPWORDS = frozenset({
    "y", "e", "para", "por", "que", "de", "con", "and", "for", "to", "with", "please", "porfavor",
})
