"""Yes/no vocabulary used by the confirmation interpreter.

Patterns match normalized text (see `utils.text.normalize_text`).
"""
from __future__ import annotations

from typing import Dict, List

CONFIRMATION_PATTERNS: Dict[str, List[str]] = {
    "positive": [
        # es
        r"^(si|sip|aja|claro|correcto|exacto|exactamente)$",
        r"^(afirmativo|dale|va|esta bien|ok|okay|okey|vale)$",
        r"^(por supuesto|desde luego|como no|adelante)$",
        r"^(confirmo|confirmado|confirmada|acepto|de acuerdo)$",
        r"^(asi es|eso es|es correcto)$",
        r"\b(si( por favor)?|confirmo|confirma|acepto)\b",
        r"\b(esta bien|de acuerdo|perfecto|excelente)\b",
        # en
        r"^(yes|yeah|yep|yup|sure|okay|ok|alright|right)$",
        r"^(absolutely|definitely|certainly|of course)$",
        r"^(confirm|confirmed|i confirm|go ahead|proceed)$",
        r"\b(yes( please)?|confirm|agree)\b",
    ],
    "negative": [
        # es
        r"^(no|nel|nop|nope|negativo|para nada)$",
        r"^(nunca|jamas|ni de chiste|ni loco)$",
        r"^(mejor no|no gracias|no quiero)$",
        r"^(cancelar|cancela|cancelo|anular|anula)$",
        r"\bno\b(?! se\b| estoy segur)",
        r"\b(no quiero|no deseo)\b",
        r"\b(cancelar|cancela|cancelo|anular|anula|dejalo|dejarlo)\b",
        # en
        r"^(no|nope|nah|negative|not really)$",
        r"^(never|no way|forget it)$",
        r"^(cancel|dont|do not|stop)$",
        r"\b(dont want|cancel)\b",
    ],
    # Hesitation: the caller is answering, just not yet deciding.
    "hesitation": [
        r"^(no se|no estoy seguro|no estoy segura|i dont know|not sure|im not sure)$",
        r"^(tal vez|quizas|quiza|maybe|perhaps)$",
        r"^(dejame pensar|deja pienso|let me think|espera|wait|un momento|hold on)$",
        r"\b(depende|depends|it depends)\b",
    ],
    # Questions back to the assistant.
    "question": [
        r"^(que|what|huh|como|how)\b",
    ],
}

FUZZY_TERMS: Dict[str, List[str]] = {
    "positive": [
        "si", "yes", "ok", "okay", "vale", "bien", "claro", "confirmo",
        "acepto", "adelante", "procede", "hazlo", "do it", "go ahead",
    ],
    "negative": [
        "no", "cancel", "cancelar", "parar", "stop", "detener", "anular",
        "olvida", "forget", "dejalo", "leave", "quit",
    ],
}

CONFIRMATION_MESSAGES: Dict[str, Dict[str, str]] = {
    "empty": {
        "es": "No escuché bien. ¿Puede confirmar por favor?",
        "en": "I didn't catch that. Could you please confirm?",
    },
    "unclear": {
        "es": "Necesito un sí o no claro. ¿Desea proceder?",
        "en": "I need a clear yes or no. Do you want to proceed?",
    },
    "unknown": {
        "es": "No estoy seguro si eso es un sí o un no. ¿Puede confirmar o cancelar por favor?",
        "en": "I'm not sure if that's a yes or no. Could you please confirm or cancel?",
    },
    "clarify_prefix": {
        "es": "Necesito una respuesta clara. ",
        "en": "I need a clear response. ",
    },
    "clarify_default": {
        "es": "Lo siento, no entendí. Por favor diga sí para confirmar o no para cancelar.",
        "en": "I'm sorry, I didn't understand. Please say yes to confirm or no to cancel.",
    },
    "parse_error": {
        "es": "No pude entender su respuesta. La acción ha sido cancelada.",
        "en": "I couldn't understand your response. The action has been cancelled.",
    },
    "too_many_attempts": {
        "es": "No logré confirmar su respuesta, así que no realizaré la acción. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "I couldn't confirm your answer, so I won't go ahead with that. Is there anything else I can help with?",
    },
}

DENIAL_MESSAGES: Dict[str, Dict[str, str]] = {
    "create_reservation": {
        "es": "Entendido, la reservación no se ha creado. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, the reservation was not created. Is there anything else I can help with?",
    },
    "cancel_reservation": {
        "es": "Entendido, su reservación no será cancelada. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, your reservation will not be cancelled. Is there anything else I can help with?",
    },
    "modify_reservation": {
        "es": "Entendido, no se harán cambios a su reservación. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, no changes will be made. Is there anything else I can help with?",
    },
    "create_appointment": {
        "es": "Entendido, la cita no se ha agendado. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, the appointment was not scheduled. Is there anything else I can help with?",
    },
    "cancel_appointment": {
        "es": "Entendido, su cita no será cancelada. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, your appointment will not be cancelled. Is there anything else I can help with?",
    },
    "transfer_to_human": {
        "es": "Entendido, permanecerá conmigo. ¿En qué más puedo ayudarle?",
        "en": "Understood, you'll stay with me. How else can I help you?",
    },
    "_default": {
        "es": "Entendido, la acción ha sido cancelada. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Understood, the action has been cancelled. Is there anything else I can help with?",
    },
}

CONFIRMATION_PROMPTS: Dict[str, Dict[str, str]] = {
    "create_reservation": {
        "es": "¿Confirma la reservación para {guests} personas {when} a las {time}?",
        "en": "Do you confirm the reservation for {guests} guests {when} at {time}?",
    },
    "cancel_reservation": {
        "es": "¿Está seguro que desea cancelar su reservación?",
        "en": "Are you sure you want to cancel your reservation?",
    },
    "modify_reservation": {
        "es": "¿Confirma los cambios a su reservación?",
        "en": "Do you confirm the changes to your reservation?",
    },
    "create_appointment": {
        "es": "¿Confirma la cita para {when} a las {time}?",
        "en": "Do you confirm the appointment for {date} at {time}?",
    },
    "cancel_appointment": {
        "es": "¿Está seguro que desea cancelar su cita?",
        "en": "Are you sure you want to cancel your appointment?",
    },
    "transfer_to_human": {
        "es": "¿Desea que lo transfiera con un agente humano?",
        "en": "Would you like me to transfer you to a human agent?",
    },
    "_default": {
        "es": "¿Desea que proceda con esta acción?",
        "en": "Do you want me to proceed with this action?",
    },
}

# Used when a detailed prompt still has unfilled placeholders.
SHORT_CONFIRMATION_PROMPTS: Dict[str, Dict[str, str]] = {
    "create_reservation": {
        "es": "¿Confirma la reservación?",
        "en": "Do you confirm the reservation?",
    },
    "create_appointment": {
        "es": "¿Confirma la cita?",
        "en": "Do you confirm the appointment?",
    },
    "_default": CONFIRMATION_PROMPTS["_default"],
}
