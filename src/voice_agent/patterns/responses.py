"""Spoken phrases used by the response synthesizer and the tool layer."""
from __future__ import annotations

from typing import Dict, List

DIRECT_TEMPLATES: Dict[str, Dict[str, List[str]]] = {
    "greeting": {
        "es": [
            "¡Hola! ¿En qué puedo ayudarle hoy?",
            "Buenos días, ¿cómo puedo asistirle?",
            "Buenas tardes, ¿en qué le puedo servir?",
        ],
        "en": [
            "Hello! How can I help you today?",
            "Hi there! What can I do for you?",
            "Good day! How may I assist you?",
        ],
    },
    "farewell": {
        "es": [
            "¡Gracias por llamar! Que tenga un excelente día.",
            "Fue un placer atenderle. ¡Hasta pronto!",
            "Gracias por comunicarse. ¡Que le vaya muy bien!",
        ],
        "en": [
            "Thank you for calling! Have a great day!",
            "It was a pleasure helping you. Goodbye!",
            "Thanks for reaching out. Take care!",
        ],
    },
    "acknowledgment": {
        "es": ["Entendido.", "Perfecto.", "De acuerdo.", "Muy bien."],
        "en": ["Got it.", "Perfect.", "Understood.", "Alright."],
    },
    "not_understood": {
        "es": [
            "Lo siento, no entendí bien. ¿Podría repetir por favor?",
            "Disculpe, no comprendí. ¿Me lo puede decir de otra forma?",
            "Perdón, no escuché bien. ¿Puede repetirlo?",
        ],
        "en": [
            "Sorry, I didn't quite catch that. Could you please repeat?",
            "I'm sorry, I didn't understand. Could you say that differently?",
            "Pardon me, I missed that. Could you repeat please?",
        ],
    },
    "fallback": {
        "es": [
            "¿Hay algo más en lo que pueda ayudarle?",
            "¿Necesita algo más?",
            "¿Puedo asistirle con algo adicional?",
        ],
        "en": [
            "Is there anything else I can help you with?",
            "Do you need anything else?",
            "Can I assist you with anything additional?",
        ],
    },
}

# Direct sub-intents answered from templates; anything else goes to the LLM.
TEMPLATE_SUB_INTENTS = ("greeting", "farewell", "acknowledgment")

FIXED_PHRASES: Dict[str, Dict[str, str]] = {
    "rag_unavailable": {
        "es": "Lo siento, no tengo esa información disponible en este momento. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "I'm sorry, I don't have that information available right now. Is there something else I can help you with?",
    },
    "tool_failed": {
        "es": "Lo siento, no pude completar esa acción. ¿Desea intentar de nuevo?",
        "en": "I'm sorry, I wasn't able to complete that action. Would you like to try again?",
    },
    "anything_else": {
        "es": "¿Hay algo más en lo que pueda ayudarle?",
        "en": "Is there anything else I can help you with?",
    },
    "transfer": {
        "es": "Lo voy a transferir con un agente humano. Por favor espere mientras lo conecto.",
        "en": "I'll transfer you to a human agent. Please hold while I connect you.",
    },
    "denied_default": {
        "es": "Entendido, lo he cancelado. ¿Hay algo más en lo que pueda ayudarle?",
        "en": "Alright, I've cancelled that. Is there anything else I can help with?",
    },
    "apology": {
        "es": "Lo siento, tengo problemas para responder en este momento. Por favor intente de nuevo.",
        "en": "I'm sorry, I'm having trouble responding right now. Please try again.",
    },
    "no_action": {
        "es": "No estoy seguro de qué acción realizar.",
        "en": "I'm not sure what action to perform.",
    },
    "tool_not_available": {
        "es": "Esa función no está disponible.",
        "en": "That function is not available.",
    },
    "tool_error": {
        "es": "Hubo un error al procesar su solicitud. Por favor intente de nuevo.",
        "en": "There was an error processing your request. Please try again.",
    },
    "tool_timeout": {
        "es": "Lo siento, la operación está tardando demasiado. Por favor intente de nuevo en un momento.",
        "en": "I'm sorry, that is taking too long. Please try again in a moment.",
    },
    "invalid_params": {
        "es": "Me faltan algunos datos para completar esa acción. ¿Me los puede repetir?",
        "en": "I'm missing some details to complete that action. Could you repeat them?",
    },
}

# Matched against normalized text.
FAREWELL_PATTERNS: List[str] = [
    r"\bhasta (luego|pronto)\b",
    r"\bque (le )?vaya (muy )?bien\b",
    r"\bque tenga un (excelente|buen) dia\b",
    r"\bgoodbye\b",
    r"\btake care\b",
    r"\bhave a (great|nice|good) day\b",
]

SPOKEN_DIGITS: Dict[str, List[str]] = {
    "es": ["cero", "uno", "dos", "tres", "cuatro", "cinco", "seis", "siete", "ocho", "nueve"],
    "en": ["zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine"],
}

LANGUAGE_NAMES: Dict[str, str] = {"es": "Spanish", "en": "English"}

VOICE_RESPONSE_SYSTEM_PROMPT = """You are a helpful voice assistant for a business. Generate natural, conversational responses optimized for voice.

Guidelines:
1. Keep responses SHORT (2-3 sentences max unless explaining something complex)
2. Use natural speech patterns - how people actually talk
3. Avoid abbreviations (say "information" not "info", spell out numbers when small)
4. Don't use special characters, emojis, or formatting
5. Be warm and professional
6. If you don't know something, say so clearly
7. End with a question or offer to help further when appropriate

IMPORTANT:
- Do NOT include any markup, asterisks, or formatting
- The response will be read aloud by text-to-speech"""

RAG_CONTEXT_INSTRUCTIONS = """You have the following business information to answer the user's question:
---
{context}
---

Use ONLY the information provided above to answer. Do not use outside knowledge.
If the information doesn't fully answer the question, say so."""

DIRECT_INSTRUCTIONS = "Generate a brief, friendly response to the user's message."

UNKNOWN_INSTRUCTIONS = (
    "The user's intent is unclear. Generate a helpful response that either answers their "
    "question if you can understand it, or politely asks for clarification."
)
