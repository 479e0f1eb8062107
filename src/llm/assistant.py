"""
Clinical writing assistant.

Two modes over free text: summarizing a consultation note and suggesting a
differential for a set of symptoms. The assistant never raises: any failure
(missing API key, network, API error) yields a fixed fallback message so the
calling screen can always show something.
"""

from __future__ import annotations

import logging
from enum import Enum

from .client import LLMClient, get_client

logger = logging.getLogger(__name__)


class AssistMode(str, Enum):
    SUMMARY = "summary"
    SYMPTOMS = "symptoms"


SYSTEM_PROMPT = "Eres un asistente pediátrico experto que apoya al médico tratante."

PROMPTS: dict[AssistMode, str] = {
    AssistMode.SUMMARY: (
        "Resume la siguiente nota clínica en 3 puntos clave:\n"
        "1. Diagnóstico/Hallazgos principales.\n"
        "2. Tratamiento sugerido.\n"
        "3. Recomendaciones para los padres.\n"
        "Nota: {text}"
    ),
    AssistMode.SYMPTOMS: (
        "Basado en estos síntomas pediátricos, sugiere posibles diagnósticos "
        "diferenciales y banderas rojas (urgencias) que el doctor debe "
        "considerar. Síntomas: {text}"
    ),
}

TEMPERATURES: dict[AssistMode, float] = {
    AssistMode.SUMMARY: 0.7,
    AssistMode.SYMPTOMS: 0.3,
}

FALLBACKS: dict[AssistMode, str] = {
    AssistMode.SUMMARY: "No se pudo generar el resumen clínico en este momento.",
    AssistMode.SYMPTOMS: "Error al analizar síntomas.",
}


class ClinicalAssistant:
    """Mode-based front end over the LLM client."""

    def __init__(self, client: LLMClient | None = None):
        self._client = client

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = get_client()
        return self._client

    def run(self, text: str, mode: AssistMode | str = AssistMode.SUMMARY) -> str:
        """Return the model's answer for `text`, or the mode's fallback message."""
        mode = AssistMode(mode)
        prompt = PROMPTS[mode].format(text=text)
        try:
            return self.client.generate(
                prompt,
                system=SYSTEM_PROMPT,
                temperature=TEMPERATURES[mode],
            )
        except Exception as e:
            logger.warning("Assistant %s request failed: %s", mode.value, e)
            return FALLBACKS[mode]

    def summarize_note(self, notes: str) -> str:
        return self.run(notes, AssistMode.SUMMARY)

    def analyze_symptoms(self, symptoms: str) -> str:
        return self.run(symptoms, AssistMode.SYMPTOMS)
