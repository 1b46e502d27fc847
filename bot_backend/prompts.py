# bot_backend/prompts.py
from dataclasses import dataclass
from typing import List

# Política fija de generación (no se ajusta por turno)
MAX_OUTPUT_TOKENS = 2000
TEMPERATURE = 0.2
TOP_P = 0.5

USER_ROLE = "User"
BOT_ROLE = "Bot"


@dataclass(frozen=True)
class CompletionRequest:
    prompt: str
    max_output_tokens: int = MAX_OUTPUT_TOKENS
    temperature: float = TEMPERATURE
    top_p: float = TOP_P


def build_prompt(history: List[str], user_input: str) -> str:
    """
    Historial (una línea por entrada, orden cronológico) + input nuevo al final.
    Sin historial el prompt es exactamente el input.
    """
    return "\n".join([*history, user_input])


def new_request(history: List[str], user_input: str) -> CompletionRequest:
    return CompletionRequest(prompt=build_prompt(history, user_input))
