# bot_backend/errors.py
from typing import Optional


class BotBackendError(Exception):
    """Base de los errores que abortan un turno."""


class StorageError(BotBackendError):
    """El storage de estado no pudo leer/escribir la memoria de la conversación."""

    def __init__(self, message: str, conversation_id: Optional[str] = None):
        super().__init__(message)
        self.conversation_id = conversation_id


class CompletionServiceError(BotBackendError):
    """
    Fallo del servicio de completions.
    kind: "timeout" | "auth" | "rate_limit" | "service" | "malformed"
    """

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"[{self.kind} {self.status_code}] {base}"
        return f"[{self.kind}] {base}"
