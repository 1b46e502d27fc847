# bot_backend/memory.py
# -----------------------------------------------------------------------------
# Memoria de conversación sobre el Storage del Bot Framework
# - Clave explícita por conversación: "<namespace>/<conversation_id>".
# - get_or_create crea el registro vacío de forma explícita (sin lazy-init oculto).
# - Cada turno trabaja con su propio ConversationMemory (nada compartido entre
#   turnos); lo no guardado se descarta con él. Dos turnos simultáneos en la
#   misma conversación: gana la última escritura.
# -----------------------------------------------------------------------------

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from botbuilder.core import MemoryStorage, Storage

from .errors import StorageError

logger = logging.getLogger("echo_bot.memory")


@dataclass
class ConversationMemory:
    conversation_id: str
    history: List[str] = field(default_factory=list)
    # entradas ya persistidas; lo que sigue es pendiente del turno
    saved_len: int = field(default=0, repr=False, compare=False)

    @property
    def pending(self) -> bool:
        return len(self.history) != self.saved_len

    def to_record(self) -> Dict[str, Any]:
        return {"conversation_id": self.conversation_id, "history": list(self.history)}

    @classmethod
    def from_record(cls, conversation_id: str, record: Dict[str, Any]) -> "ConversationMemory":
        history = record.get("history") or []
        if not isinstance(history, list):
            raise StorageError(f"registro inválido para {conversation_id}: history no es lista", conversation_id)
        return cls(conversation_id=conversation_id, history=[str(h) for h in history], saved_len=len(history))


class ConversationMemoryStore:
    """Historial de utterances por conversación, persistido en un Storage de botbuilder."""

    def __init__(self, storage: Optional[Storage] = None, namespace: str = "conversation"):
        self.storage = storage if storage is not None else MemoryStorage()
        self.namespace = namespace

    def _key(self, conversation_id: str) -> str:
        if not conversation_id or not conversation_id.strip():
            raise StorageError("conversation_id vacío: no se puede indexar la memoria")
        return f"{self.namespace}/{conversation_id}"

    async def load(self, conversation_id: str) -> Optional[ConversationMemory]:
        """Lee el registro persistido. None si no existe."""
        key = self._key(conversation_id)
        try:
            items = await self.storage.read([key])
        except Exception as e:
            raise StorageError(f"no se pudo leer {key}: {e}", conversation_id) from e
        record = items.get(key) if items else None
        if record is None:
            return None
        return ConversationMemory.from_record(conversation_id, record)

    async def get_or_create(self, conversation_id: str) -> ConversationMemory:
        memory = await self.load(conversation_id)
        if memory is None:
            logger.debug("memoria nueva para conversación %s", conversation_id)
            memory = ConversationMemory(conversation_id=conversation_id)
        return memory

    def append(self, memory: ConversationMemory, role: str, text: str) -> None:
        memory.history.append(f"{role}: {text}")

    async def save(self, memory: ConversationMemory) -> None:
        if not memory.pending:
            return
        key = self._key(memory.conversation_id)
        try:
            await self.storage.write({key: memory.to_record()})
        except Exception as e:
            self.discard(memory)
            raise StorageError(f"no se pudo escribir {key}: {e}", memory.conversation_id) from e
        memory.saved_len = len(memory.history)
        logger.debug("memoria guardada: %s (%d entradas)", key, len(memory.history))

    def discard(self, memory: ConversationMemory) -> None:
        """Vuelve la memoria al último estado persistido (quita lo pendiente)."""
        del memory.history[memory.saved_len:]
