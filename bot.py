# bot.py — Echo bot: historial por conversación + completions
import logging
from typing import List, Optional

from botbuilder.core import ActivityHandler, MessageFactory, TurnContext
from botbuilder.schema import ChannelAccount

from bot_backend.memory import ConversationMemoryStore
from bot_backend.prompts import BOT_ROLE, USER_ROLE, new_request

log = logging.getLogger("echo_bot.bot")

WELCOME_TEXT = "Hello and welcome!"


def _conversation_id(turn_context: TurnContext) -> Optional[str]:
    conv = getattr(turn_context.activity, "conversation", None)
    return getattr(conv, "id", None) if conv else None


class EchoBot(ActivityHandler):
    # misma idea que BotState: lo cargado en el turno vive en turn_state
    MEMORY_STATE_KEY = "ConversationMemory"

    def __init__(self, memory: ConversationMemoryStore, completion_client):
        self.memory = memory
        self.completion_client = completion_client

    async def on_turn(self, turn_context: TurnContext):
        await super().on_turn(turn_context)

        # guarda lo que haya quedado pendiente tras el turno completo
        memory = turn_context.turn_state.get(self.MEMORY_STATE_KEY)
        if memory is not None:
            await self.memory.save(memory)

    async def on_message_activity(self, turn_context: TurnContext):
        text = turn_context.activity.text or ""
        conv_id = _conversation_id(turn_context)

        memory = await self.memory.get_or_create(conv_id)
        turn_context.turn_state[self.MEMORY_STATE_KEY] = memory
        request = new_request(memory.history, text)
        log.debug("turno conv=%s history=%d", conv_id, len(memory.history))

        # único punto de espera: nada se toca en memoria hasta tener la respuesta
        reply_text = await self.completion_client.complete(request)

        self.memory.append(memory, USER_ROLE, text)
        self.memory.append(memory, BOT_ROLE, reply_text)
        await self.memory.save(memory)

        await turn_context.send_activity(MessageFactory.text(reply_text, reply_text))

    async def on_members_added_activity(self, members_added: List[ChannelAccount], turn_context: TurnContext):
        for member in members_added:
            if member.id != turn_context.activity.recipient.id:
                await turn_context.send_activity(MessageFactory.text(WELCOME_TEXT, WELCOME_TEXT))
