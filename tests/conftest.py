"""Shared fixtures: a recording Bot Framework adapter and turn helpers."""
from typing import List

import pytest
from botbuilder.core import BotAdapter, MemoryStorage, TurnContext
from botbuilder.schema import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ResourceResponse,
)

from bot_backend.memory import ConversationMemoryStore

BOT_ID = "bot"


class RecordingAdapter(BotAdapter):
    """Keeps every outbound activity instead of sending it to a channel."""

    def __init__(self):
        super().__init__()
        self.sent: List[Activity] = []

    async def send_activities(self, context, activities):
        responses = []
        for activity in activities:
            self.sent.append(activity)
            responses.append(ResourceResponse(id=str(len(self.sent))))
        return responses

    async def update_activity(self, context, activity):
        raise NotImplementedError()

    async def delete_activity(self, context, reference):
        raise NotImplementedError()


def message_activity(text: str, conversation_id: str = "conv-1", user_id: str = "user-1") -> Activity:
    return Activity(
        type=ActivityTypes.message,
        text=text,
        channel_id="test",
        service_url="https://example.test",
        conversation=ConversationAccount(id=conversation_id),
        from_property=ChannelAccount(id=user_id),
        recipient=ChannelAccount(id=BOT_ID),
    )


def members_added_activity(member_ids: List[str], recipient_id: str = BOT_ID) -> Activity:
    return Activity(
        type=ActivityTypes.conversation_update,
        channel_id="test",
        service_url="https://example.test",
        conversation=ConversationAccount(id="conv-1"),
        from_property=ChannelAccount(id="user-1"),
        recipient=ChannelAccount(id=recipient_id),
        members_added=[ChannelAccount(id=m) for m in member_ids],
    )


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return ConversationMemoryStore(storage)


@pytest.fixture
def make_context(adapter):
    def _make(activity: Activity) -> TurnContext:
        return TurnContext(adapter, activity)
    return _make
