"""Telegram webhook mappings."""

from core.domain.enums import AggregateType

from ..events import Event, ExternalEvent
from .payload import safe_get, safe_str


def map_webhook_message(event: ExternalEvent) -> list[Event]:
    payload = event.payload
    chat_id = safe_str(payload, "message.chat.id")
    message_id = safe_str(payload, "message.message_id")
    return [
        Event(
            event_type="external.telegram.message_received",
            aggregate_id=f"{chat_id}:{message_id}" if chat_id else message_id,
            aggregate_type=AggregateType.MESSAGE,
            payload={
                "update_id": safe_get(payload, "update_id"),
                "message_id": message_id,
                "chat_id": chat_id,
                "user_id": safe_str(payload, "message.from.id"),
                "username": safe_str(payload, "message.from.username"),
                "text": safe_str(payload, "message.text"),
            },
        )
    ]


MAPPINGS = {
    "telegram.webhook.message": map_webhook_message,
}
