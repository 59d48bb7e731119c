"""
WhatsApp Business webhook payload schemas.

Only the fields the ingestion path reads are modelled; everything else in
the provider's payload is ignored. Entries, changes and messages are
validated one at a time, so a malformed item only drops itself.
"""
import logging
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

WHATSAPP_OBJECT = "whatsapp_business_account"


class InboundMessage(BaseModel):
    """A text message handed to ingestion."""
    message_id: str
    group_id: str
    raw_text: str


class WhatsAppText(BaseModel):
    body: str = ""


class WhatsAppMessage(BaseModel):
    id: str
    sender: str = Field(alias="from")  # In groups this is the group id
    type: str
    text: Optional[WhatsAppText] = None
    
    model_config = ConfigDict(populate_by_name=True)


class WhatsAppValue(BaseModel):
    messages: list[Any] = Field(default_factory=list)


class WhatsAppChange(BaseModel):
    value: WhatsAppValue = Field(default_factory=WhatsAppValue)


class WhatsAppEntry(BaseModel):
    changes: list[Any] = Field(default_factory=list)


class WhatsAppWebhookPayload(BaseModel):
    object: str
    entry: list[Any] = Field(default_factory=list)

    def text_messages(self) -> list[InboundMessage]:
        """First message of every change, kept only when it is non-empty text."""
        if self.object != WHATSAPP_OBJECT:
            return []
        
        inbound = []
        for raw_entry in self.entry:
            entry = _validate_item(WhatsAppEntry, raw_entry, "entry")
            if entry is None:
                continue
            for raw_change in entry.changes:
                change = _validate_item(WhatsAppChange, raw_change, "change")
                if change is None or not change.value.messages:
                    continue
                message = _validate_item(WhatsAppMessage, change.value.messages[0], "message")
                if message is None:
                    continue
                if message.type != "text" or not message.text or not message.text.body.strip():
                    continue
                inbound.append(
                    InboundMessage(
                        message_id=message.id,
                        group_id=message.sender,
                        raw_text=message.text.body,
                    )
                )
        return inbound


def _validate_item(model: type[BaseModel], data: Any, kind: str) -> Optional[BaseModel]:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Skipping malformed webhook {kind}: {e}")
        return None
