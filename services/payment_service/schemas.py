from typing import Optional

from pydantic import BaseModel


class ConfirmResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool
    message: Optional[str] = None
