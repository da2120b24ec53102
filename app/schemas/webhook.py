from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ClerkEmailAddress(BaseModel):
    email_address: str


class ClerkUserData(BaseModel):
    """`data` of a user.created / user.updated event."""

    id: str
    email_addresses: List[ClerkEmailAddress] = Field(min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def email(self) -> str:
        return self.email_addresses[0].email_address


class ClerkDeletedObject(BaseModel):
    """`data` of a user.deleted event."""

    id: str
    deleted: bool = True


class ClerkWebhookEvent(BaseModel):
    type: str
    data: Dict[str, Any]
