from typing import Optional

from pydantic import BaseModel, ConfigDict


class CardCreate(BaseModel):
    front: str
    back: str


class CardUpdate(BaseModel):
    front: Optional[str] = None
    back: Optional[str] = None


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deck_id: int
    front: str
    back: str
