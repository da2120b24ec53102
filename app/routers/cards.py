from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.card import Card
from app.models.deck import Deck
from app.routers.decks import get_owned_deck
from app.schemas.card import CardCreate, CardResponse, CardUpdate

router = APIRouter()


async def get_owned_card(card_id: int, user_id: str, db: AsyncSession) -> Card:
    q = select(Card).join(Deck, Card.deck_id == Deck.id).where(Card.id == card_id, Deck.user_id == user_id)
    res = await db.execute(q)
    card = res.scalars().first()
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return card


@router.get("/deck/{deck_id}", response_model=List[CardResponse])
async def get_cards_by_deck(deck_id: int, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await get_owned_deck(deck_id, current_user.id, db)
    result = await db.execute(select(Card).where(Card.deck_id == deck_id).order_by(Card.id))
    return result.scalars().all()


@router.post("/deck/{deck_id}", response_model=CardResponse, status_code=201)
async def create_card(deck_id: int, card_in: CardCreate, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await get_owned_deck(deck_id, current_user.id, db)
    card = Card(deck_id=deck_id, front=card_in.front, back=card_in.back)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


@router.put("/{card_id}", response_model=CardResponse)
async def update_card(card_id: int, updated_data: CardUpdate, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    card = await get_owned_card(card_id, current_user.id, db)
    if updated_data.front is not None:
        card.front = updated_data.front
    if updated_data.back is not None:
        card.back = updated_data.back
    card.updated_at = datetime.now(timezone.utc)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


@router.delete("/{card_id}")
async def delete_card(card_id: int, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await get_owned_card(card_id, current_user.id, db)
    await db.execute(delete(Card).where(Card.id == card_id))
    await db.commit()
    return {"detail": "Card deleted"}
