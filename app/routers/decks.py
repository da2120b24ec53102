from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.card import Card
from app.models.deck import Deck
from app.schemas.deck import DeckCreate, DeckResponse, DeckUpdate

router = APIRouter()


async def get_owned_deck(deck_id: int, user_id: str, db: AsyncSession) -> Deck:
    res = await db.execute(select(Deck).where(Deck.id == deck_id))
    deck = res.scalars().first()
    if not deck or deck.user_id != user_id:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


async def count_cards(deck_id: int, db: AsyncSession) -> int:
    res = await db.execute(select(func.count(Card.id)).where(Card.deck_id == deck_id))
    return res.scalar_one()


def to_response(deck: Deck, cards_count: int) -> DeckResponse:
    return DeckResponse(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        created_at=deck.created_at,
        updated_at=deck.updated_at,
        cards_count=cards_count,
    )


@router.get("/", response_model=List[DeckResponse])
async def get_user_decks(current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    q = (
        select(Deck, func.count(Card.id))
        .outerjoin(Card, Card.deck_id == Deck.id)
        .where(Deck.user_id == current_user.id)
        .group_by(Deck.id)
        .order_by(Deck.created_at.desc(), Deck.id.desc())
    )
    result = await db.execute(q)
    return [to_response(deck, cards_count) for deck, cards_count in result.all()]


@router.post("/", response_model=DeckResponse, status_code=201)
async def create_deck(deck_in: DeckCreate, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deck = Deck(user_id=current_user.id, name=deck_in.name, description=deck_in.description)
    db.add(deck)
    await db.commit()
    await db.refresh(deck)
    return to_response(deck, 0)


@router.get("/{deck_id}", response_model=DeckResponse)
async def get_deck(deck_id: int, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deck = await get_owned_deck(deck_id, current_user.id, db)
    return to_response(deck, await count_cards(deck.id, db))


@router.put("/{deck_id}", response_model=DeckResponse)
async def update_deck(deck_id: int, updated_data: DeckUpdate, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deck = await get_owned_deck(deck_id, current_user.id, db)
    if updated_data.name is not None:
        deck.name = updated_data.name
    if "description" in updated_data.model_fields_set:
        deck.description = updated_data.description
    deck.updated_at = datetime.now(timezone.utc)
    db.add(deck)
    await db.commit()
    await db.refresh(deck)
    return to_response(deck, await count_cards(deck.id, db))


@router.delete("/{deck_id}")
async def delete_deck(deck_id: int, current_user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await get_owned_deck(deck_id, current_user.id, db)
    # cards are removed by the ON DELETE CASCADE foreign key
    await db.execute(delete(Deck).where(Deck.id == deck_id))
    await db.commit()
    return {"detail": "Deck deleted"}
