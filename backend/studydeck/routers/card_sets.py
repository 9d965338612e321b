import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from studydeck.db.sqlite import (
    create_card_set,
    delete_card_set,
    get_card_set,
    get_db,
    list_card_sets,
)
from studydeck.models.card_set import CardSet, CardSetCreate, CardSetList

router = APIRouter()


@router.post("/", response_model=CardSet, status_code=201)
async def create_set(
    body: CardSetCreate, db: aiosqlite.Connection = Depends(get_db)
):
    return await create_card_set(db, body.title)


@router.get("/", response_model=CardSetList)
async def list_sets(
    offset: int = 0, limit: int = 50, db: aiosqlite.Connection = Depends(get_db)
):
    items, total = await list_card_sets(db, offset, limit)
    return CardSetList(items=items, total=total)


@router.get("/{set_id}", response_model=CardSet)
async def get_set(set_id: str, db: aiosqlite.Connection = Depends(get_db)):
    card_set = await get_card_set(db, set_id)
    if not card_set:
        raise HTTPException(status_code=404, detail="Card set not found")
    return card_set


@router.delete("/{set_id}", status_code=204)
async def delete_set(set_id: str, db: aiosqlite.Connection = Depends(get_db)):
    # Review states for this set are left behind and pruned by the due-card queries
    deleted = await delete_card_set(db, set_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Card set not found")
