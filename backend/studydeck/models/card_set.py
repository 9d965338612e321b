from pydantic import BaseModel


class CardSetCreate(BaseModel):
    title: str


class CardSet(BaseModel):
    id: str
    title: str
    created_at: str
    updated_at: str


class CardSetList(BaseModel):
    items: list[CardSet]
    total: int
