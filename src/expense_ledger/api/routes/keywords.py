"""Keyword endpoints."""

from fastapi import APIRouter, status

from expense_ledger.core.deps import Ledger
from expense_ledger.models.keyword import Keyword
from expense_ledger.schemas.keyword import KeywordCreate, KeywordResponse

router = APIRouter()


@router.get("/", response_model=list[KeywordResponse])
async def get_keywords(ledger: Ledger) -> list[Keyword]:
    return await ledger.current_keywords()


@router.post("/", response_model=KeywordResponse, status_code=status.HTTP_201_CREATED)
async def create_keyword(keyword: KeywordCreate, ledger: Ledger) -> Keyword:
    return await ledger.create_keyword(keyword)


@router.patch("/{keyword_id}", response_model=KeywordResponse)
async def rename_keyword(keyword_id: int, rename: KeywordCreate, ledger: Ledger) -> Keyword:
    return await ledger.rename_keyword(keyword_id, rename.name)


@router.delete("/{keyword_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_keyword(keyword_id: int, ledger: Ledger) -> None:
    """Delete a keyword, untagging the transactions that carry it."""
    await ledger.delete_keyword(keyword_id)
