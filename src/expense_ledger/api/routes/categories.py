"""Category endpoints."""

from fastapi import APIRouter, status

from expense_ledger.core.deps import Ledger
from expense_ledger.models.category import Category
from expense_ledger.schemas.account import AccountRename, CategoryCreate, CategoryResponse

router = APIRouter()


@router.get("/", response_model=list[CategoryResponse])
async def get_categories(ledger: Ledger) -> list[Category]:
    return await ledger.current_categories()


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(category: CategoryCreate, ledger: Ledger) -> Category:
    return await ledger.create_category(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def rename_category(category_id: int, rename: AccountRename, ledger: Ledger) -> Category:
    """Rename a category and the transactions filed under it."""
    return await ledger.rename_category(category_id, rename.name)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: int, ledger: Ledger) -> None:
    await ledger.delete_category(category_id)
