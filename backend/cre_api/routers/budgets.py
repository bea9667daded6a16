"""Property Budgets API (asset management)."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List, Optional
from uuid import UUID
import logging

from cre_api.database import get_db
from cre_api.models import PropertyBudget, BudgetLineItem, MasterProperty, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas.asset import BudgetCreate, BudgetUpdate, BudgetLineItemIn

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/budgets", tags=["Budgets"])


def _add_line_items(db: AsyncSession, budget_id: UUID, line_items: List[BudgetLineItemIn]) -> float:
    """Add line items; returns their budgeted total."""
    total = 0.0
    for item in line_items:
        db.add(BudgetLineItem(budget_id=budget_id, **item.model_dump()))
        total += item.budgeted_amount or 0
    return total


async def _budget_with_items(db: AsyncSession, budget: PropertyBudget) -> dict:
    result = await db.execute(
        select(BudgetLineItem).where(BudgetLineItem.budget_id == budget.id)
    )
    data = budget.to_dict()
    data["line_items"] = [item.to_dict() for item in result.scalars().all()]
    return data


async def _get_budget_or_404(db: AsyncSession, budget_id: UUID) -> PropertyBudget:
    budget = await db.get(PropertyBudget, budget_id)
    if not budget:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    return budget


@router.get("")
async def list_budgets(
    property_id: Optional[UUID] = None,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        query = select(PropertyBudget)
        if property_id:
            query = query.where(PropertyBudget.master_property_id == property_id)

        result = await db.execute(query.order_by(PropertyBudget.fiscal_year.desc()))
        budgets = [await _budget_with_items(db, b) for b in result.scalars().all()]
        return {"success": True, "budgets": budgets, "total": len(budgets)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing budgets: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch budgets")


@router.get("/{budget_id}")
async def get_budget(
    budget_id: UUID,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    budget = await _get_budget_or_404(db, budget_id)
    return {"success": True, "budget": await _budget_with_items(db, budget)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_budget(
    payload: BudgetCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    """Create a budget; total_budget defaults to the sum of line items."""
    try:
        prop = await db.get(MasterProperty, payload.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        budget = PropertyBudget(
            **payload.model_dump(exclude={"line_items"}, exclude_none=True),
            created_by=current_user.id,
        )
        db.add(budget)
        await db.flush()

        items_total = _add_line_items(db, budget.id, payload.line_items)
        if payload.total_budget is None:
            budget.total_budget = items_total

        await db.commit()
        await db.refresh(budget)
        return {"success": True, "budget": await _budget_with_items(db, budget)}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating budget: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create budget")


@router.patch("/{budget_id}")
async def update_budget(
    budget_id: UUID,
    payload: BudgetUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    """Partial update; supplied line_items replace the existing ones."""
    try:
        budget = await _get_budget_or_404(db, budget_id)

        for key, value in payload.model_dump(exclude_unset=True, exclude={"line_items"}).items():
            setattr(budget, key, value)

        if payload.line_items is not None:
            await db.execute(delete(BudgetLineItem).where(BudgetLineItem.budget_id == budget_id))
            items_total = _add_line_items(db, budget_id, payload.line_items)
            if payload.total_budget is None:
                budget.total_budget = items_total

        await db.commit()
        await db.refresh(budget)
        return {"success": True, "budget": await _budget_with_items(db, budget)}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating budget {budget_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update budget")


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        budget = await _get_budget_or_404(db, budget_id)
        await db.execute(delete(BudgetLineItem).where(BudgetLineItem.budget_id == budget_id))
        await db.delete(budget)
        await db.commit()
        return {"success": True, "message": "Budget deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting budget {budget_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete budget")
