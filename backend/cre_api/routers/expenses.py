"""Operating Expenses API (asset management)."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import OperatingExpense, MasterProperty, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas.asset import ExpenseCreate, ExpenseUpdate, ExpenseBulkCreate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/expenses", tags=["Operating Expenses"])


async def _require_property(db: AsyncSession, property_id: UUID):
    prop = await db.get(MasterProperty, property_id)
    if not prop or prop.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")


async def _get_expense_or_404(db: AsyncSession, expense_id: UUID) -> OperatingExpense:
    expense = await db.get(OperatingExpense, expense_id)
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.get("")
async def list_expenses(
    property_id: Optional[UUID] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(OperatingExpense)

        if property_id:
            query = query.where(OperatingExpense.master_property_id == property_id)
        if category:
            query = query.where(OperatingExpense.category == category)
        if start_date:
            query = query.where(OperatingExpense.expense_date >= start_date)
        if end_date:
            query = query.where(OperatingExpense.expense_date <= end_date)

        filtered = query.subquery()
        count_result = await db.execute(
            select(func.count(), func.coalesce(func.sum(filtered.c.amount), 0))
            .select_from(filtered)
        )
        total, total_amount = count_result.one()

        result = await db.execute(
            query.order_by(OperatingExpense.expense_date.desc()).limit(limit).offset(offset)
        )
        expenses = [e.to_dict() for e in result.scalars().all()]

        return {
            "success": True,
            "expenses": expenses,
            "total_amount": float(total_amount or 0),
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing expenses: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch expenses")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _require_property(db, payload.master_property_id)

        expense = OperatingExpense(**payload.model_dump(exclude_none=True), created_by=current_user.id)
        db.add(expense)
        await db.commit()
        await db.refresh(expense)
        return {"success": True, "expense": expense.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating expense: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create expense")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_create_expenses(
    payload: ExpenseBulkCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    """Create several expenses for one property in a single commit."""
    try:
        await _require_property(db, payload.master_property_id)

        expenses = [
            OperatingExpense(
                master_property_id=payload.master_property_id,
                created_by=current_user.id,
                **item.model_dump(exclude_none=True),
            )
            for item in payload.expenses
        ]
        db.add_all(expenses)
        await db.commit()

        logger.info(f"Bulk created {len(expenses)} expenses for {payload.master_property_id}")
        return {
            "success": True,
            "created": len(expenses),
            "expenses": [e.to_dict() for e in expenses],
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error bulk-creating expenses: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create expenses")


@router.patch("/{expense_id}")
async def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        expense = await _get_expense_or_404(db, expense_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(expense, key, value)

        await db.commit()
        await db.refresh(expense)
        return {"success": True, "expense": expense.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating expense {expense_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update expense")


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        expense = await _get_expense_or_404(db, expense_id)
        await db.delete(expense)
        await db.commit()
        return {"success": True, "message": "Expense deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting expense {expense_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete expense")
