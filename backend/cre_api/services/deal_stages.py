"""Deal pipeline stages and stage transitions."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cre_api.models import CrmDeal, DealStageHistory, utcnow
from cre_api.schemas import DealStage

logger = logging.getLogger(__name__)


STAGE_ORDER: List[str] = [stage.value for stage in DealStage]

# Stages shown as pipeline columns
ACTIVE_STAGES: List[str] = STAGE_ORDER[:STAGE_ORDER.index(DealStage.CLOSED_WON.value)]

CLOSED_STAGES = {DealStage.CLOSED_WON.value, DealStage.CLOSED_LOST.value}


def transition_stage(
    db: AsyncSession,
    deal: CrmDeal,
    to_stage: str,
    actor_id: UUID,
    notes: Optional[str] = None,
) -> DealStageHistory:
    """
    Move a deal to to_stage and append one history row.

    Any stage is reachable from any other, including the current one.
    The caller commits.
    """
    if to_stage not in STAGE_ORDER:
        raise ValueError(f"Unknown deal stage: {to_stage}")

    now = utcnow()
    history = DealStageHistory(
        deal_id=deal.id,
        from_stage=deal.stage,
        to_stage=to_stage,
        changed_by=actor_id,
        changed_at=now,
        notes=notes,
    )
    db.add(history)

    deal.stage = to_stage
    deal.stage_entered_at = now

    logger.info(f"Deal {deal.id} stage: {history.from_stage} -> {to_stage}")
    return history


def record_initial_stage(db: AsyncSession, deal: CrmDeal, actor_id: UUID) -> DealStageHistory:
    """History row for a newly created deal."""
    history = DealStageHistory(
        deal_id=deal.id,
        from_stage=None,
        to_stage=deal.stage,
        changed_by=actor_id,
        changed_at=deal.stage_entered_at or utcnow(),
        notes="Deal created",
    )
    db.add(history)
    return history


def _amount(value) -> float:
    return float(value) if value is not None else 0.0


def compute_analytics(deals: List[CrmDeal]) -> Dict[str, Any]:
    """Pipeline summary over non-deleted deals."""
    won = [d for d in deals if d.stage == DealStage.CLOSED_WON.value]
    lost = [d for d in deals if d.stage == DealStage.CLOSED_LOST.value]
    active = [d for d in deals if d.stage not in CLOSED_STAGES]

    closed_count = len(won) + len(lost)
    win_rate = round(len(won) / closed_count * 100, 1) if closed_count else 0.0
    avg_deal_size = (
        sum(_amount(d.final_price or d.deal_value) for d in won) / len(won) if won else 0.0
    )

    return {
        "total_deals": len(deals),
        "active_deals": len(active),
        "closed_won": len(won),
        "closed_lost": len(lost),
        "win_rate": win_rate,
        "avg_deal_size": round(avg_deal_size, 2),
        "total_commission_earned": round(sum(_amount(d.commission_total) for d in won), 2),
        "total_pipeline_value": round(sum(_amount(d.deal_value) for d in active), 2),
        "weighted_pipeline_value": round(
            sum(_amount(d.deal_value) * (d.probability_percent or 0) / 100 for d in active), 2
        ),
    }


def group_pipeline(deals: List[CrmDeal]) -> List[Dict[str, Any]]:
    """One column per active stage with its deals, count and total value."""
    columns = []
    for stage in ACTIVE_STAGES:
        stage_deals = [d for d in deals if d.stage == stage]
        columns.append({
            "stage": stage,
            "count": len(stage_deals),
            "total_value": round(sum(_amount(d.deal_value) for d in stage_deals), 2),
            "deals": [d.to_dict() for d in stage_deals],
        })
    return columns
