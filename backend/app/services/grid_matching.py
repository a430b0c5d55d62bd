"""Commission grid lookup and selection.

A grid applies to a policy when tenant and product category match, the
provider matches or the grid's provider is a wildcard (null), the premium is
inside the grid's band and the reference date is inside the grid's effective
window. When several grids apply, the most specific one wins:

1. exact provider over wildcard
2. narrowest premium band (an open bound makes the band infinitely wide)
3. highest version, then latest effective_from
4. lowest id, so the choice never depends on row order
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol

from sqlalchemy.orm import Session

from app.core.exceptions import NoApplicableGridError
from app.models.commission import grid_model_for_category

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRate:
    grid_id: int
    grid_table: str
    base_rate: Decimal
    reward_rate: Decimal
    bonus_rate: Decimal

    @property
    def total_rate(self) -> Decimal:
        return self.base_rate + self.reward_rate + self.bonus_rate


@dataclass(frozen=True)
class GridCandidate:
    grid_id: int
    grid_table: str
    provider: Optional[str]
    min_premium: Optional[Decimal]
    max_premium: Optional[Decimal]
    base_rate: Decimal
    reward_rate: Decimal
    bonus_rate: Decimal
    effective_from: date
    effective_to: Optional[date] = None
    version: int = 1

    @classmethod
    def from_row(cls, row, grid_table: str) -> "GridCandidate":
        return cls(
            grid_id=row.id,
            grid_table=grid_table,
            provider=row.provider,
            min_premium=row.min_premium,
            max_premium=row.max_premium,
            base_rate=Decimal(row.commission_rate or 0),
            reward_rate=Decimal(row.reward_rate or 0),
            bonus_rate=Decimal(row.bonus_rate or 0),
            effective_from=row.effective_from,
            effective_to=row.effective_to,
            version=row.version or 1,
        )

    def matches(self, provider: Optional[str], premium: Decimal, on_date: date) -> bool:
        if self.provider is not None and self.provider != provider:
            return False
        if self.min_premium is not None and premium < self.min_premium:
            return False
        if self.max_premium is not None and premium > self.max_premium:
            return False
        if on_date < self.effective_from:
            return False
        if self.effective_to is not None and on_date > self.effective_to:
            return False
        return True

    def band_width(self) -> Optional[Decimal]:
        """None means unbounded."""
        if self.min_premium is None or self.max_premium is None:
            return None
        return self.max_premium - self.min_premium

    def as_rate(self) -> ResolvedRate:
        return ResolvedRate(
            grid_id=self.grid_id,
            grid_table=self.grid_table,
            base_rate=self.base_rate,
            reward_rate=self.reward_rate,
            bonus_rate=self.bonus_rate,
        )


def _specificity_key(candidate: GridCandidate, provider: Optional[str]):
    exact_provider = candidate.provider is not None and candidate.provider == provider
    width = candidate.band_width()
    return (
        0 if exact_provider else 1,
        (1, Decimal(0)) if width is None else (0, width),
        -candidate.version,
        -candidate.effective_from.toordinal(),
        candidate.grid_id,
    )


def select_grid(
    candidates: Iterable[GridCandidate],
    provider: Optional[str],
    premium: Decimal,
    on_date: date,
) -> Optional[GridCandidate]:
    """Return the single best grid for the policy, or None when nothing applies."""
    matching = [c for c in candidates if c.matches(provider, premium, on_date)]
    if not matching:
        return None
    return min(matching, key=lambda c: _specificity_key(c, provider))


class GridRepository(Protocol):
    def candidate_grids(self, tenant_id: int, product_category: str) -> List[GridCandidate]:
        ...


class SqlGridRepository:
    """Reads active grid rows for a tenant/category from the category's payout grid table."""

    def __init__(self, db: Session):
        self.db = db

    def candidate_grids(self, tenant_id: int, product_category: str) -> List[GridCandidate]:
        model = grid_model_for_category(product_category)
        rows = (
            self.db.query(model)
            .filter(
                model.tenant_id == tenant_id,
                model.product_category == product_category,
                model.is_active == True,
            )
            .all()
        )
        return [GridCandidate.from_row(row, model.__tablename__) for row in rows]


class RateResolver:
    def __init__(self, grids: GridRepository):
        self.grids = grids

    def resolve(
        self,
        tenant_id: int,
        product_category: str,
        provider: Optional[str],
        premium: Decimal,
        on_date: date,
        policy_id: Optional[int] = None,
    ) -> ResolvedRate:
        candidates = self.grids.candidate_grids(tenant_id, product_category)
        chosen = select_grid(candidates, provider, premium, on_date)
        if chosen is None:
            raise NoApplicableGridError(
                f"No commission grid matches {product_category} / {provider or 'any provider'} "
                f"with premium {premium} on {on_date.isoformat()} "
                f"({len(candidates)} grid(s) checked)",
                policy_id=policy_id,
            )
        logger.debug(
            f"Policy {policy_id}: grid {chosen.grid_table}#{chosen.grid_id} "
            f"chosen from {len(candidates)} candidate(s)"
        )
        return chosen.as_rate()
