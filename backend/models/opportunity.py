from pydantic import BaseModel

from models.market import Market


class ArbitrageOpportunity(BaseModel):
    """A binary market whose YES + NO prices sum to less than the $1 payout"""

    condition_id: str
    question: str
    slug: str = ""
    yes_price: float
    no_price: float
    total_cost: float
    profit_per_dollar: float
    profit_percent: float
    volume: float = 0.0
    liquidity: float = 0.0

    @classmethod
    def from_market(cls, market: Market, yes_price: float, no_price: float) -> "ArbitrageOpportunity":
        total_cost = yes_price + no_price
        profit_per_dollar = 1.0 - total_cost
        profit_percent = (profit_per_dollar / total_cost) * 100.0 if total_cost > 0 else 0.0

        return cls(
            condition_id=market.condition_id,
            question=market.question,
            slug=market.slug,
            yes_price=yes_price,
            no_price=no_price,
            total_cost=total_cost,
            profit_per_dollar=profit_per_dollar,
            profit_percent=profit_percent,
            volume=market.volume,
            liquidity=market.liquidity,
        )
