"""
Financial snapshot model.

A snapshot is one persisted, period-scoped financial aggregate for an
organization. Its natural key is (org_id, period_start, period_end,
period_type); re-aggregating the same key must produce the same values.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from opshealth.utils.clock import utcnow

# Fields whose value is a percentage of revenue_total
PCT_FIELDS = (
    "gross_margin_pct",
    "prime_cost_pct",
    "net_profit_pct",
    "labour_pct",
    "overhead_pct",
    "ops_supplies_pct",
)

# Monetary and ratio fields persisted as DOUBLE columns, in storage order
VALUE_FIELDS = (
    "revenue_total",
    "cogs_food",
    "cogs_beverage",
    "cogs_waste_food",
    "cogs_waste_beverage",
    "gross_profit",
    "gross_margin_pct",
    "labour_wages",
    "labour_super",
    "labour_overtime",
    "labour_total",
    "labour_pct",
    "overhead_total",
    "overhead_pct",
    "ops_supplies_total",
    "ops_supplies_pct",
    "prime_cost",
    "prime_cost_pct",
    "net_profit",
    "net_profit_pct",
    "break_even_revenue",
    "covers_total",
    "avg_spend_per_cover",
    "data_completeness_pct",
)


class FinancialSnapshot(BaseModel):
    """
    Canonical periodic P&L snapshot for one organization.

    Built by the SnapshotAggregator from direct and imported channels. All
    percentages are expressed against revenue_total and are 0 (never NaN)
    when revenue is 0.

    Attributes:
        org_id: Owning organization
        period_start: First day of the period (inclusive)
        period_end: Last day of the period (inclusive)
        period_type: Period tag such as "daily" or "weekly"
        revenue_total: Net revenue (refunds subtracted)
        cogs_food: Food cost of goods sold
        cogs_beverage: Beverage cost of goods sold
        cogs_waste_food: Approved food waste cost
        cogs_waste_beverage: Approved beverage waste cost
        gross_profit: revenue - (food + beverage cogs + food + beverage waste)
        labour_total: wages + super + overtime, or imported labour
        overhead_total: Overheads excluding operating supplies
        ops_supplies_total: Operating supplies (cleaning, packaging, ...)
        prime_cost: food + beverage cogs + labour + ops supplies
        net_profit: gross profit - labour - ops supplies - overhead
        break_even_revenue: Fixed costs / contribution margin ratio, 0 if ratio <= 0
        covers_total: Guests served in the period
        avg_spend_per_cover: revenue / covers, 0 when no covers
        data_completeness_pct: Share of the six primary cost centres with data
        metric_sources: Merged metric name -> winning channel
        generated_at: Write time of this row
    """

    org_id: str = Field(min_length=1, description="Owning organization id")
    period_start: date = Field(description="First day of the period (inclusive)")
    period_end: date = Field(description="Last day of the period (inclusive)")
    period_type: str = Field(default="daily", description="Period tag")

    revenue_total: float = 0.0
    cogs_food: float = 0.0
    cogs_beverage: float = 0.0
    cogs_waste_food: float = 0.0
    cogs_waste_beverage: float = 0.0
    gross_profit: float = 0.0
    gross_margin_pct: float = 0.0

    labour_wages: float = 0.0
    labour_super: float = 0.0
    labour_overtime: float = 0.0
    labour_total: float = 0.0
    labour_pct: float = 0.0

    overhead_total: float = 0.0
    overhead_pct: float = 0.0
    ops_supplies_total: float = 0.0
    ops_supplies_pct: float = 0.0

    prime_cost: float = 0.0
    prime_cost_pct: float = 0.0
    net_profit: float = 0.0
    net_profit_pct: float = 0.0
    break_even_revenue: float = 0.0

    covers_total: float = 0.0
    avg_spend_per_cover: float = 0.0

    data_completeness_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    metric_sources: dict[str, str] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=utcnow)

    @field_validator("period_type")
    @classmethod
    def validate_period_type(cls, v: str) -> str:
        """Period type is a lowercase, non-empty tag."""
        v = v.strip().lower()
        if not v:
            raise ValueError("period_type must not be empty")
        return v

    @model_validator(mode="after")
    def validate_period_bounds(self) -> "FinancialSnapshot":
        """Ensure the period is not inverted."""
        if self.period_start > self.period_end:
            raise ValueError("period_start must be on or before period_end")
        return self

    @property
    def natural_key(self) -> tuple[str, date, date, str]:
        """The (org_id, period_start, period_end, period_type) key."""
        return (self.org_id, self.period_start, self.period_end, self.period_type)

    @property
    def food_cost_pct(self) -> float:
        """Food cogs as a percentage of revenue, 0 when there is no revenue."""
        if self.revenue_total <= 0:
            return 0.0
        return self.cogs_food / self.revenue_total * 100

    def values_dump(self) -> dict:
        """Serialized snapshot without generated_at, for idempotence checks."""
        return self.model_dump(mode="json", exclude={"generated_at"})
