from typing import Optional

from pydantic import BaseModel


class HealthOut(BaseModel):
    ok: bool
    store: str


class StatsTotals(BaseModel):
    countries: int
    models: int


class StatsOut(BaseModel):
    totals: StatsTotals


class FeatureOut(BaseModel):
    """Summary fields of one feature for the requested year, as stored."""
    investmentCost: Optional[str] = None
    newCapacity: Optional[str] = None
    electrifiedPopulation: Optional[str] = None
