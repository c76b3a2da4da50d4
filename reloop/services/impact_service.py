"""
Impact metrics for an upcycled product idea.

Metrics depend only on the waste material, its monthly quantity and the idea
name, plus a bounded random jitter on profit margin and feasibility.
"""

import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from reloop.models.submission import ImpactMetrics
from reloop.utils.utils import clamp, parse_quantity_number, round_half_up


@dataclass(frozen=True)
class MaterialFactors:
    co2: float
    water: float
    base_profit: float


@dataclass(frozen=True)
class ProductAdjustment:
    profit_mod: float
    feasibility_mod: float


# Matched in order against the lower-cased material; the first key contained in it wins.
MATERIAL_FACTORS: Sequence[Tuple[str, MaterialFactors]] = (
    ("textile", MaterialFactors(co2=15.1, water=700000, base_profit=22)),
    ("cotton", MaterialFactors(co2=15.1, water=700000, base_profit=22)),
    ("plastic", MaterialFactors(co2=2.1, water=120000, base_profit=18)),
    ("paper", MaterialFactors(co2=3.9, water=340000, base_profit=15)),
    ("wood", MaterialFactors(co2=1.8, water=200000, base_profit=20)),
    ("metal", MaterialFactors(co2=1.5, water=85000, base_profit=25)),
    ("glass", MaterialFactors(co2=0.3, water=45000, base_profit=12)),
    ("food", MaterialFactors(co2=0.5, water=180000, base_profit=10)),
    ("electronic", MaterialFactors(co2=2.8, water=95000, base_profit=30)),
)
DEFAULT_MATERIAL_FACTORS = MaterialFactors(co2=8.0, water=400000, base_profit=18)

# Matched in order against the lower-cased idea name.
PRODUCT_ADJUSTMENTS: Sequence[Tuple[str, ProductAdjustment]] = (
    ("insulation", ProductAdjustment(profit_mod=1.2, feasibility_mod=1.1)),
    ("furniture", ProductAdjustment(profit_mod=1.15, feasibility_mod=0.95)),
    ("packaging", ProductAdjustment(profit_mod=0.9, feasibility_mod=1.15)),
    ("building", ProductAdjustment(profit_mod=1.1, feasibility_mod=0.9)),
    ("textile", ProductAdjustment(profit_mod=1.0, feasibility_mod=1.0)),
)
DEFAULT_PRODUCT_ADJUSTMENT = ProductAdjustment(profit_mod=1.0, feasibility_mod=1.0)

PROFIT_MARGIN_BOUNDS = (5, 40)
FEASIBILITY_BOUNDS = (50, 95)
PROFIT_JITTER = 4
FEASIBILITY_BASE_RANGE = (70, 85)
MONTHS_PER_YEAR = 12


def lookup_material(material: Optional[str]) -> MaterialFactors:
    material = (material or "").lower()
    for key, factors in MATERIAL_FACTORS:
        if key in material:
            return factors
    return DEFAULT_MATERIAL_FACTORS


def lookup_adjustment(product_name: Optional[str]) -> ProductAdjustment:
    product_name = (product_name or "").lower()
    for key, adjustment in PRODUCT_ADJUSTMENTS:
        if key in product_name:
            return adjustment
    return DEFAULT_PRODUCT_ADJUSTMENT


class ImpactService:
    """Computes impact metrics for ideas."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def calculate(self, material: str, quantity: str, product_name: str) -> ImpactMetrics:
        factors = lookup_material(material)
        adjustment = lookup_adjustment(product_name)

        annual_quantity = parse_quantity_number(quantity) * MONTHS_PER_YEAR
        co2_saved = round_half_up(annual_quantity * factors.co2)
        water_saved = round_half_up(annual_quantity * factors.water)

        profit_margin = factors.base_profit * adjustment.profit_mod + self.rng.uniform(-PROFIT_JITTER, PROFIT_JITTER)
        feasibility = self.rng.uniform(*FEASIBILITY_BASE_RANGE) * adjustment.feasibility_mod

        return ImpactMetrics(
            co2Saved=co2_saved,
            waterSaved=water_saved,
            profitMargin=round_half_up(clamp(*PROFIT_MARGIN_BOUNDS, profit_margin)),
            feasibilityScore=round_half_up(clamp(*FEASIBILITY_BOUNDS, feasibility)),
        )
