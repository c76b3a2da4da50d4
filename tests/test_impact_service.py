"""
Tests for the impact metric calculation.
"""

import random

import pytest
from unittest.mock import MagicMock

from reloop.services.impact_service import (
    DEFAULT_MATERIAL_FACTORS,
    DEFAULT_PRODUCT_ADJUSTMENT,
    ImpactService,
    lookup_adjustment,
    lookup_material,
)


@pytest.fixture
def midpoint_rng():
    """Fixture providing an RNG that always returns the middle of the range."""
    rng = MagicMock()
    rng.uniform.side_effect = lambda low, high: (low + high) / 2
    return rng


@pytest.fixture
def impact_service(midpoint_rng):
    """Fixture providing an ImpactService without randomness."""
    return ImpactService(rng=midpoint_rng)


class TestLookups:
    """Tests for the coefficient table lookups."""

    def test_textile_row_wins_for_cotton_textile(self):
        assert lookup_material("Cotton textile waste").co2 == 15.1

    def test_substring_match_is_case_insensitive(self):
        assert lookup_material("HDPE PLASTIC offcuts").co2 == 2.1

    def test_unknown_material_uses_default_row(self):
        assert lookup_material("Volcanic ash") == DEFAULT_MATERIAL_FACTORS
        assert lookup_material(None) == DEFAULT_MATERIAL_FACTORS

    def test_product_adjustment(self):
        assert lookup_adjustment("Acoustic Insulation Panels").profit_mod == 1.2
        assert lookup_adjustment("Tote Bags") == DEFAULT_PRODUCT_ADJUSTMENT


class TestImpactService:
    """Tests for ImpactService.calculate."""

    def test_cotton_textile_example(self, impact_service):
        metrics = impact_service.calculate("Cotton textile waste", "15 tons/month", "Recycled Tote Bags")

        assert metrics.co2Saved == 2718
        assert metrics.waterSaved == 126000000
        # base profit 22 with no jitter
        assert metrics.profitMargin == 22
        # feasibility 77.5 rounds half up
        assert metrics.feasibilityScore == 78

    def test_quantity_without_number_defaults_to_ten(self, impact_service):
        metrics = impact_service.calculate("glass", "lots", "Glass Tiles")

        assert metrics.co2Saved == round(10 * 12 * 0.3)
        assert metrics.waterSaved == 10 * 12 * 45000

    def test_decimal_quantity(self, impact_service):
        metrics = impact_service.calculate("metal scrap", "2.5 tons/month", "Metal Art")

        assert metrics.co2Saved == 45
        assert metrics.waterSaved == 2550000

    def test_profit_margin_clamped_high(self):
        rng = MagicMock()
        rng.uniform.side_effect = lambda low, high: high
        service = ImpactService(rng=rng)

        # 30 * 1.2 + 4 = 40
        metrics = service.calculate("electronic waste", "1 ton/month", "Insulation Boards")

        assert metrics.profitMargin == 40
        assert metrics.feasibilityScore == 94

    def test_profit_margin_clamped_low(self):
        rng = MagicMock()
        rng.uniform.side_effect = lambda low, high: low
        service = ImpactService(rng=rng)

        metrics = service.calculate("food scraps", "1 kg/day", "Packaging Trays")

        # 10 * 0.9 - 4 = 5
        assert metrics.profitMargin == 5

    def test_feasibility_clamped_high(self):
        rng = MagicMock()
        rng.uniform.side_effect = lambda low, high: high
        service = ImpactService(rng=rng)

        metrics = service.calculate("paper", "3 tons/month", "Packaging Inserts")

        assert metrics.feasibilityScore == 95

    def test_feasibility_with_building_modifier(self):
        rng = MagicMock()
        rng.uniform.side_effect = lambda low, high: low
        service = ImpactService(rng=rng)

        metrics = service.calculate("wood", "5 tons/month", "Building Blocks")

        # 70 * 0.9 = 63, inside bounds
        assert metrics.feasibilityScore == 63

    @pytest.mark.parametrize("seed", range(20))
    def test_metrics_stay_within_bounds(self, seed):
        service = ImpactService(rng=random.Random(seed))

        metrics = service.calculate("electronic", "100 units/month", "Insulation Furniture")

        assert 5 <= metrics.profitMargin <= 40
        assert 50 <= metrics.feasibilityScore <= 95
