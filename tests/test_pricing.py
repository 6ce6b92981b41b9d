"""Tests for consultation pricing."""
from decimal import Decimal

import pytest

from telehealth.errors import ValidationError
from telehealth.services.pricing_service import detect_tier, quote, tier_multiplier


class TestTiers:
    """Country tier detection."""

    @pytest.mark.parametrize('country,tier', [
        ('IN', 'A'), ('PK', 'A'), ('LK', 'A'),
        ('BR', 'B'), ('MX', 'B'),
        ('US', 'C'), ('GB', 'C'), ('ZZ', 'C'),
    ])
    def test_detect_tier(self, country, tier):
        assert detect_tier(country) == tier

    @pytest.mark.parametrize('consultation_type', ['initial', 'followup', 'urgent'])
    def test_high_income_multiplier_within_bounds(self, consultation_type):
        assert Decimal('1') <= tier_multiplier('C', consultation_type) <= Decimal('6')


class TestQuote:
    """Deterministic server-side prices."""

    def test_india_base_prices(self):
        assert quote('initial', 'IN').amount == Decimal('1000.00')
        assert quote('followup', 'IN').amount == Decimal('700.00')
        assert quote('urgent', 'IN').amount == Decimal('2000.00')
        assert quote('initial', 'IN').currency == 'INR'
        assert quote('initial', 'IN').symbol == '₹'

    def test_first_booking_discount(self):
        price = quote('initial', 'IN', first_booking=True)

        assert price.amount == Decimal('800.00')
        assert price.discount_applied is True

    def test_middle_income_uplift(self):
        price = quote('initial', 'BR')

        assert price.tier == 'B'
        assert price.currency == 'USD'
        assert price.amount == Decimal('21.60')

    def test_high_income_targets(self):
        assert quote('initial', 'US').amount == Decimal('49.00')
        assert quote('followup', 'US').amount == Decimal('39.00')
        assert quote('urgent', 'US').amount == Decimal('99.00')

    def test_high_income_discount_still_applies(self):
        assert quote('initial', 'US', first_booking=True).amount == Decimal('39.20')

    def test_requested_currency(self):
        price = quote('initial', 'IN', currency='eur')

        assert price.currency == 'EUR'
        assert price.amount == Decimal('11.00')

    def test_missing_country_defaults_to_india(self):
        price = quote('initial')

        assert price.region == 'IN'
        assert price.tier == 'A'

    def test_same_inputs_same_quote(self):
        assert quote('urgent', 'DE', first_booking=True) == quote('urgent', 'DE', first_booking=True)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            quote('surgery', 'IN')

    def test_unsupported_currency(self):
        with pytest.raises(ValidationError):
            quote('initial', 'IN', currency='XYZ')
