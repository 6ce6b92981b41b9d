"""
Consultation pricing

Prices start from an INR base per consultation type and are scaled by the
patient's country tier:

    A  South Asia                     x1.0
    B  listed middle-income countries x1.8
    C  everyone else                  scaled to a USD target, clamped to 1..6

Conversion uses a static rate table so a quote is reproducible between order
creation and verification.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from telehealth.errors import ValidationError
from telehealth.models.appointment import CONSULTATION_TYPES

logger = logging.getLogger(__name__)

BASE_PRICES_INR = {
    'initial': Decimal('1000'),
    'followup': Decimal('700'),
    'urgent': Decimal('2000'),
}

HIGH_INCOME_TARGET_USD = {
    'initial': Decimal('49'),
    'followup': Decimal('39'),
    'urgent': Decimal('99'),
}

TIER_B_MULTIPLIER = Decimal('1.8')
TIER_C_MIN_MULTIPLIER = Decimal('1')
TIER_C_MAX_MULTIPLIER = Decimal('6')

TIER_A_COUNTRIES = frozenset(['IN', 'PK', 'BD', 'NP', 'LK'])

TIER_B_COUNTRIES = frozenset([
    'BR', 'TH', 'TR', 'ID', 'MX', 'MY', 'PH', 'VN', 'AR', 'CO',
    'CL', 'PE', 'EC', 'UY', 'CR', 'PA', 'DO', 'GT', 'SV', 'HN',
    'NI', 'BO', 'PY', 'GY', 'SR', 'TT', 'JM', 'BB', 'BS', 'BZ',
    'LC', 'VC', 'GD', 'AG', 'DM', 'KN', 'MS', 'TC', 'VG', 'AI',
])

# INR -> currency
EXCHANGE_RATES = {
    'INR': Decimal('1'),
    'USD': Decimal('0.012'),
    'EUR': Decimal('0.011'),
    'GBP': Decimal('0.0095'),
    'CAD': Decimal('0.016'),
    'AUD': Decimal('0.018'),
    'JPY': Decimal('1.8'),
    'CHF': Decimal('0.011'),
    'SEK': Decimal('0.13'),
    'NOK': Decimal('0.13'),
    'DKK': Decimal('0.082'),
    'SGD': Decimal('0.016'),
    'HKD': Decimal('0.094'),
    'AED': Decimal('0.044'),
    'BRL': Decimal('0.062'),
    'MXN': Decimal('0.24'),
    'ZAR': Decimal('0.22'),
    'TRY': Decimal('0.35'),
    'KRW': Decimal('16.5'),
}

CURRENCY_SYMBOLS = {
    'INR': '₹',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'CAD': 'C$',
    'AUD': 'A$',
    'JPY': '¥',
    'CHF': 'CHF',
    'SGD': 'S$',
    'HKD': 'HK$',
    'AED': 'AED',
    'BRL': 'R$',
    'MXN': 'MX$',
    'ZAR': 'R',
    'TRY': '₺',
    'KRW': '₩',
}

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class PriceQuote:
    consultation_type: str
    amount: Decimal
    currency: str
    symbol: str
    region: str
    tier: str
    discount_applied: bool
    base_inr: Decimal
    discounted_inr: Decimal
    multiplier: Decimal

    def to_dict(self):
        return {
            'consultation_type': self.consultation_type,
            'amount': float(self.amount),
            'currency': self.currency,
            'symbol': self.symbol,
            'region': self.region,
            'tier': self.tier,
            'discount_applied': self.discount_applied,
        }


def detect_tier(country):
    if country in TIER_A_COUNTRIES:
        return 'A'
    if country in TIER_B_COUNTRIES:
        return 'B'
    return 'C'


def default_currency(country):
    return 'INR' if country == 'IN' else 'USD'


def tier_multiplier(tier, consultation_type):
    if tier == 'A':
        return Decimal('1')
    if tier == 'B':
        return TIER_B_MULTIPLIER
    # Scale the undiscounted base to the USD target, so the discount still shows
    target = HIGH_INCOME_TARGET_USD[consultation_type]
    multiplier = target / (BASE_PRICES_INR[consultation_type] * EXCHANGE_RATES['USD'])
    return max(TIER_C_MIN_MULTIPLIER, min(TIER_C_MAX_MULTIPLIER, multiplier))


def quote(
    consultation_type: str,
    country: Optional[str] = None,
    currency: Optional[str] = None,
    first_booking: bool = False,
    discount_rate=Decimal('0.20'),
) -> PriceQuote:
    """
    Price a consultation for a patient.

    Args:
        consultation_type: initial, followup or urgent
        country: ISO country code of the patient (defaults to IN)
        currency: requested charge currency (defaults by country)
        first_booking: apply the first-booking discount
        discount_rate: fraction taken off for a first booking

    Returns:
        PriceQuote
    """
    if consultation_type not in CONSULTATION_TYPES:
        raise ValidationError(f"Unknown consultation type: {consultation_type}",
                              consultation_type=consultation_type)

    country = (country or 'IN').upper()
    currency = (currency or default_currency(country)).upper()
    if currency not in EXCHANGE_RATES:
        raise ValidationError(f"Unsupported currency: {currency}", currency=currency)

    tier = detect_tier(country)
    base_inr = BASE_PRICES_INR[consultation_type]
    discounted_inr = base_inr
    if first_booking:
        discounted_inr = (base_inr * (1 - Decimal(str(discount_rate)))).quantize(Decimal('1'), rounding=ROUND_HALF_UP)

    multiplier = tier_multiplier(tier, consultation_type)
    amount = (discounted_inr * multiplier * EXCHANGE_RATES[currency]).quantize(CENTS, rounding=ROUND_HALF_UP)

    return PriceQuote(
        consultation_type=consultation_type,
        amount=amount,
        currency=currency,
        symbol=CURRENCY_SYMBOLS.get(currency, currency),
        region=country,
        tier=tier,
        discount_applied=bool(first_booking),
        base_inr=base_inr,
        discounted_inr=discounted_inr,
        multiplier=multiplier,
    )
