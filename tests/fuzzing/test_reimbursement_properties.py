"""
Hypothesis-based property tests for the reimbursement engines.

Properties checked:
- Mileage: amount is total_miles * rate rounded half-up to cents; a round
  trip is exactly twice the one-way miles.
- Rate resolution: deterministic; the resolved record is effective on the
  date asked for.
- Per diem: one breakdown row per calendar day; only the first and last
  day are reduced; totals are the sums of the breakdown; meal deductions
  account exactly for the M&IE reduction.
- Receipt extraction: never raises, deterministic, confidences bounded,
  amounts inside the plausible range.
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from expense_engines.line_items import classify_category, extract_line_items
from expense_engines.mileage import MileageCalculator
from expense_engines.per_diem import PerDiemAllocator
from expense_engines.rate_resolver import RateResolver
from expense_engines.receipt_extraction import ReceiptFieldExtractor
from expense_kernel.domain.per_diem import MealFlags
from expense_kernel.domain.rates import RateCategory, RateRecord
from expense_kernel.domain.values import round_money

RATES = (
    RateRecord(RateCategory.BUSINESS, Decimal("0.655"), date(2023, 1, 1), date(2023, 12, 31)),
    RateRecord(RateCategory.BUSINESS, Decimal("0.67"), date(2024, 1, 1), date(2024, 12, 31)),
    RateRecord(RateCategory.BUSINESS, Decimal("0.70"), date(2025, 1, 1)),
    RateRecord(RateCategory.MEDICAL, Decimal("0.21"), date(2023, 1, 1)),
    RateRecord(RateCategory.MOVING, Decimal("0.21"), date(2023, 1, 1)),
    RateRecord(RateCategory.CHARITY, Decimal("0.14"), date(2023, 1, 1)),
)

distances = st.decimals(
    min_value=Decimal("0.1"), max_value=Decimal("5000"), places=1,
    allow_nan=False, allow_infinity=False,
)
trip_dates = st.dates(min_value=date(2023, 1, 1), max_value=date(2030, 12, 31))
categories = st.sampled_from(list(RateCategory))
money_rates = st.decimals(
    min_value=Decimal("1"), max_value=Decimal("500"), places=2,
    allow_nan=False, allow_infinity=False,
)
meal_flags = st.builds(MealFlags, st.booleans(), st.booleans(), st.booleans())


# =============================================================================
# Mileage
# =============================================================================


class TestMileageProperties:

    @given(distance=distances, round_trip=st.booleans(), category=categories, as_of=trip_dates)
    @settings(max_examples=200)
    def test_amount_is_rounded_product(self, distance, round_trip, category, as_of):
        result = MileageCalculator(RateResolver(RATES)).calculate(
            distance, round_trip, category, as_of,
        )

        assert result.reimbursement_amount == round_money(result.total_miles * result.rate_used)
        assert result.reimbursement_amount.as_tuple().exponent == -2
        assert result.reimbursement_amount > Decimal("0")

    @given(distance=distances, category=categories, as_of=trip_dates)
    @settings(max_examples=100)
    def test_round_trip_doubles_miles(self, distance, category, as_of):
        calculator = MileageCalculator(RateResolver(RATES))
        one_way = calculator.calculate(distance, False, category, as_of)
        round_trip = calculator.calculate(distance, True, category, as_of)

        assert round_trip.total_miles == one_way.total_miles * 2
        assert round_trip.rate_used == one_way.rate_used


class TestRateResolutionProperties:

    @given(category=categories, as_of=trip_dates)
    @settings(max_examples=200)
    def test_resolution_is_deterministic_and_effective(self, category, as_of):
        first = RateResolver(RATES).resolve(category, as_of)
        second = RateResolver(RATES).resolve(category, as_of)

        assert first == second
        assert first.category is category
        assert first.is_effective(as_of)


# =============================================================================
# Per diem
# =============================================================================


class TestPerDiemProperties:

    @given(
        start=st.dates(min_value=date(2024, 1, 1), max_value=date(2026, 12, 31)),
        extra_days=st.integers(min_value=0, max_value=20),
        lodging=money_rates,
        mie=money_rates,
    )
    @settings(max_examples=100)
    def test_breakdown_shape_and_totals(self, start, extra_days, lodging, mie):
        end = start + timedelta(days=extra_days)
        trip = PerDiemAllocator().allocate(start, end, lambda d: (lodging, mie))

        assert trip.total_days == extra_days + 1
        assert len(trip.daily_breakdown) == trip.total_days
        assert [d.date for d in trip.daily_breakdown] == [
            start + timedelta(days=i) for i in range(trip.total_days)
        ]
        assert trip.total_lodging == sum(d.lodging_allowance for d in trip.daily_breakdown)
        assert trip.total_mie == sum(d.adjusted_mie for d in trip.daily_breakdown)
        assert trip.total_per_diem == trip.total_lodging + trip.total_mie

        for day in trip.daily_breakdown:
            assert day.lodging_allowance == lodging
            if day.is_first_day or day.is_last_day:
                assert day.mie_allowance == mie * Decimal("0.75")
            else:
                assert day.mie_allowance == mie

    @given(mie=money_rates, flags=meal_flags, days=st.integers(min_value=1, max_value=5))
    @settings(max_examples=100)
    def test_meal_deductions_account_for_reduction(self, mie, flags, days):
        start = date(2025, 3, 10)
        end = start + timedelta(days=days - 1)
        meals = {start + timedelta(days=i): flags for i in range(days)}
        trip = PerDiemAllocator().allocate(start, end, lambda d: (Decimal("100"), mie), meals)

        for day in trip.daily_breakdown:
            deducted = sum((a.deduction for a in day.adjustments), Decimal("0"))
            assert day.adjusted_mie == day.mie_allowance - deducted
            assert len(day.adjustments) == len(flags.provided())
            assert day.total == day.lodging_allowance + day.adjusted_mie

    @given(mie=money_rates)
    def test_all_meals_provided_zeroes_mie(self, mie):
        day = date(2025, 3, 10)
        trip = PerDiemAllocator().allocate(
            day, day, lambda d: (Decimal("0"), mie), {day: MealFlags(True, True, True)},
        )
        assert trip.total_mie == Decimal("0")


# =============================================================================
# Receipt extraction
# =============================================================================


receipt_lines = st.one_of(
    st.text(max_size=60),
    st.builds(
        lambda word, amount: f"{word} ${amount}",
        st.sampled_from(["Coffee", "Hotel room", "Uber ride", "TAX", "TOTAL", "Gas"]),
        st.decimals(min_value=Decimal("0"), max_value=Decimal("20000"), places=2,
                    allow_nan=False, allow_infinity=False),
    ),
    st.sampled_from(["01/15/2025", "2025-13-45", "Mar 3, 2024", "EUR", "£", "R$"]),
)
receipt_texts = st.lists(receipt_lines, max_size=15).map("\n".join)


class TestReceiptExtractionProperties:

    @given(text=st.text())
    @settings(max_examples=300)
    def test_never_raises_on_arbitrary_text(self, text):
        result = ReceiptFieldExtractor().extract(text)
        assert 0.0 <= result.overall_confidence <= 1.0

    @given(text=receipt_texts)
    @settings(max_examples=200)
    def test_deterministic_and_bounded(self, text):
        extractor = ReceiptFieldExtractor()
        first = extractor.extract(text)
        second = extractor.extract(text)

        assert first == second
        if first.amount.found:
            assert Decimal("0") < first.amount.value < Decimal("10000")
        for confidence in first.field_confidences().values():
            assert 0.0 <= confidence <= 1.0
        if first.date.found:
            date.fromisoformat(first.date.value)

    @given(text=receipt_texts)
    @settings(max_examples=100)
    def test_line_items_are_positive_and_classified(self, text):
        for item in extract_line_items(text):
            assert item.amount > Decimal("0")
            assert item.description
            assert 0.0 <= item.confidence <= 0.95

    @given(text=st.text(max_size=200))
    def test_category_confidence_bounded(self, text):
        match = classify_category(text)
        assert 0.0 <= match.confidence <= 0.95
