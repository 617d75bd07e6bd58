"""
Tests for the mileage reimbursement calculator.

Covers:
- Round-trip doubling and half-up cent rounding
- Distance coercion and validation
- RateNotFoundError propagation
- Organization custom rates
- Trip summaries
"""

from datetime import date
from decimal import Decimal

import pytest

from expense_engines.mileage import MileageCalculator, summarize_trips
from expense_engines.rate_resolver import RateResolver
from expense_kernel.domain.policy import MileagePolicy
from expense_kernel.domain.rates import RateCategory, RateRecord, RateSource
from expense_kernel.exceptions import InvalidInputError, RateNotFoundError

TRIP_DATE = date(2024, 6, 15)


@pytest.fixture
def calculator() -> MileageCalculator:
    return MileageCalculator(
        RateResolver([RateRecord(RateCategory.BUSINESS, Decimal("0.67"), date(2024, 1, 1))])
    )


# ===========================================================================
# Core arithmetic
# ===========================================================================


class TestCalculate:
    """Reimbursement = total miles x rate, rounded half-up to cents."""

    def test_round_trip_scenario(self, calculator):
        result = calculator.calculate(Decimal("10.5"), True, "business", TRIP_DATE)

        assert result.total_miles == Decimal("21.0")
        assert result.rate_used == Decimal("0.67")
        assert result.reimbursement_amount == Decimal("14.07")
        assert result.rate_effective_date == date(2024, 1, 1)

    def test_one_way_scenario(self, calculator):
        result = calculator.calculate(10, False, "business", TRIP_DATE)

        assert result.total_miles == Decimal("10")
        assert result.reimbursement_amount == Decimal("6.70")
        assert str(result.reimbursement_amount) == "6.70"

    def test_round_trip_doubles_one_way(self, calculator):
        one_way = calculator.calculate("37.3", False, "business", TRIP_DATE)
        round_trip = calculator.calculate("37.3", True, "business", TRIP_DATE)
        assert round_trip.total_miles == 2 * one_way.total_miles

    def test_half_cent_rounds_up(self):
        calc = MileageCalculator(
            RateResolver([RateRecord("business", Decimal("0.655"), date(2023, 1, 1))])
        )
        # 3 * 0.655 = 1.965; banker's rounding would pay 1.96
        assert calc.calculate(3, False, "business", date(2023, 5, 1)).reimbursement_amount == Decimal("1.97")

    def test_float_distance_goes_through_str(self, calculator):
        result = calculator.calculate(10.1, False, "business", TRIP_DATE)
        assert result.distance == Decimal("10.1")
        assert result.reimbursement_amount == Decimal("6.77")

    def test_result_records_inputs(self, calculator):
        result = calculator.calculate("12", True, RateCategory.BUSINESS, TRIP_DATE)
        assert result.category is RateCategory.BUSINESS
        assert result.distance == Decimal("12")
        assert result.is_round_trip is True
        assert result.rate_source is RateSource.IRS
        assert result.irs_rate == Decimal("0.67")

    def test_uses_rate_in_effect_on_trip_date(self, resolver):
        calc = MileageCalculator(resolver)
        assert calc.calculate(100, False, "business", date(2023, 3, 1)).reimbursement_amount == Decimal("65.50")
        assert calc.calculate(100, False, "business", date(2025, 3, 1)).reimbursement_amount == Decimal("70.00")


class TestValidation:
    """Invalid inputs are surfaced, never corrected."""

    @pytest.mark.parametrize("distance", [0, "0", -5, Decimal("-0.01")])
    def test_non_positive_distance_rejected(self, calculator, distance):
        with pytest.raises(InvalidInputError) as exc_info:
            calculator.calculate(distance, False, "business", TRIP_DATE)
        assert exc_info.value.field == "distance"
        assert exc_info.value.code == "INVALID_INPUT"

    @pytest.mark.parametrize("distance", ["ten", None, True, float("nan"), "inf"])
    def test_non_numeric_distance_rejected(self, calculator, distance):
        with pytest.raises(InvalidInputError):
            calculator.calculate(distance, False, "business", TRIP_DATE)

    def test_missing_rate_propagates(self, calculator):
        with pytest.raises(RateNotFoundError):
            calculator.calculate(10, False, "business", date(2023, 6, 1))

    def test_missing_category_rate_propagates(self, calculator):
        with pytest.raises(RateNotFoundError):
            calculator.calculate(10, False, "medical", TRIP_DATE)


class TestCustomRate:
    """Organizations may reimburse at their own per-mile rate."""

    def test_custom_rate_used_when_enabled(self, resolver):
        calc = MileageCalculator(
            resolver,
            MileagePolicy(use_custom_rate=True, custom_rate_per_mile=Decimal("0.58")),
        )
        result = calc.calculate(100, False, "business", TRIP_DATE)

        assert result.rate_used == Decimal("0.58")
        assert result.rate_source is RateSource.CUSTOM
        assert result.irs_rate == Decimal("0.67")
        assert result.reimbursement_amount == Decimal("58.00")

    def test_custom_rate_ignored_when_disabled(self, resolver):
        calc = MileageCalculator(
            resolver,
            MileagePolicy(use_custom_rate=False, custom_rate_per_mile=Decimal("0.58")),
        )
        assert calc.effective_rate("business", TRIP_DATE).source is RateSource.IRS

    def test_zero_custom_rate_falls_back_to_irs(self, resolver):
        calc = MileageCalculator(
            resolver, MileagePolicy(use_custom_rate=True, custom_rate_per_mile=0),
        )
        rate = calc.effective_rate("business", TRIP_DATE)
        assert rate.source is RateSource.IRS
        assert rate.rate == Decimal("0.67")

    def test_custom_rate_still_requires_irs_rate(self):
        calc = MileageCalculator(
            RateResolver([]),
            MileagePolicy(use_custom_rate=True, custom_rate_per_mile=Decimal("0.58")),
        )
        with pytest.raises(RateNotFoundError):
            calc.calculate(10, False, "business", TRIP_DATE)

    def test_negative_custom_rate_rejected(self):
        with pytest.raises(ValueError):
            MileagePolicy(use_custom_rate=True, custom_rate_per_mile=Decimal("-1"))


class TestTracingAndLogging:

    def test_engine_trace_emitted(self, calculator, captured_logs):
        calculator.calculate(10, False, "business", TRIP_DATE)

        traces = [r for r in captured_logs() if r["message"] == "EXPENSE_ENGINE_TRACE"]
        mileage = [t for t in traces if t["engine_name"] == "mileage"]
        assert len(mileage) == 1
        assert len(mileage[0]["input_fingerprint"]) == 16

    def test_calculation_logged(self, calculator, captured_logs):
        calculator.calculate(10, False, "business", TRIP_DATE)

        logged = [r for r in captured_logs() if r["message"] == "mileage_calculated"]
        assert logged[0]["reimbursement_amount"] == "6.70"
        assert logged[0]["rate_source"] == "irs"


class TestSummarizeTrips:

    def test_totals_and_category_counts(self, resolver):
        calc = MileageCalculator(resolver)
        results = [
            calc.calculate(10, True, "business", TRIP_DATE),
            calc.calculate(5, False, "business", TRIP_DATE),
            calc.calculate(20, False, "medical", TRIP_DATE),
        ]
        stats = summarize_trips(results)

        assert stats.total_trips == 3
        assert stats.total_miles == Decimal("45")
        assert stats.total_reimbursement == Decimal("13.40") + Decimal("3.35") + Decimal("4.20")
        assert stats.trips_by_category == {
            RateCategory.BUSINESS: 2,
            RateCategory.MEDICAL: 1,
        }

    def test_empty(self):
        stats = summarize_trips([])
        assert stats.total_trips == 0
        assert stats.total_reimbursement == Decimal("0")
        assert stats.trips_by_category == {}
