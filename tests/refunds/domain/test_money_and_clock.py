from datetime import UTC, datetime

from refunds.clock import as_utc, hours_between
from refunds.money import multiply, percentage_of, subtract, to_money, total


class TestMoney:
    def test_sixty_five_percent_of_999_99(self):
        refund = percentage_of(999.99, 65)
        assert refund == 649.99
        assert subtract(999.99, refund) == 350.0

    def test_rounds_half_up(self):
        assert to_money(0.125) == 0.13
        assert to_money(2.675) == 2.68

    def test_multiply_and_total(self):
        assert multiply(19.99, 3) == 59.97
        assert total([0.1, 0.2, 0.3]) == 0.6

    def test_none_is_zero(self):
        assert to_money(None) == 0.0


class TestClock:
    def test_naive_datetimes_are_utc(self):
        assert as_utc(datetime(2026, 1, 1)).tzinfo == UTC
        assert as_utc(None) is None

    def test_hours_between_mixed_awareness(self):
        start = datetime(2026, 1, 1, 0, 0)
        end = datetime(2026, 1, 1, 6, 30, tzinfo=UTC)
        assert hours_between(start, end) == 6.5
