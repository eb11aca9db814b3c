from datetime import date

from django.test import SimpleTestCase

from subscriptions.services.schedule import next_order_date


class NextOrderDateTests(SimpleTestCase):
    """
    GUARANTEES:
    - Day-based frequencies add whole weeks
    - Month-based frequencies clamp to the end of shorter months
    - Unknown frequencies fall back to 30 days per interval
    """

    def test_weekly_and_biweekly(self):
        self.assertEqual(next_order_date(date(2026, 3, 1), "weekly"), date(2026, 3, 8))
        self.assertEqual(next_order_date(date(2026, 3, 1), "weekly", 3), date(2026, 3, 22))
        self.assertEqual(next_order_date(date(2026, 3, 1), "biweekly", 2), date(2026, 3, 29))

    def test_monthly_clamps_to_month_end(self):
        self.assertEqual(next_order_date(date(2026, 1, 31), "monthly"), date(2026, 2, 28))
        self.assertEqual(next_order_date(date(2028, 1, 31), "monthly"), date(2028, 2, 29))
        self.assertEqual(next_order_date(date(2026, 11, 15), "monthly", 2), date(2027, 1, 15))

    def test_quarterly_and_yearly(self):
        self.assertEqual(next_order_date(date(2026, 11, 30), "quarterly"), date(2027, 2, 28))
        self.assertEqual(next_order_date(date(2028, 2, 29), "yearly"), date(2029, 2, 28))

    def test_unknown_frequency_defaults_to_30_days(self):
        self.assertEqual(next_order_date(date(2026, 1, 1), "fortnightly", 2), date(2026, 3, 2))
