from src.music_school.music_school.billing.calculator.standard_calculator import StandardBillingCalculator
from src.music_school.music_school.billing.model import BillingItem


def test_cycle_amount_uses_lesson_price():
    assert StandardBillingCalculator(450).cycle_amount(4) == 1800.0


def test_items_amount_applies_discount_and_adjustment():
    items = [BillingItem("Lessons 1-4", 4, 500), BillingItem("Books", 1, 250)]
    calc = StandardBillingCalculator()

    assert calc.items_amount(items) == 2250.0
    assert calc.items_amount(items, discount=300, adjustment=50) == 2000.0


def test_items_amount_never_negative():
    assert StandardBillingCalculator().items_amount([BillingItem("Promo", 1, 100)], discount=500) == 0.0
