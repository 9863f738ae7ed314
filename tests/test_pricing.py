from conftest import make_code
from services.pricing import calculate_pricing, get_payment_link


def test_no_referral_pays_full_price(catalog) -> None:
    package = catalog.get_package("starter")
    pricing = calculate_pricing(package)
    assert pricing.original_price == 7999
    assert pricing.discount_percentage == 0
    assert pricing.discount_amount == 0
    assert pricing.final_price == 7999
    assert get_payment_link(package) == package.payment_link


def test_professional_with_twenty_percent_referral(catalog) -> None:
    package = catalog.get_package("professional")
    referral = make_code(
        discount_percentage=20,
        payment_link="https://rzp.io/ref-starter",
        payment_link2="https://rzp.io/ref-pro",
        payment_link3="https://rzp.io/ref-ent",
    )
    pricing = calculate_pricing(package, referral)
    assert pricing.original_price == 9600
    assert pricing.discount_amount == 1920
    assert pricing.final_price == 7680
    assert get_payment_link(package, referral) == "https://rzp.io/ref-pro"


def test_discount_is_floored_and_bounded(catalog) -> None:
    package = catalog.get_package("starter")
    for pct in range(0, 101):
        pricing = calculate_pricing(package, make_code(discount_percentage=pct))
        assert pricing.discount_amount == 7999 * pct // 100
        assert pricing.final_price == 7999 - pricing.discount_amount
        assert 0 <= pricing.final_price <= 7999


def test_out_of_range_percentage_is_clamped(catalog) -> None:
    package = catalog.get_package("enterprise")
    assert calculate_pricing(package, make_code(discount_percentage=150)).final_price == 0
    assert calculate_pricing(package, make_code(discount_percentage=-5)).final_price == 13200


def test_payment_link_fallbacks(catalog) -> None:
    enterprise = catalog.get_package("enterprise")
    only_primary = make_code(payment_link="https://rzp.io/ref-primary")
    assert get_payment_link(enterprise, only_primary) == "https://rzp.io/ref-primary"
    no_links = make_code()
    assert get_payment_link(enterprise, no_links) == enterprise.payment_link
