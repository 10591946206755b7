from decimal import Decimal

import pytest

from checkout_bridge.errors import MissingReferenceError, UpstreamLookupError
from checkout_bridge.payments.models import CartLine
from checkout_bridge.payments.pricing import parse_price, resolve, to_minor_units


def _no_lookup(settings, reference):
    raise AssertionError("catalog lookup must not happen when the client price is valid")


@pytest.mark.parametrize("raw", ["19.99", "19,99", "$19.99", "€ 19,99", "19,99 EUR", " 19.990 "])
def test_parse_price_both_decimal_marks(raw, settings):
    assert to_minor_units(parse_price(raw), settings.currency) == 1999


@pytest.mark.parametrize("raw", ["1.234,56", "1,234.56", "$1,234.56"])
def test_parse_price_thousands_separator(raw):
    assert parse_price(raw) == Decimal("1234.56")


@pytest.mark.parametrize("raw", [None, "", "abc", "-5", "-0.01", "inf", "NaN", "1-2", True, float("inf")])
def test_parse_price_rejects_invalid(raw):
    assert parse_price(raw) is None


def test_parse_price_accepts_numbers():
    assert parse_price(9.99) == Decimal("9.99")
    assert parse_price(0) == Decimal("0")


@pytest.mark.parametrize("raw", [str(1e16), "1e+16", "2E-3", "5 e 2", "1" + "0" * 27, "9" * 40 + ".99"])
def test_parse_price_rejects_exponent_and_oversized_values(raw):
    assert parse_price(raw) is None


@pytest.mark.parametrize("price, expected", [
    ("2.675", 268),
    ("10.125", 1013),
    ("0.005", 1),
    ("0.004", 0),
    ("1.015", 102),
])
def test_to_minor_units_rounds_half_away_from_zero(price, expected):
    assert to_minor_units(Decimal(price), "usd") == expected


def test_to_minor_units_zero_decimal_currency():
    assert to_minor_units(Decimal("1500"), "jpy") == 1500
    assert to_minor_units(Decimal("1500.5"), "JPY") == 1501


def test_resolve_uses_client_price_without_lookup(settings):
    line = CartLine(item_reference="V1", quantity=2, client_asserted_price="9.99", title="Mug")
    item = resolve(line, settings, lookup_variant=_no_lookup)
    assert item.unit_amount_minor == 999
    assert item.quantity == 2
    assert item.item_reference == "V1"
    assert item.display_name == "Mug"
    assert item.currency == "usd"


def test_resolve_accepts_zero_price_as_free_item(settings):
    line = CartLine(item_reference="V1", quantity=1, client_asserted_price="0")
    item = resolve(line, settings, lookup_variant=_no_lookup)
    assert item.unit_amount_minor == 0
    assert item.display_name == "Product"


def test_resolve_falls_back_to_catalog_price(settings):
    calls = []

    def lookup(s, reference):
        calls.append(reference)
        return {"id": 42, "price": "12.50", "title": "Default Title"}

    item = resolve(CartLine(item_reference="42", quantity=1), settings, lookup_variant=lookup)
    assert calls == ["42"]
    assert item.unit_amount_minor == 1250
    assert item.display_name == "Product"


def test_resolve_falls_back_when_client_price_unparsable(settings):
    lookup = lambda s, ref: {"price": "7.30", "title": "Large", "product_title": "T-shirt"}
    item = resolve(CartLine(item_reference="7", quantity=1, client_asserted_price="free!"), settings, lookup_variant=lookup)
    assert item.unit_amount_minor == 730
    assert item.display_name == "T-shirt - Large"


def test_resolve_oversized_client_price_falls_back_to_catalog(settings):
    lookup = lambda s, ref: {"price": "12.00", "title": "Ring"}
    for raw in (str(1e16), "1" + "0" * 27):
        item = resolve(CartLine(item_reference="7", quantity=1, client_asserted_price=raw), settings, lookup_variant=lookup)
        assert item.unit_amount_minor == 1200


def test_resolve_uses_catalog_module_by_default(monkeypatch, settings):
    monkeypatch.setattr(
        "checkout_bridge.payments.pricing.catalog_repo.get_variant",
        lambda s, ref: {"price": "3.00", "title": "Sticker"},
    )
    item = resolve(CartLine(item_reference="9", quantity=3), settings)
    assert item.unit_amount_minor == 300
    assert item.display_name == "Sticker"


def test_resolve_missing_price_and_reference(settings):
    with pytest.raises(MissingReferenceError):
        resolve(CartLine(item_reference="", quantity=1, client_asserted_price="n/a"), settings, lookup_variant=_no_lookup)


def test_resolve_unknown_reference(settings):
    with pytest.raises(MissingReferenceError):
        resolve(CartLine(item_reference="404", quantity=1), settings, lookup_variant=lambda s, ref: None)


def test_resolve_catalog_without_price(settings):
    with pytest.raises(UpstreamLookupError):
        resolve(CartLine(item_reference="1", quantity=1), settings, lookup_variant=lambda s, ref: {"price": None})


def test_resolve_propagates_catalog_failure(settings):
    def boom(s, ref):
        raise UpstreamLookupError("Shopify down")

    with pytest.raises(UpstreamLookupError):
        resolve(CartLine(item_reference="1", quantity=1), settings, lookup_variant=boom)
