from typing import Any, Dict, List

import pytest
import stripe

from checkout_bridge.errors import UpstreamLookupError
from checkout_bridge.payments import discounts, stripe_client
from checkout_bridge.payments.stripe_client import AlreadyExistsError

REQUEST_OPTIONS = {"api_key", "stripe_version", "stripe_account", "idempotency_key"}


def _sdk_param_keys(params_name: str, resource: Any) -> set:
    # TypedDict des paramètres: stripe.params (SDK récents) ou Resource.CreateParams
    typed = getattr(getattr(stripe, "params", None), params_name, None) or getattr(resource, "CreateParams", None)
    if typed is None:
        pytest.skip(f"{params_name} absent de ce SDK")
    return set(typed.__required_keys__) | set(typed.__optional_keys__)


def _check_against_sdk(kwargs: Dict[str, Any], params_name: str, resource: Any) -> None:
    unknown = set(kwargs) - REQUEST_OPTIONS - _sdk_param_keys(params_name, resource)
    assert not unknown, f"paramètres inconnus du SDK: {sorted(unknown)}"


def _promotion(promo_id: str = "promo_1", code: str = "SUMMER10") -> stripe.StripeObject:
    return stripe.StripeObject.construct_from(
        {"id": promo_id, "object": "promotion_code", "code": code, "active": True}, "sk_test_123"
    )


@pytest.fixture
def sdk_calls(monkeypatch) -> Dict[str, List[Dict[str, Any]]]:
    calls: Dict[str, List[Dict[str, Any]]] = {"coupon": [], "promotion": [], "list": []}

    def coupon_create(**kwargs):
        calls["coupon"].append(kwargs)
        return stripe.StripeObject.construct_from({"id": kwargs["id"], "object": "coupon"}, "sk_test_123")

    def promotion_create(**kwargs):
        calls["promotion"].append(kwargs)
        return _promotion(code=kwargs["code"])

    def promotion_list(**kwargs):
        calls["list"].append(kwargs)
        return stripe.StripeObject.construct_from({"object": "list", "data": [], "has_more": False}, "sk_test_123")

    monkeypatch.setattr("checkout_bridge.payments.stripe_client.stripe.Coupon.create", coupon_create)
    monkeypatch.setattr("checkout_bridge.payments.stripe_client.stripe.PromotionCode.create", promotion_create)
    monkeypatch.setattr("checkout_bridge.payments.stripe_client.stripe.PromotionCode.list", promotion_list)
    return calls


def test_promotion_code_params_match_sdk(settings, sdk_calls):
    stripe_client.create_promotion_code(
        settings,
        coupon_id="shopify-abc",
        code="SUMMER10",
        restrictions={"minimum_amount": 5000, "minimum_amount_currency": "usd"},
        metadata={"source": "shopify"},
    )

    sent = sdk_calls["promotion"][0]
    assert sent["promotion"] == {"type": "coupon", "coupon": "shopify-abc"}
    assert "coupon" not in sent
    assert sent["code"] == "SUMMER10"
    assert sent["restrictions"] == {"minimum_amount": 5000, "minimum_amount_currency": "usd"}
    assert sent["api_key"] == "sk_test_123"
    _check_against_sdk(sent, "PromotionCodeCreateParams", stripe.PromotionCode)


def test_coupon_params_match_sdk(settings, sdk_calls):
    rule = discounts.rule_from_price_rule({"id": 1, "value_type": "percentage", "value": "-10.0"}, "usd")
    stripe_client.create_coupon(settings, "shopify-abc", discounts.coupon_params(rule, "SUMMER10", "usd"))

    sent = sdk_calls["coupon"][0]
    assert sent["id"] == "shopify-abc"
    assert sent["percent_off"] == 10.0
    assert sent["duration"] == "once"
    _check_against_sdk(sent, "CouponCreateParams", stripe.Coupon)


def test_find_promotion_code_reads_stripe_list(settings, monkeypatch):
    seen = {}

    def promotion_list(**kwargs):
        seen.update(kwargs)
        return stripe.StripeObject.construct_from(
            {"object": "list", "has_more": False,
             "data": [{"id": "promo_9", "object": "promotion_code", "code": "SUMMER10"}]},
            "sk_test_123",
        )

    monkeypatch.setattr("checkout_bridge.payments.stripe_client.stripe.PromotionCode.list", promotion_list)
    found = stripe_client.find_promotion_code(settings, "SUMMER10")

    assert found["id"] == "promo_9"
    assert found["code"] == "SUMMER10"
    assert seen["code"] == "SUMMER10"
    assert seen["active"] is True
    assert seen["limit"] == 1


def test_find_promotion_code_empty_list(settings, sdk_calls):
    assert stripe_client.find_promotion_code(settings, "NOPE") is None


def test_as_dict_reads_stripe_objects():
    assert stripe_client.as_dict(_promotion())["code"] == "SUMMER10"
    assert stripe_client.as_dict(None) == {}


@pytest.mark.parametrize("create_path, call", [
    ("checkout_bridge.payments.stripe_client.stripe.Coupon.create",
     lambda s: stripe_client.create_coupon(s, "shopify-abc", {"duration": "once", "percent_off": 10.0})),
    ("checkout_bridge.payments.stripe_client.stripe.PromotionCode.create",
     lambda s: stripe_client.create_promotion_code(s, coupon_id="shopify-abc", code="SUMMER10")),
])
def test_resource_already_exists_maps_to_already_exists(settings, monkeypatch, create_path, call):
    def conflict(**kwargs):
        raise stripe.InvalidRequestError("Resource already exists.", "id", code="resource_already_exists")

    monkeypatch.setattr(create_path, conflict)
    with pytest.raises(AlreadyExistsError):
        call(settings)


def test_other_stripe_errors_are_upstream_failures(settings, monkeypatch):
    def reject(**kwargs):
        raise stripe.InvalidRequestError("Received unknown parameter: coupon", "coupon")

    monkeypatch.setattr("checkout_bridge.payments.stripe_client.stripe.PromotionCode.create", reject)
    with pytest.raises(UpstreamLookupError) as exc:
        stripe_client.create_promotion_code(settings, coupon_id="shopify-abc", code="SUMMER10")
    assert not isinstance(exc.value, AlreadyExistsError)


def test_translate_through_sdk_returns_promotion(settings, monkeypatch, sdk_calls):
    rule = {
        "id": 507, "value_type": "percentage", "value": "-10.0",
        "prerequisite_subtotal_range": {"greater_than_or_equal_to": "50.00"},
    }
    monkeypatch.setattr(
        "checkout_bridge.payments.discounts.catalog_repo.lookup_discount_code",
        lambda s, code: {"discount_code": {"code": code, "price_rule_id": 507}, "price_rule": rule},
    )

    promotion = discounts.translate(settings, "SUMMER10")

    assert promotion is not None
    assert promotion.external_id == "promo_1"
    assert promotion.code == "SUMMER10"
    sent = sdk_calls["promotion"][0]
    assert sent["promotion"] == {"type": "coupon", "coupon": sdk_calls["coupon"][0]["id"]}
    assert sent["restrictions"] == {"minimum_amount": 5000, "minimum_amount_currency": "usd"}
    _check_against_sdk(sent, "PromotionCodeCreateParams", stripe.PromotionCode)
