"""Tests for configuration optimization rules."""

from collections import deque

from location_engine.models.domain import NetworkCondition, ProviderDescriptor, ReliabilityAssessment
from location_engine.optimization.optimizer import ConfigurationOptimizer


def descriptor(name, weight=0.5, consent=False, **config):
    return ProviderDescriptor(
        name=name, requires_user_consent=consent, static_weight=weight, config=config
    )


def assessment(endpoint, score, avg_ms=100.0):
    return ReliabilityAssessment(
        endpoint=endpoint,
        attempts=3,
        successes=3,
        response_times_ms=deque([avg_ms] * 3, maxlen=50),
        reliability_score=score,
    )


IP = descriptor("ip", 0.6, endpoints=["ipapi.co", "ipinfo.io", "ip-api.com"])
FIXED = descriptor("fixed", 0.7, latitude=1.0, longitude=2.0)
ON_DEVICE = descriptor("on_device", 0.9, consent=True, desired_accuracy="best")
GEOCODE = descriptor("address_geocode", 0.8, address="1 Main St", api_key="secret")


def optimize(**kwargs):
    defaults = dict(
        descriptors=[IP, FIXED, ON_DEVICE],
        assessments=[],
        network=NetworkCondition(),
        preferences=[],
        consent_granted=True,
        max_response_time_ms=5000.0,
        available={},
    )
    defaults.update(kwargs)
    return ConfigurationOptimizer().optimize(**defaults)


def test_consent_required_provider_dropped():
    ranked = optimize(consent_granted=False, available={"fixed": True, "on_device": True})
    assert "on_device" not in ranked.provider_order
    assert ranked.dropped["on_device"] == "consent_not_granted"
    assert not ranked.consent_granted


def test_slow_provider_dropped():
    ranked = optimize(
        assessments=[assessment("fixed", 90.0, avg_ms=8000.0)],
        available={"on_device": True},
    )
    assert "fixed" not in ranked.provider_order
    assert ranked.dropped["fixed"] == "response_time_exceeded"


def test_ranked_by_score_then_boolean_success():
    ranked = optimize(
        assessments=[assessment("ipapi.co", 72.5)],
        available={"fixed": True, "on_device": False},
    )
    assert ranked.provider_order == ["fixed", "ip", "on_device"]
    assert ranked.scores == {"ip": 72.5, "fixed": 100.0, "on_device": 0.0}


def test_ip_endpoints_reordered_and_slow_ones_removed():
    ranked = optimize(
        assessments=[
            assessment("ipapi.co", 40.0),
            assessment("ipinfo.io", 95.0),
            assessment("ip-api.com", 99.0, avg_ms=9000.0),
        ],
    )
    assert ranked.provider_settings["ip"]["endpoints"] == ["ipinfo.io", "ipapi.co"]
    assert ranked.scores["ip"] == 99.0


def test_unmeasured_ip_endpoints_kept_last():
    ranked = optimize(assessments=[assessment("ipinfo.io", 95.0)])
    assert ranked.provider_settings["ip"]["endpoints"] == ["ipinfo.io", "ipapi.co", "ip-api.com"]


def test_preferences_move_to_front_keeping_rank():
    ranked = optimize(
        assessments=[assessment("ipapi.co", 80.0)],
        available={"fixed": True, "on_device": True},
        preferences=["ip", "address_geocode"],
    )
    assert ranked.provider_order[0] == "ip"
    assert ranked.provider_order[1:] == ["fixed", "on_device"]


def test_mobile_network_forces_on_device_first():
    ranked = optimize(
        assessments=[assessment("ipapi.co", 99.0)],
        available={"fixed": True, "on_device": True},
        network=NetworkCondition(is_mobile=True, is_reliable=False, connection_type="mobile"),
        preferences=["fixed"],
    )
    assert ranked.provider_order[0] == "on_device"


def test_mobile_network_ignores_unavailable_on_device():
    ranked = optimize(
        available={"fixed": True, "on_device": False},
        network=NetworkCondition(is_mobile=True, is_reliable=False),
    )
    assert ranked.provider_order[0] != "on_device"


def test_vpn_moves_ip_to_back_but_keeps_it():
    ranked = optimize(
        assessments=[assessment("ipapi.co", 99.0)],
        available={"fixed": True, "on_device": False},
        network=NetworkCondition(is_vpn=True, is_reliable=False, connection_type="vpn"),
        preferences=["ip"],
    )
    assert ranked.provider_order[-1] == "ip"
    assert len(ranked.provider_order) == 3


def test_hybrid_needs_two_providers():
    assert optimize(available={"fixed": True}).hybrid_enabled
    single = optimize(descriptors=[FIXED], available={"fixed": True})
    assert single.provider_order == ["fixed"]
    assert not single.hybrid_enabled


def test_nothing_left_is_empty_and_not_hybrid():
    ranked = optimize(descriptors=[ON_DEVICE], consent_granted=False)
    assert ranked.provider_order == []
    assert not ranked.hybrid_enabled


def test_secrets_not_persisted_but_weights_are():
    ranked = optimize(descriptors=[GEOCODE, FIXED], available={"address_geocode": True, "fixed": True})
    assert "api_key" not in ranked.provider_settings["address_geocode"]
    assert ranked.provider_settings["address_geocode"]["weight"] == 0.8
    assert ranked.provider_settings["fixed"]["latitude"] == 1.0
