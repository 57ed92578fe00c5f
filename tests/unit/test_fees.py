import pytest

from mcp_token_launch import config
from mcp_token_launch.fees import compute_fees, creation_fee, platform_fee_percent, total_creation_cost
from mcp_token_launch.schemas import ConfigurationDraft, DeploymentMode, LpMode, Profile, StepId, TaxMode
from mcp_token_launch.validation import validate_step


@pytest.mark.parametrize(
    "profile, tax_mode, expected",
    [
        (Profile.ZERO, TaxMode.NO_TAX, 0.0),
        (Profile.SUPER, TaxMode.NO_TAX, 0.0),
        (Profile.BASIC, TaxMode.BASIC, 0.003),
        (Profile.ADVANCED, TaxMode.BASIC, 0.01),
        (None, TaxMode.BASIC, None),
        (None, None, None),
    ],
)
def test_creation_fee(profile, tax_mode, expected):
    assert creation_fee(profile, tax_mode) == expected


def test_basic_profile_under_no_tax_is_rejected_before_fee_lookup():
    draft = ConfigurationDraft(
        deployment_mode=DeploymentMode.VIRTUAL_CURVE,
        tax_mode=TaxMode.NO_TAX,
        profile=Profile.BASIC,
    )
    result = validate_step(StepId.TOKEN_TYPE, draft)
    assert result.ok is False
    assert "step" in result.errors


def test_platform_fee_percent():
    assert platform_fee_percent(Profile.ADVANCED) == 1.0
    assert platform_fee_percent(Profile.BASIC) == 0.6
    assert platform_fee_percent(Profile.SUPER) == 0.3
    assert platform_fee_percent(Profile.ZERO) == 0.3
    assert platform_fee_percent(None) == 0.3


def test_compute_fees_uses_configured_addons():
    fees = compute_fees(Profile.ADVANCED, TaxMode.BASIC)
    assert fees.creation == 0.01
    assert fees.platform_pct == 1.0
    assert fees.headerless_addon_fee == config.HEADERLESS_ADDON_FEE
    assert fees.stealth_addon_fee == config.STEALTH_ADDON_FEE
    assert fees.graduation_fee == config.GRADUATION_FEE
    assert fees.locker_fee == config.LOCKER_FEE


def test_total_creation_cost():
    fees = compute_fees(Profile.BASIC, TaxMode.BASIC)
    assert total_creation_cost(fees, remove_header=False, stealth=False) == pytest.approx(0.003)
    expected = 0.003 + fees.headerless_addon_fee + fees.stealth_addon_fee + fees.locker_fee
    assert total_creation_cost(fees, True, True, LpMode.LOCK) == pytest.approx(expected)
    assert total_creation_cost(fees, False, False, LpMode.BURN) == pytest.approx(0.003)


def test_total_creation_cost_without_profile():
    fees = compute_fees(None, None)
    assert total_creation_cost(fees, remove_header=True, stealth=False) == pytest.approx(fees.headerless_addon_fee)
