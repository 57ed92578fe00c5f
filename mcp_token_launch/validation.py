"""
Step Validation Rules

This module holds the business rules the wizard enforces before leaving a step. Rules are
pure functions registered in a table keyed by ``(step, profile)``; the profile part is
only used by the curve step, whose inputs differ per profile. Adding a profile is a new
table entry, not a new branch.

Every rule returns a mapping of field id to message. Field ids are the dotted paths the
wizard accepts in ``update_field`` (``basics.grad_cap``, ``curves.advanced.tax_interval``),
so a presenter can attach each message to its input. Problems that belong to a step as a
whole use the id ``step``.

Validation never mutates the draft and never raises for bad user input.
"""
import time
from typing import Callable, Dict, Optional, Tuple

from mcp.server.fastmcp.utilities.logging import get_logger

from mcp_token_launch import config
from mcp_token_launch.numeric import (
    is_int_string,
    parse_percent,
    resolve_launch_timestamp,
    safe_parse_float,
    safe_parse_int,
)
from mcp_token_launch.schemas import (
    ConfigurationDraft,
    FinalType,
    LpMode,
    Profile,
    StartMode,
    StepId,
    TaxMode,
    TradingMode,
    ValidationResult,
)
from mcp_token_launch.utils import is_valid_address

logger = get_logger(__name__)

MAX_FINAL_TAX = 5.0

ALLOWED_PROFILES = {
    TaxMode.NO_TAX: frozenset({Profile.ZERO, Profile.SUPER}),
    TaxMode.BASIC: frozenset({Profile.BASIC, Profile.ADVANCED}),
}

Rule = Callable[[ConfigurationDraft, int], Dict[str, str]]


def is_profile_allowed(profile, tax_mode) -> bool:
    """Whether a profile can be picked under a tax mode. Every profile is open until a tax mode is chosen."""
    if tax_mode is None:
        return True
    return Profile(profile) in ALLOWED_PROFILES[TaxMode(tax_mode)]


def _label(value) -> str:
    return getattr(value, "value", value)


def _in_range(value: Optional[float], low: float, high: float) -> bool:
    return value is not None and low <= value <= high


def _final_tax_errors(draft: ConfigurationDraft, profile: Profile) -> Dict[str, str]:
    if draft.curves.final_type.get(profile) != FinalType.TAX:
        return {}
    final_tax = parse_percent(draft.curves.final_tax.get(profile, ""))
    if not _in_range(final_tax, 0, MAX_FINAL_TAX):
        return {f"curves.final_tax.{profile.value}": "Enter 0-5%."}
    return {}


# --- Step rules ---

def check_deployment(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    if draft.deployment_mode is None:
        return {"deployment_mode": "Choose a deployment mode to continue."}
    return {}


def check_token_type(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    if draft.tax_mode is None or draft.profile is None:
        return {"step": "Choose a tax mode and a profile to continue."}
    if not is_profile_allowed(draft.profile, draft.tax_mode):
        return {
            "step": f"The {_label(draft.profile)} profile is not available with the {_label(draft.tax_mode)} tax mode."
        }
    return {}


def check_basics(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    basics = draft.basics
    errors: Dict[str, str] = {}

    if not basics.name.strip():
        errors["basics.name"] = "Name is required."
    if not basics.symbol.strip():
        errors["basics.symbol"] = "Symbol is required."

    supply_text = basics.total_supply.strip()
    supply_ok = is_int_string(supply_text) and int(supply_text) > 0
    if not supply_ok:
        errors["basics.total_supply"] = "Enter a valid positive integer."

    cap_text = basics.grad_cap.strip()
    if cap_text:
        if not is_int_string(cap_text) or int(cap_text) <= 0:
            errors["basics.grad_cap"] = "Graduation cap must be a positive integer."
        elif supply_ok and int(cap_text) > int(supply_text):
            errors["basics.grad_cap"] = "Graduation cap must not exceed the total supply."

    if basics.start_mode == StartMode.SCHEDULE:
        launch_at = resolve_launch_timestamp(basics.launch_date_time, basics.start_time)
        if launch_at is None or launch_at < now:
            errors["basics.launch_date_time"] = "Start time must be now or later."

    if basics.lp_mode == LpMode.LOCK:
        lock_days = safe_parse_int(basics.lock_days)
        if lock_days is None or lock_days < config.MIN_LOCK_DAYS:
            errors["basics.lock_days"] = f"Lock duration must be at least {config.MIN_LOCK_DAYS} days."

    return errors


def check_zero_curve(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    return _final_tax_errors(draft, Profile.ZERO)


def check_super_curve(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    errors = _final_tax_errors(draft, Profile.SUPER)
    # Blank means "no limit"
    for field in ("max_wallet", "max_tx"):
        text = getattr(draft.curves.super, field).strip()
        if not text:
            continue
        value = parse_percent(text)
        if value is None or not 0 < value <= 100:
            errors[f"curves.super.{field}"] = "Enter a value between 0.1-100%."
    return errors


def check_basic_curve(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    curve = draft.curves.basic
    errors = _final_tax_errors(draft, Profile.BASIC)

    if not _in_range(parse_percent(curve.start_tax), 0, 100):
        errors["curves.basic.start_tax"] = "Enter 0-100%."
    for field in ("tax_duration", "max_wallet_duration", "max_tx_duration"):
        if not is_int_string(getattr(curve, field)):
            errors[f"curves.basic.{field}"] = "Enter a whole number of seconds."
    for field in ("max_wallet", "max_tx"):
        if not is_int_string(getattr(curve, field)):
            errors[f"curves.basic.{field}"] = "Enter a whole percentage of supply."
    return errors


_ADVANCED_STEP_PAIRS = (
    ("tax_step", "tax_interval"),
    ("max_w_step", "max_w_interval"),
    ("max_t_step", "max_t_interval"),
)


def check_advanced_curve(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    curve = draft.curves.advanced
    errors = _final_tax_errors(draft, Profile.ADVANCED)

    if not _in_range(parse_percent(curve.start_tax), 0, 100):
        errors["curves.advanced.start_tax"] = "Enter 0-100%."

    for step_field, interval_field in _ADVANCED_STEP_PAIRS:
        step_text = getattr(curve, step_field).strip()
        step = parse_percent(step_text) if step_text else 0.0
        if step is None or step < 0:
            errors[f"curves.advanced.{step_field}"] = "Enter a non-negative number."
            continue
        if step > 0:
            interval = safe_parse_int(getattr(curve, interval_field))
            if interval is None or interval <= 0:
                errors[f"curves.advanced.{interval_field}"] = "If step > 0, interval must be a positive number of seconds."

    starts = {}
    for field in ("max_w_start", "max_t_start"):
        text = getattr(curve, field).strip()
        if not text:
            continue
        value = parse_percent(text)
        if value is None or not 0 < value <= 100:
            errors[f"curves.advanced.{field}"] = "Enter a value between 0.1-100%."
        else:
            starts[field] = value
    if len(starts) == 2 and starts["max_t_start"] > starts["max_w_start"]:
        errors["curves.advanced.max_t_start"] = "Max Tx start must not exceed Max Wallet start."

    if not is_int_string(curve.remove_after):
        errors["curves.advanced.remove_after"] = "Enter a whole number of seconds."
    if not is_valid_address(curve.tax_receiver.strip()):
        errors["curves.advanced.tax_receiver"] = "Enter a valid address (0x followed by 40 hex digits)."
    return errors


def _positive(text) -> bool:
    value = safe_parse_float(text)
    return value is not None and value > 0


def check_v2_settings(draft: ConfigurationDraft, now: int) -> Dict[str, str]:
    v2 = draft.v2_settings
    errors: Dict[str, str] = {}

    if v2.enable_trading_mode == TradingMode.FULL_LAUNCH and not _positive(v2.initial_liquidity_eth):
        errors["v2_settings.initial_liquidity_eth"] = "Initial liquidity must be greater than 0."

    taxes = v2.tax_settings
    buy_tax = parse_percent(taxes.buy_tax)
    sell_tax = parse_percent(taxes.sell_tax)
    if not _in_range(buy_tax, 0, 100):
        errors["v2_settings.tax_settings.buy_tax"] = "Buy tax must be between 0-100%."
    if not _in_range(sell_tax, 0, 100):
        errors["v2_settings.tax_settings.sell_tax"] = "Sell tax must be between 0-100%."
    if ((buy_tax or 0) > 0 or (sell_tax or 0) > 0) and not is_valid_address(taxes.tax_receiver.strip()):
        errors["v2_settings.tax_settings.tax_receiver"] = "A valid tax receiver address is required when taxes are above 0."

    if v2.limits.enable_limits:
        for field in ("max_wallet", "max_tx"):
            if not _in_range(parse_percent(getattr(v2.limits, field)), 0, 100):
                errors[f"v2_settings.limits.{field}"] = "Enter a value between 0-100% of supply."

    tax_config = v2.advanced_tax_config
    if tax_config.enabled:
        start_tax = parse_percent(tax_config.start_tax)
        final_tax = parse_percent(tax_config.final_tax)
        if not _in_range(start_tax, 0, 100):
            errors["v2_settings.advanced_tax_config.start_tax"] = "Start tax must be between 0-100%."
        if not _in_range(final_tax, 0, 100):
            errors["v2_settings.advanced_tax_config.final_tax"] = "Final tax must be between 0-100%."
        elif start_tax is not None and final_tax > start_tax:
            errors["v2_settings.advanced_tax_config.final_tax"] = "Final tax must not exceed the start tax."
        if not _in_range(parse_percent(tax_config.tax_drop_step), 0, 100):
            errors["v2_settings.advanced_tax_config.tax_drop_step"] = "Tax drop step must be between 0-100%."
        interval = safe_parse_int(tax_config.tax_drop_interval)
        if not is_int_string(tax_config.tax_drop_interval) or interval <= 0:
            errors["v2_settings.advanced_tax_config.tax_drop_interval"] = "Tax drop interval must be a positive number of seconds."

    limits_config = v2.advanced_limits_config
    if limits_config.enabled:
        for field in ("start_max_tx", "start_max_wallet"):
            value = parse_percent(getattr(limits_config, field))
            if value is None or not 0 < value <= 100:
                errors[f"v2_settings.advanced_limits_config.{field}"] = "Enter a value between 0.1-100% of supply."
        for field in ("max_tx_step", "max_wallet_step"):
            if not _in_range(parse_percent(getattr(limits_config, field)), 0, 100):
                errors[f"v2_settings.advanced_limits_config.{field}"] = "Step must be between 0-100%."
        interval = safe_parse_int(limits_config.limits_interval)
        if not is_int_string(limits_config.limits_interval) or interval <= 0:
            errors["v2_settings.advanced_limits_config.limits_interval"] = "Limits interval must be a positive number of seconds."

    if v2.stealth_config.enabled and not _positive(v2.stealth_config.eth_amount):
        errors["v2_settings.stealth_config.eth_amount"] = "Stealth amount must be greater than 0."

    return errors


RULES: Dict[Tuple[StepId, Optional[Profile]], Rule] = {
    (StepId.DEPLOYMENT, None): check_deployment,
    (StepId.TOKEN_TYPE, None): check_token_type,
    (StepId.BASICS, None): check_basics,
    (StepId.CURVE, Profile.ZERO): check_zero_curve,
    (StepId.CURVE, Profile.SUPER): check_super_curve,
    (StepId.CURVE, Profile.BASIC): check_basic_curve,
    (StepId.CURVE, Profile.ADVANCED): check_advanced_curve,
    (StepId.V2_SETTINGS, None): check_v2_settings,
}

PROFILE_STEPS = frozenset({StepId.CURVE})


def has_rules(step_id) -> bool:
    """True when leaving the step can fail validation."""
    step_id = StepId(step_id)
    return step_id in PROFILE_STEPS or (step_id, None) in RULES


def validate_step(step_id, draft: ConfigurationDraft, now: Optional[int] = None) -> ValidationResult:
    """
    Checks the inputs belonging to one step of the wizard.

    Args:
        step_id: The step to check (a StepId or its name).
        draft: The configuration draft; it is read, never modified.
        now: Current epoch seconds, used for scheduled launch times. Defaults to the clock.

    Returns:
        ValidationResult with ``ok`` and the field-id to message map.
    """
    step_id = StepId(step_id)
    now = int(time.time()) if now is None else now

    if step_id in PROFILE_STEPS:
        if draft.profile is None:
            errors = {"step": "Choose a profile before configuring the curve."}
        else:
            errors = RULES[(step_id, Profile(draft.profile))](draft, now)
    else:
        rule = RULES.get((step_id, None))
        errors = rule(draft, now) if rule else {}

    if errors:
        logger.debug(f"Step {step_id.value} failed validation: {sorted(errors)}")
    return ValidationResult(ok=not errors, errors=errors)
