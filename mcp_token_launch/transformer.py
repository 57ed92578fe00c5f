"""
Draft to Submission Payload Transformation

Maps a completed configuration draft onto the request accepted by the token creation
service. The transformation is pure: the same draft, token address and timestamp always
produce an equal payload.

Conversion Rules:
- Percentages of supply (max wallet, max tx and their step variants) are sent as base-unit
  integer strings, computed with integer arithmetic from the total supply in base units
- The graduation cap is sent in base units; the total supply is sent as typed (whole tokens)
- LP lock durations are converted from days to seconds
- Fields whose source is blank are left out so the service applies its own defaults
- The token category is appended to the bio as ``[category]``
- Remote media become URL fields; local files are returned by ``collect_files``
"""
from typing import Any, Dict, Optional, Tuple

from mcp_token_launch import config
from mcp_token_launch.errors import InvalidDraftError
from mcp_token_launch.numeric import (
    is_int_string,
    normalize_decimal,
    parse_percent,
    percent_of_supply_to_base_units,
    resolve_launch_timestamp,
    safe_parse_int,
    to_base_units,
)
from mcp_token_launch.schemas import (
    ConfigurationDraft,
    DeploymentMode,
    FinalType,
    LocalAsset,
    LpMode,
    Profile,
    RemoteAsset,
    StartMode,
    SubmissionPayload,
)
from mcp_token_launch.utils import is_valid_address

SECONDS_PER_DAY = 24 * 60 * 60

TOKEN_CHOICES = {
    Profile.ZERO: "zero",
    Profile.SUPER: "simple",
    Profile.BASIC: "basic",
    Profile.ADVANCED: "advanced",
}

# Form part name for each media slot
FILE_FIELDS = {"logo": "logo", "banner": "banner", "audio": "mp3"}
URL_FIELDS = {"logo": "image_url", "banner": "banner_url", "audio": "audio_url"}


def _supply_share(percent, supply_base_units: int) -> Optional[str]:
    text = normalize_decimal(percent)
    if not text:
        return None
    return str(percent_of_supply_to_base_units(text, supply_base_units))


def _flag(value: bool) -> Optional[bool]:
    # False flags are omitted rather than sent
    return True if value else None


def _virtual_curve_fields(draft: ConfigurationDraft, supply_base_units: int) -> Dict[str, Any]:
    if draft.profile is None:
        raise InvalidDraftError("Cannot build a virtual curve request without a profile")
    profile = Profile(draft.profile)
    basics = draft.basics
    curves = draft.curves

    fields: Dict[str, Any] = {
        "token_type": 0,
        "token_choice": TOKEN_CHOICES[profile],
        "is_zero_simple": _flag(profile == Profile.ZERO),
        "is_super_simple": _flag(profile == Profile.SUPER),
        "is_stealth": _flag(basics.stealth),
    }

    grad_cap = basics.grad_cap.strip()
    if grad_cap:
        fields["graduation_cap"] = str(to_base_units(grad_cap, config.TOKEN_DECIMALS))

    if basics.start_mode == StartMode.NOW:
        fields["start_time"] = 0
    else:
        fields["start_time"] = resolve_launch_timestamp(basics.launch_date_time, basics.start_time)

    if basics.lp_mode == LpMode.BURN:
        fields["burn_lp"] = True
    else:
        lock_days = safe_parse_int(basics.lock_days)
        if lock_days:
            fields["lp_lock_duration"] = lock_days * SECONDS_PER_DAY

    if curves.final_type.get(profile) == FinalType.TAX:
        fields["final_tax_rate"] = parse_percent(curves.final_tax.get(profile, ""))

    if profile == Profile.SUPER:
        fields["curve_max_wallet"] = _supply_share(curves.super.max_wallet, supply_base_units)
        fields["curve_max_tx"] = _supply_share(curves.super.max_tx, supply_base_units)
    elif profile == Profile.BASIC:
        basic = curves.basic
        fields.update(
            curve_starting_tax=parse_percent(basic.start_tax),
            curve_tax_duration=safe_parse_int(basic.tax_duration),
            curve_max_wallet=_supply_share(basic.max_wallet, supply_base_units),
            curve_max_wallet_duration=safe_parse_int(basic.max_wallet_duration),
            curve_max_tx=_supply_share(basic.max_tx, supply_base_units),
            curve_max_tx_duration=safe_parse_int(basic.max_tx_duration),
        )
    elif profile == Profile.ADVANCED:
        adv = curves.advanced
        fields.update(
            curve_starting_tax=parse_percent(adv.start_tax),
            tax_drop_step=parse_percent(adv.tax_step),
            tax_drop_interval=safe_parse_int(adv.tax_interval),
            curve_max_wallet=_supply_share(adv.max_w_start, supply_base_units),
            max_wallet_step=_supply_share(adv.max_w_step, supply_base_units),
            max_wallet_interval=safe_parse_int(adv.max_w_interval),
            curve_max_tx=_supply_share(adv.max_t_start, supply_base_units),
            max_tx_step=_supply_share(adv.max_t_step, supply_base_units),
            max_tx_interval=safe_parse_int(adv.max_t_interval),
            limit_removal_time=safe_parse_int(adv.remove_after),
            tax_wallet=adv.tax_receiver.strip() or None,
        )
    return fields


def _v2_fields(draft: ConfigurationDraft, supply_base_units: int) -> Dict[str, Any]:
    v2 = draft.v2_settings
    fields: Dict[str, Any] = {
        "token_type": 1,
        "tax_wallet": v2.tax_settings.tax_receiver.strip() or None,
        "is_stealth": _flag(v2.stealth_config.enabled),
    }

    tax_config = v2.advanced_tax_config
    if tax_config.enabled:
        fields.update(
            curve_starting_tax=parse_percent(tax_config.start_tax),
            final_tax_rate=parse_percent(tax_config.final_tax),
            tax_drop_step=parse_percent(tax_config.tax_drop_step),
            tax_drop_interval=safe_parse_int(tax_config.tax_drop_interval),
        )
    else:
        buy_tax = parse_percent(v2.tax_settings.buy_tax) or 0.0
        sell_tax = parse_percent(v2.tax_settings.sell_tax) or 0.0
        fields["final_tax_rate"] = (buy_tax + sell_tax) / 2

    limits_config = v2.advanced_limits_config
    if limits_config.enabled:
        interval = safe_parse_int(limits_config.limits_interval)
        fields.update(
            curve_max_tx=_supply_share(limits_config.start_max_tx, supply_base_units),
            max_tx_step=_supply_share(limits_config.max_tx_step, supply_base_units),
            curve_max_wallet=_supply_share(limits_config.start_max_wallet, supply_base_units),
            max_wallet_step=_supply_share(limits_config.max_wallet_step, supply_base_units),
            max_wallet_interval=interval,
            max_tx_interval=interval,
        )
    elif v2.limits.enable_limits:
        fields.update(
            curve_max_wallet=_supply_share(v2.limits.max_wallet, supply_base_units),
            curve_max_tx=_supply_share(v2.limits.max_tx, supply_base_units),
        )
    return fields


def _metadata_fields(draft: ConfigurationDraft) -> Dict[str, Any]:
    meta = draft.meta
    bio = meta.description.strip()
    category = (draft.basics.token_category or "").strip()
    if category:
        # The service has no category field; it travels inside the bio
        bio = f"{bio} [{category}]" if bio else f"[{category}]"

    fields: Dict[str, Any] = {
        "bio": bio or None,
        "website": meta.website.strip() or None,
        "telegram": meta.telegram.strip() or None,
        "twitter": meta.twitter.strip() or None,
    }
    for slot, field_name in URL_FIELDS.items():
        asset = getattr(meta, slot)
        if isinstance(asset, RemoteAsset) and asset.url:
            fields[field_name] = asset.url
    return fields


def transform(
    draft: ConfigurationDraft,
    token_address: str,
    created_at_timestamp: Optional[int] = None,
    usd_spent: Optional[float] = None,
) -> SubmissionPayload:
    """
    Builds the submission payload for a draft.

    Args:
        draft: A draft that has passed validation for every step of its deployment mode.
        token_address: 0x-prefixed address of the token being registered.
        created_at_timestamp: Caller-supplied creation time, the only field allowed to differ
            between two transformations of the same draft.
        usd_spent: Optional USD value of the launch, forwarded as is.

    Raises:
        InvalidDraftError: If the address is malformed, or the draft lacks the selections
            or supply needed to build a complete request.
        MalformedNumberError: If a percentage field does not parse. Validation rejects
            these earlier, so reaching it is a defect.
    """
    if not is_valid_address(token_address):
        raise InvalidDraftError(f"Token address '{token_address}' is not a 0x-prefixed 40 hex digit address")
    if draft.deployment_mode is None:
        raise InvalidDraftError("Cannot build a request without a deployment mode")

    basics = draft.basics
    total_supply = basics.total_supply.strip()
    if not is_int_string(total_supply):
        raise InvalidDraftError(f"Total supply '{basics.total_supply}' is not a whole number of tokens")
    supply_base_units = to_base_units(total_supply, config.TOKEN_DECIMALS)

    fields: Dict[str, Any] = {
        "token_address": token_address,
        "name": basics.name.strip() or None,
        "symbol": basics.symbol.strip() or None,
        "total_supply": total_supply,
        "created_at_timestamp": created_at_timestamp,
        "usd_spent": usd_spent,
    }
    if DeploymentMode(draft.deployment_mode) == DeploymentMode.VIRTUAL_CURVE:
        fields.update(_virtual_curve_fields(draft, supply_base_units))
    else:
        fields.update(_v2_fields(draft, supply_base_units))
    fields.update(_metadata_fields(draft))

    return SubmissionPayload(**fields)


def collect_files(draft: ConfigurationDraft) -> Dict[str, Tuple[str, Any]]:
    """Local media of the draft as multipart file parts: ``{part: (filename, handle)}``."""
    files: Dict[str, Tuple[str, Any]] = {}
    for slot, part_name in FILE_FIELDS.items():
        asset = getattr(draft.meta, slot)
        if isinstance(asset, LocalAsset) and asset.handle is not None:
            files[part_name] = (asset.filename, asset.handle)
    return files
