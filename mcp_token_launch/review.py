"""Review screen overview: human-readable (label, value) rows and the total cost quote."""
from typing import Dict, List, Optional, Tuple

from mcp_token_launch.fees import total_creation_cost
from mcp_token_launch.schemas import (
    ConfigurationDraft,
    DeploymentMode,
    LpMode,
    Profile,
    StartMode,
    TaxMode,
    TradingMode,
)

PROFILE_TITLES = {
    Profile.ZERO: "Zero Simple",
    Profile.SUPER: "Super Simple",
    Profile.BASIC: "Basic",
    Profile.ADVANCED: "Advanced",
}

PROFILE_DESCRIPTIONS = {
    Profile.ZERO: "0% curve tax, no limits. Fast and frictionless.",
    Profile.SUPER: "0% curve tax with static Max Tx/Wallet.",
    Profile.BASIC: "Static curve tax and static limits for a fixed duration.",
    Profile.ADVANCED: "Decaying tax & limits, timed removal; highly configurable.",
}

Entry = Tuple[str, str]


def _amount(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _v2_entries(draft: ConfigurationDraft, symbol: str) -> List[Entry]:
    v2 = draft.v2_settings
    full_launch = v2.enable_trading_mode == TradingMode.FULL_LAUNCH
    entries = [
        ("Trading mode", "Full Launch" if full_launch else "Deploy Only"),
        ("Initial liquidity", f"{v2.initial_liquidity_eth} {symbol}"),
        ("Buy tax", f"{v2.tax_settings.buy_tax}%"),
        ("Sell tax", f"{v2.tax_settings.sell_tax}%"),
    ]
    tax_config = v2.advanced_tax_config
    if tax_config.enabled:
        entries += [
            ("Start tax", f"{tax_config.start_tax}%"),
            ("Final tax", f"{tax_config.final_tax}%"),
            ("Tax drop step", f"{tax_config.tax_drop_step}% every {tax_config.tax_drop_interval}s"),
        ]
    limits_config = v2.advanced_limits_config
    if limits_config.enabled:
        entries += [
            ("Start max transaction", f"{limits_config.start_max_tx}% of supply"),
            ("Max transaction step", f"+{limits_config.max_tx_step}% per interval"),
            ("Start max wallet", f"{limits_config.start_max_wallet}% of supply"),
            ("Max wallet step", f"+{limits_config.max_wallet_step}% per interval"),
            ("Limits interval", f"{limits_config.limits_interval}s"),
        ]
    elif v2.limits.enable_limits:
        entries += [
            ("Max wallet", f"{v2.limits.max_wallet}%"),
            ("Max transaction", f"{v2.limits.max_tx}%"),
        ]
    if v2.stealth_config.enabled:
        entries.append(("Stealth launch", f"{v2.stealth_config.eth_amount} {symbol}"))
    return entries


def overview_entries(draft: ConfigurationDraft) -> List[Entry]:
    """Rows shown on the review step, in display order."""
    basics = draft.basics
    fees = draft.fees
    symbol = draft.network.native_symbol
    virtual_curve = draft.deployment_mode == DeploymentMode.VIRTUAL_CURVE

    entries: List[Entry] = [
        ("Deployment mode", "Virtual Curve" if virtual_curve else "Direct V2 Launch"),
    ]
    if virtual_curve:
        entries.append(("Tax mode", "TAX" if draft.tax_mode == TaxMode.BASIC else "NO-TAX"))
        entries.append(("Profile", PROFILE_TITLES.get(draft.profile, "-")))
    elif draft.deployment_mode == DeploymentMode.V2_LAUNCH:
        entries += _v2_entries(draft, symbol)

    entries += [
        ("Name", basics.name),
        ("Symbol", basics.symbol),
        ("Total supply", basics.total_supply),
    ]
    if virtual_curve:
        if basics.start_mode == StartMode.NOW:
            start = "Now"
        else:
            start = basics.launch_date_time or f"At {basics.start_time} (epoch seconds)"
        entries += [
            ("Graduation cap", basics.grad_cap or "-"),
            ("Start time", start),
            ("LP handling", f"Lock {basics.lock_days} days" if basics.lp_mode == LpMode.LOCK else "Burn"),
            ("Stealth", _yes_no(basics.stealth)),
        ]
    entries.append(("Remove header", _yes_no(basics.remove_header)))

    if virtual_curve:
        entries += [
            ("Creation fee", f"{_amount(fees.creation)} {symbol}"),
            ("Platform fee", f"{_amount(fees.platform_pct)}%"),
            ("Graduation fee", f"{_amount(fees.graduation_fee)} {symbol}"),
            ("Locker fee", f"{_amount(fees.locker_fee)} {symbol}" if basics.lp_mode == LpMode.LOCK else "-"),
        ]
    entries.append(("Network", draft.network.chain_name))
    return entries


def review_summary(draft: ConfigurationDraft) -> Dict[str, object]:
    lp_mode = draft.basics.lp_mode if draft.deployment_mode == DeploymentMode.VIRTUAL_CURVE else None
    total = total_creation_cost(draft.fees, draft.basics.remove_header, draft.basics.stealth, lp_mode)
    return {
        "entries": [{"label": label, "value": value} for label, value in overview_entries(draft)],
        "total_cost": total,
        "native_symbol": draft.network.native_symbol,
        "acknowledged": draft.submission.acknowledged,
    }
