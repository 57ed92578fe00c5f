"""
Fee Schedule for Token Launches

Pure functions mapping the selected profile and tax mode to the creation fee (in the
chain's native currency) and the platform fee percentage taken from trades.

Fee Table:
- ZERO / SUPER: free to create
- BASIC: 0.003 with the BASIC tax mode, 0.001 otherwise
- ADVANCED: 0.01
- Platform fee: ADVANCED 1.0%, BASIC 0.6%, everything else 0.3%

The wizard calls ``compute_fees`` at the single point where profile or tax mode change,
and stores the returned snapshot on the draft. Nothing derives fees at display time.
"""
from typing import Optional

from mcp_token_launch import config
from mcp_token_launch.schemas import Fees, LpMode, Profile, TaxMode

_FREE_PROFILES = {Profile.ZERO, Profile.SUPER}


def creation_fee(profile: Optional[Profile], tax_mode: Optional[TaxMode]) -> Optional[float]:
    """Creation fee for a profile; None while no profile is selected."""
    if profile is None:
        return None
    if profile in _FREE_PROFILES:
        return 0.0
    if profile == Profile.BASIC:
        return 0.003 if tax_mode == TaxMode.BASIC else 0.001
    if profile == Profile.ADVANCED:
        return 0.01
    raise ValueError(f"Unknown profile '{profile}'")


def platform_fee_percent(profile: Optional[Profile]) -> float:
    if profile == Profile.ADVANCED:
        return 1.0
    if profile == Profile.BASIC:
        return 0.6
    return 0.3


def compute_fees(profile: Optional[Profile], tax_mode: Optional[TaxMode]) -> Fees:
    """Builds the full fee snapshot stored on the draft."""
    return Fees(
        creation=creation_fee(profile, tax_mode),
        platform_pct=platform_fee_percent(profile),
        headerless_addon_fee=config.HEADERLESS_ADDON_FEE,
        stealth_addon_fee=config.STEALTH_ADDON_FEE,
        graduation_fee=config.GRADUATION_FEE,
        locker_fee=config.LOCKER_FEE,
    )


def total_creation_cost(fees: Fees, remove_header: bool, stealth: bool, lp_mode: Optional[LpMode] = None) -> float:
    """Up-front cost of the launch: creation fee plus the selected add-ons."""
    total = fees.creation or 0.0
    if remove_header:
        total += fees.headerless_addon_fee
    if stealth:
        total += fees.stealth_addon_fee
    if lp_mode == LpMode.LOCK:
        total += fees.locker_fee
    return round(total, 9)
