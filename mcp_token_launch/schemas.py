"""
Pydantic Data Models for the Token Launch Wizard

This module defines the configuration draft edited by the wizard, its nested records,
the derived fee snapshot and the payload handed to the token creation service.

Key Components:
- Enums: deployment mode, tax mode, profile, start/LP modes, step ids and submission status
- TokenBasics / CurveSettings / V2Settings / MetaData: the per-step input records
- Asset: a tagged union (remote URL, local file, unset) for logo, banner and audio
- Fees: derived fee snapshot, recomputed by the wizard whenever profile or tax mode change
- ConfigurationDraft: the complete in-memory draft owned by one wizard instance
- SubmissionPayload / SubmissionResult: the contract with the submission collaborator

Records keep the raw strings the user typed. Models are not validated on assignment, so
a half-typed value never blocks editing; the validation engine reports problems instead.
Field names are snake_case; the camelCase names used by the front end are accepted as
aliases.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DeploymentMode(str, Enum):
    VIRTUAL_CURVE = "VIRTUAL_CURVE"
    V2_LAUNCH = "V2_LAUNCH"


class TaxMode(str, Enum):
    BASIC = "BASIC"
    NO_TAX = "NO_TAX"


class Profile(str, Enum):
    ZERO = "ZERO"
    SUPER = "SUPER"
    BASIC = "BASIC"
    ADVANCED = "ADVANCED"


class StartMode(str, Enum):
    NOW = "NOW"
    SCHEDULE = "SCHEDULE"


class LpMode(str, Enum):
    LOCK = "LOCK"
    BURN = "BURN"


class FinalType(str, Enum):
    NO_TAX = "NO_TAX"
    TAX = "TAX"


class TradingMode(str, Enum):
    DEPLOY_ONLY = "DEPLOY_ONLY"
    FULL_LAUNCH = "FULL_LAUNCH"


class StepId(str, Enum):
    DEPLOYMENT = "DEPLOYMENT"
    TOKEN_TYPE = "TOKEN_TYPE"
    BASICS = "BASICS"
    CURVE = "CURVE"
    V2_SETTINGS = "V2_SETTINGS"
    FEES = "FEES"
    METADATA = "METADATA"
    REVIEW = "REVIEW"


class SubmissionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Step records ---

class TokenBasics(_Record):
    name: str = ""
    symbol: str = ""
    total_supply: str = ""
    grad_cap: str = ""
    token_category: Optional[str] = None
    start_mode: StartMode = StartMode.NOW
    start_time: int = 0
    launch_date_time: Optional[str] = None
    lp_mode: LpMode = LpMode.LOCK
    lock_days: Union[int, str] = 90
    remove_header: bool = False
    stealth: bool = False


class SuperCurve(_Record):
    max_wallet: str = ""
    max_tx: str = ""


class BasicCurve(_Record):
    start_tax: str = ""
    tax_duration: str = ""
    max_wallet: str = ""
    max_wallet_duration: str = ""
    max_tx: str = ""
    max_tx_duration: str = ""


class AdvancedCurve(_Record):
    start_tax: str = ""
    tax_step: str = ""
    tax_interval: str = ""
    max_w_start: str = ""
    max_w_step: str = ""
    max_w_interval: str = ""
    max_t_start: str = ""
    max_t_step: str = ""
    max_t_interval: str = ""
    remove_after: str = ""
    tax_receiver: str = ""


def _per_profile(value: Any) -> Dict[Profile, Any]:
    return {profile: value for profile in Profile}


class CurveSettings(_Record):
    final_type: Dict[Profile, FinalType] = Field(default_factory=lambda: _per_profile(FinalType.NO_TAX))
    final_tax: Dict[Profile, str] = Field(default_factory=lambda: _per_profile(""))
    super: SuperCurve = Field(default_factory=SuperCurve)
    basic: BasicCurve = Field(default_factory=BasicCurve)
    advanced: AdvancedCurve = Field(default_factory=AdvancedCurve)


class V2TaxSettings(_Record):
    buy_tax: str = "0"
    sell_tax: str = "0"
    tax_receiver: str = ""


class V2Limits(_Record):
    max_wallet: str = "2"
    max_tx: str = "2"
    enable_limits: bool = False


class V2AdvancedTaxConfig(_Record):
    enabled: bool = False
    start_tax: str = "20"
    final_tax: str = "3"
    tax_drop_interval: str = "3600"
    tax_drop_step: str = "1"


class V2AdvancedLimitsConfig(_Record):
    enabled: bool = False
    start_max_tx: str = "1"
    max_tx_step: str = "0.5"
    start_max_wallet: str = "2"
    max_wallet_step: str = "0.1"
    limits_interval: str = "3600"


class V2StealthConfig(_Record):
    enabled: bool = False
    eth_amount: str = "1.0"


class V2Settings(_Record):
    enable_trading_mode: TradingMode = TradingMode.DEPLOY_ONLY
    initial_liquidity_eth: str = "1.0"
    tax_settings: V2TaxSettings = Field(default_factory=V2TaxSettings)
    limits: V2Limits = Field(default_factory=V2Limits)
    advanced_tax_config: V2AdvancedTaxConfig = Field(default_factory=V2AdvancedTaxConfig)
    advanced_limits_config: V2AdvancedLimitsConfig = Field(default_factory=V2AdvancedLimitsConfig)
    stealth_config: V2StealthConfig = Field(default_factory=V2StealthConfig)


# --- Media assets ---

class RemoteAsset(_Record):
    kind: Literal["remote"] = "remote"
    url: str


class LocalAsset(_Record):
    kind: Literal["local"] = "local"
    filename: str = "upload"
    # Opaque file handle (bytes or a binary file object); never serialized
    handle: Any = Field(default=None, exclude=True)


class UnsetAsset(_Record):
    kind: Literal["unset"] = "unset"


Asset = Annotated[Union[RemoteAsset, LocalAsset, UnsetAsset], Field(discriminator="kind")]


class MetaData(_Record):
    description: str = ""
    website: str = ""
    telegram: str = ""
    twitter: str = ""
    logo: Asset = Field(default_factory=UnsetAsset)
    banner: Asset = Field(default_factory=UnsetAsset)
    audio: Asset = Field(default_factory=UnsetAsset)
    auto_brand: bool = False


# --- Derived and session state ---

class Fees(_Record):
    creation: Optional[float] = None
    platform_pct: float = 0.3
    headerless_addon_fee: float = 0.001
    stealth_addon_fee: float = 0.003
    graduation_fee: float = 0.1
    locker_fee: float = 0.08


class NetworkInfo(_Record):
    chain_id: Optional[int] = None
    chain_name: str = "Unknown"
    native_symbol: str = "ETH"


class SubmissionState(_Record):
    acknowledged: bool = False
    submitting: bool = False
    status: Optional[SubmissionStatus] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None


class ConfigurationDraft(_Record):
    step: int = 0
    deployment_mode: Optional[DeploymentMode] = None
    tax_mode: Optional[TaxMode] = None
    profile: Optional[Profile] = None
    basics: TokenBasics = Field(default_factory=TokenBasics)
    curves: CurveSettings = Field(default_factory=CurveSettings)
    v2_settings: V2Settings = Field(default_factory=V2Settings)
    fees: Fees = Field(default_factory=Fees)
    meta: MetaData = Field(default_factory=MetaData)
    network: NetworkInfo = Field(default_factory=NetworkInfo)
    errors: Dict[str, str] = Field(default_factory=dict)
    submission: SubmissionState = Field(default_factory=SubmissionState)


class ValidationResult(BaseModel):
    ok: bool
    errors: Dict[str, str] = Field(default_factory=dict)


# --- Submission contract ---

class SubmissionPayload(BaseModel):
    """Request body for the token creation service. Absent values stay None and are omitted."""

    token_address: str

    name: Optional[str] = None
    symbol: Optional[str] = None
    total_supply: Optional[str] = None
    graduation_cap: Optional[str] = None

    token_type: Optional[int] = None
    token_choice: Optional[Literal["zero", "simple", "basic", "advanced"]] = None
    is_zero_simple: Optional[bool] = None
    is_super_simple: Optional[bool] = None
    is_stealth: Optional[bool] = None

    start_time: Optional[int] = None
    burn_lp: Optional[bool] = None
    lp_lock_duration: Optional[int] = None

    final_tax_rate: Optional[float] = None
    curve_starting_tax: Optional[float] = None
    curve_tax_duration: Optional[int] = None
    curve_max_wallet: Optional[str] = None
    curve_max_wallet_duration: Optional[int] = None
    curve_max_tx: Optional[str] = None
    curve_max_tx_duration: Optional[int] = None
    tax_drop_step: Optional[float] = None
    tax_drop_interval: Optional[int] = None
    max_wallet_step: Optional[str] = None
    max_wallet_interval: Optional[int] = None
    max_tx_step: Optional[str] = None
    max_tx_interval: Optional[int] = None
    limit_removal_time: Optional[int] = None
    tax_wallet: Optional[str] = None

    bio: Optional[str] = None
    website: Optional[str] = None
    telegram: Optional[str] = None
    twitter: Optional[str] = None
    image_url: Optional[str] = None
    banner_url: Optional[str] = None
    audio_url: Optional[str] = None

    created_at_timestamp: Optional[int] = None
    usd_spent: Optional[float] = None

    def to_form_fields(self) -> Dict[str, str]:
        """Flattens the payload into multipart text fields, skipping absent and empty values."""
        fields: Dict[str, str] = {}
        for key, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, bool):
                fields[key] = "true" if value else "false"
            elif value != "":
                fields[key] = str(value)
        return fields


class SubmissionResult(BaseModel):
    success: bool
    tx_hash: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
