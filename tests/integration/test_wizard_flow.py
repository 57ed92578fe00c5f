import asyncio
import io
from unittest.mock import AsyncMock, patch

import pytest

from mcp_token_launch import config
from mcp_token_launch.errors import (
    ConfirmationBlockedError,
    InvalidDraftError,
    InvalidFieldError,
    InvalidStepError,
    SubmissionError,
)
from mcp_token_launch.schemas import (
    LocalAsset,
    Profile,
    RemoteAsset,
    StepId,
    SubmissionPayload,
    SubmissionResult,
    SubmissionStatus,
    TaxMode,
    UnsetAsset,
)
from mcp_token_launch.wizard import LaunchWizard, valid_steps

TOKEN_ADDRESS = "0x" + "12" * 20
NOW = 1_800_000_000


def make_wizard(submitter=None, chain_id=1) -> LaunchWizard:
    return LaunchWizard(submitter=submitter, chain_id_provider=lambda: chain_id, clock=lambda: NOW)


def walk_to_review(wizard: LaunchWizard, profile: str = "SUPER", tax_mode: str = "NO_TAX") -> None:
    """Drives a virtual curve draft through every step up to review."""
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    assert wizard.request_advance().ok
    wizard.set_tax_mode(tax_mode)
    wizard.set_profile(profile)
    assert wizard.request_advance().ok
    wizard.update_field("basics", {"name": "Moon", "symbol": "MOON"})
    assert wizard.request_advance().ok
    wizard.update_field("curves.super.maxWallet", "2")
    assert wizard.request_advance().ok
    assert wizard.request_advance().ok
    assert wizard.request_advance().ok
    assert wizard.current_step_id == StepId.REVIEW


def ready_wizard(submitter) -> LaunchWizard:
    wizard = make_wizard(submitter)
    walk_to_review(wizard)
    wizard.acknowledge_fees(True)
    return wizard


# --- Initialization ---

def test_initial_draft_defaults():
    wizard = make_wizard(chain_id=56)
    draft = wizard.draft
    assert draft.step == 0
    assert draft.deployment_mode is None
    assert draft.basics.total_supply == config.DEFAULT_TOTAL_SUPPLY
    assert draft.basics.lock_days == config.DEFAULT_LOCK_DAYS
    assert draft.fees.creation is None
    assert draft.network.chain_name == "BSC"
    assert draft.network.native_symbol == "BNB"
    assert wizard.valid_steps == [0]


def test_step_layouts():
    assert valid_steps(None) == [0]
    assert valid_steps("VIRTUAL_CURVE") == [0, 1, 2, 3, 4, 5, 6]
    assert valid_steps("V2_LAUNCH") == [0, 2, 3, 4, 5, 6]


# --- Navigation ---

def test_advance_without_deployment_mode_stays_with_errors():
    wizard = make_wizard()
    result = wizard.request_advance()
    assert result.ok is False
    assert "deployment_mode" in wizard.draft.errors
    assert wizard.draft.step == 0

    wizard.set_deployment_mode("VIRTUAL_CURVE")
    assert wizard.draft.errors == {}
    assert wizard.request_advance().ok
    assert wizard.draft.step == 1


def test_failed_advance_keeps_step_and_records_errors():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.request_advance()
    result = wizard.request_advance()
    assert result.ok is False
    assert wizard.draft.step == 1
    assert wizard.draft.errors == {"step": result.errors["step"]}


def test_go_to_step_clears_errors():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.request_advance()
    wizard.request_advance()
    assert wizard.draft.errors
    wizard.go_to_step(0)
    assert wizard.draft.errors == {}
    with pytest.raises(InvalidStepError):
        wizard.go_to_step(7)


def test_v2_launch_skips_token_type_step():
    wizard = make_wizard()
    wizard.set_deployment_mode("V2_LAUNCH")
    assert wizard.request_advance().ok
    assert wizard.draft.step == 2
    assert wizard.current_step_id == StepId.BASICS

    wizard.update_field("basics.name", "Moon")
    wizard.update_field("basics.symbol", "MOON")
    assert wizard.request_advance().ok
    assert wizard.current_step_id == StepId.V2_SETTINGS

    wizard.retreat()
    wizard.retreat()
    assert wizard.draft.step == 0
    with pytest.raises(InvalidStepError):
        wizard.retreat()


def test_full_virtual_curve_walk():
    wizard = make_wizard()
    walk_to_review(wizard)
    assert wizard.draft.step == 6
    assert wizard.max_visited == 6
    with pytest.raises(InvalidStepError):
        wizard.request_advance()


def test_jump_only_to_visited_steps():
    fresh = make_wizard()
    fresh.set_deployment_mode("VIRTUAL_CURVE")
    fresh.request_advance()
    with pytest.raises(InvalidStepError):
        fresh.jump_to(3)
    with pytest.raises(InvalidStepError):
        fresh.jump_to(9)

    wizard = make_wizard()
    walk_to_review(wizard)
    wizard.jump_to(1)
    assert wizard.draft.step == 1
    wizard.jump_to(6)
    assert wizard.draft.step == 6


def test_selection_change_requires_revalidation():
    wizard = make_wizard()
    walk_to_review(wizard)
    wizard.jump_to(1)
    wizard.set_profile("ZERO")
    assert wizard.max_visited == 1
    with pytest.raises(InvalidStepError):
        wizard.jump_to(4)
    with pytest.raises(InvalidStepError):
        wizard.request_advance(5)
    assert wizard.request_advance().ok
    assert wizard.draft.step == 2


def test_advance_to_visited_target():
    wizard = make_wizard()
    walk_to_review(wizard)
    wizard.jump_to(2)
    assert wizard.request_advance(6).ok
    assert wizard.draft.step == 6


# --- Selections and fees ---

def test_tax_mode_change_clears_disallowed_profile():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.set_tax_mode("NO_TAX")
    wizard.set_profile("ZERO")
    assert wizard.draft.fees.creation == 0.0

    wizard.set_tax_mode("BASIC")
    assert wizard.draft.profile is None
    assert wizard.draft.fees.creation is None

    wizard.set_profile("BASIC")
    assert wizard.draft.fees.creation == 0.003
    assert wizard.draft.fees.platform_pct == 0.6

    wizard.set_profile("ADVANCED")
    assert wizard.draft.fees.creation == 0.01


def test_tax_mode_change_keeps_allowed_profile():
    wizard = make_wizard()
    wizard.set_profile("ADVANCED")
    wizard.set_tax_mode(TaxMode.BASIC)
    assert wizard.draft.profile == Profile.ADVANCED
    assert wizard.draft.fees.creation == 0.01


def test_v2_mode_clears_curve_selection():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.set_tax_mode("BASIC")
    wizard.set_profile("BASIC")
    wizard.set_deployment_mode("V2_LAUNCH")
    assert wizard.draft.tax_mode is None
    assert wizard.draft.profile is None
    assert wizard.draft.fees.creation is None


# --- Field edits ---

def test_update_field_accepts_camel_case_and_never_validates():
    wizard = make_wizard()
    wizard.update_field("basics.gradCap", "2000")
    wizard.update_field("basics.total_supply", "1000")
    wizard.update_field("curves.advanced.taxInterval", 300)
    wizard.update_field("basics.lpMode", "BURN")
    wizard.update_field("curves.finalType.ZERO", "TAX")
    wizard.update_field("curves.final_tax.zero", 4)

    draft = wizard.draft
    assert draft.basics.grad_cap == "2000"
    assert draft.curves.advanced.tax_interval == "300"
    assert draft.basics.lp_mode == "BURN"
    assert draft.curves.final_type[Profile.ZERO] == "TAX"
    assert draft.curves.final_tax[Profile.ZERO] == "4"
    assert draft.errors == {}


@pytest.mark.parametrize(
    "path",
    ["fees.creation", "errors", "step", "profile", "taxMode", "deployment_mode", "submission.acknowledged"],
)
def test_update_field_rejects_protected_paths(path):
    wizard = make_wizard()
    with pytest.raises(InvalidFieldError):
        wizard.update_field(path, "x")


@pytest.mark.parametrize("path", ["", "basics.unknown", "nope", "curves.final_type.GIGA", "basics.name.first", "basics"])
def test_update_field_rejects_bad_paths(path):
    wizard = make_wizard()
    with pytest.raises(InvalidFieldError):
        wizard.update_field(path, "x")


def test_update_field_rejects_bad_choice():
    wizard = make_wizard()
    with pytest.raises(InvalidFieldError):
        wizard.update_field("basics.lp_mode", "SELL")


def test_null_clears_a_field_and_is_reported_on_advance():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.request_advance()
    wizard.set_tax_mode("NO_TAX")
    wizard.set_profile("ZERO")
    wizard.request_advance()

    wizard.update_field("basics.name", None)
    wizard.update_field("basics.tokenCategory", None)
    wizard.update_field("basics.stealth", None)
    wizard.update_field("curves.final_tax.ZERO", None)
    assert wizard.draft.basics.name == ""
    assert wizard.draft.basics.token_category is None
    assert wizard.draft.basics.stealth is False
    assert wizard.draft.curves.final_tax[Profile.ZERO] == ""

    result = wizard.request_advance()
    assert result.ok is False
    assert "basics.name" in wizard.draft.errors


@pytest.mark.parametrize(
    "path, value",
    [("basics.name", ["Moon"]), ("basics.symbol", {"text": "MOON"}), ("basics.start_time", None), ("basics.lp_mode", None)],
)
def test_update_field_rejects_unusable_values(path, value):
    wizard = make_wizard()
    with pytest.raises(InvalidFieldError):
        wizard.update_field(path, value)


def test_editing_an_earlier_step_moves_back_to_it():
    wizard = make_wizard()
    walk_to_review(wizard)

    wizard.update_field("basics.symbol", "MOONY")
    assert wizard.current_step_id == StepId.BASICS
    assert wizard.max_visited == 2
    with pytest.raises(InvalidStepError):
        wizard.jump_to(6)

    assert wizard.request_advance().ok
    assert wizard.current_step_id == StepId.CURVE


def test_metadata_edit_at_review_keeps_position():
    wizard = make_wizard()
    walk_to_review(wizard)
    wizard.update_field("meta.website", "https://moon.example")
    assert wizard.current_step_id == StepId.REVIEW
    assert wizard.max_visited == 6


def test_mode_change_at_later_step_returns_to_start():
    wizard = make_wizard()
    walk_to_review(wizard)
    wizard.set_deployment_mode("V2_LAUNCH")
    assert wizard.draft.step == 0
    assert wizard.max_visited == 0


def test_assets_are_mutually_exclusive():
    wizard = make_wizard()
    wizard.update_field("meta.logo", "https://example.com/logo.png")
    assert wizard.draft.meta.logo == RemoteAsset(url="https://example.com/logo.png")

    upload = io.BytesIO(b"\x89PNG")
    upload.name = "/tmp/logo.png"
    wizard.update_field("meta.logo", upload)
    assert isinstance(wizard.draft.meta.logo, LocalAsset)
    assert wizard.draft.meta.logo.filename == "logo.png"

    wizard.update_field("meta.logo", "")
    assert isinstance(wizard.draft.meta.logo, UnsetAsset)

    asset = wizard.set_asset("audio", file=b"ID3", filename="theme.mp3")
    assert asset.filename == "theme.mp3"
    wizard.set_asset("audio", url="https://example.com/theme.mp3")
    assert isinstance(wizard.draft.meta.audio, RemoteAsset)
    with pytest.raises(InvalidFieldError):
        wizard.set_asset("audio", url="https://example.com/a.mp3", file=b"ID3")
    with pytest.raises(InvalidFieldError):
        wizard.set_asset("video", url="https://example.com/a.mp4")


def test_advanced_interval_scenario_through_wizard():
    wizard = make_wizard()
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.request_advance()
    wizard.set_tax_mode("BASIC")
    wizard.set_profile("ADVANCED")
    wizard.request_advance()
    wizard.update_field("basics", {"name": "Moon", "symbol": "MOON"})
    wizard.request_advance()
    wizard.update_field(
        "curves.advanced",
        {"startTax": "20", "taxStep": "5", "taxInterval": "", "removeAfter": "0", "taxReceiver": "0x" + "ab" * 20},
    )

    result = wizard.request_advance()
    assert result.ok is False
    assert "curves.advanced.tax_interval" in wizard.draft.errors
    assert wizard.current_step_id == StepId.CURVE

    wizard.update_field("curves.advanced.taxInterval", "300")
    assert wizard.request_advance().ok
    assert wizard.draft.errors == {}
    assert wizard.current_step_id == StepId.FEES


# --- Confirmation ---

@pytest.mark.asyncio
async def test_confirm_requires_acknowledgement():
    submitter = AsyncMock()
    wizard = make_wizard(submitter)
    walk_to_review(wizard)
    with pytest.raises(ConfirmationBlockedError):
        await wizard.confirm(TOKEN_ADDRESS)
    submitter.assert_not_called()


@pytest.mark.asyncio
async def test_confirm_success():
    submitter = AsyncMock(return_value=SubmissionResult(success=True, tx_hash="0xfeed"))
    wizard = ready_wizard(submitter)

    result = await wizard.confirm(TOKEN_ADDRESS, usd_spent=12.5)

    assert result.success
    submission = wizard.draft.submission
    assert submission.status == SubmissionStatus.SUCCESS
    assert submission.tx_hash == "0xfeed"
    assert submission.submitting is False

    payload, files = submitter.call_args.args
    assert isinstance(payload, SubmissionPayload)
    assert payload.token_address == TOKEN_ADDRESS
    assert payload.curve_max_wallet == str(2 * 10**25)
    assert payload.created_at_timestamp == NOW * 1000
    assert payload.usd_spent == 12.5
    assert files == {}

    with pytest.raises(ConfirmationBlockedError):
        await wizard.confirm(TOKEN_ADDRESS)


@pytest.mark.asyncio
async def test_confirm_generates_temp_address():
    submitter = AsyncMock(return_value=SubmissionResult(success=True))
    wizard = ready_wizard(submitter)
    await wizard.confirm()
    payload = submitter.call_args.args[0]
    assert payload.token_address.startswith("0x")
    assert len(payload.token_address) == 42


@pytest.mark.asyncio
async def test_confirm_error_then_retry():
    submitter = AsyncMock(
        side_effect=[
            SubmissionResult(success=False, error="Token creation failed: 500 Internal Server Error - boom"),
            SubmissionResult(success=True, tx_hash="0xbeef"),
        ]
    )
    wizard = ready_wizard(submitter)

    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success is False
    submission = wizard.draft.submission
    assert submission.status == SubmissionStatus.ERROR
    assert submission.error == "Token creation failed: 500 Internal Server Error - boom"
    assert submission.submitting is False
    assert wizard.draft.basics.name == "Moon"

    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success
    assert submission.status == SubmissionStatus.SUCCESS
    assert submission.error is None


@pytest.mark.asyncio
async def test_confirm_records_submission_error():
    submitter = AsyncMock(side_effect=SubmissionError("Token creation request failed: connection refused"))
    wizard = ready_wizard(submitter)
    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success is False
    assert wizard.draft.submission.status == SubmissionStatus.ERROR
    assert wizard.draft.submission.error == "Token creation request failed: connection refused"


@pytest.mark.asyncio
async def test_confirm_times_out():
    async def slow_submitter(payload, files):
        await asyncio.sleep(5)
        return SubmissionResult(success=True)

    wizard = ready_wizard(slow_submitter)
    with patch.object(config, "SUBMIT_TIMEOUT_SECONDS", 0.01):
        result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success is False
    assert "timed out" in result.error
    assert wizard.draft.submission.status == SubmissionStatus.ERROR
    assert wizard.draft.submission.submitting is False


@pytest.mark.asyncio
async def test_confirm_is_reentrancy_guarded():
    release = asyncio.Event()
    calls = []

    async def gated_submitter(payload, files):
        calls.append(payload)
        await release.wait()
        return SubmissionResult(success=True, tx_hash="0x01")

    wizard = ready_wizard(gated_submitter)
    first = asyncio.create_task(wizard.confirm(TOKEN_ADDRESS))
    while not calls:
        await asyncio.sleep(0)

    assert wizard.draft.submission.submitting is True
    assert wizard.draft.submission.status == SubmissionStatus.PENDING
    with pytest.raises(ConfirmationBlockedError):
        await wizard.confirm(TOKEN_ADDRESS)

    release.set()
    result = await first
    assert result.success
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_confirm_incomplete_draft_moves_to_first_failing_step():
    submitter = AsyncMock()
    wizard = make_wizard(submitter)
    wizard.set_deployment_mode("VIRTUAL_CURVE")
    wizard.acknowledge_fees(True)

    result = await wizard.confirm(TOKEN_ADDRESS)

    assert result.success is False
    assert "TOKEN_TYPE" in result.error
    assert wizard.draft.step == 1
    assert "step" in wizard.draft.errors
    submitter.assert_not_called()
    assert wizard.draft.submission.submitting is False
    assert wizard.draft.submission.status is None


@pytest.mark.asyncio
async def test_confirm_with_bad_token_address_fails_loudly():
    submitter = AsyncMock()
    wizard = ready_wizard(submitter)
    with pytest.raises(InvalidDraftError):
        await wizard.confirm("0x123")
    submitter.assert_not_called()
    assert wizard.draft.submission.submitting is False
    assert wizard.draft.submission.status is None


@pytest.mark.asyncio
async def test_edits_at_review_are_validated_before_submission():
    submitter = AsyncMock(return_value=SubmissionResult(success=True, tx_hash="0xfeed"))
    wizard = ready_wizard(submitter)

    wizard.update_field("curves.super.max_wallet", "150")
    wizard.update_field("basics.grad_cap", "5000000000")
    result = await wizard.confirm(TOKEN_ADDRESS)

    assert result.success is False
    submitter.assert_not_called()
    assert wizard.current_step_id == StepId.BASICS
    assert "basics.grad_cap" in wizard.draft.errors

    wizard.update_field("basics.grad_cap", "")
    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success is False
    assert wizard.current_step_id == StepId.CURVE
    assert "curves.super.max_wallet" in wizard.draft.errors
    submitter.assert_not_called()

    wizard.update_field("curves.super.max_wallet", "2")
    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success
    submitter.assert_awaited_once()


@pytest.mark.asyncio
async def test_disallowed_profile_chosen_at_review_is_not_submitted():
    submitter = AsyncMock(return_value=SubmissionResult(success=True))
    wizard = ready_wizard(submitter)

    wizard.set_profile("ADVANCED")
    assert wizard.draft.step == 1
    assert wizard.max_visited == 1

    result = await wizard.confirm(TOKEN_ADDRESS)
    assert result.success is False
    assert wizard.current_step_id == StepId.TOKEN_TYPE
    assert "step" in wizard.draft.errors
    submitter.assert_not_called()


@pytest.mark.asyncio
async def test_confirm_sends_local_files():
    submitter = AsyncMock(return_value=SubmissionResult(success=True))
    wizard = ready_wizard(submitter)
    wizard.set_asset("logo", file=b"\x89PNG", filename="logo.png")
    await wizard.confirm(TOKEN_ADDRESS)
    files = submitter.call_args.args[1]
    assert files == {"logo": ("logo.png", b"\x89PNG")}
