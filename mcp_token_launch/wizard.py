"""
Token Launch Wizard State Machine

This module owns the configuration draft for one open wizard and every transition on it.
The step graph is linear per deployment mode; back navigation is free, forward
navigation is gated by the validation engine for the step being left.

Key Components:
- STEP_LAYOUTS: step number to step id for each deployment mode
- LaunchWizard: draft holder exposing field edits, mode/profile selection, navigation,
  fee acknowledgement and the asynchronous confirm action

Fees are derived data. They are recomputed in ``_apply_selection``, the only place where
deployment mode, tax mode or profile change, so every reader sees a consistent snapshot.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, get_args

from pydantic import BaseModel, TypeAdapter
from pydantic.alias_generators import to_camel
from mcp.server.fastmcp.utilities.logging import get_logger

from mcp_token_launch import config
from mcp_token_launch.chains import ChainIdProvider, default_chain_id, network_defaults
from mcp_token_launch.errors import (
    ConfirmationBlockedError,
    InvalidFieldError,
    InvalidStepError,
    SubmissionError,
)
from mcp_token_launch.fees import compute_fees
from mcp_token_launch.schemas import (
    Asset,
    ConfigurationDraft,
    DeploymentMode,
    LocalAsset,
    MetaData,
    Profile,
    RemoteAsset,
    StepId,
    SubmissionPayload,
    SubmissionResult,
    SubmissionStatus,
    TaxMode,
    UnsetAsset,
    ValidationResult,
)
from mcp_token_launch.submission import submit_token
from mcp_token_launch.transformer import collect_files, transform
from mcp_token_launch.utils import generate_temp_token_address
from mcp_token_launch.validation import has_rules, is_profile_allowed, validate_step

logger = get_logger(__name__)

Submitter = Callable[[SubmissionPayload, Dict[str, Tuple[str, Any]]], Awaitable[SubmissionResult]]

STEP_LAYOUTS: Dict[Optional[DeploymentMode], Dict[int, StepId]] = {
    None: {0: StepId.DEPLOYMENT},
    DeploymentMode.VIRTUAL_CURVE: {
        0: StepId.DEPLOYMENT,
        1: StepId.TOKEN_TYPE,
        2: StepId.BASICS,
        3: StepId.CURVE,
        4: StepId.FEES,
        5: StepId.METADATA,
        6: StepId.REVIEW,
    },
    DeploymentMode.V2_LAUNCH: {
        0: StepId.DEPLOYMENT,
        2: StepId.BASICS,
        3: StepId.V2_SETTINGS,
        4: StepId.FEES,
        5: StepId.METADATA,
        6: StepId.REVIEW,
    },
}

# Set through dedicated operations only
PROTECTED_FIELDS = frozenset({"step", "fees", "errors", "deployment_mode", "tax_mode", "profile", "submission", "network"})
ASSET_FIELDS = frozenset({"logo", "banner", "audio"})

# Draft record to the step that collects it
FIELD_STEPS = {
    "basics": StepId.BASICS,
    "curves": StepId.CURVE,
    "v2_settings": StepId.V2_SETTINGS,
    "meta": StepId.METADATA,
}

_asset_adapter = TypeAdapter(Asset)


def step_layout(deployment_mode: Optional[DeploymentMode]) -> Dict[int, StepId]:
    return STEP_LAYOUTS[DeploymentMode(deployment_mode) if deployment_mode else None]


def valid_steps(deployment_mode: Optional[DeploymentMode]) -> List[int]:
    return sorted(step_layout(deployment_mode))


def to_asset(value: Any, filename: Optional[str] = None) -> Asset:
    """
    Converts a user-provided media source into an Asset.

    A string is a URL, bytes or a binary file object is a local upload, and None or a
    blank string clears the slot. Picking one kind replaces the other.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return UnsetAsset()
    if isinstance(value, (RemoteAsset, LocalAsset, UnsetAsset)):
        return value
    if isinstance(value, str):
        return RemoteAsset(url=value.strip())
    if isinstance(value, dict):
        return _asset_adapter.validate_python(value)
    if isinstance(value, (bytes, bytearray)) or hasattr(value, "read"):
        name = filename or getattr(value, "name", None) or "upload"
        return LocalAsset(filename=str(name).rsplit("/", 1)[-1], handle=value)
    raise InvalidFieldError(f"Unsupported media source of type {type(value).__name__}")


def _resolve_field(record: BaseModel, segment: str) -> str:
    fields = type(record).model_fields
    if segment in fields:
        return segment
    for name in fields:
        if to_camel(name) == segment:
            return name
    raise InvalidFieldError(f"Unknown field '{segment}' on {type(record).__name__}")


def _coerce(record: BaseModel, name: str, value: Any) -> Any:
    annotation = type(record).model_fields[name].annotation
    if isinstance(value, (dict, list, tuple, set)):
        raise InvalidFieldError(f"'{name}' takes a single value, not {type(value).__name__}")
    if value is None:
        # null clears a field back to its blank value
        allowed = get_args(annotation) or (annotation,)
        if type(None) in allowed:
            return None
        if str in allowed:
            return ""
        if bool in allowed:
            return False
        raise InvalidFieldError(f"'{name}' cannot be cleared")
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        try:
            return annotation(value)
        except ValueError:
            raise InvalidFieldError(f"'{value}' is not a valid choice for {name}")
    if annotation is str and isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class LaunchWizard:
    """
    One wizard session: the draft, the furthest step reached and the submission state.

    Args:
        submitter: Async collaborator receiving the payload and local file parts.
        chain_id_provider: Returns the active chain id, used for network defaults only.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        submitter: Optional[Submitter] = None,
        chain_id_provider: ChainIdProvider = default_chain_id,
        clock: Callable[[], float] = time.time,
    ):
        self._submitter = submitter or submit_token
        self._chain_id_provider = chain_id_provider
        self._clock = clock
        self.draft = ConfigurationDraft()
        self.max_visited = 0
        self.initialize()

    def initialize(self) -> ConfigurationDraft:
        """Resets the wizard to a fresh draft with documented defaults."""
        draft = ConfigurationDraft()
        draft.basics.total_supply = config.DEFAULT_TOTAL_SUPPLY
        draft.basics.lock_days = config.DEFAULT_LOCK_DAYS
        draft.network = network_defaults(self._chain_id_provider())
        draft.fees = compute_fees(None, None)
        self.draft = draft
        self.max_visited = 0
        logger.debug(f"Wizard initialized on {draft.network.chain_name}")
        return draft

    # --- Step bookkeeping ---

    @property
    def valid_steps(self) -> List[int]:
        return valid_steps(self.draft.deployment_mode)

    @property
    def current_step_id(self) -> StepId:
        return step_layout(self.draft.deployment_mode)[self.draft.step]

    def _next_step(self, step: int) -> Optional[int]:
        return next((n for n in self.valid_steps if n > step), None)

    def _previous_step(self, step: int) -> Optional[int]:
        return next((n for n in reversed(self.valid_steps) if n < step), None)

    def _rewind_to(self, step_id: StepId) -> None:
        """
        Marks the step owning a changed value as not yet passed.

        If the user is already past that step they are moved back to it, and the visited
        mark never stays beyond it, so every later step must be advanced through again.
        Steps without rules are left alone.
        """
        if not has_rules(step_id):
            return
        owner = next((n for n, sid in step_layout(self.draft.deployment_mode).items() if sid == step_id), None)
        if owner is None:
            return
        if owner < self.draft.step:
            logger.debug(f"{step_id.value} changed on step {self.draft.step}; moving back to step {owner}")
            self.draft.step = owner
            self.draft.errors = {}
        self.max_visited = min(self.max_visited, max(owner, self.draft.step))

    def check_all_steps(self) -> Tuple[Optional[int], ValidationResult]:
        """Validates every step of the layout; returns the first failing step and its result."""
        now = int(self._clock())
        layout = step_layout(self.draft.deployment_mode)
        for step in sorted(layout):
            result = validate_step(layout[step], self.draft, now=now)
            if not result.ok:
                return step, result
        return None, ValidationResult(ok=True)

    # --- Field edits ---

    def update_field(self, path: str, value: Any) -> None:
        """
        Sets one field of a nested record, addressed by a dotted path.

        Segments may be snake_case or camelCase (``basics.gradCap``). Passing a dict for a
        record merges its keys one by one. Nothing is validated here.

        Raises:
            InvalidFieldError: For unknown paths and for fields owned by other operations.
        """
        segments = [segment for segment in path.split(".") if segment]
        if not segments:
            raise InvalidFieldError("Field path is empty")
        head = _resolve_field(self.draft, segments[0])
        if head in PROTECTED_FIELDS:
            raise InvalidFieldError(f"'{head}' cannot be edited directly")

        target: Any = self.draft
        for index, segment in enumerate(segments):
            last = index == len(segments) - 1
            if isinstance(target, dict):
                key = self._dict_key(segment)
                if not last:
                    raise InvalidFieldError(f"Path '{path}' goes past a mapping entry")
                if key not in target:
                    raise InvalidFieldError(f"Unknown entry '{segment}' in '{path}'")
                target[key] = self._coerce_entry(target[key], value)
                break
            if not isinstance(target, BaseModel):
                raise InvalidFieldError(f"Path '{path}' goes past a plain value")

            name = _resolve_field(target, segment)
            current = getattr(target, name)
            if last:
                if isinstance(target, MetaData) and name in ASSET_FIELDS:
                    setattr(target, name, to_asset(value))
                elif isinstance(current, (BaseModel, dict)) and isinstance(value, dict):
                    for key, item in value.items():
                        self.update_field(f"{path}.{key}", item)
                elif isinstance(current, BaseModel) or isinstance(current, dict):
                    raise InvalidFieldError(f"'{path}' is a record; set its fields individually")
                else:
                    setattr(target, name, _coerce(target, name, value))
                break
            target = current

        if head in FIELD_STEPS:
            self._rewind_to(FIELD_STEPS[head])

    @staticmethod
    def _dict_key(segment: str) -> Profile:
        try:
            return Profile(segment.upper())
        except ValueError:
            raise InvalidFieldError(f"'{segment}' is not a profile")

    @staticmethod
    def _coerce_entry(current: Any, value: Any) -> Any:
        if isinstance(value, (dict, list, tuple, set)):
            raise InvalidFieldError(f"Expected a single value, not {type(value).__name__}")
        if isinstance(current, str) and value is None:
            return ""
        if isinstance(current, Enum):
            try:
                return type(current)(value)
            except ValueError:
                raise InvalidFieldError(f"'{value}' is not one of {[member.value for member in type(current)]}")
        if isinstance(current, str) and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def set_asset(self, name: str, url: Optional[str] = None, file: Any = None, filename: Optional[str] = None) -> Asset:
        """Sets a media slot from either a URL or a file; passing neither clears it."""
        if name not in ASSET_FIELDS:
            raise InvalidFieldError(f"Unknown media slot '{name}'")
        if url and file is not None:
            raise InvalidFieldError("Provide either a URL or a file, not both")
        asset = to_asset(file, filename) if file is not None else to_asset(url)
        setattr(self.draft.meta, name, asset)
        return asset

    # --- Selections ---

    def _apply_selection(self, owner: StepId, **changes: Any) -> None:
        draft = self.draft
        for name, value in changes.items():
            setattr(draft, name, value)
        draft.fees = compute_fees(draft.profile, draft.tax_mode)
        if draft.step not in self.valid_steps:
            draft.step = 0
        self._rewind_to(owner)
        # Later steps depend on the selection and must be passed again
        self.max_visited = draft.step
        draft.errors = {}
        logger.debug(
            f"Selection now mode={draft.deployment_mode}, tax_mode={draft.tax_mode}, profile={draft.profile}; "
            f"creation fee={draft.fees.creation}"
        )

    def set_deployment_mode(self, mode) -> None:
        mode = DeploymentMode(mode)
        if mode == self.draft.deployment_mode:
            return
        if mode == DeploymentMode.V2_LAUNCH:
            self._apply_selection(StepId.DEPLOYMENT, deployment_mode=mode, tax_mode=None, profile=None)
        else:
            self._apply_selection(StepId.DEPLOYMENT, deployment_mode=mode)

    def set_tax_mode(self, tax_mode) -> None:
        tax_mode = TaxMode(tax_mode) if tax_mode is not None else None
        profile = self.draft.profile
        if profile is not None and not is_profile_allowed(profile, tax_mode):
            logger.debug(f"Profile {profile} is not available under {tax_mode}; clearing it")
            profile = None
        self._apply_selection(StepId.TOKEN_TYPE, tax_mode=tax_mode, profile=profile)

    def set_profile(self, profile) -> None:
        profile = Profile(profile) if profile is not None else None
        if profile is not None and not is_profile_allowed(profile, self.draft.tax_mode):
            # Kept so the token type step can report it
            logger.warning(f"Profile {profile.value} selected under tax mode {self.draft.tax_mode}")
        self._apply_selection(StepId.TOKEN_TYPE, profile=profile)

    def acknowledge_fees(self, acknowledged: bool = True) -> None:
        self.draft.submission.acknowledged = bool(acknowledged)

    # --- Navigation ---

    def go_to_step(self, step: int) -> None:
        """Moves to a step without validating; clears the error map."""
        if step not in self.valid_steps:
            raise InvalidStepError(f"Step {step} does not exist for deployment mode {self.draft.deployment_mode}")
        self.draft.step = step
        self.draft.errors = {}
        self.max_visited = max(self.max_visited, step)
        logger.debug(f"Moved to step {step} ({self.current_step_id.value})")

    def request_advance(self, target: Optional[int] = None) -> ValidationResult:
        """
        Validates the current step and, if it passes, moves to ``target`` or the next step.

        A target past both the next step and the furthest visited step is refused, so
        no step can be skipped without being validated.
        """
        if target is not None:
            if target not in self.valid_steps:
                raise InvalidStepError(f"Step {target} does not exist for deployment mode {self.draft.deployment_mode}")
            next_step = self._next_step(self.draft.step)
            if target > max(next_step if next_step is not None else self.draft.step, self.max_visited):
                raise InvalidStepError(f"Step {target} has not been reached yet")

        result = validate_step(self.current_step_id, self.draft, now=int(self._clock()))
        if not result.ok:
            self.draft.errors = dict(result.errors)
            logger.debug(f"Advance from step {self.draft.step} blocked by {len(result.errors)} error(s)")
            return result

        if target is None:
            target = self._next_step(self.draft.step)
            if target is None:
                raise InvalidStepError("Already on the last step")
        self.go_to_step(target)
        return result

    def retreat(self) -> None:
        previous = self._previous_step(self.draft.step)
        if previous is None:
            raise InvalidStepError("Already on the first step")
        self.go_to_step(previous)

    def jump_to(self, step: int) -> None:
        """Jumps to a step that has already been reached."""
        if step not in self.valid_steps or step > self.max_visited:
            raise InvalidStepError(f"Step {step} has not been reached yet")
        self.go_to_step(step)

    # --- Confirmation ---

    async def confirm(self, token_address: Optional[str] = None, usd_spent: Optional[float] = None) -> SubmissionResult:
        """
        Transforms the draft and hands it to the submission collaborator.

        Every step is validated again first. If one fails, nothing is sent: the wizard moves
        to that step with its errors and a failed result is returned.

        Raises:
            ConfirmationBlockedError: If fees are not acknowledged, a submission is already in
                flight, or the token was already submitted.
            InvalidDraftError: If the draft cannot be transformed.
        """
        submission = self.draft.submission
        if not submission.acknowledged:
            raise ConfirmationBlockedError("Acknowledge the fees before confirming")
        if submission.submitting:
            raise ConfirmationBlockedError("A submission is already in progress")
        if submission.status == SubmissionStatus.SUCCESS:
            raise ConfirmationBlockedError("This token has already been submitted")

        failing_step, check = self.check_all_steps()
        if failing_step is not None:
            step_id = step_layout(self.draft.deployment_mode)[failing_step]
            self.draft.step = failing_step
            self.draft.errors = dict(check.errors)
            self.max_visited = failing_step
            logger.warning(f"Confirmation refused: step {failing_step} ({step_id.value}) has {len(check.errors)} error(s)")
            return SubmissionResult(
                success=False,
                error=f"Step {failing_step} ({step_id.value}) has errors; fix them and continue from there",
            )

        address = token_address or generate_temp_token_address()
        payload = transform(
            self.draft,
            address,
            created_at_timestamp=int(self._clock() * 1000),
            usd_spent=usd_spent,
        )
        files = collect_files(self.draft)

        submission.submitting = True
        submission.status = SubmissionStatus.PENDING
        submission.error = None
        submission.tx_hash = None
        try:
            result = await asyncio.wait_for(self._submitter(payload, files), timeout=config.SUBMIT_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            result = SubmissionResult(
                success=False,
                error=f"Submission timed out after {config.SUBMIT_TIMEOUT_SECONDS:g} seconds",
            )
        except SubmissionError as e:
            result = SubmissionResult(success=False, error=str(e))
        except Exception as e:
            submission.status = SubmissionStatus.ERROR
            submission.error = str(e)
            raise
        finally:
            submission.submitting = False

        if result.success:
            submission.status = SubmissionStatus.SUCCESS
            submission.tx_hash = result.tx_hash
            logger.info(f"Token {payload.symbol} submitted, tx_hash={result.tx_hash}")
        else:
            submission.status = SubmissionStatus.ERROR
            submission.error = result.error or "Submission failed"
            logger.error(f"Token {payload.symbol} submission failed: {submission.error}")
        return result

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the wizard for presenters."""
        return {
            "step": self.draft.step,
            "step_id": self.current_step_id.value,
            "valid_steps": self.valid_steps,
            "max_visited": self.max_visited,
            "draft": self.draft.model_dump(mode="json"),
        }
