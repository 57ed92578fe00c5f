"""
Token Launch Wizard - MCP Server Implementation

This module exposes the token launch configuration wizard as MCP tools. Each client opens
a wizard session, edits the draft step by step, and confirms the launch at the end; the
server only forwards actions to the wizard state machine and renders its state as JSON.

Key Features:
- One in-memory wizard session per opened wizard, discarded on close or successful launch
- Per-step validation with field-level error messages
- Fee quotes recomputed on every profile or tax mode change
- Payload preview before confirmation
- Submission to the token creation service with a bounded timeout

Error Handling:
- Input problems are returned in the ``errors`` map of the state, never raised
- Navigation, field path and session errors are returned as ``Error: ...`` strings
- Unexpected failures are logged with their traceback and reported generically
"""

import json
import time
from typing import Any, Dict, Optional

from pydantic import Field

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.utilities.logging import get_logger

from mcp_token_launch import session_manager
from mcp_token_launch.errors import (
    ConfirmationBlockedError,
    InvalidDraftError,
    InvalidFieldError,
    InvalidStepError,
    SessionNotFoundError,
)
from mcp_token_launch.review import PROFILE_DESCRIPTIONS, PROFILE_TITLES, review_summary as build_review_summary
from mcp_token_launch.transformer import collect_files, transform
from mcp_token_launch.utils import generate_temp_token_address

logger = get_logger(__name__)

# --- Server Setup ---
mcp = FastMCP(name="Token Launch Wizard")

_USER_ERRORS = (SessionNotFoundError, InvalidFieldError, InvalidStepError, ValueError)


def _dump(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def _state(session_id: str, **extra: Any) -> str:
    wizard = session_manager.get_session(session_id)
    return _dump({"session_id": session_id, **extra, **wizard.snapshot()})


def log_operation_error(operation: str, session_id: str, error: Exception) -> str:
    """Logs a refused operation and returns the message shown to the client."""
    logger.error(f"{operation} failed for session '{session_id}': {error}")
    return f"Error: {error}"


# --- Session lifecycle ---

@mcp.tool()
async def open_wizard(context: Context) -> str:
    """Opens a new token launch wizard and returns its session id and initial state."""
    try:
        session_id = session_manager.open_session()
        return _state(session_id)
    except Exception as e:
        logger.exception(f"Unexpected error opening a wizard session: {e}")
        return "An unexpected server error occurred while opening the wizard."


@mcp.tool()
async def get_wizard_state(context: Context, session_id: str = Field(..., description="The wizard session ID.")) -> str:
    """Returns the current step, the draft and the validation errors of a wizard session."""
    try:
        return _state(session_id)
    except SessionNotFoundError as e:
        return log_operation_error("get_wizard_state", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error reading wizard session {session_id}: {e}")
        return "An unexpected server error occurred while reading the wizard state."


@mcp.tool()
async def close_wizard(context: Context, session_id: str = Field(..., description="The wizard session ID.")) -> str:
    """Closes a wizard session and discards its draft."""
    try:
        session_manager.close_session(session_id)
        return f"Wizard session {session_id} closed."
    except SessionNotFoundError as e:
        return log_operation_error("close_wizard", session_id, e)


# --- Draft edits ---

@mcp.tool()
async def update_wizard_field(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    path: str = Field(
        ...,
        description=(
            "Dotted field path, snake_case or camelCase, e.g. 'basics.name', "
            "'curves.advanced.taxInterval', 'curves.final_type.ZERO' or 'meta.logo'."
        ),
    ),
    value_json: str = Field(
        ...,
        description=(
            "The new value as JSON (e.g. '\"300\"', 'true', '{\"name\": \"Moon\"}'). "
            "Text that is not valid JSON is stored as a plain string."
        ),
    ),
) -> str:
    """Sets one field of the draft. Edits are never validated; validation runs on advance."""
    try:
        try:
            value = json.loads(value_json)
        except json.JSONDecodeError:
            value = value_json
        wizard = session_manager.get_session(session_id)
        wizard.update_field(path, value)
        logger.debug(f"Session {session_id}: updated {path}")
        return _state(session_id)
    except _USER_ERRORS as e:
        return log_operation_error("update_wizard_field", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error updating {path} in session {session_id}: {e}")
        return "An unexpected server error occurred while updating the field."


@mcp.tool()
async def choose_deployment_mode(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    mode: str = Field(..., description="VIRTUAL_CURVE or V2_LAUNCH."),
) -> str:
    """Selects how the token is deployed: on a virtual bonding curve or directly on a V2 pool."""
    try:
        session_manager.get_session(session_id).set_deployment_mode(mode.strip().upper())
        return _state(session_id)
    except _USER_ERRORS as e:
        return log_operation_error("choose_deployment_mode", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error choosing deployment mode in session {session_id}: {e}")
        return "An unexpected server error occurred while choosing the deployment mode."


@mcp.tool()
async def choose_tax_mode(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    tax_mode: str = Field(..., description="BASIC (taxed token) or NO_TAX."),
) -> str:
    """Selects the tax mode; a profile that is not available under the new mode is cleared."""
    try:
        session_manager.get_session(session_id).set_tax_mode(tax_mode.strip().upper())
        return _state(session_id)
    except _USER_ERRORS as e:
        return log_operation_error("choose_tax_mode", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error choosing tax mode in session {session_id}: {e}")
        return "An unexpected server error occurred while choosing the tax mode."


@mcp.tool()
async def choose_profile(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    profile: str = Field(..., description="ZERO or SUPER (no tax), BASIC or ADVANCED (taxed)."),
) -> str:
    """Selects the curve profile and returns the updated fee quote."""
    try:
        wizard = session_manager.get_session(session_id)
        wizard.set_profile(profile.strip().upper())
        selected = wizard.draft.profile
        return _state(
            session_id,
            profile_title=PROFILE_TITLES[selected],
            profile_description=PROFILE_DESCRIPTIONS[selected],
        )
    except _USER_ERRORS as e:
        return log_operation_error("choose_profile", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error choosing profile in session {session_id}: {e}")
        return "An unexpected server error occurred while choosing the profile."


@mcp.tool()
async def acknowledge_fees(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    acknowledged: bool = Field(True, description="Whether the user accepts the quoted fees."),
) -> str:
    """Records the user's acknowledgement of the fee quote, required before confirming."""
    try:
        session_manager.get_session(session_id).acknowledge_fees(acknowledged)
        return _state(session_id)
    except SessionNotFoundError as e:
        return log_operation_error("acknowledge_fees", session_id, e)


# --- Navigation ---

@mcp.tool()
async def advance_step(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    target_step: Optional[int] = Field(
        None, description="Step to move to; defaults to the next step. Steps not yet reached cannot be skipped to."
    ),
) -> str:
    """Validates the current step and moves forward when it passes; otherwise returns its errors."""
    try:
        wizard = session_manager.get_session(session_id)
        result = wizard.request_advance(target_step)
        if not result.ok:
            logger.info(f"Session {session_id}: step {wizard.draft.step} has {len(result.errors)} error(s)")
        return _state(session_id, ok=result.ok)
    except _USER_ERRORS as e:
        return log_operation_error("advance_step", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error advancing session {session_id}: {e}")
        return "An unexpected server error occurred while advancing the wizard."


@mcp.tool()
async def go_back(context: Context, session_id: str = Field(..., description="The wizard session ID.")) -> str:
    """Returns to the previous step without validating the current one."""
    try:
        session_manager.get_session(session_id).retreat()
        return _state(session_id)
    except _USER_ERRORS as e:
        return log_operation_error("go_back", session_id, e)


@mcp.tool()
async def jump_to_step(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    step: int = Field(..., description="A step number that has already been reached."),
) -> str:
    """Jumps to a previously reached step."""
    try:
        session_manager.get_session(session_id).jump_to(step)
        return _state(session_id)
    except _USER_ERRORS as e:
        return log_operation_error("jump_to_step", session_id, e)


# --- Review and confirmation ---

@mcp.tool()
async def review_summary(context: Context, session_id: str = Field(..., description="The wizard session ID.")) -> str:
    """Returns the review overview rows and the total up-front cost."""
    try:
        wizard = session_manager.get_session(session_id)
        return _dump({"session_id": session_id, **build_review_summary(wizard.draft)})
    except SessionNotFoundError as e:
        return log_operation_error("review_summary", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error building review for session {session_id}: {e}")
        return "An unexpected server error occurred while building the review."


@mcp.tool()
async def preview_payload(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    token_address: Optional[str] = Field(
        None, description="Address of the token; a temporary address is generated when omitted."
    ),
) -> str:
    """Shows the request that confirming would send, without sending it."""
    try:
        wizard = session_manager.get_session(session_id)
        failing_step, check = wizard.check_all_steps()
        if failing_step is not None:
            problems = "; ".join(f"{key}: {message}" for key, message in check.errors.items())
            return f"Error: step {failing_step} is incomplete ({problems})"
        payload = transform(
            wizard.draft,
            token_address or generate_temp_token_address(),
            created_at_timestamp=int(time.time() * 1000),
        )
        files = collect_files(wizard.draft)
        return _dump({
            "payload": payload.model_dump(exclude_none=True),
            "files": {part: filename for part, (filename, _) in files.items()},
        })
    except (InvalidDraftError, *_USER_ERRORS) as e:
        return log_operation_error("preview_payload", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error previewing payload for session {session_id}: {e}")
        return "An unexpected server error occurred while building the payload."


@mcp.tool()
async def confirm_launch(
    context: Context,
    session_id: str = Field(..., description="The wizard session ID."),
    token_address: Optional[str] = Field(
        None, description="Address of the deployed token; a temporary address is generated when omitted."
    ),
    usd_spent: Optional[float] = Field(None, description="USD value spent on the launch (optional)."),
) -> str:
    """
    Submits the configured token to the token creation service.

    Requires the fee acknowledgement. On success the session is closed and the transaction
    hash is returned; on failure the error is stored on the draft so the user can fix the
    configuration and confirm again.
    """
    start_time = time.time()
    try:
        wizard = session_manager.get_session(session_id)
        result = await wizard.confirm(token_address=token_address, usd_spent=usd_spent)
        duration = time.time() - start_time
        if result.success:
            session_manager.discard_session(session_id)
            logger.info(f"Session {session_id}: launch submitted in {duration:.3f}s, tx_hash={result.tx_hash}")
            return _dump({"session_id": session_id, "status": "SUCCESS", "tx_hash": result.tx_hash, "data": result.data})
        logger.error(f"Session {session_id}: launch failed after {duration:.3f}s: {result.error}")
        return _state(session_id, error=result.error)
    except (ConfirmationBlockedError, InvalidDraftError, *_USER_ERRORS) as e:
        return log_operation_error("confirm_launch", session_id, e)
    except Exception as e:
        logger.exception(f"Unexpected error confirming launch for session {session_id}: {e}")
        return "An unexpected server error occurred while submitting the launch."


# --- Main Execution ---
if __name__ == "__main__":
    logger.info("Starting Token Launch Wizard MCP Server...")
    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
