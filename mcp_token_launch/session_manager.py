import uuid
from typing import Dict, Optional

from mcp.server.fastmcp.utilities.logging import get_logger

from mcp_token_launch import config
from mcp_token_launch.errors import SessionNotFoundError
from mcp_token_launch.wizard import LaunchWizard, Submitter

logger = get_logger(__name__)

# In-memory wizard sessions; closing a session discards its draft
sessions: Dict[str, LaunchWizard] = {}


def _evict_oldest() -> None:
    # Dicts keep insertion order; a session waiting on its submission is never dropped
    idle = next((sid for sid, wizard in sessions.items() if not wizard.draft.submission.submitting), None)
    if idle is None:
        logger.warning(f"Session limit {config.MAX_SESSIONS} reached while every session is submitting")
        return
    logger.warning(f"Session limit {config.MAX_SESSIONS} reached, discarding session {idle}")
    del sessions[idle]


def open_session(submitter: Optional[Submitter] = None) -> str:
    """Creates a wizard with a fresh draft and returns its session id."""
    if len(sessions) >= config.MAX_SESSIONS:
        _evict_oldest()
    session_id = uuid.uuid4().hex
    sessions[session_id] = LaunchWizard(submitter=submitter)
    logger.info(f"Opened wizard session {session_id}")
    return session_id


def get_session(session_id: str) -> LaunchWizard:
    wizard = sessions.get(session_id)
    if wizard is None:
        raise SessionNotFoundError(f"Wizard session '{session_id}' not found. Open a new one with open_wizard.")
    return wizard


def close_session(session_id: str) -> None:
    if sessions.pop(session_id, None) is None:
        raise SessionNotFoundError(f"Wizard session '{session_id}' not found.")
    logger.info(f"Closed wizard session {session_id}")


def discard_session(session_id: str) -> None:
    """Drops a session if it is still open; used once its launch has been submitted."""
    if sessions.pop(session_id, None) is not None:
        logger.info(f"Closed wizard session {session_id}")


def clear_sessions() -> None:
    sessions.clear()
    logger.debug("All wizard sessions cleared")
