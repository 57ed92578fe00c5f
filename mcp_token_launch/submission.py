import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from mcp.server.fastmcp.utilities.logging import get_logger

from mcp_token_launch import config
from mcp_token_launch.errors import SubmissionError
from mcp_token_launch.schemas import SubmissionPayload, SubmissionResult
from mcp_token_launch.utils import is_valid_address, shorten_address

logger = get_logger(__name__)

_INT_STRING_RE = re.compile(r"^\d+$")


def check_payload(payload: SubmissionPayload) -> List[str]:
    """Pre-flight checks the service would otherwise reject; returns a list of problems."""
    problems = []
    if not payload.token_address:
        problems.append("Token address is required")
    elif not is_valid_address(payload.token_address):
        problems.append("Token address must be a valid 0x-prefixed hex address")
    if payload.total_supply and not _INT_STRING_RE.match(payload.total_supply):
        problems.append("Total supply must be a valid integer string")
    if payload.graduation_cap and not _INT_STRING_RE.match(payload.graduation_cap):
        problems.append("Graduation cap must be a valid integer string")
    return problems


def _extract_tx_hash(data: Dict[str, Any]) -> Optional[str]:
    return data.get("txHash") or data.get("transaction_hash") or None


async def post_token(
    client: httpx.AsyncClient,
    payload: SubmissionPayload,
    files: Optional[Dict[str, Tuple[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Posts one token creation request as multipart form data.

    Raises:
        SubmissionError: On pre-flight problems, non-2xx responses, transport failures or
            a body that is not a JSON object. The message carries the service's own text.
    """
    problems = check_payload(payload)
    if problems:
        raise SubmissionError("; ".join(problems))

    url = f"{config.API_BASE_URL}{config.CREATE_TOKEN_ENDPOINT}"
    # Text fields go out as filename-less parts so the body is always multipart
    parts: List[Tuple[str, Any]] = [(key, (None, value)) for key, value in payload.to_form_fields().items()]
    parts.extend((name, file) for name, file in (files or {}).items())
    logger.info(f"Submitting token {payload.symbol or '?'} ({shorten_address(payload.token_address)}) to {url}")
    try:
        response = await client.post(url, files=parts)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Token creation rejected: {e.response.status_code} {e.response.text}")
        raise SubmissionError(
            f"Token creation failed: {e.response.status_code} {e.response.reason_phrase} - {e.response.text}"
        )
    except httpx.HTTPError as e:
        logger.error(f"Token creation request failed: {e}")
        raise SubmissionError(f"Token creation request failed: {e}")
    except ValueError:
        raise SubmissionError("Token creation service returned a non-JSON response")

    if not isinstance(data, dict):
        raise SubmissionError("Token creation service returned an unexpected response")
    return data


async def submit_token(
    payload: SubmissionPayload,
    files: Optional[Dict[str, Tuple[str, Any]]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> SubmissionResult:
    """
    Default submission collaborator: posts the payload and maps the service response.

    A short-lived client is opened per call unless one is passed in.
    """
    if client is not None:
        data = await post_token(client, payload, files)
    else:
        async with httpx.AsyncClient(timeout=config.SUBMIT_TIMEOUT_SECONDS) as owned_client:
            data = await post_token(owned_client, payload, files)

    if data.get("success") is False:
        error = data.get("error") or data.get("message") or "Token creation failed"
        return SubmissionResult(success=False, data=data, error=str(error))

    tx_hash = _extract_tx_hash(data)
    logger.info(f"Token creation accepted, tx_hash={tx_hash}")
    return SubmissionResult(success=True, tx_hash=tx_hash, data=data)
