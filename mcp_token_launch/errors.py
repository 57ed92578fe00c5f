"""
Custom Exception Classes for the Token Launch Wizard

This module defines the exception classes raised by the token launch wizard. Input
mistakes made by the user (blank names, out-of-range percentages, malformed addresses)
are NOT exceptions: they are reported through the draft's error map by the validation
engine. The classes below cover the remaining categories:

- Number Errors: strings that cannot be converted to base units
- Draft Errors: programming invariant violations such as transforming an incomplete draft,
  or editing a field path that does not exist
- Navigation Errors: jumps to steps that do not exist for the deployment mode
- Submission Errors: confirmation refused, or the submission collaborator failed
- Configuration Errors: invalid environment configuration
- Session Errors: unknown wizard session ids at the tool layer

Usage:
    The MCP tool layer catches these exceptions and converts them into user-facing
    messages while logging the details.
"""


class MalformedNumberError(ValueError):
    """Raised when a string is not a non-negative integer or decimal in the expected grammar."""


class InvalidDraftError(Exception):
    """Raised when a draft is transformed or submitted while missing required selections."""


class InvalidFieldError(Exception):
    """Raised when update_field is given an unknown path or a path owned by a dedicated operation."""


class InvalidStepError(Exception):
    """Raised when navigating to a step number that is not valid for the deployment mode."""


class ConfirmationBlockedError(Exception):
    """Raised when confirm is called without fee acknowledgement or while a submission is in flight."""


class SubmissionError(Exception):
    """Raised when the token creation service rejects the request or cannot be reached."""


class ConfigurationError(Exception):
    """Raised when there are configuration-related errors."""


class SessionNotFoundError(Exception):
    """Raised when a wizard session id is unknown or has been closed."""
