"""
Error types raised by Ghost Viewer.
"""

from typing import Optional


CREDENTIALS_HINT = (
    "AWS Credentials expired or invalid. "
    "Please check your environment or run 'aws sso login'."
)


class GhostViewerError(Exception):
    """Base class for Ghost Viewer errors."""
    code = "ghost_viewer_error"
    hint: Optional[str] = None

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": str(self)}
        if self.hint:
            detail["hint"] = self.hint
        return detail


class StateUnavailable(GhostViewerError):
    """The declared state file is missing, unreadable or unparsable."""
    code = "state_not_found"
    hint = "Set the state file path (STATE_PATH or the config endpoint)"


class CredentialFailure(GhostViewerError):
    """The tag query was rejected because AWS credentials are expired or invalid."""
    code = "credentials_expired"
    hint = "Refresh your AWS session, e.g. 'aws sso login', then scan again"

    def __init__(self, message: str = CREDENTIALS_HINT):
        super().__init__(message)


class ScanError(GhostViewerError):
    """The tag query failed for a reason other than credentials."""
    code = "scan_failed"
    hint = "Check the region and your IAM permissions for tag:GetResources"
