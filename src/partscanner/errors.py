"""
Error taxonomy for camera acquisition and part lookups.

Camera errors carry a CameraErrorKind so the constraint negotiator can decide
whether a failure is recoverable. Lookup errors are raised by every lookup
client (in-process and remote) so callers never see transport details.
"""

from enum import Enum
from typing import Optional


class CameraErrorKind(str, Enum):
    PERMISSION_DENIED = "permission-denied"
    NO_DEVICE = "no-device"
    CONSTRAINT_INCOMPATIBLE = "constraint-incompatible"
    OTHER = "other"


class ScannerError(Exception):
    """Base class for errors surfaced to the user."""

    default_message = "Scanner error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class CameraError(ScannerError):
    kind = CameraErrorKind.OTHER
    default_message = "Failed to access camera. Please check permissions and try again."


class CameraPermissionDenied(CameraError):
    kind = CameraErrorKind.PERMISSION_DENIED
    default_message = "Camera access denied. Please allow camera permissions."


class CameraNotFound(CameraError):
    kind = CameraErrorKind.NO_DEVICE
    default_message = "No camera found on this device."


class ConstraintIncompatible(CameraError):
    kind = CameraErrorKind.CONSTRAINT_INCOMPATIBLE
    default_message = "Camera not compatible. Try a different device."


_CAMERA_ERRORS = {
    cls.kind: cls
    for cls in (CameraError, CameraPermissionDenied, CameraNotFound, ConstraintIncompatible)
}


def camera_error_for(kind: CameraErrorKind, message: Optional[str] = None) -> CameraError:
    return _CAMERA_ERRORS[kind](message)


class PartLookupError(ScannerError):
    default_message = "Failed to fetch part data."


class LookupNotFound(PartLookupError):
    def __init__(self, token: str, message: Optional[str] = None):
        self.token = token
        super().__init__(message or f"Part number {token} not found in the sheet")


class LookupConfigurationFailure(PartLookupError):
    default_message = (
        "ID column not found in sheet. Please ensure your sheet has an 'ID' column."
    )


class SourceNotConfigured(LookupConfigurationFailure):
    default_message = (
        "Google Sheets API not configured. "
        "Please add GOOGLE_SHEETS_API_KEY and GOOGLE_SPREADSHEET_ID."
    )


class LookupTransportFailure(PartLookupError):
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
