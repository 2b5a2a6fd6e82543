"""
Error taxonomy for the interview pipeline.

Propagation policy:
- Errors while Connecting abort startup and surface from start().
- Errors while Active end the session (Closing), they are not re-raised.
- Teardown errors are logged and swallowed.
"""

from __future__ import annotations


class InterviewError(Exception):
    """Base class for interview pipeline errors."""


# -------------------------
# Devices
# -------------------------

class DeviceUnavailable(InterviewError):
    """An audio device could not be acquired. Fatal to session start."""


class CaptureUnavailable(DeviceUnavailable):
    """
    No microphone, permission denied, or the capture stream failed to open.

    Raised before any remote connection is attempted.
    """


class OutputUnavailable(DeviceUnavailable):
    """The playback device could not be opened."""


class DeviceReleaseError(InterviewError):
    """
    Closing a device, stream or connection failed.

    Always logged and ignored; never blocks reaching Closed.
    """


# -------------------------
# Remote endpoint
# -------------------------

class LiveConnectionError(InterviewError, ConnectionError):
    """
    Remote open/send/receive failure.

    During Connecting it aborts startup; during Active it is treated as an
    unplanned stop. There is no automatic reconnect.
    """


# -------------------------
# Audio payloads
# -------------------------

class MalformedPacket(InterviewError, ValueError):
    """
    Inbound audio could not be decoded (bad transport encoding or an odd
    byte count). The packet is dropped and the session continues.
    """
