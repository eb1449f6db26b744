"""Binary messages exchanged over the overlay application's message queue."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

USAGE = (
    "Usage: mangohudctl [set|toggle] attribute [value]\n"
    "Attributes:\n"
    "   no_display      hides or shows hud\n"
    "   log_session     handles logging status\n"
    "Accepted values:\n"
    "   true\n"
    "   false\n"
    "   1\n"
    "   0\n"
)

FRAME_MSG_TYPE = 1
CTRL_MSG_TYPE = 2

# Values of a control field: 0 leaves the setting, 1 sets, 2 clears, 3 toggles.
KEEP = 0
SET = 1
CLEAR = 2
TOGGLE = 3

_HEADER = struct.Struct("<qI")
_FRAME_FIELDS = (
    ("pid", "<I", 12),
    ("visible_frametime_ns", "<Q", 16),
    ("fsr_upscale", "<B", 24),
    ("fsr_sharpness", "<B", 25),
    ("app_frametime_ns", "<Q", 26),
    ("latency_ns", "<Q", 34),
)
_CTRL = struct.Struct("<qIIBB64s")


class UsageError(ValueError):
    """The command line does not form a valid control request."""

    def __init__(self, message: str = USAGE):
        super().__init__(message)


@dataclass
class MangoappMsg:
    """Frame timing message; fields absent from a short message are None."""

    msg_type: int
    version: int
    pid: int | None = None
    visible_frametime_ns: int | None = None
    fsr_upscale: int | None = None
    fsr_sharpness: int | None = None
    app_frametime_ns: int | None = None
    latency_ns: int | None = None

    @classmethod
    def unpack(cls, data: bytes) -> MangoappMsg:
        """Decode a message that starts with its message type."""
        if len(data) < _HEADER.size:
            raise ValueError("mangoapp message is truncated")
        msg_type, version = _HEADER.unpack_from(data)
        if version != 1:
            raise ValueError(f"Unsupported mangoapp struct version: {version}")
        msg = cls(msg_type, version)
        for name, fmt, offset in _FRAME_FIELDS:
            if len(data) < offset + struct.calcsize(fmt):
                break
            setattr(msg, name, struct.unpack_from(fmt, data, offset)[0])
        return msg


@dataclass
class CtrlMsg:
    """Control request that shows, hides or toggles the HUD and logging."""

    no_display: int = KEEP
    log_session: int = KEEP
    log_session_name: str = ""
    msg_type: int = CTRL_MSG_TYPE
    ctrl_msg_type: int = 1
    version: int = 1

    def pack(self) -> bytes:
        """Encode the message, message type included."""
        name = self.log_session_name.encode()
        if len(name) > 64:
            raise ValueError("log session name is too long")
        return _CTRL.pack(self.msg_type, self.ctrl_msg_type, self.version,
                          self.no_display, self.log_session, name)

    @classmethod
    def unpack(cls, data: bytes) -> CtrlMsg:
        """Decode a control message, message type included."""
        if len(data) < _CTRL.size:
            raise ValueError("control message is truncated")
        msg_type, ctrl_type, version, no_display, log_session, name = _CTRL.unpack_from(data)
        return cls(
            no_display=no_display,
            log_session=log_session,
            log_session_name=name.split(b"\0", 1)[0].decode(errors="replace"),
            msg_type=msg_type,
            ctrl_msg_type=ctrl_type,
            version=version,
        )


def str_to_bool(value: str) -> bool:
    """Accept true/false (any case) or 1/0."""
    if value.lower() == "true" or value == "1":
        return True
    if value.lower() == "false" or value == "0":
        return False
    raise ValueError(
        f"The value '{value}' is not an accepted boolean. Use 0/1 or true/false"
    )


def build_ctrl_message(argv: Sequence[str]) -> CtrlMsg:
    """Build a request from ``[set|toggle] attribute [value]``."""
    if len(argv) < 2:
        raise UsageError()
    action, attribute = argv[0], argv[1]
    if action == "set":
        if len(argv) != 3:
            raise UsageError()
        value = SET if str_to_bool(argv[2]) else CLEAR
    elif action == "toggle":
        if len(argv) != 2:
            raise UsageError()
        value = TOGGLE
    else:
        raise UsageError()

    if attribute == "no_display":
        return CtrlMsg(no_display=value)
    if attribute == "log_session":
        return CtrlMsg(log_session=value)
    raise UsageError()