"""Messages decoded from the container engine's build and push streams."""

from __future__ import annotations

from dataclasses import dataclass

_UNAUTHORIZED_MARKERS = ("unauthorized", "authentication required", "denied")


@dataclass
class StreamMessage:
    stream: str = ""
    status: str = ""
    progress: str = ""
    error: str = ""
    error_code: int = 0

    @classmethod
    def from_dict(cls, d: dict) -> StreamMessage:
        if not isinstance(d, dict):
            return cls(stream=str(d))
        detail = d.get("errorDetail") or {}
        error = d.get("error") or detail.get("message") or ""
        return cls(
            stream=d.get("stream") or "",
            status=d.get("status") or "",
            progress=d.get("progress") or "",
            error=str(error),
            error_code=int(detail.get("code") or 0),
        )

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    @property
    def is_unauthorized(self) -> bool:
        if self.error_code == 401:
            return True
        msg = self.error.lower()
        return any(marker in msg for marker in _UNAUTHORIZED_MARKERS)
