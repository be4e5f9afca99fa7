"""Server-Sent Event framing."""

import json


class EventStream:
    """Helpers for framing Server-Sent Event payloads."""

    @staticmethod
    def frame(data: object, event: str | None = None, id: str | None = None) -> str:
        """Encode ``data`` into an SSE ``data:`` frame."""
        text = EventStream._coerce(data)
        lines: list[str] = []
        if id is not None:
            lines.append(f"id: {id}")
        if event is not None:
            lines.append(f"event: {event}")
        if text == "":
            lines.append("data:")
        else:
            lines.extend(f"data: {part}" for part in text.splitlines())
        return "\n".join(lines) + "\n\n"

    @staticmethod
    def retry(delay_ms: int) -> str:
        """Suggest a reconnection delay to the SSE client."""
        return f"retry: {max(int(delay_ms), 0)}\n\n"

    @staticmethod
    def _coerce(value: object) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8", "ignore")
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)
