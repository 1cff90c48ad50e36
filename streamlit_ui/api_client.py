"""Blocking HTTP client for the chat relay API, used by the Streamlit UI."""
from typing import Any, Dict, Iterator, List, Optional

import requests

from streamlit_ui.stream_client import ParsedEvent, StreamClient


class ChatApiError(RuntimeError):
    """Non-2xx response from the API, carrying its ``{error, details}`` body."""

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        self.status_code = status_code
        self.error = error
        self.details = details
        message = f"API error {status_code}: {error}"
        if details:
            message += f" ({details})"
        super().__init__(message)


class ChatApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    @staticmethod
    def _raise_for_status(resp: requests.Response) -> None:
        if resp.ok:
            return
        try:
            body = resp.json() or {}
            error = body.get("error") or resp.reason
            details = body.get("details")
        except ValueError:
            error, details = resp.reason, resp.text
        raise ChatApiError(resp.status_code, str(error), details)

    def create_session(self, title: Optional[str] = None) -> Dict[str, Any]:
        payload = {"title": title} if title else {}
        resp = self.session.post(
            self._url("/sessions"), json=payload, timeout=self.timeout
        )
        self._raise_for_status(resp)
        return resp.json()

    def list_sessions(self) -> List[Dict[str, Any]]:
        resp = self.session.get(self._url("/sessions"), timeout=self.timeout)
        self._raise_for_status(resp)
        return resp.json().get("sessions", [])

    def delete_session(self, session_id: str) -> None:
        resp = self.session.delete(
            self._url(f"/sessions/{session_id}"), timeout=self.timeout
        )
        self._raise_for_status(resp)

    def fetch_messages(self, session_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"sessionId": session_id} if session_id else None
        resp = self.session.get(
            self._url("/messages"), params=params, timeout=self.timeout
        )
        self._raise_for_status(resp)
        return resp.json().get("messages", [])

    def stream_chat(
        self,
        session_id: str,
        message: str,
        *,
        options: Optional[Dict[str, Any]] = None,
    ) -> Iterator[ParsedEvent]:
        """Send one turn and yield events as frames arrive.

        ``options`` uses the wire names (``model``, ``systemPrompt``,
        ``temperature``, ``maxTokens``...); ``None`` values are dropped.
        """
        payload: Dict[str, Any] = {"message": message, "sessionId": session_id}
        payload.update({k: v for k, v in (options or {}).items() if v is not None})

        with self.session.post(
            self._url("/chat"), json=payload, stream=True, timeout=self.timeout
        ) as resp:
            self._raise_for_status(resp)
            yield from StreamClient(resp.iter_content(chunk_size=None)).consume()
