# app/client/tracker.py
"""
Thin HTTP client for the tracker API.

Failures are raised as ``TrackerError`` for the caller to show; there is no
retry. Comment writes go through a ``CommentThread`` so the caller sees the
change immediately and the thread is put back if the server refuses it.
"""
import logging
from typing import Any

import httpx

from app.client.thread import CommentThread

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TrackerClient:
    def __init__(self, http: httpx.Client, token: str | None = None):
        self._http = http
        self.token = token
        self.profile: dict[str, Any] | None = None

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0) -> "TrackerClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TrackerClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- plumbing ---------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Request failed: %s %s: %s", method, url, exc)
            raise TrackerError(str(exc)) from exc

        if response.is_error:
            raise TrackerError(_error_message(response), response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -- accounts ---------------------------------------------------------

    def sign_up(self, username: str, email: str, password: str) -> dict:
        data = self._request("POST", "/auth/signup", json={"username": username, "email": email, "password": password})
        self._remember(data)
        return data["profile"]

    def sign_in(self, email: str, password: str) -> dict:
        data = self._request("POST", "/auth/signin", json={"email": email, "password": password})
        self._remember(data)
        return data["profile"]

    def admin_login(self, username: str, password: str) -> str:
        data = self._request("POST", "/admin/login", json={"username": username, "password": password})
        self.token = data["token"]
        return self.token

    def _remember(self, data: dict) -> None:
        self.token = data["access_token"]
        self.profile = data["profile"]

    # -- tickets ----------------------------------------------------------

    def list_tickets(self, search: str | None = None, type: str | None = None, status: str | None = None) -> list:
        params = {k: v for k, v in {"search": search, "type": type, "status": status}.items() if v}
        return self._request("GET", "/tickets", params=params)

    def get_ticket(self, ticket_id: int) -> dict:
        return self._request("GET", f"/tickets/{ticket_id}")

    def create_ticket(self, title: str, description: str, type: str = "bug", **media) -> dict:
        return self._request("POST", "/tickets", json={"title": title, "description": description, "type": type, **media})

    def delete_ticket(self, ticket_id: int) -> None:
        self._request("DELETE", f"/tickets/{ticket_id}")

    def update_status(self, ticket_id: int, status: str) -> dict:
        return self._request("PATCH", f"/tickets/{ticket_id}/status", json={"status": status})

    def vote(self, ticket_id: int, vote_type: str) -> dict:
        return self._request("POST", f"/tickets/{ticket_id}/vote", json={"vote_type": vote_type})

    # -- comments ---------------------------------------------------------

    def open_thread(self, ticket_id: int) -> CommentThread:
        viewer_id = self.profile["user_id"] if self.profile else None
        return self.fetch_comments(CommentThread(ticket_id, viewer_id=viewer_id))

    def fetch_comments(self, thread: CommentThread) -> CommentThread:
        if thread.viewer_id is None and self.profile:
            thread.viewer_id = self.profile["user_id"]
        rows = self._request("GET", f"/tickets/{thread.ticket_id}/comments", params={"tree": "false"})
        thread.merge(rows)
        return thread

    def post_comment(
        self,
        thread: CommentThread,
        content: str,
        parent_id: int | None = None,
        image_url: str | None = None,
    ) -> dict:
        placeholder = thread.add_optimistic(content, author=self.profile, parent_id=parent_id, image_url=image_url)
        body: dict[str, Any] = {"content": content, "parent_id": parent_id}
        if image_url:
            body["image_url"] = image_url
        try:
            row = self._request("POST", f"/tickets/{thread.ticket_id}/comments", json=body)
        except TrackerError:
            thread.rollback(placeholder["id"])
            raise
        return thread.confirm(placeholder["id"], row)

    def delete_comment(self, thread: CommentThread, comment_id: int) -> None:
        removed = thread.remove(comment_id)
        try:
            self._request("DELETE", f"/comments/{comment_id}")
        except TrackerError:
            thread.restore(removed)
            raise

    def react(self, thread: CommentThread, comment_id: int, emoji: str) -> list:
        previous = thread.toggle_reaction_optimistic(comment_id, emoji)
        try:
            state = self._request("POST", f"/comments/{comment_id}/reactions", json={"emoji": emoji})
        except TrackerError:
            thread.revert_reaction(comment_id, previous)
            raise
        thread.set_reactions(comment_id, state["reactions"])
        return state["reactions"]

    def mark_read(self, ticket_id: int, comment_ids: list[int] | None = None) -> dict:
        return self._request("POST", f"/tickets/{ticket_id}/comments/read", json={"comment_ids": comment_ids})

    def set_typing(self, ticket_id: int, is_typing: bool = True) -> list[str]:
        return self._request("POST", f"/tickets/{ticket_id}/typing", json={"is_typing": is_typing})["users"]


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("error")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list) and detail:
            return detail[0].get("msg", "Request failed")
    return "Request failed"
