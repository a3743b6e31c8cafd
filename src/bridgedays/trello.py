"""Trello board sink for bridge suggestions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from bridgedays.bridges import Suggestion

TRELLO_API_URL = "https://api.trello.com/1"
DEFAULT_BOARD_NAME = "Vacation Planner"
DEFAULT_LIST_NAME = "Suggested vacations"


class TrelloError(RuntimeError):
    """A board, list or card could not be created."""


class TrelloClient:
    """Minimal Trello REST client: boards, lists and cards."""

    def __init__(
        self,
        key: str,
        token: str,
        base_url: str = TRELLO_API_URL,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self.key = key
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._client = client

    def _post(self, kind: str, path: str, params: dict[str, str]) -> str:
        params = {**params, "key": self.key, "token": self.token}
        try:
            if self._client is not None:
                response = self._client.post(f"{self.base_url}{path}", params=params)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.post(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as exc:
            raise TrelloError(f"failed to create {kind}: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise TrelloError(f"failed to create {kind} - status code: {response.status_code}")

        try:
            body: Any = response.json()
        except ValueError:
            raise TrelloError(f"failed to create {kind} - empty or invalid response") from None
        if not isinstance(body, dict) or not body.get("id"):
            raise TrelloError(f"failed to create {kind} - response has no id")

        logger.debug("Created Trello {} {}", kind, body["id"])
        return str(body["id"])

    def create_board(self, name: str = DEFAULT_BOARD_NAME) -> str:
        """Create a board without default lists and return its id."""
        return self._post("board", "/boards/", {"name": name, "defaultLists": "false"})

    def create_list(self, board_id: str, name: str, pos: str = "bottom") -> str:
        return self._post("list", f"/boards/{board_id}/lists", {"name": name, "pos": pos})

    def create_card(self, list_id: str, name: str) -> str:
        return self._post("card", "/cards", {"idList": list_id, "name": name})


def card_title(suggestion: Suggestion) -> str:
    """One-line card title for *suggestion*."""
    leave_word = "day" if suggestion.leave_days == 1 else "days"
    return (
        f"{suggestion.start.isoformat()} to {suggestion.end.isoformat()}: "
        f"{suggestion.vacation_days} days off for {suggestion.leave_days} leave {leave_word}"
    )


def publish_suggestions(
    client: TrelloClient,
    suggestions: Sequence[Suggestion],
    board_name: str = DEFAULT_BOARD_NAME,
    list_name: str = DEFAULT_LIST_NAME,
) -> str:
    """Create a board with one card per suggestion and return the board id."""
    board_id = client.create_board(board_name)
    list_id = client.create_list(board_id, list_name, "1")
    for s in suggestions:
        client.create_card(list_id, card_title(s))
    logger.info("Published {} suggestions to Trello board {}", len(suggestions), board_id)
    return board_id
