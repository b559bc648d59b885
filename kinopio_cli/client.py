from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from kinopio_cli.api_schemas import Box, Card, NewInboxCard, Space
from kinopio_cli.common import DEFAULT_API_URL, env_int, env_str

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_SPACES = TypeAdapter(list[Space])


class APIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class KinopioClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or env_str("KINOPIO_API_URL", default=DEFAULT_API_URL)).rstrip("/")
        if timeout is None:
            timeout = env_int("KINOPIO_TIMEOUT", default=30, min_value=1)
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": api_key,
            },
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> KinopioClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(f"error making request: {e}") from e
        logger.debug("%s %s -> %d", method, resp.request.url, resp.status_code)
        return resp

    def _get(self, path: str) -> Any:
        resp = self._request("GET", path)
        if not resp.is_success:
            raise APIError(
                f"GET {path} failed, status code: {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise APIError(f"failed to decode JSON from {path}: {e}") from e

    def _get_model(self, path: str, model: type[ModelT]) -> ModelT:
        data = self._get(path)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise APIError(f"unexpected payload from {path}: {e}") from e

    def get_spaces(self) -> list[Space]:
        data = self._get("/user/spaces")
        try:
            return _SPACES.validate_python(data)
        except ValidationError as e:
            raise APIError(f"unexpected payload from /user/spaces: {e}") from e

    def get_space(self, space_id: str) -> Space:
        return self._get_model(f"/space/{space_id}", Space)

    def get_box(self, box_id: str) -> Box:
        return self._get_model(f"/box/{box_id}", Box)

    def add_card_to_inbox(self, name: str, space_id: str) -> None:
        if not name:
            raise ValueError("card content cannot be empty")
        card = NewInboxCard(name=name, space_id=space_id)
        resp = self._request("POST", "/card/to-inbox", json=card.model_dump(by_alias=True))
        if resp.status_code != httpx.codes.CREATED:
            raise APIError(
                f"failed to create card, status code: {resp.status_code}",
                status_code=resp.status_code,
            )

    def cards_in_box(self, space_id: str, box_id: str) -> list[Card]:
        """Return the cards of a space that lie entirely inside one of its boxes."""
        try:
            space = self.get_space(space_id)
        except APIError as e:
            raise APIError(f"failed to retrieve space {space_id!r}: {e}", status_code=e.status_code) from e
        try:
            box = self.get_box(box_id)
        except APIError as e:
            raise APIError(f"failed to retrieve box {box_id!r}: {e}", status_code=e.status_code) from e
        return space.cards_in(box)
