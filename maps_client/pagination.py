"""Continuation helpers: page tokens and autocomplete session tokens"""

import re
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from .config import SESSION_TOKEN_BYTES, SESSION_TOKEN_MAX_LENGTH
from .exceptions import NoNextPageError, ValidationError
from .models import Response

R = TypeVar("R")

_SESSION_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def generate_session_token() -> str:
    """Random URL/filename-safe base64 token, 36 characters long"""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def validate_session_token(token: str) -> str:
    if not token:
        raise ValidationError("session token cannot be empty")
    if len(token) > SESSION_TOKEN_MAX_LENGTH:
        raise ValidationError(
            f"session token exceeds {SESSION_TOKEN_MAX_LENGTH} characters ({len(token)})"
        )
    if not _SESSION_TOKEN_RE.match(token):
        raise ValidationError("session token must be URL and filename safe base64")
    return token


@dataclass(frozen=True)
class ResponseWithContext(Generic[R]):
    """
    A response together with the request that produced it.

    The request is a frozen, client-free value, so the pair can be stored
    and continued later by any client.
    """

    response: Response
    request: R

    @property
    def items(self) -> List[Dict[str, Any]]:
        return self.response.items

    @property
    def next_page_token(self) -> Optional[str]:
        return self.response.next_page_token

    def has_next(self) -> bool:
        return self.response.has_next_page()

    def next_page_request(self) -> R:
        """The original request with only its page token replaced"""
        token = self.response.next_page_token
        if not token:
            raise NoNextPageError()
        if not hasattr(self.request, "with_page_token"):
            raise NoNextPageError(f"{type(self.request).__name__} does not support pagination")
        return self.request.with_page_token(token)

    def continue_with(self, new_input: str) -> R:
        """The original request with only its input replaced; session token kept"""
        if not hasattr(self.request, "with_input"):
            raise ValidationError(f"{type(self.request).__name__} does not support session continuation")
        return self.request.with_input(new_input)

    @property
    def session_token(self) -> Optional[str]:
        return getattr(self.request, "session_token", None)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "endpoint": type(self.request).__name__,
            "request": self.request.to_dict(),
            "next_page_token": self.response.next_page_token,
        }

    def into_parts(self) -> Tuple[Response, R]:
        return self.response, self.request

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.response.items)

    def __len__(self) -> int:
        return len(self.response.items)

    def __getitem__(self, index):
        return self.response.items[index]
