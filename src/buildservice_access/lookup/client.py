"""Clients for the external group directory.

The directory protocol is deliberately small: membership of one login in
one group.  :class:`HttpDirectoryClient` implements it over JSON/HTTP::

    GET {base_url}/groups/{group}/members/{login}
    200 {"member": true}     -> member
    200 {"member": false}    -> not a member
    404                      -> not a member

Anything else (connection errors, timeouts, malformed HTTP responses,
other status codes, bodies that are not the expected JSON) raises :class:`DirectoryUnavailableError`.
Callers decide what "unavailable" means; the directory lookup strategy
treats it as "no additional grant".

Example
-------
>>> client = HttpDirectoryClient("https://directory.example.com/api", timeout_seconds=2.0)
>>> client.is_member("carol", "packagers")  # doctest: +SKIP
True
"""
from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class DirectoryUnavailableError(RuntimeError):
    """Raised when the directory cannot answer a membership question.

    Attributes
    ----------
    group:
        The group that was asked about.
    login:
        The login that was asked about.
    """

    def __init__(self, group: str, login: str, reason: str) -> None:
        self.group = group
        self.login = login
        self.reason = reason
        super().__init__(f"Directory lookup of {login!r} in group {group!r} failed: {reason}")


class DirectoryClient(ABC):
    """Answers group membership questions from an external directory."""

    @abstractmethod
    def is_member(self, login: str, group: str) -> bool:
        """Return membership of *login* in *group*.

        Raises
        ------
        DirectoryUnavailableError
            If the directory cannot be reached or gives an unusable answer.
        """


class HttpDirectoryClient(DirectoryClient):
    """JSON-over-HTTP directory client.

    Parameters
    ----------
    base_url:
        Root URL of the directory API, without trailing slash.
    timeout_seconds:
        Socket timeout for each request.  A timeout counts as unavailable.
    token:
        Optional bearer token sent in the ``Authorization`` header.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 2.0,
        token: str | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("HttpDirectoryClient requires a base_url.")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._token = token

    @property
    def base_url(self) -> str:
        return self._base_url

    def member_url(self, login: str, group: str) -> str:
        return (
            f"{self._base_url}/groups/{urllib.parse.quote(group, safe='')}"
            f"/members/{urllib.parse.quote(login, safe='')}"
        )

    def is_member(self, login: str, group: str) -> bool:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        req = urllib.request.Request(self.member_url(login, group), headers=headers, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                body = resp.read()
        except urllib.error.HTTPError as exc:
            exc.close()
            if exc.code == 404:
                return False
            raise DirectoryUnavailableError(group, login, f"HTTP {exc.code}") from exc
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
            raise DirectoryUnavailableError(group, login, str(exc)) from exc

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DirectoryUnavailableError(group, login, "response is not JSON") from exc

        member = payload.get("member") if isinstance(payload, dict) else None
        if not isinstance(member, bool):
            raise DirectoryUnavailableError(group, login, f"unexpected response {payload!r}")
        logger.debug("Directory: %s in %s -> %s", login, group, member)
        return member
