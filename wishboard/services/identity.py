"""Device identity — a random per-browser token that scopes likes.

The token lives in the browser's cookie jar and is never validated by the
server: it is not a credential, only a way to tell one device's likes from
another's.
"""

import logging
import secrets
from typing import Dict, Mapping, Optional

from starlette.responses import Response

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16
# Width of votes.client_id; longer cookie values are replaced.
MAX_DEVICE_ID_LENGTH = 64


class StorageUnavailable(Exception):
    """The persistent key-value storage cannot be read or written."""


class CookieStorage:
    """Key-value view over one request's cookies.

    Values written are readable straight away and are sent back to the
    browser by :meth:`persist`.
    """

    def __init__(self, cookies: Mapping[str, str]):
        self._cookies = dict(cookies)
        self.pending: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        if not key:
            raise StorageUnavailable("cookie name is empty")
        if key in self.pending:
            return self.pending[key]
        return self._cookies.get(key)

    def set(self, key: str, value: str) -> None:
        self.pending[key] = value

    def persist(self, response: Response, max_age: int) -> Response:
        """Attach every pending value to the response as a long-lived cookie."""
        for key, value in self.pending.items():
            response.set_cookie(
                key=key,
                value=value,
                max_age=max_age,
                httponly=True,
                samesite="lax",
            )
        return response


def get_or_create_device_id(storage, key: str) -> str:
    """
    Return the device identifier held in ``storage``, creating it on first use.

    Falls back to an empty identifier when no storage is available, which
    turns off per-device like tracking for the session.
    """
    if storage is None:
        return ""
    try:
        device_id = storage.get(key)
        if device_id and len(device_id) <= MAX_DEVICE_ID_LENGTH:
            return device_id
        if device_id:
            logger.warning("Ignoring over-long device identity (%d chars)", len(device_id))
        device_id = secrets.token_hex(TOKEN_BYTES)
        storage.set(key, device_id)
    except StorageUnavailable as exc:
        logger.warning("Device storage unavailable, likes will not be tracked: %s", exc)
        return ""
    logger.info("Issued new device identity %s", device_id[:8])
    return device_id
