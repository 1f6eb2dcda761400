"""At-rest codec for conversation message content.

Stored message bodies go through `encode` on write and `decode` on every read, so
nothing above the model layer ever handles ciphertext.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from ragbrain.core.exceptions import ConfigurationError
from ragbrain.core.settings import settings

logger = logging.getLogger(__name__)


class MessageCodec:
    """Identity codec; used when no message key is configured."""

    encrypted = False

    def encode(self, plaintext: str) -> str:
        return plaintext

    def decode(self, stored: str) -> str:
        return stored


class FernetMessageCodec(MessageCodec):
    encrypted = True

    def __init__(self, key: bytes | str) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError("RAGBRAIN_MESSAGE_KEY is not a valid Fernet key") from exc

    def encode(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decode(self, stored: str) -> str:
        try:
            return self._fernet.decrypt(stored.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ConfigurationError(
                "Stored message could not be decrypted with the configured key"
            ) from exc


@lru_cache
def get_message_codec() -> MessageCodec:
    if settings.message_key is None or not settings.message_key.get_secret_value():
        logger.warning("RAGBRAIN_MESSAGE_KEY not set; conversation messages stored in plaintext")
        return MessageCodec()
    return FernetMessageCodec(settings.message_key.get_secret_value())


__all__ = ["FernetMessageCodec", "MessageCodec", "get_message_codec"]
