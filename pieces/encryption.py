"""
Props encryption — encrypt / decrypt trigger props at rest.

Trigger props carry vendor credentials (Airtable personal tokens, Mailchimp
OAuth tokens), so the host stores them as Fernet ciphertext from the
``cryptography`` library.  The key is loaded from
``config.token_encryption_key`` (env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and props are stored
as plaintext JSON (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_initialised = False


def _init_fernet() -> None:
    """Build the Fernet cipher once from settings."""
    global _fernet, _initialised
    _initialised = True

    key = config.token_encryption_key
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — trigger props (incl. vendor tokens) "
            "will be stored as plaintext."
        )
        _fernet = None
        return

    _fernet = Fernet(key.encode())
    logger.info("Props encryption enabled (Fernet/AES-128-CBC)")


def _cipher() -> Optional[Fernet]:
    if not _initialised:
        _init_fernet()
    return _fernet


def encrypt_props(props: Dict[str, Any]) -> str:
    """Serialise props to JSON and encrypt them (plaintext if disabled)."""
    plaintext = json.dumps(props, separators=(",", ":"), sort_keys=True)
    fernet = _cipher()
    if fernet is None:
        return plaintext
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_props(stored: str) -> Dict[str, Any]:
    """
    Inverse of :func:`encrypt_props`.

    Rows written before encryption was enabled are plain JSON and are read
    as-is.
    """
    fernet = _cipher()
    if fernet is None:
        return json.loads(stored)
    try:
        return json.loads(fernet.decrypt(stored.encode()).decode())
    except InvalidToken:
        return json.loads(stored)


def is_encryption_enabled() -> bool:
    return _cipher() is not None


def reset() -> None:
    """Forget the cached cipher — only useful in tests that change the key."""
    global _fernet, _initialised
    _fernet = None
    _initialised = False
