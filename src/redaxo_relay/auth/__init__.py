"""Authentication module for redaxo-relay."""

from redaxo_relay.auth.authenticator import Authenticator
from redaxo_relay.auth.credentials import (
    CredentialSource,
    PromptCredentialSource,
    StaticCredentialSource,
)
from redaxo_relay.auth.session_store import (
    KeyringSessionStore,
    MemorySessionStore,
    SessionRecord,
    SessionStore,
)

__all__ = [
    # State machine
    "Authenticator",
    # Credentials
    "CredentialSource",
    "PromptCredentialSource",
    "StaticCredentialSource",
    # Session storage
    "KeyringSessionStore",
    "MemorySessionStore",
    "SessionRecord",
    "SessionStore",
]
