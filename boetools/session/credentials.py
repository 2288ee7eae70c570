"""
Logon credential variants.

Three ways to authenticate against a node: user name and password with
an authentication plugin, a trusted-authentication shared secret, or a
previously issued logon token. ``logon()`` selects the matching
transport call so the failover loop stays credential agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from boetools.core.types import AuthType
from boetools.transport.protocols import TransportClient, TransportSession


@dataclass(frozen=True, slots=True)
class PasswordCredential:
    """User name and password, checked by the given authentication plugin."""

    user: str
    password: str = field(repr=False)
    auth_type: AuthType = AuthType.ENTERPRISE


@dataclass(frozen=True, slots=True)
class TrustedCredential:
    """Trusted authentication: the user is vouched for by a shared secret."""

    user: str
    secret: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class TokenCredential:
    token: str = field(repr=False)

    @property
    def hint(self) -> str:
        if len(self.token) <= 8:
            return "****"
        return f"{self.token[:4]}...{self.token[-4:]}"


Credential = Union[PasswordCredential, TrustedCredential, TokenCredential]


def describe(credential: Credential) -> str:
    """Log-safe one-line description of a credential."""
    match credential:
        case PasswordCredential(user=user, auth_type=auth_type):
            return f"password:{user}@{auth_type.value}"
        case TrustedCredential(user=user):
            return f"trusted:{user}"
        case TokenCredential():
            return f"token:{credential.hint}"
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


def logon(
    transport: TransportClient,
    credential: Credential,
    node: str,
) -> TransportSession:
    """
    Authenticate against one node with the transport call matching the
    credential variant.

    Transport errors propagate unchanged.
    """
    match credential:
        case PasswordCredential(user=user, password=password, auth_type=auth_type):
            return transport.logon_password(user, password, node, auth_type.value)
        case TrustedCredential(user=user, secret=secret):
            return transport.logon_trusted(user, secret, node)
        case TokenCredential(token=token):
            return transport.logon_token(token, node)
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")
