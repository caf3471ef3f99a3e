"""
Request descriptor: the only request shape the guard core sees.

Django's HttpRequest is converted exactly once, in the middleware, so rules
and the engine work on a small immutable value instead of the request
object.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from django.core.exceptions import RequestDataTooBig
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken


@dataclass(frozen=True)
class ClientIdentity:
    """
    Correlates requests coming from the same actor.

    Persisted guard state is keyed by `actor_key`: the user when the request
    is authenticated, the source IP otherwise. `keys` lists every persisted
    key that can block this request.

    Violations of an authenticated client are charged to the user only. A
    blocked user is refused from any IP, while anonymous traffic from that
    user's IP keeps its own, separate score. Blocking the IP too would lock
    out everyone behind a shared NAT or proxy because of one account.
    """
    ip: str
    user_id: Optional[str] = None
    path: str = ''
    method: str = ''
    body_shape: str = ''

    @property
    def ip_key(self) -> str:
        return f'ip:{self.ip}'

    @property
    def user_key(self) -> Optional[str]:
        return f'user:{self.user_id}' if self.user_id else None

    @property
    def actor_key(self) -> str:
        return self.user_key or self.ip_key

    @property
    def keys(self) -> Tuple[str, ...]:
        if self.user_key:
            return (self.user_key, self.ip_key)
        return (self.ip_key,)


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    path: str
    remote_addr: str
    query_string: str = ''
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b''
    content_type: str = ''
    content_length: int = 0
    user_id: Optional[str] = None

    @property
    def body_size(self) -> int:
        return max(len(self.body), self.content_length)

    @property
    def user_agent(self) -> str:
        return self.headers.get('user-agent', '')

    def body_text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    def body_shape(self) -> str:
        """
        Fingerprint of the body structure, independent of its values.

        JSON objects are reduced to their sorted key names; anything else to
        its content type.
        """
        shape = self.content_type or 'none'
        if self.body and 'json' in self.content_type:
            try:
                payload = json.loads(self.body)
            except ValueError:
                shape = 'json:malformed'
            else:
                if isinstance(payload, dict):
                    shape = 'json:' + ','.join(sorted(payload))
                else:
                    shape = 'json:' + type(payload).__name__
        return hashlib.sha256(shape.encode()).hexdigest()[:16]

    @property
    def identity(self) -> ClientIdentity:
        return ClientIdentity(
            ip=self.remote_addr,
            user_id=self.user_id,
            path=self.path,
            method=self.method,
            body_shape=self.body_shape(),
        )

    @classmethod
    def from_django_request(cls, request, trust_forwarded_for: bool = False) -> 'RequestDescriptor':
        """
        Build a descriptor from a Django HttpRequest.

        Args:
            request: HttpRequest
            trust_forwarded_for: Use the first X-Forwarded-For hop as source IP

        Returns:
            RequestDescriptor
        """
        try:
            body = request.body
        except RequestDataTooBig:
            # content_length still carries the declared size
            body = b''

        try:
            content_length = int(request.META.get('CONTENT_LENGTH') or 0)
        except ValueError:
            content_length = 0

        return cls(
            method=request.method or '',
            path=request.path,
            remote_addr=client_ip(request, trust_forwarded_for),
            query_string=request.META.get('QUERY_STRING', ''),
            headers={name.lower(): value for name, value in request.headers.items()},
            body=body,
            content_type=request.META.get('CONTENT_TYPE', '') or '',
            content_length=content_length,
            user_id=request_user_id(request),
        )


def client_ip(request, trust_forwarded_for: bool = False) -> str:
    """
    Get client IP address from request.

    X-Forwarded-For is client controlled; it is only honoured behind a proxy
    that is known to set it.
    """
    if trust_forwarded_for:
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or 'unknown'


def request_user_id(request) -> Optional[str]:
    """
    Authenticated user id from the session or from a valid bearer token.

    The guard runs before DRF authenticates the request, so JWT access
    tokens are validated here directly.
    """
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return str(user.pk)

    header = request.META.get('HTTP_AUTHORIZATION', '')
    parts = header.split()
    if len(parts) != 2 or parts[0] not in jwt_settings.AUTH_HEADER_TYPES:
        return None

    try:
        token = AccessToken(parts[1])
    except TokenError:
        return None
    user_id = token.get(jwt_settings.USER_ID_CLAIM)
    return str(user_id) if user_id is not None else None
