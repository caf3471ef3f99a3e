"""Shared fixtures for the guarded_commerce test suite.

Every test gets a fresh card key (the encoder is cached process-wide) and an
empty cache, so request-burst counters and rate limits never bleed between
tests.
"""

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from core.field_encoder import get_field_encoder
from guard.conf import GuardConfig
from guard.descriptor import RequestDescriptor
from guard.engine import RequestGuard

TEST_CARD_KEY = 'test-card-key-material'


@pytest.fixture(autouse=True)
def card_keys(settings):
    settings.CARD_FIELD_KEYS = [TEST_CARD_KEY]
    get_field_encoder.cache_clear()
    yield
    get_field_encoder.cache_clear()


@pytest.fixture(autouse=True)
def clear_cache(request):
    # the cache is a database table, reachable only from tests with db access
    uses_db = (
        request.node.get_closest_marker('django_db')
        or {'db', 'transactional_db'} & set(request.fixturenames)
    )
    if not uses_db:
        yield
        return
    if 'transactional_db' in request.fixturenames:
        request.getfixturevalue('transactional_db')
    else:
        request.getfixturevalue('db')
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username='alice', email='alice@example.com', password='s3cure-pass-123'
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username='bob', email='bob@example.com', password='s3cure-pass-456'
    )


@pytest.fixture
def admin_user(db):
    return get_user_model().objects.create_superuser(
        username='admin', email='admin@example.com', password='s3cure-pass-789'
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def make_guard(db):
    def _make(**overrides):
        config = GuardConfig.from_settings({k.upper(): v for k, v in overrides.items()})
        return RequestGuard(config)
    return _make


@pytest.fixture
def make_request():
    def _make(path='/api/products/', method='GET', ip='198.51.100.10', user_id=None,
              query_string='', body=b'', content_type='', headers=None):
        return RequestDescriptor(
            method=method,
            path=path,
            remote_addr=ip,
            query_string=query_string,
            headers=headers or {'user-agent': 'pytest-client/1.0'},
            body=body,
            content_type=content_type,
            content_length=len(body),
            user_id=user_id,
        )
    return _make
