"""
Concurrent card creation by one user must never exceed the card limit.
"""

import threading

import pytest
from django.db import connection
from rest_framework.test import APIClient

from cards.models import UserCard

WORKERS = 8

CARD = {
    'card_number': '1234567890123456',
    'card_expire': '12/27',
    'card_cvv': '123',
}


def post_concurrently(user, count):
    barrier = threading.Barrier(count)
    responses = []
    errors = []
    lock = threading.Lock()

    def worker(index):
        client = APIClient()
        client.force_authenticate(user=user)
        try:
            barrier.wait()
            response = client.post('/api/cards/', {**CARD, 'card_name': f'Card {index}'}, format='json')
            with lock:
                responses.append(response)
        except Exception as e:  # surfaced by the assertion below
            with lock:
                errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    return responses


@pytest.mark.django_db(transaction=True)
def test_concurrent_creates_stop_at_the_limit(user, settings):
    settings.CARD_LIMIT_PER_USER = 4

    responses = post_concurrently(user, WORKERS)

    created = [r for r in responses if r.status_code == 201]
    rejected = [r for r in responses if r.status_code == 400]
    assert len(created) == 4
    assert len(rejected) == WORKERS - 4
    assert all(r.data['detail'].code == 'card_limit_exceeded' for r in rejected)
    assert UserCard.objects.filter(user=user).count() == 4
