import pytest
from rest_framework.test import APIClient

from cards.models import UserCard
from core.field_encoder import FieldEncoder, decode_field, get_field_encoder

pytestmark = pytest.mark.django_db

CARDS_URL = '/api/cards/'

CARD = {
    'card_number': '1234567890123456',
    'card_expire': '12/27',
    'card_cvv': '123',
    'card_name': 'Everyday card',
}


def card_url(card_id):
    return f'{CARDS_URL}{card_id}/'


def create_card(client, **overrides):
    return client.post(CARDS_URL, {**CARD, **overrides}, format='json')


def test_create_returns_decoded_stored_values(auth_client, user):
    response = create_card(auth_client)

    assert response.status_code == 201
    for field, value in CARD.items():
        assert response.data[field] == value

    card = UserCard.objects.get(pk=response.data['id'])
    assert card.user == user
    assert card.card_name == 'Everyday card'


def test_sensitive_fields_are_not_stored_in_clear(auth_client):
    response = create_card(auth_client)
    card = UserCard.objects.get(pk=response.data['id'])

    for field in ('card_number', 'card_expire', 'card_cvv'):
        stored = getattr(card, field)
        assert stored != CARD[field]
        assert CARD[field] not in stored
        assert decode_field(stored) == CARD[field]


def test_list_only_contains_own_cards(auth_client, other_user):
    create_card(auth_client)
    other = APIClient()
    other.force_authenticate(user=other_user)
    create_card(other, card_name='Bob card', card_number='4000056655665556')

    response = auth_client.get(CARDS_URL)

    assert response.status_code == 200
    assert len(response.data) == 1
    assert response.data[0]['card_number'] == CARD['card_number']
    assert response.data[0]['card_cvv'] == CARD['card_cvv']


def test_other_users_card_is_not_found(auth_client, other_user):
    card_id = create_card(auth_client).data['id']
    other = APIClient()
    other.force_authenticate(user=other_user)

    assert other.get(card_url(card_id)).status_code == 404
    assert other.patch(card_url(card_id), {'card_name': 'Stolen'}, format='json').status_code == 404
    assert other.delete(card_url(card_id)).status_code == 404
    assert UserCard.objects.filter(pk=card_id).exists()


def test_update_reencodes_changed_fields(auth_client):
    card_id = create_card(auth_client).data['id']

    response = auth_client.patch(card_url(card_id), {'card_cvv': '9876'}, format='json')

    assert response.status_code == 200
    assert response.data['card_cvv'] == '9876'
    assert response.data['card_number'] == CARD['card_number']
    stored = UserCard.objects.get(pk=card_id).card_cvv
    assert stored != '9876'
    assert decode_field(stored) == '9876'


def test_delete_card(auth_client):
    card_id = create_card(auth_client).data['id']

    response = auth_client.delete(card_url(card_id))

    assert response.status_code == 200
    assert response.data == {'detail': 'Card deleted successfully.'}
    assert not UserCard.objects.filter(pk=card_id).exists()


def test_fifth_card_is_rejected(auth_client, user):
    for i in range(4):
        assert create_card(auth_client, card_name=f'Card {i}').status_code == 201

    response = create_card(auth_client, card_name='One too many')

    assert response.status_code == 400
    assert response.data['detail'].code == 'card_limit_exceeded'
    assert UserCard.objects.filter(user=user).count() == 4


def test_limit_is_per_user(auth_client, other_user):
    for i in range(4):
        create_card(auth_client, card_name=f'Card {i}')
    other = APIClient()
    other.force_authenticate(user=other_user)

    assert create_card(other).status_code == 201


def test_deleting_a_card_frees_a_slot(auth_client):
    ids = [create_card(auth_client, card_name=f'Card {i}').data['id'] for i in range(4)]
    auth_client.delete(card_url(ids[0]))

    assert create_card(auth_client).status_code == 201


@pytest.mark.parametrize('field, value', [
    ('card_number', '123456789012345'),
    ('card_number', '12345678901234567'),
    ('card_number', '1234-5678-9012-34'),
    ('card_expire', '1227'),
    ('card_expire', '1/'),
    ('card_expire', '12/2027-extra-long'),
    ('card_cvv', '12'),
    ('card_cvv', '12345'),
    ('card_cvv', 'abc'),
    ('card_name', 'A'),
    ('card_name', 'x' * 46),
])
def test_invalid_card_fields_are_rejected(auth_client, field, value):
    response = create_card(auth_client, **{field: value})

    assert response.status_code == 400
    assert field in response.data
    assert not UserCard.objects.exists()


def test_expiry_error_message(auth_client):
    response = create_card(auth_client, card_expire='December')
    assert response.data['card_expire'] == ['Card expiry date format is invalid.']


def test_missing_fields_are_rejected(auth_client):
    response = auth_client.post(CARDS_URL, {'card_name': 'Only a name'}, format='json')
    assert response.status_code == 400
    assert {'card_number', 'card_expire', 'card_cvv'} <= set(response.data)


def test_owner_cannot_be_chosen_by_payload(auth_client, user, other_user):
    response = create_card(auth_client, user=other_user.pk)
    assert UserCard.objects.get(pk=response.data['id']).user == user


def test_authentication_required(api_client):
    assert api_client.get(CARDS_URL).status_code == 401
    assert create_card(api_client).status_code == 401


def test_tampered_stored_value_gives_generic_error(auth_client):
    card_id = create_card(auth_client).data['id']
    UserCard.objects.filter(pk=card_id).update(card_cvv='tampered-value')

    response = auth_client.get(card_url(card_id))

    assert response.status_code == 422
    assert response.data == {'detail': 'Could not process request.'}


def test_value_from_another_key_gives_generic_error(auth_client):
    card_id = create_card(auth_client).data['id']
    foreign = FieldEncoder(['another-deployment-key']).encode('1234567890123456')
    UserCard.objects.filter(pk=card_id).update(card_number=foreign)

    assert auth_client.get(CARDS_URL).status_code == 422


def test_missing_key_fails_card_operations(auth_client, settings):
    settings.CARD_FIELD_KEYS = []
    get_field_encoder.cache_clear()

    response = create_card(auth_client)

    assert response.status_code == 503
    assert response.data == {'detail': 'Service temporarily unavailable.'}
    assert not UserCard.objects.exists()


def test_rotated_key_still_reads_existing_cards(auth_client, settings):
    card_id = create_card(auth_client).data['id']

    settings.CARD_FIELD_KEYS = ['rotated-key', settings.CARD_FIELD_KEYS[0]]
    get_field_encoder.cache_clear()

    response = auth_client.get(card_url(card_id))
    assert response.status_code == 200
    assert response.data['card_number'] == CARD['card_number']
