import dataclasses
import json

import pytest

from guard.rules import DEFAULT_RULES, RuleContext, Severity, decoded, evaluate_rules

CONTEXT = RuleContext(max_body_bytes=1024, rate_limit=10, request_count=1)


def fired(descriptor, context=CONTEXT):
    return {m.rule: m.severity for m in evaluate_rules(descriptor, context, DEFAULT_RULES)}


def test_benign_listing_request(make_request):
    request = make_request(query_string='search=blue+shirt&ordering=-price&page=2')
    assert fired(request) == {}


CARD_BODY = {
    'card_number': '1234567890123456',
    'card_expire': '12/27',
    'card_cvv': '123',
    'card_name': "Alice's everyday card",
}


def test_benign_card_payload(make_request):
    body = json.dumps(CARD_BODY).encode()
    request = make_request(path='/api/cards/', method='POST', body=body,
                           content_type='application/json')
    assert fired(request) == {}


@pytest.mark.parametrize('query_string', [
    "id=1' OR '1'='1",
    'q=1 union select password from auth_user',
    'q=%2527%20OR%201%3D1',
    'q=1;+DROP+TABLE+products',
    'q=sleep(5)',
])
def test_sql_injection_is_critical(make_request, query_string):
    assert fired(make_request(query_string=query_string)).get('sql_injection') == Severity.CRITICAL


def test_sql_injection_in_form_body(make_request):
    request = make_request(method='POST', body=b"username=admin'--&password=x",
                           content_type='application/x-www-form-urlencoded')
    assert fired(request)['sql_injection'] == Severity.CRITICAL


@pytest.mark.parametrize('path, query_string', [
    ('/static/../../settings.py', ''),
    ('/api/files/..%2f..%2fsettings.py', ''),
    ('/api/products/', 'file=..\\..\\windows\\win.ini'),
])
def test_path_traversal_is_high(make_request, path, query_string):
    assert fired(make_request(path=path, query_string=query_string))['path_traversal'] == Severity.HIGH


def test_dots_in_names_are_not_traversal(make_request):
    assert 'path_traversal' not in fired(make_request(path='/api/products/v1.2..final/'))


def test_xss_in_json_body_is_high(make_request):
    body = json.dumps({'comment': '<script>alert(1)</script>'}).encode()
    request = make_request(method='POST', body=body, content_type='application/json')
    assert fired(request) == {'xss_signature': Severity.HIGH}


def test_xss_event_handler_in_query(make_request):
    request = make_request(query_string='q=%3Cimg%20src%3Dx%20onerror%3Dalert(1)%3E')
    assert fired(request)['xss_signature'] == Severity.HIGH


def test_binary_body_is_not_scanned(make_request):
    request = make_request(method='POST', body=b'\x89PNG<script>..',
                           content_type='application/octet-stream')
    assert fired(request) == {}


def test_null_byte_is_high(make_request):
    assert fired(make_request(query_string='file=a%00.png'))['null_byte'] == Severity.HIGH


@pytest.mark.parametrize('query_string', [
    'host=example.com;+cat+/etc/passwd',
    'name=$(whoami)',
])
def test_command_injection_is_critical(make_request, query_string):
    assert fired(make_request(query_string=query_string))['command_injection'] == Severity.CRITICAL


@pytest.mark.parametrize('user_agent', ['sqlmap/1.7.2#stable', 'Mozilla/5.00 (Nikto/2.1.6)'])
def test_scanner_user_agent_is_critical(make_request, user_agent):
    request = make_request(headers={'user-agent': user_agent})
    assert fired(request) == {'scanner_user_agent': Severity.CRITICAL}


def test_oversized_payload_is_medium(make_request):
    request = make_request(method='POST', body=b'a' * 2048, content_type='text/plain')
    assert fired(request) == {'oversized_payload': Severity.MEDIUM}


def test_declared_length_counts_as_payload_size(make_request):
    request = make_request(method='POST')
    oversized = dataclasses.replace(request, content_length=4096)
    assert fired(oversized) == {'oversized_payload': Severity.MEDIUM}


def test_malformed_json_is_low(make_request):
    request = make_request(method='POST', body=b'{"card_name": ', content_type='application/json')
    assert fired(request) == {'malformed_json': Severity.LOW}


def test_request_burst_is_medium(make_request):
    request = make_request()
    assert fired(request, RuleContext(max_body_bytes=1024, rate_limit=10, request_count=10)) == {}
    busy = RuleContext(max_body_bytes=1024, rate_limit=10, request_count=11)
    assert fired(request, busy) == {'request_burst': Severity.MEDIUM}


def test_matches_are_ordered_most_severe_first(make_request):
    request = make_request(
        path='/static/../x',
        query_string="q=' OR 1=1",
        method='POST',
        body=b'{"a": ',
        content_type='application/json',
    )
    severities = [m.severity for m in evaluate_rules(request, CONTEXT)]
    assert severities == sorted(severities, reverse=True)
    assert severities[0] == Severity.CRITICAL
    assert severities[-1] == Severity.LOW


def test_decoded_unwraps_multiple_encodings():
    assert decoded('%252e%252e%252f') == '../'
    assert decoded('plain+text') == 'plain text'


def test_severity_weights():
    assert [s.weight for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH)] == [1, 2, 3]


PRODUCT_COPY = [
    'Works offline; update firmware monthly for best results.',
    'Tom & Jerry; cat toy with bell & rope.',
    "Don't drop it; delete old cache files weekly.",
    'Great for sleep (8 hours a night) and focus.',
    'JavaScript: The Good Parts, 2nd edition.',
    'Union select committee pick; 100% cotton.',
    'Legs fold flat; drop table leaves to store them.',
    "Rated 'excellent' -- and loved by 10,000 customers.",
    'Fast & quiet | plugs into any USB-C port; insert into the dock.',
    'Fits 13" laptops & tablets; rm 204 is our showroom.',
]


@pytest.mark.parametrize('description', PRODUCT_COPY)
def test_product_copy_is_not_an_attack(make_request, description):
    body = json.dumps({'name': 'Travel kit', 'price': '19.90', 'description': description}).encode()
    request = make_request(path='/api/products/', method='POST', body=body,
                           content_type='application/json')
    assert fired(request) == {}


@pytest.mark.parametrize('card_name', ['Tom & Jerry; cat fund', "Mum's card | backup", 'Bills; update monthly'])
def test_card_labels_are_not_attacks(make_request, card_name):
    body = json.dumps({**CARD_BODY, 'card_name': card_name}).encode()
    request = make_request(path='/api/cards/', method='POST', body=body,
                           content_type='application/json')
    assert fired(request) == {}


@pytest.mark.parametrize('payload', [
    '1; DROP TABLE users',
    "x'; DELETE FROM auth_user WHERE 1=1",
    '0; insert into auth_user (username) values (1)',
    "1; UPDATE auth_user SET is_staff=1",
])
def test_stacked_sql_in_json_body_is_critical(make_request, payload):
    body = json.dumps({'q': payload}).encode()
    request = make_request(method='POST', body=body, content_type='application/json')
    assert fired(request)['sql_injection'] == Severity.CRITICAL


def test_shell_chains_in_body_are_not_checked(make_request):
    body = json.dumps({'note': 'pack it; cat /etc/passwd'}).encode()
    request = make_request(method='POST', body=body, content_type='application/json')
    assert 'command_injection' not in fired(request)
