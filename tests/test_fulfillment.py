import pytest

from procurement.models import OFFER_ACCEPTED


@pytest.fixture()
def award(factory):
    school, supplier = factory.school(), factory.supplier()
    _, (item_id,) = factory.bid_request(school, items=[('Maize', '50', 'bags')])
    offer_id = factory.offer(supplier, item_id, '22.00', status=OFFER_ACCEPTED, total_price='1100.00')
    return {'school': school, 'supplier': supplier, 'item': item_id, 'offer': offer_id}


def test_delivery_and_payment_lifecycle(client, factory, award):
    school_headers = factory.headers(award['school'])
    supplier_headers = factory.headers(award['supplier'])

    started = client.post('/api/delivery/start', headers=supplier_headers, json={'offer_id': award['offer']})
    assert started.status_code == 201
    delivery_id = started.get_json()['delivery']['id']
    assert started.get_json()['delivery']['status'] == 'in_progress'

    early_confirm = client.post('/api/delivery/confirm', headers=school_headers, json={'delivery_id': delivery_id})
    early_payment = client.post('/api/payment', headers=school_headers,
                                json={'delivery_id': delivery_id, 'payment_method': 'mobile_money'})
    assert early_confirm.status_code == 400
    assert early_payment.status_code == 400

    completed = client.post('/api/delivery/complete', headers=supplier_headers,
                            json={'delivery_id': delivery_id, 'notes': 'Left at the store room'})
    assert completed.status_code == 200
    assert completed.get_json()['delivery']['status'] == 'delivered'

    confirmed = client.post('/api/delivery/confirm', headers=school_headers, json={'delivery_id': delivery_id})
    assert confirmed.status_code == 200
    assert confirmed.get_json()['delivery']['status'] == 'confirmed'

    paid = client.post('/api/payment', headers=school_headers,
                       json={'delivery_id': delivery_id, 'payment_method': 'mobile_money'})
    assert paid.status_code == 201
    payment = paid.get_json()['payment']
    assert payment['total_amount'] == '1100.00'
    assert payment['status'] == 'pending'
    reference = paid.get_json()['reference']
    assert reference.startswith('TXN-')

    twice = client.post('/api/payment', headers=school_headers,
                        json={'delivery_id': delivery_id, 'payment_method': 'bank_transfer'})
    assert twice.status_code == 409

    fetched = client.get(f'/api/payment/{reference}', headers=school_headers)
    assert fetched.status_code == 200
    assert client.get(f'/api/payment/{reference}', headers=factory.headers(factory.school())).status_code == 403

    admin_headers = factory.headers(factory.admin())
    settled = client.post(f'/api/payment/{reference}/status', headers=admin_headers, json={'status': 'paid'})
    assert settled.status_code == 200
    assert settled.get_json()['payment']['status'] == 'paid'
    again = client.post(f'/api/payment/{reference}/status', headers=admin_headers, json={'status': 'failed'})
    assert again.status_code == 400


def test_only_the_winning_supplier_starts_delivery(client, factory, award):
    other = factory.supplier()
    pending = factory.offer(other, award['item'], '23.00')

    by_other = client.post('/api/delivery/start', headers=factory.headers(other), json={'offer_id': award['offer']})
    on_pending = client.post('/api/delivery/start', headers=factory.headers(other), json={'offer_id': pending})
    headers = factory.headers(award['supplier'])
    first = client.post('/api/delivery/start', headers=headers, json={'offer_id': award['offer']})
    duplicate = client.post('/api/delivery/start', headers=headers, json={'offer_id': award['offer']})

    assert by_other.status_code == 403
    assert on_pending.status_code == 400
    assert first.status_code == 201
    assert duplicate.status_code == 409


def test_malformed_ids_are_validation_errors(client, factory, award):
    headers = factory.headers(award['supplier'])

    assert client.post('/api/delivery/start', headers=headers, json={}).status_code == 400
    assert client.post('/api/delivery/complete', headers=headers,
                       json={'delivery_id': 'abc'}).status_code == 400
    assert client.post('/api/delivery/complete', headers=headers,
                       json={'delivery_id': 999}).status_code == 404


def test_payment_method_must_be_known(client, factory, award):
    response = client.post('/api/payment', headers=factory.headers(award['school']),
                           json={'delivery_id': 1, 'payment_method': 'cash'})

    assert response.status_code == 400
    assert client.get('/api/payment/TXN-0-NONE', headers=factory.headers(award['school'])).status_code == 404


def test_delivery_notes_must_be_text(client, factory, award):
    headers = factory.headers(award['supplier'])
    delivery_id = client.post('/api/delivery/start', headers=headers,
                              json={'offer_id': award['offer']}).get_json()['delivery']['id']

    rejected = client.post('/api/delivery/complete', headers=headers,
                           json={'delivery_id': delivery_id, 'notes': {'gate': 'north'}})
    completed = client.post('/api/delivery/complete', headers=headers,
                            json={'delivery_id': delivery_id, 'notes': '  Gate 2  '})

    assert rejected.status_code == 400
    assert rejected.get_json()['code'] == 'VALIDATION_ERROR'
    assert completed.status_code == 200
    assert completed.get_json()['delivery']['status'] == 'delivered'
    assert completed.get_json()['delivery']['delivery_notes'] == 'Gate 2'
