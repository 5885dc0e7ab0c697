from datetime import timedelta

from procurement.models import db, SupplierOffer, OFFER_ACCEPTED, OFFER_REJECTED
from procurement.services.formatting import utcnow


def open_deadline():
    return utcnow() + timedelta(days=5)


def offer_status(app, offer_id):
    with app.app_context():
        return db.session.get(SupplierOffer, offer_id).status


def test_create_bid_request(client, factory, notifier):
    school = factory.school()
    factory.supplier(verified=True, email='veg@market.com')

    response = client.post('/api/bid-requests', headers=factory.headers(school), json={
        'title': 'Vegetables for term 3',
        'deadline': (utcnow() + timedelta(days=10)).strftime('%Y-%m-%d'),
        'items': [{'item_name': 'Onions', 'quantity': 100, 'unit': 'bags'}],
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body['bid_request']['title'] == 'Vegetables for term 3'
    assert body['bid_request']['items'][0]['quantity'] == '100.00'
    assert [r.email for r in notifier.new_bids[0][2]] == ['veg@market.com']


def test_create_bid_request_validation_error(client, factory):
    school = factory.school()

    response = client.post('/api/bid-requests', headers=factory.headers(school), json={
        'title': 'No items', 'deadline': '2099-01-01', 'items': [],
    })

    assert response.status_code == 400
    assert response.get_json()['code'] == 'VALIDATION_ERROR'

    oversized = client.post('/api/bid-requests', headers=factory.headers(school), json={
        'title': 'Too many onions', 'deadline': '2099-01-01',
        'items': [{'item_name': 'Onions', 'quantity': '1e40', 'unit': 'bags'}],
    })

    assert oversized.status_code == 400
    assert oversized.get_json()['code'] == 'VALIDATION_ERROR'


def test_suppliers_cannot_create_bid_requests(client, factory):
    supplier = factory.supplier()

    response = client.post('/api/bid-requests', headers=factory.headers(supplier), json={})

    assert response.status_code == 403


def test_requests_without_token_are_unauthorized(client):
    response = client.get('/api/bid-requests/active')

    assert response.status_code == 401
    assert response.get_json()['code'] == 'UNAUTHORIZED'


def test_garbage_token_is_unauthorized(client):
    response = client.get('/api/bid-requests/active', headers={'Authorization': 'Bearer not-a-jwt'})

    assert response.status_code == 401


def test_active_bid_requests_exclude_expired(client, factory):
    school = factory.school()
    open_id, _ = factory.bid_request(school, deadline=open_deadline(), title='Open')
    factory.bid_request(school, title='Closed')

    response = client.get('/api/bid-requests/active', headers=factory.headers(school))

    assert [br['id'] for br in response.get_json()['active_bids']] == [open_id]


def test_submit_offer(client, factory):
    school, supplier = factory.school(), factory.supplier()
    _, (item_id,) = factory.bid_request(school, deadline=open_deadline())

    response = client.post('/api/supplier-offers', headers=factory.headers(supplier), json={
        'bid_item_id': item_id, 'price_per_unit': '20.00', 'notes': 'Red onions',
    })

    assert response.status_code == 201
    offer = response.get_json()['offer']
    assert offer['status'] == 'pending'
    assert offer['price_per_unit'] == '20.00'
    assert offer['total_price'] is None


def test_submit_offer_error_codes(client, factory):
    school, supplier = factory.school(), factory.supplier()
    _, (open_item,) = factory.bid_request(school, deadline=open_deadline())
    _, (closed_item,) = factory.bid_request(school)
    headers = factory.headers(supplier)

    first = client.post('/api/supplier-offers', headers=headers,
                        json={'bid_item_id': open_item, 'price_per_unit': 10})
    duplicate = client.post('/api/supplier-offers', headers=headers,
                            json={'bid_item_id': open_item, 'price_per_unit': 9})
    late = client.post('/api/supplier-offers', headers=headers,
                       json={'bid_item_id': closed_item, 'price_per_unit': 9})
    missing = client.post('/api/supplier-offers', headers=headers,
                          json={'bid_item_id': 987654, 'price_per_unit': 9})
    invalid = client.post('/api/supplier-offers', headers=headers,
                          json={'bid_item_id': open_item, 'price_per_unit': -1})
    huge = client.post('/api/supplier-offers', headers=headers,
                       json={'bid_item_id': open_item, 'price_per_unit': '1e30'})
    by_school = client.post('/api/supplier-offers', headers=factory.headers(school),
                            json={'bid_item_id': open_item, 'price_per_unit': 9})

    assert first.status_code == 201
    assert duplicate.status_code == 409
    assert late.status_code == 400
    assert late.get_json()['code'] == 'INVALID_STATE'
    assert missing.status_code == 404
    assert invalid.status_code == 400
    assert huge.status_code == 400
    assert huge.get_json()['code'] == 'VALIDATION_ERROR'
    assert by_school.status_code == 403


def test_non_json_body_is_rejected(client, factory):
    supplier = factory.supplier()

    response = client.post('/api/supplier-offers', headers=factory.headers(supplier),
                           data='price=10', content_type='text/plain')

    assert response.status_code == 400


def test_select_winning_offer(client, app, factory):
    school = factory.school()
    _, (item_id,) = factory.bid_request(school)
    winner = factory.offer(factory.supplier(), item_id, '20.00')
    loser = factory.offer(factory.supplier(), item_id, '18.00')

    response = client.post(f'/api/supplier-offers/select/{winner}', headers=factory.headers(school))

    assert response.status_code == 200
    offer = response.get_json()['offer']
    assert offer['status'] == OFFER_ACCEPTED
    assert offer['total_price'] == '2000.00'
    assert offer_status(app, loser) == OFFER_REJECTED


def test_select_is_idempotent_over_http(client, factory):
    school = factory.school()
    _, (item_id,) = factory.bid_request(school)
    offer_id = factory.offer(factory.supplier(), item_id, '20.00')
    headers = factory.headers(school)

    first = client.post(f'/api/supplier-offers/select/{offer_id}', headers=headers)
    second = client.post(f'/api/supplier-offers/select/{offer_id}', headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.get_json()['offer']['status'] == OFFER_ACCEPTED


def test_select_error_codes(client, factory):
    owner, intruder = factory.school(), factory.school()
    _, (closed_item,) = factory.bid_request(owner)
    _, (open_item,) = factory.bid_request(owner, deadline=open_deadline())
    supplier_a, supplier_b = factory.supplier(), factory.supplier()
    closed_a = factory.offer(supplier_a, closed_item, '20.00')
    closed_b = factory.offer(supplier_b, closed_item, '21.00')
    open_offer = factory.offer(supplier_a, open_item, '20.00')
    headers = factory.headers(owner)

    assert client.post('/api/supplier-offers/select/99999', headers=headers).status_code == 404
    assert client.post(f'/api/supplier-offers/select/{closed_a}',
                       headers=factory.headers(intruder)).status_code == 403
    assert client.post(f'/api/supplier-offers/select/{open_offer}', headers=headers).status_code == 400
    assert client.post(f'/api/supplier-offers/select/{closed_a}', headers=headers).status_code == 200
    conflict = client.post(f'/api/supplier-offers/select/{closed_b}', headers=headers)
    assert conflict.status_code == 409
    assert conflict.get_json()['code'] == 'CONFLICT'
    assert client.post(f'/api/supplier-offers/select/{closed_a}',
                       headers=factory.headers(supplier_a)).status_code == 403


def test_offers_for_item_in_submission_order(client, factory):
    school = factory.school()
    _, (item_id,) = factory.bid_request(school, deadline=open_deadline())
    start = utcnow() - timedelta(hours=3)
    second = factory.offer(factory.supplier(), item_id, '10.00', created_at=start + timedelta(hours=1))
    first = factory.offer(factory.supplier(), item_id, '12.00', created_at=start)

    response = client.get(f'/api/supplier-offers/{item_id}', headers=factory.headers(school))

    assert response.status_code == 200
    offers = response.get_json()['offers']
    assert [o['id'] for o in offers] == [first, second]
    assert 'supplier' in offers[0]


def test_offers_for_unknown_item_is_not_found(client, factory):
    school = factory.school()

    response = client.get('/api/supplier-offers/4242', headers=factory.headers(school))

    assert response.status_code == 404


def test_supplier_views(client, factory):
    school, supplier = factory.school(), factory.supplier()
    _, (open_item,) = factory.bid_request(school, deadline=open_deadline(), title='Open')
    _, (closed_item,) = factory.bid_request(school, title='Closed')
    mine = factory.offer(supplier, open_item, '10.00')
    won = factory.offer(supplier, closed_item, '11.00', status=OFFER_ACCEPTED, total_price='1100.00')
    headers = factory.headers(supplier)

    available = client.get('/api/supplier-offers/available-bids', headers=headers).get_json()['available_bids']
    my_offers = client.get('/api/supplier-offers/my-offers', headers=headers).get_json()['offers']
    awards = client.get('/api/supplier-offers/my-awards', headers=headers).get_json()['awards']

    assert [br['title'] for br in available] == ['Open']
    assert available[0]['items'][0]['my_offer']['id'] == mine
    assert {o['id'] for o in my_offers} == {mine, won}
    assert [o['id'] for o in awards] == [won]
    assert awards[0]['bid_request']['title'] == 'Closed'


def test_school_views(client, factory):
    school, supplier = factory.school(), factory.supplier()
    bid_request_id, (item_id,) = factory.bid_request(school)
    won = factory.offer(supplier, item_id, '11.00', status=OFFER_ACCEPTED, total_price='1100.00')
    headers = factory.headers(school)

    my_bids = client.get('/api/bid-requests/my-bids', headers=headers).get_json()['bid_requests']
    payments = client.get('/api/supplier-offers/school-payments', headers=headers).get_json()['awarded_offers']
    single = client.get(f'/api/bid-requests/{bid_request_id}', headers=headers).get_json()['bid_request']

    assert my_bids[0]['items'][0]['offers'][0]['id'] == won
    assert [o['id'] for o in payments] == [won]
    assert payments[0]['total_price'] == '1100.00'
    assert single['id'] == bid_request_id
    assert client.get('/api/bid-requests/4242', headers=headers).status_code == 404


def test_purchase_order_pdf(client, factory):
    school, supplier, outsider = factory.school(), factory.supplier(), factory.supplier()
    _, (item_id,) = factory.bid_request(school)
    won = factory.offer(supplier, item_id, '11.00', status=OFFER_ACCEPTED, total_price='1100.00')
    pending = factory.offer(outsider, item_id, '12.00')

    for user in (school, supplier):
        response = client.get(f'/api/supplier-offers/{won}/purchase-order', headers=factory.headers(user))
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    assert client.get(f'/api/supplier-offers/{won}/purchase-order',
                      headers=factory.headers(outsider)).status_code == 403
    assert client.get(f'/api/supplier-offers/{pending}/purchase-order',
                      headers=factory.headers(school)).status_code == 400
    assert client.get('/api/supplier-offers/999/purchase-order',
                      headers=factory.headers(school)).status_code == 404
