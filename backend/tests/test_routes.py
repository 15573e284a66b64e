"""
HTTP surface: status codes and error bodies.
"""


def _purchase_body(supplier, warehouse, item, quantity="100", **extra):
    body = {
        "supplier_id": supplier.id,
        "warehouse_id": warehouse.id,
        "purchase_date": "2024-01-01",
        "lines": [{"item_id": item.id, "quantity": quantity, "rate": 10}],
    }
    body.update(extra)
    return body


def _sale_body(customer, warehouse, item, quantity="30", **extra):
    body = {
        "customer_id": customer.id,
        "warehouse_id": warehouse.id,
        "sale_date": "2024-01-05",
        "lines": [{"item_id": item.id, "quantity": quantity, "rate": 15}],
    }
    body.update(extra)
    return body


def test_health(client, db_session):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json['status'] == 'healthy'
    assert response.json['checks']['database']['status'] == 'healthy'


def test_purchase_and_sale_flow(client, db_session, supplier, customer, warehouse, item):
    response = client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item, paying_amount=250))
    assert response.status_code == 201
    purchase = response.json
    assert purchase['total_amount'] == '1000'
    assert purchase['paying_amount'] == '250'
    assert purchase['lines'][0]['quantity'] == '100'

    response = client.post('/api/sales', json=_sale_body(customer, warehouse, item))
    assert response.status_code == 201
    sale_id = response.json['id']

    response = client.put(f'/api/sales/{sale_id}', json=_sale_body(customer, warehouse, item, quantity="50"))
    assert response.status_code == 200
    assert response.json['lines'][0]['quantity'] == '50'

    response = client.get('/api/reports/balances')
    assert response.status_code == 200
    assert response.json == [{'item_id': item.id, 'warehouse_id': warehouse.id, 'quantity': '50'}]

    response = client.get('/api/sales')
    assert response.status_code == 200
    assert [s['id'] for s in response.json] == [sale_id]
    assert 'lines' not in response.json[0]


def test_insufficient_stock_is_400_with_shortfalls(client, db_session, supplier, customer, warehouse, item):
    client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item, quantity="100"))

    response = client.post('/api/sales', json=_sale_body(customer, warehouse, item, quantity="150"))

    assert response.status_code == 400
    assert response.json['shortfalls'] == [{
        'item_id': item.id,
        'warehouse_id': warehouse.id,
        'available': '100',
        'requested': '150',
        'shortfall': '50',
    }]


def test_validation_errors_are_400(client, db_session, supplier, warehouse, item):
    response = client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item, lines=[]))
    assert response.status_code == 400
    assert response.json['error'] == 'No line items provided'

    response = client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item, purchase_date="soon"))
    assert response.status_code == 400

    response = client.post('/api/purchases', data='not json', content_type='text/plain')
    assert response.status_code == 400


def test_not_found_is_404(client, db_session):
    assert client.get('/api/purchases/4242').status_code == 404
    assert client.delete('/api/sales/4242').status_code == 404
    assert client.get('/api/supplier-payments/4242').status_code == 404


def test_blocked_delete_is_409_with_blocking_document(client, db_session, supplier, customer, warehouse, item):
    purchase_id = client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item)).json['id']
    sale_id = client.post('/api/sales', json=_sale_body(customer, warehouse, item)).json['id']

    response = client.delete(f'/api/purchases/{purchase_id}')

    assert response.status_code == 409
    assert response.json['blocking_document'] == {'type': 'SALE', 'id': sale_id, 'date': '2024-01-05'}


def test_trash_restore_and_purge(client, db_session, customer, supplier, warehouse, item):
    client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item))
    sale_id = client.post('/api/sales', json=_sale_body(customer, warehouse, item)).json['id']

    assert client.delete(f'/api/sales/{sale_id}').status_code == 200
    trash = client.get('/api/trash').json
    assert [row['id'] for row in trash['sales']] == [sale_id]

    response = client.post(f'/api/trash/restore/sale/{sale_id}')
    assert response.status_code == 200
    assert response.json['message'] == 'Successfully restored from trash'

    # active documents cannot be purged
    assert client.delete(f'/api/trash/permanent/SALE/{sale_id}').status_code == 409

    client.delete(f'/api/sales/{sale_id}')
    response = client.delete(f'/api/trash/permanent/SALE/{sale_id}')
    assert response.status_code == 200
    assert response.json['ledger_entries'] == 4
    assert client.get(f'/api/sales/{sale_id}').status_code == 404

    assert client.post(f'/api/trash/restore/invoice/{sale_id}').status_code == 400


def test_payment_endpoints(client, db_session, supplier, warehouse, item):
    purchase_id = client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item)).json['id']

    response = client.post('/api/supplier-payments', json={
        'supplier_id': supplier.id,
        'amount': 120,
        'payment_date': '2024-02-01',
    })
    assert response.status_code == 201
    payment = response.json
    assert payment['purchase_id'] == purchase_id
    assert payment['origin'] == 'USER_ENTERED'

    listed = client.get(f'/api/supplier-payments?purchase_id={purchase_id}').json
    assert [p['id'] for p in listed] == [payment['id']]

    response = client.put(f"/api/supplier-payments/{payment['id']}", json={
        'supplier_id': supplier.id,
        'purchase_id': purchase_id,
        'amount': 80,
        'payment_date': '2024-02-01',
    })
    assert response.status_code == 200
    assert client.get(f'/api/purchases/{purchase_id}').json['paying_amount'] == '80'

    assert client.delete(f"/api/supplier-payments/{payment['id']}").status_code == 200
    assert client.get(f'/api/purchases/{purchase_id}').json['paying_amount'] == '0'

    response = client.post('/api/customer-payments', json={'customer_id': 999, 'amount': 5, 'payment_date': '2024-02-01'})
    assert response.status_code == 404


def test_maintenance_endpoints(client, db_session, supplier, warehouse, item):
    client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item, paying_amount=100))

    response = client.post('/api/maintenance/sync-balances')
    assert response.status_code == 200
    assert response.json['summary']['supplier']['documents'] == 1

    response = client.post('/api/maintenance/sync-stock')
    assert response.status_code == 200
    assert response.json['removed'] == {'PURCHASE': 0, 'SALE': 0, 'PRODUCTION': 0, 'TRANSFER': 0}

    response = client.post('/api/maintenance/rebuild-inventory')
    assert response.status_code == 200
    assert response.json['summary']['PURCHASE'] == {'documents': 1, 'entries': 1}

    response = client.get(f'/api/reports/stock?warehouse_id={warehouse.id}&as_of=2024-01-01')
    assert response.status_code == 200
    assert response.json[0]['quantity'] == '100'

    assert client.get('/api/reports/balances?group_by=nope').status_code == 400
    assert client.get('/api/reports/stock?as_of=yesterday').status_code == 400


def test_production_and_transfer_endpoints(
    client, db_session, supplier, warehouse, warehouse_b, item, finished_item
):
    client.post('/api/purchases', json=_purchase_body(supplier, warehouse, item))

    response = client.post('/api/production', json={
        'production_date': '2024-01-03',
        'output_item_id': finished_item.id,
        'output_quantity': 40,
        'warehouse_id': warehouse.id,
        'consumptions': [{'item_id': item.id, 'actual_qty': 50, 'standard_qty': 48, 'variance': 2}],
    })
    assert response.status_code == 201
    run = response.json
    assert run['consumptions'][0]['standard_qty'] == '48'
    assert client.get('/api/production').json[0]['id'] == run['id']

    response = client.post('/api/stock-transfers', json={
        'transfer_date': '2024-01-04',
        'from_warehouse_id': warehouse.id,
        'to_warehouse_id': warehouse_b.id,
        'lines': [{'item_id': item.id, 'quantity': 60}],
    })
    assert response.status_code == 400
    assert response.json['shortfalls'][0]['available'] == '48'

    response = client.post('/api/stock-transfers', json={
        'transfer_date': '2024-01-04',
        'from_warehouse_id': warehouse.id,
        'to_warehouse_id': warehouse_b.id,
        'lines': [{'item_id': item.id, 'quantity': 40}],
    })
    assert response.status_code == 201
    transfer_id = response.json['id']

    assert client.delete(f"/api/production/{run['id']}").status_code == 200
    assert client.delete(f'/api/stock-transfers/{transfer_id}').status_code == 200
    trash = client.get('/api/trash').json
    assert [r['id'] for r in trash['production']] == [run['id']]
    assert [r['id'] for r in trash['transfers']] == [transfer_id]
