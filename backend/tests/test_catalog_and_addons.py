from sqlmodel import Session

from handrest.database import engine
from handrest.utils.catalog_seed import seed_catalog


def test_seed_is_idempotent():
    with Session(engine) as session:
        again = seed_catalog(session)
    assert again == {'categories': 0, 'packages': 0, 'addons': 0}


def test_categories_and_packages(client):
    cats = client.get('/categories').json()
    assert cats[0]['name'] == 'Home Cleaning'
    pkgs = client.get('/packages', params={'category_id': cats[0]['id']}).json()
    assert [p['name'] for p in pkgs][:3] == ['BASIC PACKAGE', 'STANDARD PACKAGE', 'PREMIUM PACKAGE']
    assert all(p['category_id'] == cats[0]['id'] for p in pkgs)


def test_addons_listed_by_display_order(client):
    addons = client.get('/addons').json()
    orders = [a['display_order'] for a in addons]
    assert orders == sorted(orders)
    assert addons[0]['icon'] == 'sofa'


def test_addon_crud_by_admin(client, admin_headers):
    created = client.post('/addons', json={'name': 'Balcony Wash', 'price': 349, 'display_order': 99}, headers=admin_headers)
    assert created.status_code == 201
    addon = created.json()
    assert addon['icon'] == 'wrench'

    updated = client.patch(f"/addons/{addon['id']}", json={'price': 399, 'is_active': False}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()['price'] == 399
    assert updated.json()['name'] == 'Balcony Wash'
    assert updated.json()['updated_at'] >= addon['updated_at']

    public_ids = {a['id'] for a in client.get('/addons').json()}
    assert addon['id'] not in public_ids
    all_ids = {a['id'] for a in client.get('/addons', params={'include_inactive': True}).json()}
    assert addon['id'] in all_ids

    assert client.delete(f"/addons/{addon['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/addons/{addon['id']}", headers=admin_headers).status_code == 404
    assert client.patch(f"/addons/{addon['id']}", json={'price': 1}, headers=admin_headers).status_code == 404


def test_addon_validation_and_permissions(client, admin_headers, customer_headers):
    assert client.post('/addons', json={'name': 'X', 'price': 10}, headers=customer_headers).status_code == 403
    assert client.post('/addons', json={'name': '   ', 'price': 10}, headers=admin_headers).status_code == 400
    assert client.post('/addons', json={'name': 'Neg', 'price': -1}, headers=admin_headers).status_code == 422
