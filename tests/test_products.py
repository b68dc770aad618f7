"""
Product listing tests.

Verifies:
- Listings are public, paginated and exclude deleted products
- Only the owner can edit or delete a listing
- Name search is case-insensitive
"""

import io

import pytest


NEW_PRODUCT = {
    'name': 'Road Bike',
    'price': 1500000,
    'description': 'Lightly used',
    'category': 'sports',
    'stock': 1
}


class TestCreateProduct:

    def test_add_product(self, client, seller):
        user, headers = seller
        resp = client.post('/add-product', json=NEW_PRODUCT, headers=headers)
        assert resp.status_code == 201
        data = resp.json['data']
        assert data['product_id']
        assert data['user_id'] == user.id
        assert data['name'] == 'Road Bike'
        assert data['stock'] == 1

    def test_add_product_with_image(self, client, storage, seller):
        _, headers = seller
        form = {key: str(value) for key, value in NEW_PRODUCT.items()}
        form['image'] = (io.BytesIO(b'\xff\xd8 fake jpeg'), 'bike.jpg')
        resp = client.post('/add-product', data=form, headers=headers, content_type='multipart/form-data')
        assert resp.status_code == 201
        assert resp.json['data']['image'] == storage.public_url(storage.uploads[0])
        assert resp.json['data']['price'] == 1500000

    def test_requires_authentication(self, client):
        assert client.post('/add-product', json=NEW_PRODUCT).status_code == 401

    @pytest.mark.parametrize("changes", [
        {'price': -1},
        {'name': '   '},
        {'price': 'free'},
    ])
    def test_rejects_invalid_fields(self, client, seller, changes):
        _, headers = seller
        resp = client.post('/add-product', json={**NEW_PRODUCT, **changes}, headers=headers)
        assert resp.status_code == 400


class TestBrowseProducts:

    def test_listing_excludes_deleted(self, client, services, listed_product, seller):
        user, _ = seller
        other = services.products.create({'name': 'Old Lamp', 'price': 1000, 'user_id': user.id})
        services.products.soft_delete(other.product_id)

        resp = client.get('/products')
        assert resp.status_code == 200
        ids = [p['product_id'] for p in resp.json['data']['products']]
        assert ids == [listed_product.product_id]

    def test_listing_is_paginated(self, client, services, seller):
        user, _ = seller
        for i in range(3):
            services.products.create({'name': f'Item {i}', 'price': 100 + i, 'user_id': user.id})

        resp = client.get('/products?page=2&limit=2')
        data = resp.json['data']
        assert len(data['products']) == 1
        assert data['pagination'] == {
            'page': 2, 'limit': 2, 'total': 3, 'total_pages': 2, 'has_next': False, 'has_prev': True
        }

    def test_filter_by_category(self, client, services, listed_product, seller):
        user, _ = seller
        services.products.create({'name': 'Sofa', 'price': 10, 'category': 'furniture', 'user_id': user.id})
        resp = client.get('/products?category=furniture')
        assert [p['name'] for p in resp.json['data']['products']] == ['Sofa']

    def test_get_product(self, client, listed_product):
        resp = client.get(f'/product/{listed_product.product_id}')
        assert resp.status_code == 200
        assert resp.json['data']['name'] == 'Vintage Camera'

    def test_get_missing_product(self, client):
        assert client.get('/product/does-not-exist').status_code == 404

    def test_search_by_name(self, client, listed_product):
        resp = client.get('/product/search/camera')
        assert [p['product_id'] for p in resp.json['data']] == [listed_product.product_id]
        assert client.get('/product/search/piano').json['data'] == []

    def test_search_excludes_deleted(self, client, services, listed_product):
        services.products.soft_delete(listed_product.product_id)
        assert client.get('/product/search/camera').json['data'] == []

    def test_my_products(self, client, listed_product, seller, buyer):
        _, seller_headers = seller
        _, buyer_headers = buyer
        assert len(client.get('/my-products', headers=seller_headers).json['data']) == 1
        assert client.get('/my-products', headers=buyer_headers).json['data'] == []


class TestOwnership:

    def test_owner_can_update(self, client, listed_product, seller):
        user, headers = seller
        resp = client.put(f'/product/{listed_product.product_id}',
                          json={'price': 45000, 'user_id': 'someone-else'}, headers=headers)
        assert resp.status_code == 200
        assert resp.json['data']['price'] == 45000
        assert resp.json['data']['user_id'] == user.id

    def test_other_user_cannot_update(self, client, listed_product, buyer):
        _, headers = buyer
        resp = client.put(f'/product/{listed_product.product_id}', json={'price': 1}, headers=headers)
        assert resp.status_code == 403

    def test_other_user_cannot_delete(self, client, services, listed_product, buyer):
        _, headers = buyer
        assert client.delete(f'/product/{listed_product.product_id}', headers=headers).status_code == 403
        assert services.products.find_by_id(listed_product.product_id) is not None

    def test_owner_deletes(self, client, services, listed_product, seller):
        _, headers = seller
        assert client.delete(f'/product/{listed_product.product_id}', headers=headers).status_code == 200
        assert services.products.find_by_id(listed_product.product_id) is None
        assert client.get(f'/product/{listed_product.product_id}').status_code == 404
