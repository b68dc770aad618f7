from flask import Blueprint, current_app, request
from http import HTTPStatus
import logging

from marketplace.middleware.auth import token_required
from marketplace.schemas import validate
from marketplace.schemas.product import PaginationQuery, ProductRequest, ProductUpdateRequest
from marketplace.services.registry import get_services
from marketplace.utils.errors import ForbiddenError, NotFoundError, ValidationError, handle_errors
from marketplace.utils.responses import success_response
from marketplace.utils.uploads import discard_image, upload_image

logger = logging.getLogger(__name__)

products_bp = Blueprint('products', __name__)


def _request_data():
    # Listings arrive as multipart when an image is attached
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _owned_product(product_id, current_user):
    product = get_services().products.find_by_id(product_id)
    if not product:
        raise NotFoundError('Product not found')
    if product.user_id != current_user.id:
        raise ForbiddenError('You can only modify your own products')
    return product


def _store_image(current_user):
    image = request.files.get('image')
    if image is None or image.filename == '':
        return None
    return upload_image(
        image,
        get_services().storage,
        current_app.config['UPLOAD_FOLDER'],
        f"products/{current_user.id}",
        current_app.config['ALLOWED_IMAGE_EXTENSIONS']
    )


@products_bp.route('/products', methods=['GET'])
@handle_errors
def list_products():
    """Live listings, newest first, with server-side pagination"""
    query = validate(PaginationQuery, request.args.to_dict())
    products, pagination = get_services().products.list_products(query.page, query.limit, query.category)
    return success_response(HTTPStatus.OK, 'Products retrieved successfully', {
        'products': [p.to_json() for p in products],
        'pagination': pagination
    })


@products_bp.route('/add-product', methods=['POST'])
@token_required
@handle_errors
def add_product(current_user):
    data = validate(ProductRequest, _request_data())
    product_data = data.model_dump()
    product_data['user_id'] = current_user.id
    product_data['image'] = _store_image(current_user) or ""

    product = get_services().products.create(product_data)
    logger.info(f"User {current_user.id} listed product {product.product_id}")
    return success_response(HTTPStatus.CREATED, 'Product added successfully', product.to_json())


@products_bp.route('/my-products', methods=['GET'])
@token_required
@handle_errors
def my_products(current_user):
    products = get_services().products.find_by_owner(current_user.id)
    return success_response(HTTPStatus.OK, 'Products retrieved successfully', [p.to_json() for p in products])


@products_bp.route('/product/<product_id>', methods=['GET'])
@handle_errors
def get_product(product_id):
    product = get_services().products.find_by_id(product_id)
    if not product:
        raise NotFoundError('Product not found')
    return success_response(HTTPStatus.OK, 'Product retrieved successfully', product.to_json())


@products_bp.route('/product/search/<name>', methods=['GET'])
@handle_errors
def search_products(name):
    products = get_services().products.find_by_name(name)
    return success_response(HTTPStatus.OK, 'Products retrieved successfully', [p.to_json() for p in products])


@products_bp.route('/product/<product_id>', methods=['PUT'])
@token_required
@handle_errors
def update_product(current_user, product_id):
    product = _owned_product(product_id, current_user)
    data = validate(ProductUpdateRequest, _request_data())
    changes = data.model_dump(exclude_none=True)

    image_url = _store_image(current_user)
    if image_url:
        changes['image'] = image_url
    if not changes:
        raise ValidationError('No input data provided')

    updated = get_services().products.update(product.product_id, changes)
    if image_url and product.image:
        discard_image(product.image, get_services().storage)
    logger.info(f"Product {product.product_id} updated by {current_user.id}")
    return success_response(HTTPStatus.OK, 'Product updated successfully', updated.to_json())


@products_bp.route('/product/<product_id>', methods=['DELETE'])
@token_required
@handle_errors
def delete_product(current_user, product_id):
    product = _owned_product(product_id, current_user)
    get_services().products.soft_delete(product.product_id)
    return success_response(HTTPStatus.OK, 'Product deleted successfully', {'product_id': product.product_id})
