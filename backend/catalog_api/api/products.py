"""
CRUD по товарам. Все ручки за проверкой токена (см. main.create_app).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog_api.api.deps import RequestAudit, get_product_repository, request_audit
from catalog_api.core import errors
from catalog_api.core.query import PRODUCT_QUERY
from catalog_api.repositories.products import ProductRepository
from catalog_api.schemas import ProductCreate, ProductUpdate, public_product

router = APIRouter(tags=["Products"])

DUPLICATE_NAME = "Product with this name already exists"


@router.get("")
def list_products(
    filter: Optional[str] = Query(None, description="JSON-фильтр, например {\"category\": \"audio\"}"),
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    """Все товары, новые сверху"""
    try:
        query = PRODUCT_QUERY.build_filter(filter)
    except errors.ValidationError as e:
        raise trail.fail(e)

    try:
        items, _ = products.list(query)
    except PyMongoError as e:
        raise trail.storage_error("Error while fetching products", e)

    trail.info(f"GET /products - Filter: {filter or 'None'}, Products Count: {len(items)}")
    return {"message": "Products fetched!", "products": [public_product(p) for p in items]}


@router.get("/{product_id}")
def get_product(
    product_id: str,
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    try:
        product = products.get(product_id)
    except PyMongoError as e:
        raise trail.storage_error("Error while fetching product", e)

    if product is None:
        raise trail.fail(errors.NotFoundError("Product not found!"))

    trail.info(f"GET /products/{product_id} - Product fetched")
    return {"message": "Product fetched!", "product": public_product(product)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    trail.payload = product_data.model_dump(mode="json")

    try:
        product = products.create(product_data.to_document())
    except DuplicateKeyError:
        raise trail.fail(errors.DuplicateKeyError(DUPLICATE_NAME))
    except PyMongoError as e:
        raise trail.storage_error("Error saving product", e)

    trail.info(f"POST /products - Product created: {product['_id']}", status.HTTP_201_CREATED)
    return {"message": "Product created!", "product": public_product(product)}


@router.patch("/{product_id}")
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    """Частичное обновление. Неизвестные поля молча отбрасываются схемой."""
    trail.payload = product_data.model_dump(mode="json", exclude_unset=True)

    try:
        product = products.update_partial(product_id, product_data.to_document(exclude_unset=True))
    except DuplicateKeyError:
        raise trail.fail(errors.DuplicateKeyError(DUPLICATE_NAME))
    except PyMongoError as e:
        raise trail.storage_error("Error while updating product", e)

    if product is None:
        raise trail.fail(errors.NotFoundError("Product not found"))

    trail.info(f"PATCH /products/{product_id} - Product updated")
    return {"message": "Product updated!", "product": public_product(product)}


@router.put("/{product_id}")
def replace_product(
    product_id: str,
    product_data: ProductCreate,
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    trail.payload = product_data.model_dump(mode="json")

    try:
        product = products.replace(product_id, product_data.to_document())
    except DuplicateKeyError:
        raise trail.fail(errors.DuplicateKeyError(DUPLICATE_NAME))
    except PyMongoError as e:
        raise trail.storage_error("Error while replacing product", e)

    if product is None:
        raise trail.fail(errors.NotFoundError("Product not found"))

    trail.info(f"PUT /products/{product_id} - Product replaced")
    return {"message": "Product replaced!", "product": public_product(product)}


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    products: ProductRepository = Depends(get_product_repository),
    trail: RequestAudit = Depends(request_audit),
):
    try:
        product = products.delete(product_id)
    except PyMongoError as e:
        raise trail.storage_error("Error while deleting product", e)

    if product is None:
        raise trail.fail(errors.NotFoundError("Product not found"))

    trail.info(f"DELETE /products/{product_id} - Product deleted")
    return {"message": "Product deleted!", "product": public_product(product)}
