# Overview: Flask API routes for products and inventory; parses input and returns JSON responses.

# backend/dashng/routes/products.py
"""
Product and inventory routes.

- Listing and detail are public
- Catalog writes require owner or super_admin
- Inventory adjustments and history require owner, super_admin or storekeeper
"""
from flask import Blueprint, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..models.auth import ROLE_OWNER, ROLE_STOREKEEPER, ROLE_SUPER_ADMIN
from ..services import inventory_service, products_service
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_inventory_update,
    validate_payload,
)
from ..decorators import require_auth, require_roles

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "price_cents",
        "category",
        "tags",
        "images",
        "specifications",
        "quantity",
        "low_stock_threshold",
        "featured",
        "discount",
    },
    required_on_create={"name", "description", "price_cents", "category"},
)

CATALOG_ROLES = (ROLE_OWNER, ROLE_SUPER_ADMIN)
INVENTORY_ROLES = (ROLE_OWNER, ROLE_SUPER_ADMIN, ROLE_STOREKEEPER)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _persistence_failure(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return {"error": "Internal server error"}, 500


@products_bp.get("")
def list_products():
    """
    List active products.

    Query params:
    - category, search: str
    - min_price, max_price: int cents
    - featured: "true" to restrict to featured products
    - sort: name | price | quantity | created_at, prefix "-" for descending
    - page: int (default 1), limit: int (default 20, max 100)
    """
    try:
        return products_service.list_products(
            category=request.args.get("category"),
            min_price=request.args.get("min_price", type=int),
            max_price=request.args.get("max_price", type=int),
            search=request.args.get("search"),
            featured=request.args.get("featured") == "true",
            sort=request.args.get("sort"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("limit", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_roles(*CATALOG_ROLES)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch, performed_by_user_id=g.current_user.id)
    except SQLAlchemyError:
        return _persistence_failure("Failed to create product")

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(*CATALOG_ROLES)
def update_product_route(product_id: int):
    """
    Update product fields.

    A changed quantity is recorded as stock_adjusted and checked against
    the low-stock threshold.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(
            product_id=product_id,
            patch=patch,
            performed_by_user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except SQLAlchemyError:
        return _persistence_failure("Failed to update product")

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles(*CATALOG_ROLES)
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except SQLAlchemyError:
        return _persistence_failure("Failed to delete product")

    return {"message": "Product deleted successfully"}, 200


@products_bp.put("/<int:product_id>/inventory")
@require_auth
@require_roles(*INVENTORY_ROLES)
def update_inventory_route(product_id: int):
    """
    Set the stock level of a product.

    Body: {"quantity": int >= 0, "notes": optional str}
    """
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_inventory_update(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        change = inventory_service.adjust_inventory(
            product_id=product_id,
            quantity=data["quantity"],
            performed_by_user_id=g.current_user.id,
            notes=data["notes"],
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except SQLAlchemyError:
        return _persistence_failure("Failed to update inventory")

    return change.product.to_dict(), 200


@products_bp.get("/<int:product_id>/inventory-history")
@require_auth
@require_roles(*INVENTORY_ROLES)
def inventory_history_route(product_id: int):
    """History rows for a product, newest first, with the acting user."""
    limit = request.args.get("limit", type=int)

    try:
        rows = inventory_service.list_inventory_history(product_id=product_id, limit=limit)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200
