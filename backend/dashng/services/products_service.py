# backend/dashng/services/products_service.py
"""
Products Service

Catalog CRUD. Stock levels are owned by inventory_service: create_product
opens the history with a product_created row and update_product routes any
quantity change through apply_direct_quantity_edit.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError
from .broadcast_service import broadcast_stock_update
from .concurrency import run_with_retry
from .inventory_service import require_product, apply_direct_quantity_edit, record_product_created

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "price_cents",
    "category",
    "tags",
    "images",
    "specifications",
    "low_stock_threshold",
    "featured",
    "discount",
}

SORTABLE_FIELDS = {
    "name": Product.name,
    "price": Product.price_cents,
    "price_cents": Product.price_cents,
    "quantity": Product.quantity,
    "created_at": Product.created_at,
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _sort_clause(sort: str | None):
    if not sort:
        return [Product.created_at.desc(), Product.id.desc()]
    descending = sort.startswith("-")
    key = sort[1:] if descending else sort
    column = SORTABLE_FIELDS.get(key)
    if column is None:
        raise ValidationError(f"sort must be one of: {', '.join(sorted(SORTABLE_FIELDS))}")
    return [column.desc() if descending else column.asc(), Product.id.asc()]


def list_products(
    *,
    category: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    search: str | None = None,
    featured: bool | None = None,
    sort: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered, sorted, paginated listing of active products.

    Prices are in cents. search matches name, description and category
    case-insensitively.
    """
    q = db.session.query(Product).filter(Product.is_active.is_(True))

    if category:
        q = q.filter(Product.category == category)
    if min_price is not None:
        q = q.filter(Product.price_cents >= min_price)
    if max_price is not None:
        q = q.filter(Product.price_cents <= max_price)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(db.or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.category.ilike(pattern),
        ))
    if featured:
        q = q.filter(Product.featured.is_(True))

    q = q.order_by(*_sort_clause(sort))

    per_page = max(1, min(per_page or 20, 100))  # Default 20, max 100
    page = max(page or 1, 1)

    total = q.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = q.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> dict:
    return require_product(product_id).to_dict()


def create_product(*, patch: dict, performed_by_user_id: int) -> dict:
    """
    Create product using a validated patch dict.

    The initial quantity is recorded as a product_created history row.
    """
    p = Product(quantity=patch.get("quantity") or 0)
    apply_product_patch(p, patch)
    if p.tags is None:
        p.tags = []
    if p.images is None:
        p.images = []

    db.session.add(p)
    db.session.flush()  # ensure p.id exists before history append

    record_product_created(p, performed_by_user_id=performed_by_user_id)

    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, performed_by_user_id: int) -> dict:
    """
    Update a product.

    A quantity that differs from the stored one is recorded as
    stock_adjusted and checked against the low-stock threshold stored
    before this patch; a threshold sent in the same patch applies to later
    changes only.

    Raises:
        NotFoundError: Product missing or deleted
    """
    def _op():
        p = require_product(product_id, lock=True)

        # Quantity first so the low-stock check sees the stored threshold
        change = None
        if patch.get("quantity") is not None:
            change = apply_direct_quantity_edit(
                p, patch["quantity"], performed_by_user_id=performed_by_user_id
            )

        apply_product_patch(p, patch)

        db.session.commit()
        return p, change

    p, change = run_with_retry(_op)
    if change is not None:
        broadcast_stock_update(p.id, p.quantity)
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """
    Soft-delete a product.

    Soft-delete only: history rows keep pointing at a real product.
    """
    p = db.session.query(Product).filter(Product.id == product_id).first()
    if not p or not p.is_active:
        raise NotFoundError("Product not found")

    p.is_active = False
    db.session.commit()
