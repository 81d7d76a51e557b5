# backoffice/routers/products.py

import logging
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.availability import today_utc
from backoffice.core.csv_import import (
    CSV_FORMAT,
    DATABASE_ERROR,
    DUPLICATE,
    REQUIRED_HEADERS,
    RowError,
    parse_product_row,
    read_import_rows,
    read_validation_rows,
    summarize_failures,
)
from backoffice.core.identifiers import generate_product_id, unique_identifier
from backoffice.core.ledger import record_purchase
from backoffice.core.rate_limiter import limiter
from backoffice.core.validation import check_product_rules
from backoffice.database import get_db
from backoffice.models.products import Product
from backoffice.models.transactions import SOURCE_BULK_UPLOAD
from backoffice.schemas.product import ProductCreate, ProductResponse, ProductUpdate

router = APIRouter(
    prefix="/api/products",
    tags=["Products"],
)

logger = logging.getLogger("backoffice")


def _get_product_or_404(db: Session, product_id: str) -> Product:
    product = db.query(Product).filter(Product.product_id == product_id).first()

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    return product


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    query = db.query(Product.id).filter(func.lower(Product.name) == name.strip().lower())

    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)

    return query.first() is not None


async def _read_csv_body(request: Request) -> str:
    body = await request.body()

    try:
        return body.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")


# =========================================================
# ID PREVIEW & CSV FORMAT
# =========================================================
@router.get("/generate-id")
def generate_id():
    return {"product_id": generate_product_id()}


@router.get("/csv-format")
def csv_format():
    return {
        "message": "CSV format requirements (matching frontend form order)",
        "format": CSV_FORMAT,
    }


# =========================================================
# CREATE SINGLE PRODUCT
# =========================================================
@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def create_product(
    request: Request,
    product_data: ProductCreate,
    db: Session = Depends(get_db),
):
    violation = check_product_rules(
        product_data.cost_price,
        product_data.selling_price,
        product_data.quantity,
        product_data.threshold_value,
        product_data.expiry_date,
        today_utc(),
    )
    if violation:
        raise HTTPException(status_code=400, detail=violation)

    if _name_taken(db, product_data.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A product with this name already exists",
        )

    if product_data.product_id:
        if db.query(Product.id).filter(Product.product_id == product_data.product_id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A product with this ID already exists",
            )
        product_id = product_data.product_id
    else:
        product_id = unique_identifier(db, Product.product_id, generate_product_id)

    product = Product(
        product_id=product_id,
        name=product_data.name.strip(),
        category=product_data.category.strip(),
        description=product_data.description,
        cost_price=product_data.cost_price,
        selling_price=product_data.selling_price,
        quantity=product_data.quantity,
        unit=product_data.unit.strip(),
        expiry_date=product_data.expiry_date,
        threshold_value=product_data.threshold_value,
        image_url=product_data.image_url,
    )

    try:
        db.add(product)
        db.flush()
        record_purchase(db, product)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Unable to create product {product_data.name}")
        raise HTTPException(status_code=500, detail="Unable to create product")

    db.refresh(product)

    return product


# =========================================================
# CSV VALIDATION (NO WRITES)
# =========================================================
@router.post("/validate-csv")
async def validate_csv(
    request: Request,
    db: Session = Depends(get_db),
):
    text = await _read_csv_body(request)

    try:
        _, rows = read_validation_rows(text)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    today = today_utc()
    errors = []
    valid_products = 0

    for row in rows:
        try:
            values = parse_product_row(row, today, required_fields=REQUIRED_HEADERS)
        except RowError as exc:
            errors.append({"row": row["row_number"], "message": exc.message})
            continue

        if _name_taken(db, values["name"]):
            errors.append({
                "row": row["row_number"],
                "message": f'Product "{values["name"]}" already exists in database',
            })
            continue

        valid_products += 1

    return {
        "message": "CSV validation completed",
        "valid_products": valid_products,
        "total_rows": len(rows),
        "errors": errors,
    }


# =========================================================
# CSV BULK IMPORT
# =========================================================
@router.post("/import-csv")
@limiter.limit("5/minute")
async def import_csv(
    request: Request,
    db: Session = Depends(get_db),
):
    text = await _read_csv_body(request)
    rows = read_import_rows(text)

    if not rows:
        raise HTTPException(status_code=400, detail="CSV file is empty")

    today = today_utc()
    successful = []
    failed = []

    for row in rows:
        row_number = row["row_number"]

        try:
            values = parse_product_row(row, today)

            if _name_taken(db, values["name"]):
                raise RowError(DUPLICATE, f"Row {row_number}: Product '{values['name']}' already exists")

            product_id = values.pop("product_id")
            if product_id:
                if db.query(Product.id).filter(Product.product_id == product_id).first():
                    raise RowError(DUPLICATE, f"Row {row_number}: Product ID {product_id} already exists")
            else:
                product_id = unique_identifier(db, Product.product_id, generate_product_id)

            product = Product(product_id=product_id, **values)
            db.add(product)
            db.flush()
            record_purchase(db, product, source=SOURCE_BULK_UPLOAD)
            db.commit()

        except RowError as exc:
            failed.append({
                "row_number": row_number,
                "product_name": row.get("productName") or "Unknown",
                "error": exc.message,
                "error_type": exc.error_type,
                "details": exc.details,
            })
            continue

        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(f"Error importing CSV row {row_number}")
            failed.append({
                "row_number": row_number,
                "product_name": row.get("productName") or "Unknown",
                "error": f"Row {row_number}: Database error - {exc}",
                "error_type": DATABASE_ERROR,
                "details": {},
            })
            continue

        successful.append({
            "row_number": row_number,
            "product_id": product.product_id,
            "product_name": product.name,
            "category": product.category,
            "selling_price": float(product.selling_price),
            "message": f"Row {row_number}: Successfully added '{product.name}' with ID {product.product_id}",
        })

    summary = []
    if successful:
        summary.append(f"{len(successful)} products added successfully")
    summary.extend(summarize_failures(failed))

    overall_success = not failed
    if overall_success:
        message = f"All {len(successful)} products uploaded successfully!"
    else:
        message = f"{len(successful)}/{len(rows)} products uploaded successfully"

    logger.info(f"CSV import: {len(successful)} added, {len(failed)} failed")

    return {
        "success": overall_success,
        "message": message,
        "summary": summary,
        "results": {
            "total": len(rows),
            "successful": len(successful),
            "failed": len(failed),
        },
        "details": {
            "successful": successful,
            "failed": failed,
        },
    }


# =========================================================
# SEARCH
# =========================================================
@router.get("/search")
def search_products(
    query: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    term = query.strip()
    if not term:
        raise HTTPException(status_code=400, detail="Search query is required")

    pattern = f"%{term}%"

    search_filter = or_(
        Product.product_id.ilike(pattern),
        Product.name.ilike(pattern),
        Product.category.ilike(pattern),
        Product.description.ilike(pattern),
        Product.unit.ilike(pattern),
        Product.status.ilike(pattern),
        Product.availability.ilike(pattern),
        cast(Product.selling_price, String).ilike(pattern),
        cast(Product.quantity, String).ilike(pattern),
        cast(Product.threshold_value, String).ilike(pattern),
        cast(Product.expiry_date, String).ilike(pattern),
    )

    base_query = db.query(Product).filter(search_filter)

    total_products = base_query.count()

    products = (
        base_query
        .order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    total_pages = ceil(total_products / limit)

    return {
        "query": term,
        "products": [ProductResponse.model_validate(p) for p in products],
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_products": total_products,
            "products_per_page": limit,
            "has_next": page < total_pages,
            "has_previous": page > 1,
        },
    }


# =========================================================
# READ / UPDATE / DELETE
# =========================================================
@router.get("", response_model=list[ProductResponse])
def list_products(db: Session = Depends(get_db)):
    return db.query(Product).order_by(Product.id.desc()).all()


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return _get_product_or_404(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
):
    product = _get_product_or_404(db, product_id)

    changes = product_data.model_dump(exclude_unset=True, exclude_none=True)

    for field in ("name", "category", "unit"):
        if field in changes:
            changes[field] = changes[field].strip()

    new_expiry_date = changes.get("expiry_date")
    if new_expiry_date == product.expiry_date:
        new_expiry_date = None

    new_cost_price = changes.get("cost_price", product.cost_price)
    new_selling_price = changes.get("selling_price", product.selling_price)
    new_quantity = changes.get("quantity", product.quantity)
    new_threshold = changes.get("threshold_value", product.threshold_value)

    # Only a changed expiry date has to lie in the future
    violation = check_product_rules(
        new_cost_price,
        new_selling_price,
        new_quantity,
        new_threshold,
        new_expiry_date,
        today_utc(),
        check_threshold=False,
    )
    if violation:
        raise HTTPException(status_code=400, detail=violation)

    if "name" in changes and _name_taken(db, changes["name"], exclude_id=product.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A product with this name already exists",
        )

    for field, value in changes.items():
        setattr(product, field, value)

    # derived state is refreshed by the before_update hook
    db.commit()
    db.refresh(product)

    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)

    db.delete(product)
    db.commit()

    return None
