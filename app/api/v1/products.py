from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import get_optional_user, require_admin
from app.core.config import settings
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.product import ProductActiveUpdate, ProductCreate, ProductUpdate
from app.services.product_service import ProductService
from app.utils.object_id import parse_object_id
from app.utils.response import paginated, success

router = APIRouter()


@router.get("/item/{slug}")
@limiter.limit("100/minute")
def get_store_product(request: Request, slug: str, db: Session = Depends(get_db)):
    """Fetch a product for the store by slug"""
    product = ProductService.get_store_product(db, slug)
    return success(data={"product": product})


@router.get("/list/search/{name}")
@limiter.limit("100/minute")
def search_products(request: Request, name: str, db: Session = Depends(get_db)):
    products = ProductService.search_by_name(db, name)
    return success(data={"products": products})


@router.get("/list")
@limiter.limit("100/minute")
def list_store_products(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    min_price: Optional[Decimal] = Query(None, alias="min", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="max", ge=0),
    rating: Optional[float] = Query(None, ge=0, le=5),
    category: Optional[str] = Query(None, max_length=250),
    brand: Optional[str] = Query(None, max_length=250),
    sort_order: Optional[str] = Query(None, max_length=200),
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Store listing with price, rating, category and brand filters.

    ``sort_order`` is a JSON object such as ``{"price": 1}``.
    """
    products, count, current_page = ProductService.list_store_products(
        db,
        current_user,
        page,
        limit,
        min_price=min_price,
        max_price=max_price,
        rating=rating,
        category=category,
        brand=brand,
        sort_order=sort_order,
    )
    return paginated("products", products, count, current_page, limit)


@router.get("/list/select")
@limiter.limit("60/minute")
def list_products_select(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return success(data={"products": ProductService.list_select(db)})


@router.post("/add", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_product(
    request: Request,
    product_data: ProductCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = ProductService.create_product(db, product_data)
    return success(data={"product": product}, message="Product has been added successfully!")


@router.get("")
@limiter.limit("60/minute")
def list_products(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return success(data={"products": ProductService.list_products(db)})


@router.get("/{product_id}")
@limiter.limit("60/minute")
def get_product(
    request: Request,
    product_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product_id = parse_object_id(product_id, "product ID")
    return success(data={"product": ProductService.get_product(db, product_id)})


@router.put("/{product_id}")
@limiter.limit("30/minute")
def update_product(
    request: Request,
    product_id: str,
    product_data: ProductUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product_id = parse_object_id(product_id, "product ID")
    product = ProductService.update_product(db, product_id, product_data)
    return success(data={"product": product}, message="Product has been updated successfully!")


@router.put("/{product_id}/active")
@limiter.limit("30/minute")
def set_product_active(
    request: Request,
    product_id: str,
    data: ProductActiveUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product_id = parse_object_id(product_id, "product ID")
    product = ProductService.set_active(db, product_id, data.is_active)
    return success(data={"product": product}, message="Product has been updated successfully!")


@router.delete("/delete/{product_id}")
@limiter.limit("20/minute")
def delete_product(
    request: Request,
    product_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product_id = parse_object_id(product_id, "product ID")
    ProductService.delete_product(db, product_id)
    return success(message="Product has been deleted successfully!")


@router.post("/{product_id}/image")
@limiter.limit("30/minute")
def upload_product_image(
    request: Request,
    product_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Upload or replace a product's image"""
    product_id = parse_object_id(product_id, "product ID")
    product = ProductService.upload_image(db, product_id, file)
    return success(data={"product": product}, message="Image uploaded successfully")
