"""
Product routes - catalog CRUD with soft delete.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.auth.dependencies import get_current_user, get_order_db
from api.auth.models import ErrorResponse
from api.helpers import parse_body
from order_normalization.normalizer import parse_number

router = APIRouter()

PUBLIC_FIELDS = ("id", "name", "sku", "unit", "price", "description")


def _public(product: dict) -> dict:
    return {key: product.get(key) for key in PUBLIC_FIELDS}


def _clean_text(value, error: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    return text


def _clean_price(value) -> float:
    price = parse_number(value)
    if price is None or price < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Preço inválido.")
    return price


@router.get("", summary="List products")
async def list_products(user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    """Active (not deleted) products ordered by name."""
    return [_public(p) for p in db.list_products()]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create a product",
)
async def create_product(request: Request, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    body = await parse_body(request)
    name = _clean_text(body.get("name"), "Nome inválido.")
    unit = _clean_text(body.get("unit", "un"), "Unidade inválida.")
    price = _clean_price(body.get("price"))
    sku = body.get("sku").strip() if isinstance(body.get("sku"), str) and body.get("sku").strip() else None
    description = body.get("description") if isinstance(body.get("description"), str) else None

    return _public(db.create_product(name=name, unit=unit, price=price, sku=sku, description=description))


@router.get(
    "/{product_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get a product",
)
async def get_product(product_id: str, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    product = db.get_product(product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado.")
    return _public(product)


@router.put(
    "/{product_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Update a product",
)
async def update_product(product_id: str, request: Request, user: dict = Depends(get_current_user),
                         db=Depends(get_order_db)):
    """Patch name, unit, price, sku or description; omitted fields stay as they are."""
    body = await parse_body(request)

    if db.get_product(product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado.")

    patch = {}
    if isinstance(body.get("name"), str):
        patch["name"] = _clean_text(body["name"], "Nome inválido.")
    if isinstance(body.get("unit"), str):
        patch["unit"] = _clean_text(body["unit"], "Unidade inválida.")
    if body.get("price") is not None:
        patch["price"] = _clean_price(body["price"])
    if "sku" in body and (body["sku"] is None or isinstance(body["sku"], str)):
        patch["sku"] = (body["sku"] or "").strip() or None
    if isinstance(body.get("description"), str):
        patch["description"] = body["description"]

    return _public(db.update_product(product_id, patch))


@router.delete(
    "/{product_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Soft-delete a product",
)
async def delete_product(product_id: str, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    if not db.soft_delete_product(product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado.")
    return {"ok": True}
