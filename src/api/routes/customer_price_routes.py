"""
Customer price routes - special per-customer product prices.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from api.auth.dependencies import get_current_user, get_order_db
from api.auth.models import ErrorResponse
from api.helpers import first_string, parse_body
from order_normalization.normalizer import parse_number

router = APIRouter()


@router.get("", summary="List special prices")
async def list_customer_prices(user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    return db.list_customer_prices()


@router.put(
    "",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Set a special price",
)
async def upsert_customer_price(request: Request, user: dict = Depends(get_current_user),
                                db=Depends(get_order_db)):
    """Create or replace the price of one product for one customer."""
    body = await parse_body(request)
    customer_id = first_string(body, ("customerId", "customer_id"))
    product_id = first_string(body, ("productId", "product_id"))
    price = parse_number(body.get("price"))

    if not customer_id or not product_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cliente e produto são obrigatórios.")
    if price is None or price < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Preço inválido.")

    return db.upsert_customer_price(customer_id, product_id, price)


@router.delete(
    "/{customer_id}/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Remove a special price",
)
async def delete_customer_price(customer_id: str, product_id: str, user: dict = Depends(get_current_user),
                                db=Depends(get_order_db)):
    if not db.delete_customer_price(customer_id, product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preço especial não encontrado.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
