"""
Customer routes - list, create, update, delete.
Create accepts JSON, multipart or urlencoded bodies with Portuguese and
English field aliases, optionally nested under ``customer`` or ``data``.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from api.auth.dependencies import get_current_user, get_order_db
from api.auth.models import ErrorResponse
from api.helpers import digits_only, first_string, is_valid_email, parse_body, pick_nested
from utils.logger import get_logger

router = APIRouter()
logger = get_logger()

NAME_KEYS = ("name", "nome", "customerName", "razaoSocial", "fantasia")
EMAIL_KEYS = ("email",)
PHONE_KEYS = ("phone", "tel", "telefone", "cell", "celular")
DOCUMENT_KEYS = ("document", "doc", "cpf", "cnpj", "cpfCnpj", "cpf_cnpj")
ADDRESS_KEYS = {
    "address_line1": ("addressLine1", "address_line1", "endereco", "logradouro"),
    "address_line2": ("addressLine2", "address_line2", "complemento"),
    "city": ("city", "cidade"),
    "state": ("state", "estado", "uf"),
    "zip": ("zip", "cep"),
    "notes": ("notes", "observacoes"),
}

# PUT body key -> column
UPDATABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "document": "document",
    "addressLine1": "address_line1",
    "addressLine2": "address_line2",
    "city": "city",
    "state": "state",
    "zip": "zip",
    "notes": "notes",
}

PUBLIC_FIELDS = ("id", "name", "email", "phone", "document")


def _public(customer: dict) -> dict:
    return {key: customer.get(key) for key in PUBLIC_FIELDS}


@router.get("", summary="List customers")
async def list_customers(user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    """All customers ordered by name."""
    return [_public(c) for c in db.list_customers()]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create a customer",
)
async def create_customer(request: Request, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    """
    Create a customer. Only the name is required; the document (CPF/CNPJ)
    is optional and stored as digits.
    """
    raw = await parse_body(request)
    obj = pick_nested(raw, "customer") or pick_nested(raw, "data") or raw

    name = (first_string(obj, NAME_KEYS) or "").strip()
    email = (first_string(obj, EMAIL_KEYS) or "").strip() or None
    phone = digits_only(first_string(obj, PHONE_KEYS))
    document = digits_only(first_string(obj, DOCUMENT_KEYS))

    errors = []
    if not name:
        errors.append("Nome é obrigatório.")
    if email and not is_valid_email(email):
        errors.append("E-mail inválido.")
    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=" ".join(errors))

    data = {"name": name, "email": email, "phone": phone, "document": document}
    for column, keys in ADDRESS_KEYS.items():
        value = first_string(obj, keys)
        data[column] = value.strip() if value and value.strip() else None

    created = db.create_customer(data)
    logger.info(f"Customer created: {created['id']}", "Customers")
    return _public(created)


@router.put(
    "/{customer_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update a customer",
)
async def update_customer(customer_id: str, request: Request, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    """Update any of the allowed fields; values must be strings or null."""
    try:
        data = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Falha ao atualizar cliente.")
    if not isinstance(data, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Falha ao atualizar cliente.")

    fields = {
        UPDATABLE_FIELDS[key]: value
        for key, value in data.items()
        if key in UPDATABLE_FIELDS and (value is None or isinstance(value, str))
    }
    if "name" in fields and not (fields["name"] or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nome é obrigatório.")
    if fields.get("email") and not is_valid_email(fields["email"].strip()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="E-mail inválido.")
    for column in ("phone", "document"):
        if column in fields:
            fields[column] = digits_only(fields[column])

    updated = db.update_customer(customer_id, fields)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cliente não encontrado.")
    return updated


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a customer",
)
async def delete_customer(customer_id: str, user: dict = Depends(get_current_user), db=Depends(get_order_db)):
    if not db.delete_customer(customer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cliente não encontrado.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
