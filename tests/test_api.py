"""
Tests for the FastAPI layer: cookie auth, page gate, CRUD routes and the
order document endpoints. PDF rendering and mail delivery use fakes
injected through ``app.dependency_overrides``.
All test artifacts use temp directories and are cleaned up after.
"""
import os
import sys
import tempfile
import shutil
import unittest
from pathlib import Path
from unittest.mock import patch

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

from order_normalization.errors import MailTransportError
from order_normalization.mailer import MailTransport
from order_normalization.pdf_generator import PdfRenderer

TEST_ENV = {
    "AUTH_SECRET": "test-secret-for-endpoint-testing",
    "AUTH_EMAIL": "admin@example.com",
    "AUTH_PASSWORD": "SecurePass1",
    "AUTH_NAME": "Admin",
    "COOKIE_SECURE": "false",
}


class FakePdfRenderer(PdfRenderer):
    def __init__(self):
        self.calls = []

    def render(self, html):
        self.calls.append(html)
        return b"%PDF-1.4 fake"


class FakeMailTransport(MailTransport):
    name = "fake"

    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, message):
        self.sent.append(message)
        if self.error:
            raise self.error
        return {"transport": self.name, "message_id": "fake-1"}


class ApiTestCase(unittest.TestCase):
    """Boots the app against a temp database with fake PDF / mail capabilities."""

    login_on_setup = True

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix="order_desk_test_api_")

        # Set config before importing
        os.environ.update(TEST_ENV)
        os.environ["DATABASE_PATH"] = os.path.join(self.temp_dir, "order_desk.db")

        import api.auth.dependencies as deps
        deps._jwt_handler = None
        deps._user_db = None
        deps._order_db = None

        # Reload config so it picks up the new env vars
        import importlib
        import config
        importlib.reload(config)

        from api.main import create_app
        from fastapi.testclient import TestClient

        self.pdf_renderer = FakePdfRenderer()
        self.mail_transport = FakeMailTransport()

        self.app = create_app()
        self.app.dependency_overrides[deps.get_pdf_renderer] = lambda: self.pdf_renderer
        self.app.dependency_overrides[deps.get_mail_transport] = lambda: self.mail_transport

        self.client = TestClient(self.app)
        self.client.__enter__()  # run lifespan (db init, user seeding)

        if self.login_on_setup:
            self.login()

    def tearDown(self):
        self.client.__exit__(None, None, None)

        import api.auth.dependencies as deps
        deps._jwt_handler = None
        deps._user_db = None
        deps._order_db = None

        shutil.rmtree(self.temp_dir, ignore_errors=True)
        for key in list(TEST_ENV) + ["DATABASE_PATH"]:
            os.environ.pop(key, None)

    def login(self):
        res = self.client.post("/api/login", json={
            "email": TEST_ENV["AUTH_EMAIL"], "password": TEST_ENV["AUTH_PASSWORD"],
        })
        self.assertEqual(res.status_code, 200)
        return res

    # ── fixtures ──

    def create_customer(self, **fields):
        payload = {"name": "Padaria Central", "email": "padaria@example.com"}
        payload.update(fields)
        res = self.client.post("/api/customers", json=payload)
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()

    def create_product(self, **fields):
        payload = {"name": "Farinha", "unit": "kg", "price": 5}
        payload.update(fields)
        res = self.client.post("/api/products", json=payload)
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()

    def create_order(self):
        customer = self.create_customer()
        product = self.create_product()
        res = self.client.post("/api/orders", json={
            "customerId": customer["id"],
            "items": [{"productId": product["id"], "quantity": 2}],
            "notes": "Entregar cedo",
        })
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()


class TestAuth(ApiTestCase):

    login_on_setup = False

    def test_login_sets_cookie(self):
        res = self.login()
        self.assertTrue(res.json()["ok"])
        self.assertIn("auth_token", res.cookies)

    def test_login_missing_fields(self):
        res = self.client.post("/api/login", json={"email": "admin@example.com"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"], "Credenciais ausentes")

    def test_login_invalid_json(self):
        res = self.client.post("/api/login", content=b"not json", headers={"Content-Type": "application/json"})
        self.assertEqual(res.status_code, 400)

    def test_login_non_string_credentials(self):
        res = self.client.post("/api/login", json={"email": 123, "password": "x"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"], "Credenciais ausentes")

    def test_login_wrong_password(self):
        res = self.client.post("/api/login", json={"email": "admin@example.com", "password": "nope"})
        self.assertEqual(res.status_code, 401)

    def test_me(self):
        self.assertEqual(self.client.get("/api/me").status_code, 401)
        self.login()
        res = self.client.get("/api/me")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["email"], "admin@example.com")
        self.assertEqual(res.json()["role"], "admin")

    def test_logout_clears_session(self):
        self.login()
        res = self.client.post("/api/logout")
        self.assertEqual(res.json(), {"ok": True})
        self.assertEqual(self.client.get("/api/me").status_code, 401)

    def test_forged_cookie_rejected(self):
        self.client.cookies.set("auth_token", "forged")
        self.assertEqual(self.client.get("/api/orders").status_code, 401)

    def test_api_requires_session(self):
        for path in ("/api/customers", "/api/products", "/api/customer-prices", "/api/orders"):
            self.assertEqual(self.client.get(path).status_code, 401, path)

    def test_health_is_public(self):
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["status"], "healthy")


class TestPageGate(ApiTestCase):

    login_on_setup = False

    def test_anonymous_redirected_to_login(self):
        res = self.client.get("/orders/abc/print?copy=1", follow_redirects=False)
        self.assertEqual(res.status_code, 307)
        self.assertEqual(res.headers["location"], "/login?callbackUrl=%2Forders%2Fabc%2Fprint%3Fcopy%3D1")

    def test_login_page_public(self):
        res = self.client.get("/login")
        self.assertEqual(res.status_code, 200)
        self.assertIn("text/html", res.headers["content-type"])

    def test_signed_in_login_redirects_to_callback(self):
        self.login()
        res = self.client.get("/login?callbackUrl=/orders/abc/preview", follow_redirects=False)
        self.assertEqual(res.status_code, 307)
        self.assertEqual(res.headers["location"], "/orders/abc/preview")

    def test_backslash_callback_ignored(self):
        self.login()
        res = self.client.get("/login?callbackUrl=/%5Cevil.example.com", follow_redirects=False)
        self.assertEqual(res.headers["location"], "/")

    def test_external_callback_ignored(self):
        self.login()
        res = self.client.get("/login?callbackUrl=https://evil.example.com", follow_redirects=False)
        self.assertEqual(res.headers["location"], "/")

    def test_swagger_docs_public(self):
        self.assertEqual(self.client.get("/docs").status_code, 200)


class TestCustomerRoutes(ApiTestCase):

    def test_create_from_urlencoded_aliases(self):
        res = self.client.post("/api/customers", data={
            "nome": "Maria", "telefone": "(11) 99999-0000", "cpf": "123.456.789-00",
        })
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()
        self.assertEqual(data["name"], "Maria")
        self.assertEqual(data["phone"], "11999990000")
        self.assertEqual(data["document"], "12345678900")
        self.assertIsNone(data["email"])

    def test_create_nested(self):
        res = self.client.post("/api/customers", json={"data": {"razaoSocial": "ACME Ltda", "CNPJ": 12345}})
        self.assertEqual(res.status_code, 201, res.text)
        self.assertEqual(res.json()["document"], "12345")

    def test_validation(self):
        res = self.client.post("/api/customers", json={"customer": {"email": "not-an-email"}})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"], "Nome é obrigatório. E-mail inválido.")

    def test_duplicate_document(self):
        self.create_customer(document="111")
        res = self.client.post("/api/customers", json={"name": "Outro", "document": "1-1-1"})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.json()["error"], "Já existe um cliente com esse documento.")

    def test_update_and_delete(self):
        customer = self.create_customer()
        res = self.client.put(f"/api/customers/{customer['id']}", json={"city": "Recife", "zip": 50000, "addressLine1": "Rua A"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["city"], "Recife")
        self.assertEqual(res.json()["address_line1"], "Rua A")
        self.assertIsNone(res.json()["zip"])

        self.assertEqual(self.client.delete(f"/api/customers/{customer['id']}").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/customers/{customer['id']}").status_code, 404)
        self.assertEqual(self.client.put(f"/api/customers/{customer['id']}", json={"city": "x"}).status_code, 404)


class TestProductRoutes(ApiTestCase):

    def test_crud(self):
        product = self.create_product(sku="FAR-1")
        self.assertEqual(product["price"], 5)

        res = self.client.put(f"/api/products/{product['id']}", json={"price": "5.5"})
        self.assertEqual(res.json()["price"], 5.5)

        names = [p["name"] for p in self.client.get("/api/products").json()]
        self.assertEqual(names, ["Farinha"])

        self.assertEqual(self.client.delete(f"/api/products/{product['id']}").json(), {"ok": True})
        self.assertEqual(self.client.get(f"/api/products/{product['id']}").status_code, 404)
        self.assertEqual(self.client.get("/api/products").json(), [])

    def test_invalid_fields(self):
        self.assertEqual(self.client.post("/api/products", json={"name": " ", "price": 1}).status_code, 400)
        self.assertEqual(self.client.post("/api/products", json={"name": "A", "price": "abc"}).status_code, 400)
        self.assertEqual(self.client.post("/api/products", json={"name": "A", "unit": "", "price": 1}).status_code, 400)

    def test_duplicate_sku(self):
        self.create_product(sku="FAR-1")
        res = self.client.post("/api/products", json={"name": "Outra", "price": 1, "sku": "FAR-1"})
        self.assertEqual(res.status_code, 409)


class TestCustomerPriceRoutes(ApiTestCase):

    def test_upsert_list_delete(self):
        customer = self.create_customer()
        product = self.create_product()

        res = self.client.put("/api/customer-prices", json={
            "customerId": customer["id"], "productId": product["id"], "price": 4.5,
        })
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(self.client.get("/api/customer-prices").json(), [
            {"customer_id": customer["id"], "product_id": product["id"], "price": 4.5},
        ])

        res = self.client.delete(f"/api/customer-prices/{customer['id']}/{product['id']}")
        self.assertEqual(res.status_code, 204)
        self.assertEqual(self.client.get("/api/customer-prices").json(), [])

    def test_unknown_customer(self):
        product = self.create_product()
        res = self.client.put("/api/customer-prices", json={"customerId": "nope", "productId": product["id"], "price": 1})
        self.assertEqual(res.status_code, 404)

    def test_invalid_price(self):
        res = self.client.put("/api/customer-prices", json={"customerId": "a", "productId": "b", "price": "x"})
        self.assertEqual(res.status_code, 400)


class TestOrderRoutes(ApiTestCase):

    def test_create_uses_special_price(self):
        customer = self.create_customer()
        product = self.create_product()
        self.client.put("/api/customer-prices", json={
            "customerId": customer["id"], "productId": product["id"], "price": 4,
        })
        res = self.client.post("/api/orders", json={
            "customerId": customer["id"],
            "items": [{"productId": product["id"], "quantity": 3}],
        })
        self.assertEqual(res.status_code, 201)
        order = res.json()
        self.assertEqual(order["number"], 1)
        self.assertEqual(order["items"][0]["unit_price"], 4)
        self.assertEqual(order["total"], 12)

    def test_create_validation(self):
        self.assertEqual(self.client.post("/api/orders", json={"items": []}).status_code, 400)
        res = self.client.post("/api/orders", json={"customerId": "nope", "items": []})
        self.assertEqual(res.status_code, 400)

    def test_list_and_get(self):
        order = self.create_order()
        listed = self.client.get("/api/orders").json()
        self.assertEqual([o["id"] for o in listed], [order["id"]])
        self.assertEqual(self.client.get(f"/api/orders/{order['id']}").json()["number"], 1)
        missing = self.client.get("/api/orders/nope")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"], "Order not found")

    def test_document(self):
        order = self.create_order()
        res = self.client.get(f"/api/orders/{order['id']}/document")
        data = res.json()
        self.assertEqual(data["subject"], "Pedido #1 — Padaria Central")
        self.assertIn("1. Farinha — 2 kg x R$ 5,00 = R$ 10,00", data["text"])
        self.assertEqual(data["order"]["total"], 10)

    def test_preview_draft(self):
        res = self.client.post("/api/orders/preview", json={"order": {
            "items": [{"name": "Café", "quantity": "2", "unitPrice": 10}],
        }})
        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertEqual(data["order"]["total"], 20)
        self.assertEqual(data["subject"], "Pedido #—")
        self.assertIn('<hr class="cut" />', data["html"])

    def test_pdf_download(self):
        order = self.create_order()
        res = self.client.post(f"/api/orders/{order['id']}/pdf")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.headers["content-type"], "application/pdf")
        self.assertEqual(res.headers["content-disposition"], 'attachment; filename="pedido-1.pdf"')
        self.assertEqual(res.headers["cache-control"], "no-store")
        self.assertEqual(res.content, b"%PDF-1.4 fake")
        self.assertIn("Padaria Central", self.pdf_renderer.calls[0])

    def test_pdf_client_order_overrides(self):
        res = self.client.post("/api/orders/draft/pdf", json={"order": {"number": 99, "items": []}})
        self.assertEqual(res.status_code, 200)
        self.assertIn('filename="pedido-99.pdf"', res.headers["content-disposition"])

    def test_pdf_unknown_order(self):
        self.assertEqual(self.client.post("/api/orders/nope/pdf").status_code, 404)
        self.assertEqual(self.pdf_renderer.calls, [])

    def test_email_to_customer_with_pdf(self):
        order = self.create_order()
        res = self.client.post(f"/api/orders/{order['id']}/email", json={"attachPdf": True})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"ok": True})

        message = self.mail_transport.sent[0]
        self.assertEqual(message.recipients, ["padaria@example.com"])
        self.assertEqual(message.subject, "Pedido #1 — Padaria Central")
        self.assertEqual(message.attachments[0].filename, "pedido-1.pdf")

    def test_email_overrides(self):
        order = self.create_order()
        res = self.client.post(f"/api/orders/{order['id']}/email", json={
            "to": "gerente@example.com",
            "subject": "Confirmação",
            "order": {"number": 1, "items": [{"name": "Bolo", "quantity": 1, "unitPrice": 30}]},
        })
        self.assertEqual(res.status_code, 200)
        message = self.mail_transport.sent[0]
        self.assertEqual(message.recipients, ["gerente@example.com"])
        self.assertEqual(message.subject, "Confirmação")
        self.assertIn("Bolo", message.text)
        self.assertEqual(message.attachments, [])

    def test_email_without_body(self):
        order = self.create_order()
        self.assertEqual(self.client.post(f"/api/orders/{order['id']}/email").status_code, 200)

    def test_email_missing_recipient(self):
        import config
        customer = self.client.post("/api/customers", json={"name": "Sem email"}).json()
        order = self.client.post("/api/orders", json={"customerId": customer["id"], "items": []}).json()

        with patch.object(config, "GMAIL_SENDER_EMAIL", None), patch.object(config, "SMTP_FROM", None):
            res = self.client.post(f"/api/orders/{order['id']}/email", json={})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"], "Destinatário ausente (sem e-mail do cliente e sem fallback)")
        self.assertEqual(self.mail_transport.sent, [])

    def test_email_unknown_order(self):
        self.assertEqual(self.client.post("/api/orders/nope/email", json={}).status_code, 404)

    def test_email_transport_failure(self):
        order = self.create_order()
        self.mail_transport.error = MailTransportError("Falha ao enviar e-mail", detail="connection refused")
        res = self.client.post(f"/api/orders/{order['id']}/email", json={})
        self.assertEqual(res.status_code, 502)
        self.assertEqual(res.json()["error"], "Falha ao enviar e-mail")

    def test_preview_and_print_pages(self):
        order = self.create_order()
        preview = self.client.get(f"/orders/{order['id']}/preview")
        self.assertEqual(preview.status_code, 200)
        self.assertIn("Pedido #1", preview.text)

        printed = self.client.get(f"/orders/{order['id']}/print")
        self.assertIn("1ª via — Cliente", printed.text)
        self.assertIn("window.print()", printed.text)

        self.assertEqual(self.client.get("/orders/nope/preview").status_code, 404)

    def test_order_list_page(self):
        self.create_order()
        res = self.client.get("/")
        self.assertEqual(res.status_code, 200)
        self.assertIn("Pedido #1 — Padaria Central", res.text)


if __name__ == "__main__":
    unittest.main()
