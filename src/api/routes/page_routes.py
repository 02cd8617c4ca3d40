"""
HTML page routes - login, order list, order preview and print pages.
Access is enforced by the auth gate middleware, not per route.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

import config
from api.auth.dependencies import get_order_db
from order_normalization.errors import OrderNotFoundError
from order_normalization.formatting import escape_html, format_currency
from order_normalization.renderer import get_renderer
from utils.logger import get_logger

router = APIRouter()
logger = get_logger()

LOGIN_PAGE = """<!doctype html>
<html lang="pt-BR">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>Entrar - {app_name}</title>
<style>
  body {{ font-family: system-ui, sans-serif; background: #f6f7f9; display: grid; place-items: center; min-height: 100vh; margin: 0; }}
  form {{ background: #fff; border: 1px solid #e5e7eb; border-radius: 12px; padding: 24px; width: 320px; display: grid; gap: 12px; }}
  input, button {{ padding: 10px; border-radius: 8px; border: 1px solid #cbd5e1; font: inherit; }}
  button {{ background: #0f172a; color: #fff; cursor: pointer; }}
  .error {{ color: #b91c1c; font-size: 13px; min-height: 1em; }}
</style>
</head>
<body>
<form id="login">
  <strong>{app_name}</strong>
  <input name="email" type="email" placeholder="E-mail" required />
  <input name="password" type="password" placeholder="Senha" required />
  <button type="submit">Entrar</button>
  <div class="error" id="error"></div>
</form>
<script>
document.getElementById("login").addEventListener("submit", async (event) => {{
  event.preventDefault();
  const form = new FormData(event.target);
  const res = await fetch("/api/login", {{
    method: "POST",
    headers: {{ "Content-Type": "application/json" }},
    body: JSON.stringify({{ email: form.get("email"), password: form.get("password") }}),
  }});
  if (res.ok) {{
    const target = new URLSearchParams(location.search).get("callbackUrl") || "/";
    location.href = target.startsWith("/") && !target.startsWith("//") && !target.startsWith("/\\\\") ? target : "/";
  }} else {{
    const data = await res.json().catch(() => ({{}}));
    document.getElementById("error").textContent = data.error || "Falha ao entrar";
  }}
}});
</script>
</body>
</html>"""


@router.get("/login", response_class=HTMLResponse, include_in_schema=False)
async def login_page():
    return LOGIN_PAGE.format(app_name=escape_html(config.APP_NAME))


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def order_list_page(db=Depends(get_order_db)):
    """Recent orders with links to their preview and print pages."""
    renderer = get_renderer()
    rows = []
    for order in db.list_orders():
        rows.append(
            "<tr>"
            f"<td>#{order['number']}</td>"
            f"<td>{escape_html(renderer.render_subject(order))}</td>"
            f"<td style=\"text-align:right\">{format_currency(order['total'])}</td>"
            f"<td><a href=\"/orders/{escape_html(order['id'])}/preview\">Visualizar</a> · "
            f"<a href=\"/orders/{escape_html(order['id'])}/print\">Imprimir</a></td>"
            "</tr>"
        )
    body = "".join(rows) or '<tr><td colspan="4">Nenhum pedido</td></tr>'
    return f"""<!doctype html>
<html lang="pt-BR">
<head><meta charset="utf-8" /><title>Pedidos - {escape_html(config.APP_NAME)}</title></head>
<body style="font-family:system-ui,sans-serif;padding:24px">
  <h1 style="font-size:20px">Pedidos</h1>
  <table cellpadding="6" style="border-collapse:collapse">{body}</table>
  <p><a href="/api/logout">Sair</a></p>
</body>
</html>"""


@router.get("/orders/{order_id}/preview", response_class=HTMLResponse, include_in_schema=False)
async def order_preview_page(order_id: str, db=Depends(get_order_db)):
    order = db.get_order(order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    return get_renderer().render_html_document(order)


@router.get("/orders/{order_id}/print", response_class=HTMLResponse, include_in_schema=False)
async def order_print_page(order_id: str, db=Depends(get_order_db)):
    """Dual-copy print layout; the browser print dialog opens on load."""
    order = db.get_order(order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    html = get_renderer().render_print_document(order)
    return html.replace("</body>", "<script>window.addEventListener('load', () => window.print());</script>\n</body>")
