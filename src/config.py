"""
Configuration module for Order Desk
Loads environment variables (and a local .env in development) into
module-level settings used by the API, the document pipeline and the mailer
"""
import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Get project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file (if exists - local dev only)
env_file = PROJECT_ROOT / '.env'
if env_file.exists():
    load_dotenv(env_file)


def pick_env(*keys: str, default: str = None):
    """
    Return the first non-empty environment value among ``keys``.

    Several settings accept legacy aliases (e.g. GMAIL_SENDER for
    GMAIL_SENDER_EMAIL); the first one set wins.
    """
    for key in keys:
        value = os.getenv(key)
        if value and value.strip():
            return value
    return default


def _env_bool(key: str, default: str = 'false') -> bool:
    return os.getenv(key, default).lower() == 'true'


# ═══════════════════════════════════════════════════════════════════
# WRITABLE PATHS - Handle containerized environments
# ═══════════════════════════════════════════════════════════════════

def get_writable_path(folder_name: str) -> str:
    """Get a writable path that works in all environments"""
    env_path = os.getenv(folder_name.upper() + '_FOLDER')
    if env_path:
        if os.path.isabs(env_path):
            path = Path(env_path)
        else:
            path = PROJECT_ROOT / env_path
    else:
        path = PROJECT_ROOT / folder_name

    # In containers, /app might be read-only; use /tmp as fallback
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except (PermissionError, OSError):
            path = Path(tempfile.gettempdir()) / 'order_desk' / folder_name
            path.mkdir(parents=True, exist_ok=True)

    return str(path)


# ═══════════════════════════════════════════════════════════════════
# CONFIGURATION VALUES
# ═══════════════════════════════════════════════════════════════════

# Application
APP_NAME = os.getenv('APP_NAME', 'Order Desk')
APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
DATA_FOLDER = get_writable_path('data')
DATABASE_PATH = os.getenv('DATABASE_PATH', str(Path(DATA_FOLDER) / 'order_desk.db'))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_DIR = os.getenv('LOG_DIR', str(PROJECT_ROOT / 'logs'))
LOG_FILE_MAX_MB = int(os.getenv('LOG_FILE_MAX_MB', '10'))
LOG_FILE_BACKUP_COUNT = int(os.getenv('LOG_FILE_BACKUP_COUNT', '5'))

# ═══════════════════════════════════════════════════════
# AUTH (cookie session)
# ═══════════════════════════════════════════════════════

AUTH_SECRET = os.getenv('AUTH_SECRET', 'dev-secret-change-me')
AUTH_ALGORITHM = os.getenv('AUTH_ALGORITHM', 'HS256')
AUTH_COOKIE_NAME = os.getenv('AUTH_COOKIE_NAME', 'auth_token')
AUTH_COOKIE_MAX_AGE_DAYS = int(os.getenv('AUTH_COOKIE_MAX_AGE_DAYS', '7'))
COOKIE_DOMAIN = os.getenv('COOKIE_DOMAIN') or None
COOKIE_SECURE = _env_bool('COOKIE_SECURE')

# Cookie names cleared on logout (current one plus legacy session names)
AUTH_LEGACY_COOKIES = ['auth', 'token', 'session']

# Initial user, created on startup when both are set
AUTH_EMAIL = os.getenv('AUTH_EMAIL')
AUTH_PASSWORD = os.getenv('AUTH_PASSWORD')
AUTH_NAME = os.getenv('AUTH_NAME', 'Administrador')

# API
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('PORT', os.getenv('API_PORT', '8000')))
API_CORS_ORIGINS = [o.strip() for o in os.getenv('API_CORS_ORIGINS', '*').split(',') if o.strip()]
API_RATE_LIMIT_PER_MINUTE = int(os.getenv('API_RATE_LIMIT_PER_MINUTE', '120'))

# ═══════════════════════════════════════════════════════
# DOCUMENTS (print / PDF)
# ═══════════════════════════════════════════════════════

CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', 'R$')
DISPLAY_TIMEZONE = os.getenv('DISPLAY_TIMEZONE', 'America/Sao_Paulo')

# Item count above which the customer and company copies go on separate sheets
PRINT_DENSITY_THRESHOLD = int(os.getenv('PRINT_DENSITY_THRESHOLD', '30'))
PRINT_DENSITY_NORMAL = int(os.getenv('PRINT_DENSITY_NORMAL', '14'))
PRINT_DENSITY_SMALL = int(os.getenv('PRINT_DENSITY_SMALL', '22'))

PDF_MARGIN = os.getenv('PDF_MARGIN', '8mm')
PDF_BROWSER_ARGS = os.getenv('PDF_BROWSER_ARGS', '--no-sandbox,--disable-setuid-sandbox').split(',')

# ═══════════════════════════════════════════════════════
# MAIL (Gmail API with OAuth2, SMTP fallback)
# ═══════════════════════════════════════════════════════

GMAIL_SENDER_EMAIL = pick_env('GMAIL_SENDER_EMAIL', 'GMAIL_SENDER')
GMAIL_SENDER_NAME = os.getenv('GMAIL_SENDER_NAME', 'Pedidos')
GMAIL_CLIENT_ID = pick_env('GMAIL_CLIENT_ID', 'GOOGLE_CLIENT_ID')
GMAIL_CLIENT_SECRET = pick_env('GMAIL_CLIENT_SECRET', 'GOOGLE_CLIENT_SECRET')
GMAIL_REFRESH_TOKEN = pick_env('GMAIL_REFRESH_TOKEN', 'GOOGLE_REFRESH_TOKEN')
GMAIL_TOKEN_URI = os.getenv('GMAIL_TOKEN_URI', 'https://oauth2.googleapis.com/token')

SMTP_HOST = os.getenv('SMTP_HOST')
SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
SMTP_USER = os.getenv('SMTP_USER')
SMTP_PASS = os.getenv('SMTP_PASS')
SMTP_FROM = os.getenv('SMTP_FROM')
SMTP_TIMEOUT_SECONDS = int(os.getenv('SMTP_TIMEOUT_SECONDS', '30'))

DEFAULT_FROM_ADDRESS = os.getenv('DEFAULT_FROM_ADDRESS', 'no-reply@example.com')


def has_gmail_credentials() -> bool:
    """True when every Gmail OAuth2 setting is present."""
    return all([
        GMAIL_SENDER_EMAIL,
        GMAIL_CLIENT_ID,
        GMAIL_CLIENT_SECRET,
        GMAIL_REFRESH_TOKEN,
    ])


def default_recipient():
    """Last-resort recipient for order emails: the configured sender."""
    return GMAIL_SENDER_EMAIL or SMTP_FROM


def mail_from_address() -> str:
    """From header for outgoing order emails."""
    if SMTP_FROM:
        return SMTP_FROM
    if GMAIL_SENDER_EMAIL:
        return f'"{GMAIL_SENDER_NAME}" <{GMAIL_SENDER_EMAIL}>'
    return DEFAULT_FROM_ADDRESS


def validate_config():
    """
    Validate configuration for a production start

    Raises:
        ValueError: If a required setting is missing or unsafe
    """
    errors = []

    if not AUTH_SECRET:
        errors.append("AUTH_SECRET is not set")
    if not has_gmail_credentials() and not SMTP_HOST:
        errors.append("No mail transport configured (set Gmail OAuth2 settings or SMTP_HOST)")
    if PRINT_DENSITY_THRESHOLD < 1:
        errors.append("PRINT_DENSITY_THRESHOLD must be positive")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

    return True


def print_config_status():
    """Print configuration status (for debugging)"""
    print("=" * 60)
    print(f"{APP_NAME} Configuration Status")
    print("=" * 60)
    print(f"Database:               {DATABASE_PATH}")
    print(f"Log Level:              {LOG_LEVEL}")
    print(f"Auth Cookie:            {AUTH_COOKIE_NAME} ({AUTH_COOKIE_MAX_AGE_DAYS}d)")
    print(f"Initial User:           {'[OK]' if AUTH_EMAIL and AUTH_PASSWORD else '[--]'}")
    print(f"Mail Transport:         {'gmail' if has_gmail_credentials() else 'smtp' if SMTP_HOST else '[MISSING]'}")
    print(f"Print Density Limit:    {PRINT_DENSITY_THRESHOLD} items")
    print("=" * 60)


if __name__ == "__main__":
    print_config_status()
    try:
        validate_config()
        print("\n[OK] Configuration is valid!")
    except ValueError as e:
        print(f"\n[ERROR] {e}")
