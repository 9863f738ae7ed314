"""
Create a .env file with the platform's configuration keys.
"""

from pathlib import Path


ENV_TEMPLATE = """# Database
DATABASE_PATH=./data/skillras.db

# Static catalog directory (packages.json / courses.json)
# CATALOG_DIR=./data

# Device-local progress store
PROGRESS_STORE_PATH=./data/progress.json

# Certificates (optional)
CERTIFICATE_TEMPLATE_PATH=
CERTIFICATE_FONT_PATH=

# HTTP server
PORT=8080

# Payments
PAYMENT_CURRENCY=INR
# Shared secret for signing payment webhooks (HMAC-SHA256 of the body)
PAYMENT_WEBHOOK_SECRET=

# Auth
SESSION_TTL_HOURS=24

# Logging
LOG_LEVEL=INFO
"""


def create_env_file(path: str = ".env") -> bool:
    """Write the template unless the file already exists. Returns True if written."""
    env_path = Path(path)

    if env_path.exists():
        print(f"{env_path} already exists.")
        return False

    with open(env_path, 'w', encoding='utf-8') as f:
        f.write(ENV_TEMPLATE)

    print(f"[OK] {env_path} created")
    print("\nNext steps:")
    print("1. Point DATABASE_PATH at persistent storage")
    print("2. Set CERTIFICATE_TEMPLATE_PATH to the certificate background image")
    print("3. Start the server: python run_server.py")
    return True


if __name__ == "__main__":
    create_env_file()
