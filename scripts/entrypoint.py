#!/usr/bin/env python3
import os
import sys
import json
from string import Template
from dotenv import load_dotenv

CONFIG_DIR = 'config' # Relative to WORKDIR (/app)
TEMPLATE_FILE = os.path.join(CONFIG_DIR, 'settings.template.json')
SETTINGS_FILE = os.path.join(CONFIG_DIR, 'settings.json')

# Only backend-specific or tuning values may be left unset
OPTIONAL_DEFAULTS = {
    "RPC_RETRY": "3",
    "RPC_TIMEOUT": "15",
    "STORAGE_BACKEND": "sqlite",
    "SQLITE_PATH": "./db/logs",
    "POSTGRES_DSN": "",
    "REDIS_HOST": "localhost",
    "REDIS_PORT": "6379",
    "REDIS_DB": "0",
    "REDIS_PASSWORD": "",
    "REDIS_SSL": "false",
    "LOG_DEBUG": "false",
    "LOG_TO_FILES": "true",
    "LOG_LEVEL": "INFO",
    "SYNC_INITIAL_BATCH_SIZE": "50000",
    "SYNC_MIN_BATCH_SIZE": "100",
    "SYNC_MAX_BLOCK_SPAN": "100000",
    "SYNC_POLL_INTERVAL": "15",
}


def _drop_empty(node):
    """Empty strings mean "unset" so pydantic defaults apply."""
    if isinstance(node, dict):
        return {key: _drop_empty(value) for key, value in node.items() if value != ""}
    return node


def fill_template():
    """Fill settings template with environment variables"""
    load_dotenv() # Load .env file if present

    if not os.path.exists(TEMPLATE_FILE):
        print(f"ERROR: Template file not found at {TEMPLATE_FILE}")
        sys.exit(1)

    with open(TEMPLATE_FILE, 'r') as f:
        template = Template(f.read())

    print("--- Substituting settings template ---")
    try:
        filled_str = template.substitute({**OPTIONAL_DEFAULTS, **os.environ})
        # Validate if it's valid JSON before writing
        settings = _drop_empty(json.loads(filled_str))
    except KeyError as e:
        print(f"ERROR: Missing environment variable for substitution: {e}. Check template and env vars.")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"ERROR: Substituted template resulted in invalid JSON: {e}")
        print("--- Substituted Content ---")
        print(filled_str)
        print("--------------------------")
        sys.exit(1)

    print(f"Writing final settings to {SETTINGS_FILE}")
    with open(SETTINGS_FILE, 'w') as f:
        json.dump(settings, f, indent=2)
    print("--- Settings substitution complete ---")


if __name__ == "__main__":
    fill_template()
    print("Executing main application: python main.py")
    os.execvp(sys.executable, [sys.executable, "main.py"])
