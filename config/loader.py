import os
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List
from logsync.models.settings_model import Settings
from logsync.models.data_models import SyncTargetsConfig
from logsync.logging import logger

CONFIG_DIR = os.path.dirname(__file__)
SETTINGS_FILE = os.getenv('SETTINGS_FILE', os.path.join(CONFIG_DIR, 'settings.json'))
SYNC_TARGETS_CONFIG_PATH = os.getenv('SYNC_TARGETS_CONFIG_PATH', os.path.join(CONFIG_DIR, 'sync_targets.json'))

_logger = logger.bind(module='ConfigLoader')


def _resolve(path_str: str) -> Path:
    """Absolute paths as-is, relative ones against the config directory."""
    path = Path(path_str)
    if not path.is_absolute():
        path = (Path(CONFIG_DIR) / path).resolve()
    return path


@lru_cache()
def get_core_config() -> Settings:
    """Load settings from the settings.json file."""
    _logger.info(f"📖 Loading settings from: {SETTINGS_FILE}")
    if not os.path.exists(SETTINGS_FILE):
        _logger.error(f"❌ Settings file not found at {SETTINGS_FILE}")
        raise RuntimeError(f"Settings file not found at {SETTINGS_FILE}. Ensure the entrypoint script has run.")
    try:
        with open(SETTINGS_FILE, 'r') as f:
            settings_dict = json.load(f)
        settings = Settings(**settings_dict)
        _logger.success("✅ Successfully loaded settings")
        return settings
    except json.JSONDecodeError as e:
        _logger.error(f"❌ Error decoding settings file: {e}")
        raise RuntimeError(f"Error decoding settings file ({SETTINGS_FILE}): {str(e)}")
    except Exception as e:
        _logger.error(f"❌ Error loading settings: {e}")
        raise RuntimeError(f"Error loading settings from {SETTINGS_FILE}: {str(e)}")


@lru_cache()
def get_sync_targets_config() -> SyncTargetsConfig:
    """Load the contracts/events to keep in sync."""
    full_config_path = _resolve(SYNC_TARGETS_CONFIG_PATH)
    _logger.info(f"📖 Loading sync targets from: {full_config_path}")
    if not full_config_path.exists():
        _logger.error(f"❌ Sync targets file not found at {full_config_path}")
        raise RuntimeError(f"Sync targets file not found at {full_config_path}. Check SYNC_TARGETS_CONFIG_PATH env var.")

    try:
        with open(full_config_path, 'r') as f:
            config_dict = json.load(f)
        config = SyncTargetsConfig(**config_dict)
        _logger.success(f"✅ Successfully loaded {len(config.targets)} sync targets")
        return config
    except json.JSONDecodeError as e:
        _logger.error(f"❌ Error decoding sync targets file '{full_config_path}': {e}")
        raise RuntimeError(f"Error decoding sync targets file '{full_config_path}': {str(e)}")
    except Exception as e:  # Catch Pydantic ValidationError etc.
        _logger.error(f"❌ Error loading/validating sync targets '{full_config_path}': {type(e).__name__} - {e}")
        raise RuntimeError(f"Error loading/validating sync targets from {full_config_path}: {str(e)}")


def load_abi(abi_path: str) -> List[Dict[str, Any]]:
    """Raw ABI list from a JSON file; Hardhat/Foundry artifacts with an ``abi`` field are unwrapped."""
    path = _resolve(abi_path)
    if not path.exists():
        _logger.error(f"❌ ABI file not found: {path}")
        raise RuntimeError(f"ABI file '{path}' not found.")
    try:
        with open(path, 'r') as f:
            abi = json.load(f)
    except json.JSONDecodeError as e:
        _logger.error(f"❌ Error decoding ABI file '{path}': {e}")
        raise RuntimeError(f"Error decoding ABI file '{path}': {e}")
    if isinstance(abi, dict) and isinstance(abi.get('abi'), list):
        abi = abi['abi']
    if not isinstance(abi, list):
        raise RuntimeError(f"ABI file '{path}' does not contain an ABI list.")
    _logger.debug(f"📂 Loaded ABI with {len(abi)} entries from {path}")
    return abi
