"""
Environment configuration for the HockeyHub medical service.

Connection settings are looked up per service first (``MEDICAL_DB_HOST``),
then from the generic ``DB_*`` variables, then from local defaults.
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SERVICE = 'MEDICAL'

DEFAULTS = {
    'NAME': 'hockeyhub_medical',
    'USER': 'postgres',
    'HOST': 'localhost',
    'PASSWORD': 'postgres',
    'PORT': '5432',
}

# Pool settings are fixed, not read from the environment
POOL_MAX_SIZE = 20
POOL_MIN_SIZE = 1
POOL_IDLE_TIMEOUT = 30.0  # seconds before an idle connection is closed
POOL_CONNECTION_TIMEOUT = 2.0  # seconds to establish or acquire a connection
POOL_COMMAND_TIMEOUT = 30.0


def get_setting(service: str, key: str, default: Optional[str] = None) -> Optional[str]:
    """Resolve ``<SERVICE>_DB_<KEY>``, falling back to ``DB_<KEY>`` and then ``default``."""
    value = os.getenv(f'{service.upper()}_DB_{key}')
    if value:
        return value
    value = os.getenv(f'DB_{key}')
    if value:
        return value
    return default


def database_params(service: str = DEFAULT_SERVICE) -> Dict[str, Any]:
    """
    Build the connection parameters for a service's database.

    Args:
        service: Environment prefix of the owning service, e.g. ``MEDICAL`` or ``TRAINING``

    Returns:
        Dict suitable for :class:`~hockeyhub_medical.database.DatabaseConnection`
    """
    return {
        'database': get_setting(service, 'NAME', DEFAULTS['NAME']),
        'user': get_setting(service, 'USER', DEFAULTS['USER']),
        'host': get_setting(service, 'HOST', DEFAULTS['HOST']),
        'password': get_setting(service, 'PASSWORD', DEFAULTS['PASSWORD']),
        'port': int(get_setting(service, 'PORT', DEFAULTS['PORT'])),
    }


def pool_params() -> Dict[str, Any]:
    """Fixed asyncpg pool sizing and timeout settings."""
    return {
        'min_size': POOL_MIN_SIZE,
        'max_size': POOL_MAX_SIZE,
        'max_inactive_connection_lifetime': POOL_IDLE_TIMEOUT,
        'timeout': POOL_CONNECTION_TIMEOUT,
        'command_timeout': POOL_COMMAND_TIMEOUT,
    }
