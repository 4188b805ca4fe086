"""Tests for environment-driven connection settings."""
import pytest

from hockeyhub_medical import config

KEYS = ('NAME', 'USER', 'HOST', 'PASSWORD', 'PORT')


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in KEYS:
        monkeypatch.delenv(f'DB_{key}', raising=False)
        monkeypatch.delenv(f'MEDICAL_DB_{key}', raising=False)
        monkeypatch.delenv(f'TRAINING_DB_{key}', raising=False)


def test_defaults_without_environment():
    assert config.database_params('MEDICAL') == {
        'database': 'hockeyhub_medical',
        'user': 'postgres',
        'host': 'localhost',
        'password': 'postgres',
        'port': 5432,
    }


def test_generic_variables_apply_to_every_service(monkeypatch):
    monkeypatch.setenv('DB_HOST', 'db.internal')

    assert config.database_params('MEDICAL')['host'] == 'db.internal'
    assert config.database_params('TRAINING')['host'] == 'db.internal'


def test_service_variables_win_over_generic(monkeypatch):
    monkeypatch.setenv('DB_HOST', 'db.internal')
    monkeypatch.setenv('MEDICAL_DB_HOST', 'medical-db.internal')
    monkeypatch.setenv('MEDICAL_DB_PORT', '6432')

    params = config.database_params('medical')

    assert params['host'] == 'medical-db.internal'
    assert params['port'] == 6432


def test_empty_variable_falls_through(monkeypatch):
    monkeypatch.setenv('MEDICAL_DB_USER', '')
    monkeypatch.setenv('DB_USER', 'hub')

    assert config.get_setting('MEDICAL', 'USER', 'postgres') == 'hub'


def test_pool_settings_are_fixed():
    assert config.pool_params() == {
        'min_size': 1,
        'max_size': 20,
        'max_inactive_connection_lifetime': 30.0,
        'timeout': 2.0,
        'command_timeout': 30.0,
    }
