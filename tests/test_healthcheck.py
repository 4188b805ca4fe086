"""Tests for the container health check entry point."""
import pytest

from hockeyhub_medical import healthcheck
from hockeyhub_medical.database import UnavailableDatabase

from conftest import RecordingGateway


class ClosingGateway(RecordingGateway):

    def __init__(self):
        super().__init__()
        self.closed = False

    async def close(self):
        self.closed = True


def test_healthy_database_exits_zero(monkeypatch, capsys):
    gateway = ClosingGateway()
    seen = {}

    async def fake_connect(conn_params, service):
        seen['service'] = service
        return gateway

    monkeypatch.setattr(healthcheck, 'connect', fake_connect)

    with pytest.raises(SystemExit) as excinfo:
        healthcheck.main(['--service', 'TRAINING'])

    assert excinfo.value.code == 0
    assert seen['service'] == 'TRAINING'
    assert gateway.closed is True
    assert 'Health check passed: TRAINING database is healthy' in capsys.readouterr().out


def test_unavailable_database_exits_one(monkeypatch, capsys):
    async def fake_connect(conn_params, service):
        return UnavailableDatabase(service)

    monkeypatch.setattr(healthcheck, 'connect', fake_connect)

    with pytest.raises(SystemExit) as excinfo:
        healthcheck.main([])

    assert excinfo.value.code == 1
    assert 'Health check failed: MEDICAL database is unavailable' in capsys.readouterr().out
