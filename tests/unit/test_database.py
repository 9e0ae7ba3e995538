from backoffice import database
from backoffice.config import settings


def test_sslmode_moves_from_url_to_connect_args(monkeypatch):
    monkeypatch.setattr(
        settings, "DATABASE_URL", "postgresql+asyncpg://app:secret@db:5432/backoffice?sslmode=require"
    )
    monkeypatch.setattr(settings, "DB_SSL", False)

    url = database._get_db_url()

    assert "sslmode" not in url.query
    assert url.database == "backoffice"
    assert database._ssl_required()


def test_plain_url_needs_no_ssl(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql+asyncpg://db:5432/backoffice")
    monkeypatch.setattr(settings, "DB_SSL", False)
    assert not database._ssl_required()

    monkeypatch.setattr(settings, "DB_SSL", True)
    assert database._ssl_required()
