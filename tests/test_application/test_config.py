"""Tests for Settings"""
from family_ledger.config import Settings


def test_defaults():
    s = Settings(DATABASE_URL="sqlite:///:memory:", _env_file=None)
    assert s.BASE_CURRENCY == "CNY"
    assert s.INVITE_CODE_LENGTH == 8
    assert s.get_sqlalchemy_url() == "sqlite:///:memory:"


def test_postgres_url_uses_psycopg_driver():
    s = Settings(DATABASE_URL="postgresql://u:p@db:5432/ledger", _env_file=None)
    assert s.get_sqlalchemy_url() == "postgresql+psycopg://u:p@db:5432/ledger"


def test_explicit_driver_is_kept():
    s = Settings(DATABASE_URL="postgresql+psycopg://u:p@db/ledger", _env_file=None)
    assert s.get_sqlalchemy_url() == "postgresql+psycopg://u:p@db/ledger"
