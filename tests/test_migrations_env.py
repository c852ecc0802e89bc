"""Tests for the DATABASE_URL handling used by Alembic, and the schema file."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from migrations.env_helpers import database_url, libpq_dsn_to_url, parse_libpq_dsn

SQL_DIR = Path(__file__).resolve().parent.parent / "migrations" / "sql"


class TestParseLibpqDsn:
    def test_bare_values(self):
        assert parse_libpq_dsn("dbname=zap user=u port=5433") == {
            "dbname": "zap",
            "user": "u",
            "port": "5433",
        }

    def test_quoted_value_with_spaces_and_escape(self):
        params = parse_libpq_dsn(r"user=u password='it\'s a secret'")
        assert params["password"] == "it's a secret"


class TestLibpqDsnToUrl:
    def test_unix_socket_host(self):
        dsn = "dbname=zaphub user=zap-sa password=s3cret host=/cloudsql/proj:region:inst"
        assert libpq_dsn_to_url(dsn) == (
            "postgresql+psycopg2://zap-sa:s3cret@/zaphub"
            "?host=%2Fcloudsql%2Fproj%3Aregion%3Ainst"
        )

    def test_tcp_default_port(self):
        dsn = "dbname=db user=u password=p host=myhost"
        assert libpq_dsn_to_url(dsn) == "postgresql+psycopg2://u:p@myhost:5432/db"

    def test_special_chars_encoded(self):
        url = libpq_dsn_to_url("dbname=db user=u@domain password=p@ss=word host=h")
        assert "u%40domain" in url
        assert "p%40ss%3Dword" in url

    def test_db_password_fills_missing(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        assert libpq_dsn_to_url("dbname=db user=u host=h") == (
            "postgresql+psycopg2://u:from-env@h:5432/db"
        )

    def test_no_password_anywhere(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        assert libpq_dsn_to_url("dbname=db user=u host=h") == "postgresql+psycopg2://u@h:5432/db"


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "raw",
        ["postgres://u:p@h/db", "postgresql://u:p@h/db", "postgresql+psycopg2://u:p@h/db"],
    )
    def test_scheme_normalized_once(self, raw):
        with patch.dict(os.environ, {"DATABASE_URL": raw}, clear=True):
            assert database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_url_db_password_fallback(self):
        env = {"DATABASE_URL": "postgresql://u@h:6543/db", "DB_PASSWORD": "se cret"}
        with patch.dict(os.environ, env, clear=True):
            assert database_url() == "postgresql+psycopg2://u:se+cret@h:6543/db"

    def test_dsn_converted(self):
        with patch.dict(os.environ, {"DATABASE_URL": "dbname=db user=u password=p host=h"}, clear=True):
            assert database_url() == "postgresql+psycopg2://u:p@h:5432/db"

    def test_missing_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
                database_url()


def test_initial_schema_creates_tables():
    sql = (SQL_DIR / "001_initial.sql").read_text(encoding="utf-8")
    for table in ("webhooks", "whatsapp_messages", "ai_suggestions"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in sql
