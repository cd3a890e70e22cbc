"""
Tests for settings and logging setup
"""

import logging

import pytest

from marketplace.config import IdentityPool, Settings
from marketplace.utils.logger import AuditLogger, setup_logging


class TestSettings:

    def test_identity_pool_lookup(self, settings):
        pools = settings.identity_pools()

        assert pools[IdentityPool.ADMIN].pool_id == "us-east-1_admin"
        assert pools[IdentityPool.ADMIN].client_secret == "admin-secret"
        assert pools[IdentityPool.GENERAL].client_id == "general-client"

    def test_database_url_from_parts(self):
        settings = Settings(
            _env_file=None,
            database_url=None,
            db_service_user="svc",
            db_service_password="pw",
            postgres_host="db",
            db_name="market",
        )

        assert settings.sqlalchemy_url == "postgresql+asyncpg://svc:pw@db:5432/market"

    def test_database_password_required_without_url(self):
        settings = Settings(_env_file=None, database_url=None, db_service_password="")

        with pytest.raises(ValueError):
            settings.sqlalchemy_url


class TestLogging:

    def test_yaml_config_and_overrides(self, tmp_path):
        config_file = tmp_path / "logging.yml"
        config_file.write_text(
            "version: 1\n"
            "disable_existing_loggers: false\n"
            "formatters:\n"
            "  default:\n"
            "    format: '%(levelname)s %(message)s'\n"
            "  json:\n"
            "    format: '{\"message\": \"%(message)s\"}'\n"
            "handlers:\n"
            "  console:\n"
            "    class: logging.StreamHandler\n"
            "    formatter: default\n"
            "    level: INFO\n"
            "loggers:\n"
            "  marketplace:\n"
            "    level: INFO\n"
            "    handlers: [console]\n"
        )

        config = setup_logging(str(config_file), log_level="debug", log_format="json")

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["marketplace"]["level"] == "DEBUG"
        assert logging.getLogger("marketplace").level == logging.DEBUG

    def test_defaults_when_file_missing(self, tmp_path):
        config = setup_logging(str(tmp_path / "missing.yml"), log_level="WARNING")

        assert config["root"]["level"] == "WARNING"
        assert config["formatters"]["detailed"]

    def test_audit_log_carries_action(self, caplog):
        audit = AuditLogger("marketplace-test.audit")

        with caplog.at_level(logging.INFO, logger="marketplace-test.audit"):
            audit.log_user_action("jane@example.com", "sign_in", "user", 5)

        record = caplog.records[-1]
        assert record.action == "sign_in"
        assert "performed sign_in on user 5" in record.getMessage()
