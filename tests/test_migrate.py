"""Tests for the migration entry point."""

from parley.core.settings import settings
from parley.scripts import migrate


def test_upgrade_uses_configured_database_url(mocker):
    upgrade = mocker.patch.object(migrate.command, "upgrade")

    migrate.run_upgrade_head()

    cfg, revision = upgrade.call_args.args
    assert revision == "head"
    assert cfg.get_main_option("sqlalchemy.url") == settings.database_url
    assert cfg.get_main_option("script_location").endswith("migrations")
