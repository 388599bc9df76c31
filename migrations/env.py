from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os

from portal.models.authz import Base  # noqa: E402
# Register every table on the shared metadata
import portal.models.audit  # noqa: F401,E402
import portal.models.product  # noqa: F401,E402
import portal.models.order  # noqa: F401,E402
import portal.models.meeting  # noqa: F401,E402
import portal.models.market_report  # noqa: F401,E402
import portal.models.payment  # noqa: F401,E402
import portal.models.news  # noqa: F401,E402
import portal.models.invoice_delivery  # noqa: F401,E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def get_url():
    return os.getenv('DATABASE_URL', 'sqlite:///portal.db')


config.set_main_option('sqlalchemy.url', get_url())

target_metadata = Base.metadata


def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
