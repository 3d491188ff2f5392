from sqlalchemy import engine_from_config, pool
from alembic import context
from order_service.core.config import settings
from order_service.db.session import Base
import order_service.db.models  # noqa

config = context.config
target_metadata = Base.metadata

VERSION_TABLE = "alembic_version_order"

def database_url() -> str:
    # an explicit sqlalchemy.url in the alembic config wins over POSTGRES_DSN
    return config.get_main_option("sqlalchemy.url") or settings.POSTGRES_DSN

def configure_args(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "version_table": VERSION_TABLE,
        "compare_type": True,
        # sqlite cannot ALTER most columns in place
        "render_as_batch": url.startswith("sqlite"),
    }

def run_migrations_offline():
    url = database_url()
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **configure_args(url))
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    url = database_url()
    connectable = engine_from_config({"sqlalchemy.url": url}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **configure_args(url))
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
