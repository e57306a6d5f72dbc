"""Schema management for SQL-backed providers.

The memory provider needs no schema, so both functions are no-ops unless a
``sqlite`` or ``postgresql`` database is configured for the environment.
"""

from protean.domain import Domain
from sqlalchemy import Index, create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")

# Lookups the repository runs on every request besides primary key access
SECONDARY_INDEXES = {
    "order": (("owner_id", "created_at"), ("status",)),
    "line_item": (("product_ref",),),
}


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in SQL_PROVIDERS:
            yield provider


def _register_models(domain: Domain, provider):
    """Touch each repository's DAO so its SQLAlchemy model lands in the metadata."""
    for registry in (domain.registry.aggregates, domain.registry.entities):
        for _, record in registry.items():
            if record.cls.meta_.provider == provider.name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def _add_secondary_indexes(provider):
    for table_name, indexes in SECONDARY_INDEXES.items():
        table = provider._metadata.tables.get(table_name)
        if table is None:
            continue

        existing = {index.name for index in table.indexes}
        for columns in indexes:
            name = f"ix_{table_name}_" + "_".join(columns)
            if name in existing or not all(column in table.c for column in columns):
                continue
            Index(name, *(table.c[column] for column in columns))


def setup_db(domain: Domain):
    """Create tables and indexes for every SQL provider of ``domain``."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            _register_models(domain, provider)
            _add_secondary_indexes(provider)
            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
