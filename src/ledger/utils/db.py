from protean.domain import Domain
from sqlalchemy import create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    return [provider for provider in domain.providers.values() if provider.conn_info["provider"] in SQL_PROVIDERS]


def setup_db(domain: Domain):
    """Create tables for every aggregate, entity and projection on SQL providers."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            registries = (
                domain.registry.aggregates,
                domain.registry.entities,
                domain.registry.projections,
            )
            for registry in registries:
                for record in registry.values():
                    if record.cls.meta_.provider == provider.name:
                        # Touching the DAO registers the table on the provider's metadata
                        domain.repository_for(record.cls)._dao  # noqa: B018

            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop tables created by setup_db."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
