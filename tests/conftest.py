"""Pytest configuration and fixtures."""

import pytest

from rolegraph.backends.database.sqlite import SQLiteDatabase
from rolegraph.config import Config
from rolegraph.engine import RoleEngine

ACTOR_ID = "admin-actor"


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "storage": {
            "database": {"backend": "sqlite", "path": ":memory:"},
        },
        "rbac": {
            "max_hierarchy_depth": 16,
            "role_page_size": 10,
            "audit_page_size": 20,
            "system_actor_id": "bootstrap",
        },
        "logging": {"level": "DEBUG", "format": "json"},
    }


@pytest.fixture
async def db():
    """Create an in-memory SQLite database."""
    database = SQLiteDatabase(path=":memory:")
    yield database
    await database.close()


@pytest.fixture
async def engine(db):
    """Create an initialized engine without default roles."""
    role_engine = RoleEngine(Config(), database=db)
    await role_engine.initialize()
    return role_engine


@pytest.fixture
async def seeded(engine):
    """Engine with the default roles seeded."""
    await engine.roles.seed_default_roles()
    return engine


@pytest.fixture
def actor_id():
    """Principal recorded as performer of test mutations."""
    return ACTOR_ID
