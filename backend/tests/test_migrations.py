import importlib.util
import os

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from floortower.models import SINGLETON_ID
from conftest import BACKEND_ROOT

MIGRATION = os.path.join(BACKEND_ROOT, 'migrations', 'versions', '5b7c1d2e9f01_create_game_state.py')


def _load_migration():
    spec = importlib.util.spec_from_file_location('create_game_state', MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _upgrade(engine, migration):
    with engine.begin() as conn:
        ctx = MigrationContext.configure(conn)
        with Operations.context(ctx):
            migration.upgrade()


def test_migration_seeds_the_row_the_app_reads():
    migration = _load_migration()
    assert migration.SINGLETON_ID == SINGLETON_ID

    engine = sa.create_engine('sqlite://')
    _upgrade(engine, migration)
    # running again must not insert a second row
    _upgrade(engine, migration)

    with engine.connect() as conn:
        ids = [row[0] for row in conn.execute(sa.text('SELECT id FROM game_state'))]
    assert ids == [SINGLETON_ID]
