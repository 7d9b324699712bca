"""Shared fixtures for chatkarma tests."""

import pytest

from chatkarma.core.config import Config
from chatkarma.cooldown import CooldownGate
from chatkarma.decay import DecayEngine
from chatkarma.migrate import MigrationRunner
from chatkarma.store.sqlite import SQLiteScoreStore
from chatkarma.system import KarmaSystem
from chatkarma.term import Term
from chatkarma.users import UserDirectory

DAY = 24 * 60 * 60


class FakeClock:
    """Manually advanced unix clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    """Config pointing at a temp directory, cooldown disabled."""
    cfg = Config.from_data_dir(tmp_path, cooldown=None)
    cfg.ensure_directories()
    return cfg


@pytest.fixture
def decay_config(config):
    config.decay = True
    config.decay_interval = DAY
    return config


@pytest.fixture
def store(config, clock):
    """Provide a fresh SQLite store on disk."""
    s = SQLiteScoreStore(config.db_path, clock=clock)
    yield s
    s.close()


@pytest.fixture
def users(config):
    directory = UserDirectory(config.users_path)
    directory.add_user("1", "Test User")
    directory.add_user("2", "Other User")
    return directory


@pytest.fixture
def decay(store, config, clock):
    return DecayEngine(store, config, clock=clock)


@pytest.fixture
def gate(store, config):
    return CooldownGate(store, config)


@pytest.fixture
def migrations(store, config, decay):
    return MigrationRunner(store, config, decay)


@pytest.fixture
def make_term(store, config, users, decay):
    def _make(text, normalize=True):
        return Term(store, config, text, normalize=normalize, users=users, decay=decay)

    return _make


@pytest.fixture
def karma(config, store, users, clock):
    """KarmaSystem sharing the test store, users and clock."""
    return KarmaSystem(config=config, store=store, users=users, clock=clock)
