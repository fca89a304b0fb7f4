"""Shared fixtures: a pinned chain, a scripted seed source and fresh engines."""

import pytest

from character_chain.chain.context import SimulatedChain
from character_chain.chain.events import EventLog
from character_chain.chain.seed import ScriptedSeedSource
from character_chain.chain.store import StateStore
from character_chain.consciousness.engine import ConsciousnessEngine
from character_chain.entanglement.memes import MemeEngine
from character_chain.entanglement.network import EntanglementNetwork
from character_chain.models.chain import ChainConfig

GENESIS = 1_700_000_000


@pytest.fixture
def chain():
    return SimulatedChain(genesis_time=GENESIS, entropy=lambda: 42)


@pytest.fixture
def seeds():
    return ScriptedSeedSource()


@pytest.fixture
def store():
    return StateStore(event_log=EventLog(db_path=":memory:"))


@pytest.fixture
def config():
    return ChainConfig()


@pytest.fixture
def network(store, chain, config):
    return EntanglementNetwork(store, chain, config)


@pytest.fixture
def memes(network, seeds, config):
    return MemeEngine(network, seed_source=seeds, config=config)


@pytest.fixture
def minds(store, chain, seeds, config):
    return ConsciousnessEngine(store, chain, seed_source=seeds, config=config)
