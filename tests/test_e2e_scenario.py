"""
End-to-end scenario: a small cast of characters bonds, gossips and grows.

Runs on the real block-derived seed source with pinned time and entropy to
show that outcomes are fully determined by the block context.
"""

from character_chain.chain.context import SimulatedChain
from character_chain.chain.events import EventLog
from character_chain.chain.store import StateStore
from character_chain.consciousness.engine import ConsciousnessEngine
from character_chain.entanglement.memes import MemeEngine
from character_chain.entanglement.network import EntanglementNetwork
from character_chain.models.chain import ChainConfig

GENESIS = 1_700_000_000


def _run_world(caller: str = "0xcafe") -> dict:
    config = ChainConfig(default_mutation_rate=50)
    store = StateStore(event_log=EventLog(db_path=":memory:"))
    chain = SimulatedChain(genesis_time=GENESIS, entropy=lambda: 123456789)
    network = EntanglementNetwork(store, chain, config)
    memes = MemeEngine(network, config=config)
    minds = ConsciousnessEngine(store, chain, config=config)

    for cid, factor in ((0, 40), (1, 60), (2, 80)):
        network.initialize_quantum_state(cid, factor, caller=caller)
        minds.initialize_consciousness(cid, 30 + cid * 10, caller=caller)
    network.create_quantum_bond(2, 0, caller=caller)
    network.create_quantum_bond(2, 1, caller=caller)
    for label in ("seer", "trickster", "sage"):
        network.add_superposition_state(2, label, caller=caller)

    for day in range(5):
        chain.advance(3600)
        memes.propagate_meme(2, f"omen-{day}", caller=caller)
        for cid in (0, 1, 2):
            minds.evolve_consciousness(cid, f"dream-{day % 2}", "remembered", caller=caller)

    network.collapse_quantum_state(2, caller=caller)
    return {
        "state": store.snapshot(),
        "events": store.event_log.count(),
        "intact": store.event_log.verify_chain_integrity(),
        "peer_memes": memes.get_memes(0),
        "virality": (memes.get_virality(0), memes.get_virality(1)),
    }


class TestScenario:
    def test_world_runs_and_log_is_intact(self):
        world = _run_world()
        assert world["intact"] is True
        # Peers 0 and 1 are within the three-label bound of character 2.
        assert world["virality"] == (5, 5)
        assert world["peer_memes"] == [f"omen-{d}" for d in range(5)]

        minds = world["state"]["minds"]
        for cid in ("0", "1", "2"):
            assert len(minds[cid]["decision_history"]) == 5
            assert minds[cid]["awareness_level"] <= 100
            assert set(minds[cid]["achieved_breakthroughs"]) <= {"dream-0", "dream-1"}

        quantum = world["state"]["quantum_states"]["2"]
        assert quantum["is_collapsed"] is True
        assert quantum["superposition_states"] == []
        assert quantum["quantum_bonds"] == {"0": 60, "1": 73}

    def test_same_block_context_reproduces_outcomes(self):
        """Anyone who can replay the block context can predict every draw."""
        first = _run_world()
        second = _run_world()
        assert first["state"] == second["state"]
        assert first["events"] == second["events"]

    def test_caller_changes_the_draws_but_not_the_rules(self):
        world = _run_world(caller="0xbeef")
        assert world["intact"] is True
        assert world["virality"] == (5, 5)
