"""Tests for the FastAPI API endpoints."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from character_chain.api.app import create_app
from character_chain.chain.context import SimulatedChain
from character_chain.chain.events import EventLog
from character_chain.chain.seed import ScriptedSeedSource
from character_chain.chain.store import StateStore
from character_chain.models.chain import ChainConfig

GENESIS = 1_700_000_000


@pytest.fixture
def seeds():
    return ScriptedSeedSource()


@pytest.fixture
def app(seeds):
    return create_app(
        config=ChainConfig(),
        store=StateStore(event_log=EventLog(db_path=":memory:")),
        chain=SimulatedChain(genesis_time=GENESIS, entropy=lambda: 1),
        seed_source=seeds,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


class TestQuantumEndpoints:
    def test_initialize_and_inspect(self, client):
        response = client.post("/quantum/1", json={"entanglement_factor": 10})
        assert response.status_code == 200
        assert response.json()["entanglement_factor"] == 10

        state = client.get("/quantum/1").json()
        assert state["entanglement_factor"] == 10
        assert state["entangled_peers"] == []

    def test_double_initialize_conflicts(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        response = client.post("/quantum/1", json={"entanglement_factor": 10})
        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyInitialized"
        assert response.json()["character_id"] == 1

    def test_bond(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        client.post("/quantum/2", json={"entanglement_factor": 20})

        response = client.post("/bonds", json={"character_a": 1, "character_b": 2})
        assert response.status_code == 200
        assert response.json()["bond_strength"] == 15

        bond = client.get("/bonds/2/1").json()
        assert bond == {"entangled": True, "bond_strength": 15}

        again = client.post("/bonds", json={"character_a": 2, "character_b": 1})
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyEntangled"

    def test_bond_with_uninitialized_is_404(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        response = client.post("/bonds", json={"character_a": 1, "character_b": 2})
        assert response.status_code == 404
        assert response.json()["error"] == "NotInitialized"

    def test_superpositions_and_collapse(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        response = client.post("/quantum/1/superpositions", json={"label": "hero"})
        assert response.json() == {"superposition_states": ["hero"]}

        collapsed = client.post("/quantum/1/collapse")
        assert collapsed.status_code == 200
        assert collapsed.json()["is_collapsed"] is True
        assert collapsed.json()["superposition_states"] == []

        again = client.post("/quantum/1/collapse")
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyCollapsed"

    @pytest.mark.parametrize("path", ["/quantum/-1", "/minds/-1"])
    def test_negative_character_id_is_422(self, client, path):
        body = {"entanglement_factor": 10, "awareness_level": 10}
        response = client.post(path, json=body)
        assert response.status_code == 422
        assert client.get("/events/verify").json()["count"] == 0

    def test_character_id_above_uint256_is_422(self, client):
        response = client.post(f"/quantum/{2 ** 256}", json={"entanglement_factor": 10})
        assert response.status_code == 422

    def test_bond_with_negative_id_is_422(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        response = client.post("/bonds", json={"character_a": 1, "character_b": -1})
        assert response.status_code == 422
        assert client.get("/bonds/1/0").json()["entangled"] is False


class TestMemeEndpoints:
    def test_propagate_uninitialized(self, client):
        response = client.post("/memes/1", json={"meme": "hello"})
        assert response.status_code == 404
        assert client.get("/memes/1").json()["memes"] == []

    def test_propagate(self, client, seeds):
        client.post("/quantum/0", json={"entanglement_factor": 10})
        client.post("/quantum/1", json={"entanglement_factor": 20})
        client.post("/bonds", json={"character_a": 0, "character_b": 1})
        client.post("/quantum/1/superpositions", json={"label": "a"})
        seeds.push(3)

        response = client.post("/memes/1", json={"meme": "hello"})

        assert response.status_code == 200
        body = response.json()
        assert body["mutated_meme"] == "helmo"
        assert body["reached_peers"] == [0]

        peer = client.get("/memes/0").json()
        assert peer["memes"] == ["hello"]
        assert peer["virality"] == 1
        assert peer["propagation_paths"] == {"1": 1}

    def test_mutation_rate(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        ok = client.put("/memes/1/mutation-rate", json={"mutation_rate": 40})
        assert ok.json() == {"mutation_rate": 40}
        bad = client.put("/memes/1/mutation-rate", json={"mutation_rate": 400})
        assert bad.status_code == 422
        assert bad.json()["error"] == "InvalidMutationRate"

    def test_mutation_next_to_surrogates_is_serializable(self, client, seeds):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        seeds.push(0)
        response = client.post("/memes/1", json={"meme": "\ue000"})
        assert response.status_code == 200
        assert response.json()["mutated_meme"] == "\ud7ff"


class TestConsciousnessEndpoints:
    def test_initialize_and_evolve(self, client, app, seeds):
        response = client.post("/minds/7", json={"awareness_level": 10})
        assert response.status_code == 200
        assert response.json()["coherence_level"] == 50

        early = client.post("/minds/7/evolve", json={"experience": "rain", "outcome": "wet"})
        assert early.status_code == 429
        assert early.json()["error"] == "CooldownNotElapsed"

        app.state.chain.advance(3600)
        seeds.push(0)
        evolved = client.post("/minds/7/evolve", json={"experience": "rain", "outcome": "wet"})
        assert evolved.status_code == 200
        assert evolved.json()["breakthrough"] is True
        assert evolved.json()["evolution_points"] == 8

        mind = client.get("/minds/7").json()
        assert mind["achieved_breakthroughs"] == ["rain"]
        assert len(client.get("/minds/7/decisions").json()) == 1

    def test_invalid_awareness(self, client):
        response = client.post("/minds/7", json={"awareness_level": 0})
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidAwarenessLevel"

    def test_additions_and_priority(self, client):
        client.post("/minds/7", json={"awareness_level": 10})
        assert client.post("/minds/7/goals", json={"text": "fly"}).json() == {"goal_count": 2}
        assert client.post("/minds/7/beliefs", json={"text": "sky"}).json() == {"belief_count": 2}
        added = client.post("/minds/7/values", json={"value": "kindness", "priority": 60})
        assert added.json() == {"value_count": 2}
        priority = client.get("/minds/7/priorities/kindness").json()
        assert priority == {"key": "kindness", "priority": 60}

        bad = client.post("/minds/7/values", json={"value": "greed", "priority": 101})
        assert bad.status_code == 422
        assert bad.json()["error"] == "InvalidPriority"

    def test_priority_of_uninitialized(self, client):
        response = client.get("/minds/9/priorities/survival")
        assert response.status_code == 404


class TestEventEndpoints:
    def test_caller_header_and_filters(self, client):
        client.post(
            "/quantum/1", json={"entanglement_factor": 10}, headers={"X-Caller": "0xabc"}
        )
        client.post("/minds/1", json={"awareness_level": 10})

        events = client.get("/events").json()
        assert [e["name"] for e in events] == [
            "QuantumStateInitialized",
            "ConsciousnessInitialized",
        ]
        assert events[0]["caller"] == "0xabc"

        by_name = client.get("/events", params={"name": "ConsciousnessInitialized"}).json()
        assert len(by_name) == 1
        by_character = client.get("/events", params={"character_id": 1}).json()
        assert len(by_character) == 2

    def test_failed_calls_emit_nothing(self, client):
        client.post("/memes/1", json={"meme": "hello"})
        assert client.get("/events/verify").json() == {"intact": True, "count": 0}

    def test_state_and_health(self, client):
        client.post("/quantum/1", json={"entanglement_factor": 10})
        state = client.get("/state").json()
        assert state["quantum_states"]["1"]["entanglement_factor"] == 10
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["block_number"] == 1


class TestAppFactory:
    def test_mismatched_event_log_rejected(self):
        with pytest.raises(ValueError):
            create_app(store=StateStore(event_log=EventLog()), event_log=EventLog())

    def test_store_with_its_own_event_log_accepted(self):
        log = EventLog()
        app = create_app(store=StateStore(event_log=log), event_log=log)
        assert app.state.store.event_log is log


class TestConcurrentRequests:
    def test_parallel_initializations_all_persist(self, app):
        character_ids = [i % 20 for i in range(60)]

        with TestClient(app) as client:
            with ThreadPoolExecutor(max_workers=8) as pool:
                responses = list(pool.map(
                    lambda cid: client.post(
                        f"/quantum/{cid}", json={"entanglement_factor": cid + 1}
                    ),
                    character_ids,
                ))

            accepted = [r for r in responses if r.status_code == 200]
            conflicts = [r for r in responses if r.status_code == 409]
            assert len(accepted) == 20
            assert len(conflicts) == 40

            state = client.get("/state").json()["quantum_states"]
            for cid in range(20):
                assert state[str(cid)]["entanglement_factor"] == cid + 1

            assert client.get("/events/verify").json() == {"intact": True, "count": 20}
