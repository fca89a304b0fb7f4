"""
Character Chain API — FastAPI endpoints.

Submits each public operation of the two engines as a transaction:
- Quantum state, superpositions, bonds and collapse
- Meme propagation and mutation rate
- Consciousness initialization, evolution and append-only additions
- Event log and state inspection

The caller identity comes from the X-Caller header.
"""

from typing import Annotated, Optional

from fastapi import FastAPI, Header, Path, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from character_chain.chain.context import DEFAULT_CALLER, SimulatedChain
from character_chain.chain.events import EventLog
from character_chain.chain.seed import SeedSource
from character_chain.chain.store import StateStore
from character_chain.consciousness.engine import ConsciousnessEngine
from character_chain.entanglement.memes import MemeEngine
from character_chain.entanglement.network import EntanglementNetwork
from character_chain.errors import MAX_CHARACTER_ID, ChainError
from character_chain.models.chain import ChainConfig

CharacterId = Annotated[int, Path(ge=0, le=MAX_CHARACTER_ID)]


# --- Request/Response Models ---

class QuantumInitRequest(BaseModel):
    entanglement_factor: int


class SuperpositionRequest(BaseModel):
    label: str


class BondRequest(BaseModel):
    character_a: int = Field(ge=0, le=MAX_CHARACTER_ID)
    character_b: int = Field(ge=0, le=MAX_CHARACTER_ID)


class MemeRequest(BaseModel):
    meme: str


class MutationRateRequest(BaseModel):
    mutation_rate: int


class ConsciousnessInitRequest(BaseModel):
    awareness_level: int


class EvolveRequest(BaseModel):
    experience: str
    outcome: str


class TextRequest(BaseModel):
    text: str


class ValueRequest(BaseModel):
    value: str
    priority: int


# --- Application Factory ---

def create_app(
    config: Optional[ChainConfig] = None,
    store: Optional[StateStore] = None,
    event_log: Optional[EventLog] = None,
    chain: Optional[SimulatedChain] = None,
    seed_source: Optional[SeedSource] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Character Chain API",
        description="Entanglement network, meme engine and consciousness engine",
        version="0.1.0",
    )

    # Initialize components
    cfg = config or ChainConfig()
    if store is not None and event_log is not None and store.event_log is not event_log:
        raise ValueError("event_log must be the log the given store publishes to")
    st = store or StateStore(event_log=event_log)
    ch = chain or SimulatedChain(gas_price=cfg.gas_price)
    network = EntanglementNetwork(st, ch, cfg)
    memes = MemeEngine(network, seed_source=seed_source, config=cfg)
    minds = ConsciousnessEngine(st, ch, seed_source=seed_source, config=cfg)

    # Store components on app state for access in endpoints
    app.state.config = cfg
    app.state.store = st
    app.state.chain = ch
    app.state.network = network
    app.state.memes = memes
    app.state.minds = minds

    @app.exception_handler(ChainError)
    async def chain_error_handler(request: Request, exc: ChainError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.code,
                "detail": str(exc),
                "character_id": exc.character_id,
            },
        )

    # === ENTANGLEMENT NETWORK ===

    @app.post("/quantum/{character_id}")
    def initialize_quantum_state(
        character_id: CharacterId,
        req: QuantumInitRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Initialize a character's quantum state."""
        state = network.initialize_quantum_state(
            character_id, req.entanglement_factor, caller=x_caller
        )
        return state.model_dump(mode="json")

    @app.get("/quantum/{character_id}")
    def get_quantum_state(character_id: CharacterId):
        """Inspect a character's quantum state and peers."""
        state = network.get_quantum_state(character_id)
        data = state.model_dump(mode="json")
        data["entangled_peers"] = network.get_entangled_peers(character_id)
        return data

    @app.post("/quantum/{character_id}/superpositions")
    def add_superposition_state(
        character_id: CharacterId,
        req: SuperpositionRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Add a superposition label to an uncollapsed character."""
        states = network.add_superposition_state(character_id, req.label, caller=x_caller)
        return {"superposition_states": states}

    @app.post("/quantum/{character_id}/collapse")
    def collapse_quantum_state(
        character_id: CharacterId,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Collapse a character's quantum state."""
        state = network.collapse_quantum_state(character_id, caller=x_caller)
        return state.model_dump(mode="json")

    @app.post("/bonds")
    def create_quantum_bond(req: BondRequest, x_caller: str = Header(DEFAULT_CALLER)):
        """Entangle two characters."""
        strength = network.create_quantum_bond(
            req.character_a, req.character_b, caller=x_caller
        )
        return {
            "character_a": req.character_a,
            "character_b": req.character_b,
            "bond_strength": strength,
        }

    @app.get("/bonds/{character_a}/{character_b}")
    def get_bond(character_a: CharacterId, character_b: CharacterId):
        """Bond strength and adjacency between two characters."""
        return {
            "entangled": network.are_entangled(character_a, character_b),
            "bond_strength": network.get_bond_strength(character_a, character_b),
        }

    # === MEME ENGINE ===

    @app.post("/memes/{character_id}")
    def propagate_meme(
        character_id: CharacterId,
        req: MemeRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Propagate a meme from a character to its peers."""
        result = memes.propagate_meme(character_id, req.meme, caller=x_caller)
        return result.model_dump(mode="json")

    @app.get("/memes/{character_id}")
    def get_pattern(character_id: CharacterId):
        """Inspect a character's memetic pattern."""
        return memes.get_pattern(character_id).model_dump(mode="json")

    @app.put("/memes/{character_id}/mutation-rate")
    def set_mutation_rate(
        character_id: CharacterId,
        req: MutationRateRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Override a character's mutation rate."""
        rate = memes.set_mutation_rate(character_id, req.mutation_rate, caller=x_caller)
        return {"mutation_rate": rate}

    # === CONSCIOUSNESS ENGINE ===

    @app.post("/minds/{character_id}")
    def initialize_consciousness(
        character_id: CharacterId,
        req: ConsciousnessInitRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Initialize a character's consciousness."""
        mind = minds.initialize_consciousness(
            character_id, req.awareness_level, caller=x_caller
        )
        return mind.model_dump(mode="json")

    @app.get("/minds/{character_id}")
    def get_mind(character_id: CharacterId):
        """Inspect a character's consciousness record."""
        return minds.get_record(character_id).model_dump(mode="json")

    @app.post("/minds/{character_id}/evolve")
    def evolve_consciousness(
        character_id: CharacterId,
        req: EvolveRequest,
        x_caller: str = Header(DEFAULT_CALLER),
    ):
        """Evolve a character through an experience."""
        result = minds.evolve_consciousness(
            character_id, req.experience, req.outcome, caller=x_caller
        )
        return result.model_dump(mode="json")

    @app.post("/minds/{character_id}/goals")
    def add_goal(character_id: CharacterId, req: TextRequest, x_caller: str = Header(DEFAULT_CALLER)):
        return {"goal_count": minds.add_goal(character_id, req.text, caller=x_caller)}

    @app.post("/minds/{character_id}/beliefs")
    def add_belief(character_id: CharacterId, req: TextRequest, x_caller: str = Header(DEFAULT_CALLER)):
        return {"belief_count": minds.add_belief(character_id, req.text, caller=x_caller)}

    @app.post("/minds/{character_id}/values")
    def add_value(character_id: CharacterId, req: ValueRequest, x_caller: str = Header(DEFAULT_CALLER)):
        count = minds.add_value(character_id, req.value, req.priority, caller=x_caller)
        return {"value_count": count}

    @app.get("/minds/{character_id}/priorities/{key}")
    def get_priority(character_id: CharacterId, key: str):
        return {"key": key, "priority": minds.get_priority(character_id, key)}

    @app.get("/minds/{character_id}/decisions")
    def get_decision_history(character_id: CharacterId):
        return [d.model_dump(mode="json") for d in minds.get_decision_history(character_id)]

    # === EVENTS & STATE ===

    @app.get("/events")
    def list_events(
        name: Optional[str] = None,
        character_id: Optional[int] = None,
        limit: int = 50,
    ):
        """Query the public event stream."""
        log = st.event_log
        if name:
            events = log.query_by_name(name)
            if character_id is not None:
                events = [e for e in events if e.character_id == character_id]
        elif character_id is not None:
            events = log.query_by_character(character_id)
        else:
            events = log.query_recent(limit)
        return [e.model_dump(mode="json") for e in events[-limit:]]

    @app.get("/events/verify")
    def verify_events():
        return {
            "intact": st.event_log.verify_chain_integrity(),
            "count": st.event_log.count(),
        }

    @app.get("/state")
    def get_state():
        """Full serializable snapshot of all character state."""
        return st.snapshot()

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "block_number": ch.block_number,
            "timestamp": ch.now(),
        }

    return app
