"""
Consciousness Engine — cooldown-gated evolution of a character's mind.

States: uninitialized -> initialized (one-way). Every other operation
requires an initialized record; evolution additionally requires the
cooldown window to have elapsed since the last update.

Evolution rules:
  confidence       = min(max_confidence, (awareness + coherence) // 2)
  evolution_impact = 1 + coherence // 20   (+ goal_match_bonus if the
                     experience is one of the character's goals)
  awareness        = min(100, awareness + evolution_impact)
  evolution_points += evolution_impact

Breakthrough rules (at most once per experience string):
  probability = awareness * coherence // 100 + evolution_points // 100
  achieved when consciousness_seed % 100 < probability
  probability is not clamped; above 100 the breakthrough is certain.
"""

import logging
from typing import List, Optional

from character_chain.chain.context import DEFAULT_CALLER, SimulatedChain
from character_chain.chain.seed import BlockSeedSource, SeedSource
from character_chain.chain.store import StateStore
from character_chain.errors import (
    AlreadyInitialized,
    CooldownNotElapsed,
    InvalidAwarenessLevel,
    InvalidPriority,
    NotInitialized,
    check_character_id,
)
from character_chain.models.chain import BlockContext, ChainConfig
from character_chain.models.consciousness import (
    ConsciousnessRecord,
    Decision,
    EvolutionResult,
)

logger = logging.getLogger(__name__)

DEFAULT_BELIEF = "I exist and can learn"
DEFAULT_VALUE = "Growth through experience"
DEFAULT_GOAL = "Understand my own existence"
DEFAULT_PRIORITIES = {
    "survival": 90,
    "growth": 80,
    "connection": 70,
}
EVOLUTION_REASONING = "Evolved through experience"


class ConsciousnessEngine:
    """Owns per-character ConsciousnessRecord and its transition rules."""

    def __init__(
        self,
        store: StateStore,
        chain: SimulatedChain,
        seed_source: Optional[SeedSource] = None,
        config: Optional[ChainConfig] = None,
    ):
        self.store = store
        self.chain = chain
        self.seed_source = seed_source or BlockSeedSource()
        self.config = config or ChainConfig()

    def _require_initialized(self, character_id: int) -> ConsciousnessRecord:
        mind = self.store.mind(character_id)
        if not mind.is_initialized:
            raise NotInitialized(
                f"Character {character_id} has no consciousness", character_id
            )
        return mind

    # --- Lifecycle ---

    def initialize_consciousness(
        self, character_id: int, awareness_level: int, caller: str = DEFAULT_CALLER
    ) -> ConsciousnessRecord:
        """Create a character's mind with default beliefs, values, goals and priorities."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_id)
            mind = self.store.mind(character_id)
            if mind.is_initialized:
                raise AlreadyInitialized(
                    f"Character {character_id} consciousness already initialized",
                    character_id,
                )
            if not 0 < awareness_level <= 100:
                raise InvalidAwarenessLevel(
                    f"Awareness level must be within (0, 100], got {awareness_level}",
                    character_id,
                )

            mind.beliefs.append(DEFAULT_BELIEF)
            mind.values.append(DEFAULT_VALUE)
            mind.goals.append(DEFAULT_GOAL)
            mind.priorities.update(DEFAULT_PRIORITIES)
            mind.awareness_level = awareness_level
            mind.coherence_level = self.config.initial_coherence
            mind.evolution_points = 0
            mind.last_update_time = ctx.timestamp
            mind.is_initialized = True

            self.store.emit(
                ctx, "ConsciousnessInitialized", character_id,
                awareness_level=awareness_level,
            )
        logger.info("consciousness initialized char=%d awareness=%d", character_id, awareness_level)
        return mind.model_copy(deep=True)

    def evolve_consciousness(
        self,
        character_id: int,
        experience: str,
        outcome: str,
        caller: str = DEFAULT_CALLER,
    ) -> EvolutionResult:
        """
        Learn from an experience.

        Every evolution becomes a belief and a successful Decision, raises
        awareness and evolution points, then rolls for a breakthrough.
        """
        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_id)
            mind = self._require_initialized(character_id)
            ready_at = mind.last_update_time + self.config.cooldown_seconds
            if ctx.timestamp < ready_at:
                raise CooldownNotElapsed(
                    f"Character {character_id} can evolve again in "
                    f"{ready_at - ctx.timestamp}s",
                    character_id,
                )

            mind.beliefs.append(experience)

            confidence = min(
                self.config.max_confidence,
                (mind.awareness_level + mind.coherence_level) // 2,
            )
            decision = Decision(
                context=experience,
                reasoning=EVOLUTION_REASONING,
                outcome=outcome,
                timestamp=ctx.timestamp,
                confidence=confidence,
                success=True,
            )
            mind.decision_history.append(decision)
            self.store.emit(
                ctx, "DecisionMade", character_id,
                context=experience, outcome=outcome, confidence=confidence,
            )

            impact = 1 + mind.coherence_level // 20
            if experience in mind.goals:
                impact += self.config.goal_match_bonus

            mind.awareness_level = min(100, mind.awareness_level + impact)
            mind.evolution_points += impact
            mind.last_update_time = ctx.timestamp

            result = EvolutionResult(
                character_id=character_id,
                decision=decision,
                evolution_impact=impact,
                awareness_level=mind.awareness_level,
                evolution_points=mind.evolution_points,
            )
            self._check_breakthrough(ctx, character_id, mind, experience, result)
            result.evolution_points = mind.evolution_points

            self.store.emit(
                ctx, "ConsciousnessEvolved", character_id,
                experience=experience,
                evolution_impact=impact,
                awareness_level=mind.awareness_level,
                evolution_points=mind.evolution_points,
            )
        logger.info(
            "consciousness evolved char=%d impact=%d awareness=%d points=%d",
            character_id, impact, result.awareness_level, result.evolution_points,
        )
        return result

    def _check_breakthrough(
        self,
        ctx: BlockContext,
        character_id: int,
        mind: ConsciousnessRecord,
        experience: str,
        result: EvolutionResult,
    ) -> None:
        if experience in mind.achieved_breakthroughs:
            return

        probability = (
            mind.awareness_level * mind.coherence_level // 100
            + mind.evolution_points // 100
        )
        draw = self.seed_source.consciousness_seed(ctx, character_id, experience) % 100
        result.breakthrough_probability = probability
        result.breakthrough_draw = draw
        if draw >= probability:
            return

        mind.achieved_breakthroughs.add(experience)
        mind.evolution_points += self.config.breakthrough_bonus
        result.breakthrough = True
        self.store.emit(
            ctx, "BreakthroughAchieved", character_id,
            experience=experience, bonus=self.config.breakthrough_bonus,
        )
        logger.info("breakthrough char=%d experience=%r", character_id, experience)

    # --- Append-only additions ---

    def add_goal(self, character_id: int, goal: str, caller: str = DEFAULT_CALLER) -> int:
        """Append a goal. Returns the new goal count."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            mind = self._require_initialized(character_id)
            mind.goals.append(goal)
            self.store.emit(ctx, "GoalAdded", character_id, goal=goal)
        return len(mind.goals)

    def add_belief(self, character_id: int, belief: str, caller: str = DEFAULT_CALLER) -> int:
        """Append a belief. Returns the new belief count."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            mind = self._require_initialized(character_id)
            mind.beliefs.append(belief)
            self.store.emit(ctx, "BeliefAdded", character_id, belief=belief)
        return len(mind.beliefs)

    def add_value(
        self, character_id: int, value: str, priority: int, caller: str = DEFAULT_CALLER
    ) -> int:
        """Append a value and set its priority (last write wins). Returns the new value count."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            mind = self._require_initialized(character_id)
            if not 0 <= priority <= 100:
                raise InvalidPriority(
                    f"Priority must be within 0-100, got {priority}", character_id
                )
            mind.values.append(value)
            mind.priorities[value] = priority
            self.store.emit(ctx, "ValueAdded", character_id, value=value, priority=priority)
        return len(mind.values)

    # --- Readers ---

    def get_record(self, character_id: int) -> ConsciousnessRecord:
        return self.store.mind(character_id).model_copy(deep=True)

    def is_initialized(self, character_id: int) -> bool:
        return self.store.mind(character_id).is_initialized

    def get_beliefs(self, character_id: int) -> List[str]:
        return list(self.store.mind(character_id).beliefs)

    def get_values(self, character_id: int) -> List[str]:
        return list(self.store.mind(character_id).values)

    def get_goals(self, character_id: int) -> List[str]:
        return list(self.store.mind(character_id).goals)

    def get_belief_count(self, character_id: int) -> int:
        return len(self.store.mind(character_id).beliefs)

    def get_value_count(self, character_id: int) -> int:
        return len(self.store.mind(character_id).values)

    def get_goal_count(self, character_id: int) -> int:
        return len(self.store.mind(character_id).goals)

    def get_decision_history(self, character_id: int) -> List[Decision]:
        return [d.model_copy() for d in self.store.mind(character_id).decision_history]

    def get_decision_count(self, character_id: int) -> int:
        return len(self.store.mind(character_id).decision_history)

    def get_awareness_level(self, character_id: int) -> int:
        return self.store.mind(character_id).awareness_level

    def get_coherence_level(self, character_id: int) -> int:
        return self.store.mind(character_id).coherence_level

    def get_evolution_points(self, character_id: int) -> int:
        return self.store.mind(character_id).evolution_points

    def has_breakthrough(self, character_id: int, experience: str) -> bool:
        return experience in self.store.mind(character_id).achieved_breakthroughs

    def get_breakthroughs(self, character_id: int) -> List[str]:
        return sorted(self.store.mind(character_id).achieved_breakthroughs)

    def get_priority(self, character_id: int, key: str) -> int:
        """Priority for a key; 0 when the key was never set."""
        mind = self._require_initialized(character_id)
        return mind.priorities.get(key, 0)

    def get_time_until_evolution(self, character_id: int) -> int:
        """Seconds left in the cooldown window, 0 when evolution is allowed."""
        mind = self._require_initialized(character_id)
        ready_at = mind.last_update_time + self.config.cooldown_seconds
        return max(0, ready_at - self.chain.now())
