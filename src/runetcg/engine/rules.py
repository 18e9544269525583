"""Mutating rule primitives bound to one freshly cloned game state.

``Rules`` implements ``EngineOps`` for the effect executor, and is what the
combat, summon, evolution and turn modules drive.
"""

from __future__ import annotations

import logging

from . import queries
from .actions import TargetRef
from .effects import EffectExecutor
from .state import (
    BoardCreature,
    CardInstance,
    EffectContext,
    GameState,
    Pending,
    mint_instance,
)
from .types import Timing

logger = logging.getLogger(__name__)


class Rules:
    def __init__(self, state: GameState) -> None:
        self._state = state
        self.executor = EffectExecutor(self)
        # Slots held open while a summon resolves its sacrifices.
        self.reserved: set[tuple[int, int]] = set()

    @property
    def state(self) -> GameState:
        return self._state

    def log(self, message: str) -> None:
        self._state.log.append(message)
        logger.debug(message)

    # -- pending interactions -------------------------------------------------

    def install_pending(self, pending: Pending) -> None:
        if self._state.pending is None:
            self._state.pending = pending
        else:
            self._state.pending_queue.append(pending)

    def clear_pending(self) -> None:
        queue = self._state.pending_queue
        self._state.pending = queue.pop(0) if queue else None

    # -- cards ------------------------------------------------------------------

    def draw(self, player: int, count: int = 1) -> None:
        ps = self._state.players[player]
        for _ in range(count):
            if not ps.deck:
                self.log(f"{ps.name} has no cards left to draw.")
                return
            ps.hand.append(ps.deck.pop(0))
            self.log(f"{ps.name} draws a card.")

    def first_empty_slot(self, player: int) -> int | None:
        for i, c in enumerate(self._state.players[player].board):
            if c is None and (player, i) not in self.reserved:
                return i
        return None

    def enter_board(self, player: int, slot: int, instance: CardInstance, *, run_on_play: bool = True) -> None:
        ps = self._state.players[player]
        card = self._state.catalog.get(instance.card_id)
        creature = BoardCreature(instance=instance, card=card, current_hp=card.hp)
        ps.board[slot] = creature
        creature.summoning_sick = not queries.has_keyword(ps, slot, "SWIFT")
        creature.runtime.spell_shield = queries.has_keyword(ps, slot, "SPELL_SHIELD")
        creature.runtime.surge_buff = queries.keyword_value(ps, slot, "SURGE")
        self.log(f"{ps.name} summons {card.name}.")
        if run_on_play:
            ctx = EffectContext(controller=player, source_name=card.name, source_slot=slot)
            self.executor.execute_all(card.effects_for("ON_PLAY"), ctx)

    def summon_token(self, player: int, card_id: str, slot: int | None = None) -> int | None:
        card = self._state.catalog.find(card_id)
        if card is None:
            logger.warning("Unknown token card id %r", card_id)
            return None
        if slot is None:
            slot = self.first_empty_slot(player)
        if slot is None:
            self.log(f"No room to summon {card.name}.")
            return None
        self.enter_board(player, slot, mint_instance(self._state, card_id))
        return slot

    # -- life -------------------------------------------------------------------

    def damage_player(self, player: int, amount: int, *, source_player: int | None = None) -> int:
        if amount <= 0:
            return 0
        ps = self._state.players[player]
        if source_player is not None and source_player != player:
            amount += queries.damage_boost(self._state.players[source_player])
        before = ps.life
        ps.life = max(0, ps.life - amount)
        self.log(f"{ps.name} takes {amount} damage.")
        return before - ps.life

    def heal_player(self, player: int, amount: int, *, from_effect: bool = True) -> int:
        if amount <= 0:
            return 0
        ps = self._state.players[player]
        if from_effect:
            amount += queries.heal_boost(ps)
        before = ps.life
        ps.life = min(self._state.config.max_life, ps.life + amount)
        healed = ps.life - before
        if healed > 0:
            self.log(f"{ps.name} heals {healed}.")
        return healed

    def heal_creature(self, player: int, slot: int, amount: int, *, from_effect: bool = True) -> int:
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None or amount <= 0:
            return 0
        if from_effect:
            amount += queries.heal_boost(ps)
        before = c.current_hp
        c.current_hp = min(queries.max_hp(ps, slot), c.current_hp + amount)
        healed = c.current_hp - before
        if healed > 0:
            self.log(f"{c.name} heals {healed}.")
        return healed

    # -- creatures ----------------------------------------------------------------

    def damage_creature(self, player: int, slot: int, amount: int, *, from_spell: bool = False) -> int:
        """Apply damage through shield, armor and prevention; resolves death in place.

        Returns the HP actually lost.
        """
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None or amount <= 0:
            return 0
        rt = c.runtime
        if from_spell and rt.spell_shield:
            rt.spell_shield = False
            self.log(f"{c.name}'s spell shield absorbs the spell.")
            return 0

        remaining = max(0, amount - queries.keyword_value(ps, slot, "ARMOR"))
        if remaining and rt.prevented_damage:
            absorbed = min(rt.prevented_damage, remaining)
            rt.prevented_damage -= absorbed
            remaining -= absorbed
        if remaining <= 0:
            self.log(f"{c.name} takes no damage.")
            return 0

        c.current_hp -= remaining
        self.log(f"{c.name} takes {remaining} damage.")
        # Damage reactions run before the death check, even on a lethal hit.
        ctx = EffectContext(controller=player, source_name=c.name, source_slot=slot)
        self.executor.execute_all(queries.creature_effects(ps, slot, "ON_DAMAGED"), ctx)
        if ps.board[slot] is c and c.current_hp <= 0:
            self._kill(player, slot)
        return remaining

    def destroy_creature(self, player: int, slot: int) -> None:
        c = self._state.players[player].board[slot]
        if c is None:
            return
        self.log(f"{c.name} is destroyed.")
        self._kill(player, slot)

    def sacrifice(self, player: int, slot: int) -> int:
        c = self._state.players[player].board[slot]
        if c is None:
            return 0
        self.log(f"{c.name} is sacrificed.")
        hp = c.current_hp
        self._kill(player, slot)
        return hp

    def _kill(self, player: int, slot: int) -> None:
        ps = self._state.players[player]
        c = ps.board[slot]
        assert c is not None
        death_effects = queries.creature_effects(ps, slot, "DEATH")
        ps.board[slot] = None
        self.discard_relics(player, slot)
        if not c.card.token:
            ps.graveyard.append(c.instance)
        self.log(f"{c.name} dies.")
        ctx = EffectContext(controller=player, source_name=c.name, source_slot=slot)
        self.executor.execute_all(death_effects, ctx)

    def remove_to_graveyard(self, player: int, slot: int) -> None:
        """Displace a creature without it dying (no death abilities)."""
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None:
            return
        ps.board[slot] = None
        self.discard_relics(player, slot)
        if not c.card.token:
            ps.graveyard.append(c.instance)
        self.log(f"{c.name} is put into the graveyard.")

    def discard_relics(self, player: int, slot: int) -> None:
        ps = self._state.players[player]
        for relic in ps.relics_on(slot):
            ps.relics.remove(relic)
            ps.graveyard.append(relic.instance)
            self.log(f"{relic.card.name} goes to the graveyard.")

    def bounce_creature(self, player: int, slot: int) -> None:
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None:
            return
        bounce_effects = queries.creature_effects(ps, slot, "ON_BOUNCE")
        ps.board[slot] = None
        self.discard_relics(player, slot)
        if c.card.token:
            self.log(f"{c.name} is returned and vanishes.")
        elif c.card.kind == "EVOLUTION":
            ps.evolution_pool.append(c.instance)
            self.log(f"{c.name} returns to the evolution pool.")
        else:
            ps.hand.append(c.instance)
            self.log(f"{c.name} returns to {ps.name}'s hand.")
        ps.bounced_this_turn.add(slot)
        ctx = EffectContext(controller=player, source_name=c.name, source_slot=slot, bounced_slot=slot)
        self.executor.execute_all(bounce_effects, ctx)

    # -- triggers -----------------------------------------------------------------

    def fire_board(self, player: int, timing: Timing) -> None:
        ps = self._state.players[player]
        for slot in range(len(ps.board)):
            c = ps.board[slot]
            if c is None:
                continue
            effects = queries.creature_effects(ps, slot, timing)
            if effects:
                ctx = EffectContext(controller=player, source_name=c.name, source_slot=slot)
                self.executor.execute_all(effects, ctx)

    def fire_creature(
        self,
        player: int,
        slot: int,
        timing: Timing,
        *,
        triggering: TargetRef | None = None,
        attacker: TargetRef | None = None,
    ) -> None:
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None:
            return
        effects = queries.creature_effects(ps, slot, timing)
        if effects:
            ctx = EffectContext(
                controller=player,
                source_name=c.name,
                source_slot=slot,
                triggering=triggering,
                attacker=attacker,
            )
            self.executor.execute_all(effects, ctx)

    def fire_catalyst(self, player: int, slot: int, times: int = 1) -> None:
        ps = self._state.players[player]
        c = ps.board[slot]
        if c is None:
            return
        effects = queries.creature_effects(ps, slot, "CATALYST")
        if not effects:
            return
        self.log(f"Catalyst: {c.name} triggers.")
        ctx = EffectContext(controller=player, source_name=c.name, source_slot=slot)
        for _ in range(times):
            self.executor.execute_all(effects, ctx)

    def record_spell_cast(self, player: int) -> None:
        """Count a spell-speed card; the first one each turn fires Catalyst."""
        ps = self._state.players[player]
        ps.spells_cast_this_turn += 1
        if ps.spells_cast_this_turn != 1:
            return
        echo = any(queries.has_keyword(ps, i, "CATALYST_ECHO") for i in queries.occupied_slots(ps))
        times = 2 if echo else 1
        for slot in range(len(ps.board)):
            self.fire_catalyst(player, slot, times)

    def fire_location_hit(self, player: int, attacker_slot: int) -> None:
        ps = self._state.players[player]
        loc = ps.location
        if loc is None:
            return
        effects = loc.card.effects_for("ON_DAMAGE")
        if not effects or attacker_slot in ps.location_used_this_turn:
            return
        ps.location_used_this_turn.add(attacker_slot)
        ctx = EffectContext(controller=player, source_name=loc.card.name)
        self.executor.execute_all(effects, ctx)
