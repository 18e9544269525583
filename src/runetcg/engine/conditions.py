"""Pure predicates over a game state, used to gate abilities and evolutions.

Unknown condition types fail closed.
"""

from __future__ import annotations

from collections.abc import Iterable

from .state import BoardCreature, EffectContext, GameState
from .types import CardEffect, Condition

# Conditions about the chosen target; checked once the target is known.
TARGET_CONDITIONS: frozenset[str] = frozenset({"TARGET_RANK", "TARGET_HAS_EVADED_THIS_DUEL"})


def _source(state: GameState, ctx: EffectContext) -> BoardCreature | None:
    if ctx.source_slot is None:
        return None
    return state.players[ctx.controller].board[ctx.source_slot]


def _target(state: GameState, ctx: EffectContext) -> BoardCreature | None:
    t = ctx.target
    if t is None or t.kind != "creature" or t.slot is None:
        return None
    return state.players[t.player].board[t.slot]


def evaluate(state: GameState, condition: Condition, ctx: EffectContext) -> bool:
    me = state.players[ctx.controller]
    enemy = state.players[state.opponent(ctx.controller)]
    t = condition.type

    if t == "LIFE_BELOW_OPPONENT":
        return me.life < enemy.life
    if t == "LIFE_AT_MOST":
        return me.life <= condition.value
    if t == "CONTROLS_TYPE_COUNT":
        count = sum(
            1 for c in me.board if c is not None and c.card.creature_type == condition.tag
        )
        return count >= condition.value
    if t == "RELIC_COUNT_ON_SELF":
        if ctx.source_slot is None:
            return False
        relics = [
            r for r in me.relics_on(ctx.source_slot) if condition.tag is None or condition.tag in r.card.name
        ]
        return len(relics) >= condition.value
    if t == "CONTROLS_CREATURE_WITH_RELIC":
        return any(
            me.board[r.slot] is not None and (condition.tag is None or condition.tag in r.card.name)
            for r in me.relics
        )
    if t == "SPELLS_CAST_THIS_TURN":
        return me.spells_cast_this_turn >= condition.value
    if t == "TARGET_RANK":
        target = _target(state, ctx)
        return target is not None and target.card.rank <= condition.value
    if t == "TRIGGERING_IS_SELF":
        trig = ctx.triggering
        return (
            trig is not None
            and trig.kind == "creature"
            and trig.player == ctx.controller
            and trig.slot == ctx.source_slot
        )
    if t == "SELF_HAS_EVADED_THIS_DUEL":
        source = _source(state, ctx)
        return source is not None and source.runtime.evaded_this_duel
    if t == "TARGET_HAS_EVADED_THIS_DUEL":
        target = _target(state, ctx)
        return target is not None and target.runtime.evaded_this_duel
    if t == "ANY_FRIENDLY_EVADED_THIS_TURN":
        return bool(me.evaded_this_turn)
    if t == "FRIENDLY_EVADED_THIS_DUEL":
        count = sum(1 for c in me.board if c is not None and c.runtime.evaded_this_duel)
        return count >= max(1, condition.value)
    if t == "ENEMY_ATTACK_MISSED_THIS_TURN":
        return me.enemy_attack_missed_this_turn
    if t == "ANY_FRIENDLY_BOUNCED_THIS_TURN":
        return bool(me.bounced_this_turn)
    return False


def all_met(state: GameState, conditions: Iterable[Condition], ctx: EffectContext) -> bool:
    return all(evaluate(state, c, ctx) for c in conditions)


def fingerprint(effect: CardEffect) -> str:
    """Stable key for a fragment's condition set, recorded on the source creature."""
    parts = [f"{c.type}:{c.value}:{c.tag or ''}" for c in effect.conditions]
    action = f"{effect.damage}/{effect.heal}/{effect.draw}/{effect.atk_buff}/{effect.hp_buff}"
    return f"{effect.timing}|{','.join(parts)}|{action}"
