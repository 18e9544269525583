"""Read-only derived values: keywords, stats and modifiers of cards in play."""

from __future__ import annotations

from .state import BoardCreature, GameState, PlayerState
from .types import CREATURE_TIMINGS, CardEffect, Keyword, KeywordEffect, Timing


def creature_keywords(ps: PlayerState, slot: int) -> list[KeywordEffect]:
    c = ps.board[slot]
    if c is None:
        return []
    kws = list(c.card.keywords)
    for relic in ps.relics_on(slot):
        kws.extend(relic.card.keywords)
    kws.extend(c.runtime.granted_keywords)
    return kws


def has_keyword(ps: PlayerState, slot: int, keyword: Keyword) -> bool:
    return any(k.keyword == keyword for k in creature_keywords(ps, slot))


def keyword_value(ps: PlayerState, slot: int, keyword: Keyword) -> int:
    return sum(k.value for k in creature_keywords(ps, slot) if k.keyword == keyword)


def creature_effects(ps: PlayerState, slot: int, timing: Timing) -> list[CardEffect]:
    """The creature's own abilities plus those granted by attached relics."""
    c = ps.board[slot]
    if c is None:
        return []
    effects = list(c.card.effects_for(timing))
    if timing in CREATURE_TIMINGS:
        for relic in ps.relics_on(slot):
            effects.extend(relic.card.effects_for(timing))
    return effects


def max_hp(ps: PlayerState, slot: int) -> int:
    c = ps.board[slot]
    if c is None:
        return 0
    return c.card.hp + sum(r.card.hp_bonus for r in ps.relics_on(slot)) + c.runtime.hp_bonus


def effective_atk(state: GameState, player: int, slot: int) -> int:
    ps = state.players[player]
    c = ps.board[slot]
    if c is None:
        return 0
    rt = c.runtime
    atk = c.card.atk + sum(r.card.atk_bonus for r in ps.relics_on(slot))
    atk += rt.temp_atk_buff + rt.perm_atk_buff + rt.surge_buff
    if has_keyword(ps, slot, "AWAKEN") and ps.life < state.players[state.opponent(player)].life:
        atk += 1
    return max(0, atk)


def is_frozen(c: BoardCreature) -> bool:
    return c.runtime.frozen_turns > 0


def is_stunned(c: BoardCreature) -> bool:
    return c.runtime.stunned_turns > 0


def guard_slots(ps: PlayerState) -> list[int]:
    return [i for i, c in enumerate(ps.board) if c is not None and has_keyword(ps, i, "GUARD")]


def occupied_slots(ps: PlayerState) -> list[int]:
    return [i for i, c in enumerate(ps.board) if c is not None]


def heal_boost(ps: PlayerState) -> int:
    return ps.location.card.heal_boost if ps.location is not None else 0


def damage_boost(ps: PlayerState) -> int:
    return ps.location.card.damage_boost if ps.location is not None else 0


def draw_boost(ps: PlayerState) -> int:
    return ps.location.card.draw_boost if ps.location is not None else 0
