from __future__ import annotations

from .actions import Action, TargetRef
from .state import BoardCreature, GameState, Pending, PlayerState


def _target_to_dict(t: TargetRef | None) -> dict[str, object] | None:
    if t is None:
        return None
    return {"kind": t.kind, "player": t.player, "slot": t.slot}


def action_to_dict(a: Action) -> dict[str, object]:
    out: dict[str, object] = {"type": type(a).__name__}
    for key, value in vars(a).items():
        if isinstance(value, TargetRef) or value is None:
            out[key] = _target_to_dict(value)
        elif isinstance(value, tuple):
            out[key] = list(value)
        else:
            out[key] = value
    return out


def _creature_to_dict(c: BoardCreature | None) -> dict[str, object] | None:
    if c is None:
        return None
    rt = c.runtime
    return {
        "uid": c.instance.uid,
        "card_id": c.card.id,
        "current_hp": c.current_hp,
        "summoning_sick": c.summoning_sick,
        "temp_atk_buff": rt.temp_atk_buff,
        "perm_atk_buff": rt.perm_atk_buff,
        "surge_buff": rt.surge_buff,
        "hp_bonus": rt.hp_bonus,
        "prevented_damage": rt.prevented_damage,
        "frozen_turns": rt.frozen_turns,
        "stunned_turns": rt.stunned_turns,
        "attacks_this_turn": rt.attacks_this_turn,
        "spell_shield": rt.spell_shield,
        "temp_evade": rt.temp_evade,
        "evaded_this_duel": rt.evaded_this_duel,
        "granted_keywords": [f"{k.keyword}:{k.value}" for k in rt.granted_keywords],
        "satisfied_conditions": sorted(rt.satisfied_conditions),
    }


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "name": p.name,
        "life": p.life,
        "deck": [i.uid for i in p.deck],
        "hand": [i.uid for i in p.hand],
        "graveyard": [i.uid for i in p.graveyard],
        "evolution_pool": [i.uid for i in p.evolution_pool],
        "board": [_creature_to_dict(c) for c in p.board],
        "relics": [{"uid": r.instance.uid, "slot": r.slot} for r in p.relics],
        "location": (
            None
            if p.location is None
            else {"uid": p.location.instance.uid, "turns_remaining": p.location.turns_remaining}
        ),
        "spells_cast_this_turn": p.spells_cast_this_turn,
    }


def _pending_to_dict(pending: Pending | None) -> dict[str, object] | None:
    if pending is None:
        return None
    out: dict[str, object] = {"type": type(pending).__name__}
    for key in ("source_name", "chooser", "player", "remaining", "cards", "uid", "slot", "cost"):
        if hasattr(pending, key):
            value = getattr(pending, key)
            out[key] = list(value) if isinstance(value, tuple) else value
    return out


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current game state."""
    return {
        "seed": state.seed,
        "turn": state.turn,
        "phase": state.phase,
        "active_player": state.active_player,
        "players": [_player_to_dict(p) for p in state.players],
        "pending": _pending_to_dict(state.pending),
        "pending_queue": [_pending_to_dict(p) for p in state.pending_queue],
        "log": list(state.log),
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
