from __future__ import annotations

from . import queries
from .actions import TargetRef
from .rules import Rules
from .state import BoardCreature, GameState
from .types import AtkBuffOnKill


def attack_allowance(state: GameState, player: int, slot: int) -> int:
    return 2 if queries.has_keyword(state.players[player], slot, "DOUBLE_STRIKE") else 1


def valid_attack_targets(state: GameState, attacker_player: int) -> list[TargetRef]:
    """Targets the Guard rule allows; the enemy player only when no Guard is present."""
    defender = state.opponent(attacker_player)
    dps = state.players[defender]
    guards = queries.guard_slots(dps)
    if guards:
        return [TargetRef.creature_target(defender, i) for i in guards]
    targets = [TargetRef.creature_target(defender, i) for i in queries.occupied_slots(dps)]
    targets.append(TargetRef.player_target(defender))
    return targets


def attack_error(state: GameState, attacker_slot: int, target: TargetRef) -> str | None:
    """First failed legality check for this attack, or None when it is legal."""
    p = state.active_player
    ps = state.players[p]
    if state.phase != "BATTLE_DECLARE":
        return "Attacks can only be declared in the battle phase."
    if attacker_slot < 0 or attacker_slot >= len(ps.board):
        return "Invalid attacker slot."
    attacker = ps.board[attacker_slot]
    if attacker is None:
        return "No creature in that slot."
    if attacker.summoning_sick:
        return f"{attacker.name} has summoning sickness."
    if queries.is_frozen(attacker):
        return f"{attacker.name} is frozen."
    if queries.is_stunned(attacker):
        return f"{attacker.name} is stunned."
    if attacker.runtime.attacks_this_turn >= attack_allowance(state, p, attacker_slot):
        return f"{attacker.name} has already attacked."

    enemy = state.opponent(p)
    if target.player != enemy:
        return "Attacks must target the opponent."
    if target.kind == "creature":
        dps = state.players[enemy]
        if target.slot is None or target.slot < 0 or target.slot >= len(dps.board) or dps.board[target.slot] is None:
            return "No creature to attack there."
    if target not in valid_attack_targets(state, p):
        return "A creature with Guard must be attacked first."
    return None


def resolve_attack(rules: Rules, attacker_slot: int, target: TargetRef) -> None:
    """Resolve an attack already known to be legal."""
    state = rules.state
    p = state.active_player
    attacker = state.players[p].board[attacker_slot]
    assert attacker is not None
    attacker.runtime.attacks_this_turn += 1
    defender: BoardCreature | None = None
    if target.kind == "player":
        rules.log(f"{attacker.name} attacks {state.players[target.player].name}.")
    else:
        assert target.slot is not None
        defender = state.players[target.player].board[target.slot]
        assert defender is not None
        rules.log(f"{attacker.name} attacks {defender.name}.")

    rules.fire_creature(p, attacker_slot, "ON_ATTACK")
    if state.players[p].board[attacker_slot] is not attacker:
        return
    if defender is None:
        _direct_attack(rules, attacker_slot, target.player)
        return
    assert target.slot is not None
    if state.players[target.player].board[target.slot] is not defender:
        rules.log(f"{defender.name} is gone; the attack fizzles.")
        return
    _creature_combat(rules, attacker_slot, target.slot)


def _direct_attack(rules: Rules, attacker_slot: int, defender: int) -> None:
    state = rules.state
    p = state.active_player
    ps = state.players[p]
    rules.damage_player(defender, queries.effective_atk(state, p, attacker_slot), source_player=p)
    rules.fire_location_hit(p, attacker_slot)
    if ps.board[attacker_slot] is not None and queries.has_keyword(ps, attacker_slot, "LIFETAP"):
        rules.heal_player(p, 1, from_effect=False)


def _consume_evasion(rules: Rules, defender: BoardCreature, player: int, slot: int) -> bool:
    ps = rules.state.players[player]
    rt = defender.runtime
    if rt.temp_evade:
        rt.temp_evade = False
    elif queries.has_keyword(ps, slot, "EVASION") and not rt.auto_evasion_used:
        rt.auto_evasion_used = True
    else:
        return False
    rt.evaded_this_duel = True
    ps.evaded_this_turn.add(slot)
    ps.enemy_attack_missed_this_turn = True
    rules.log(f"{defender.name} evades the attack.")
    return True


def _reward_kill(rules: Rules, player: int, slot: int, attacker: BoardCreature) -> None:
    ps = rules.state.players[player]
    if ps.board[slot] is not attacker:
        return
    for effect in queries.creature_effects(ps, slot, "ON_ATTACK"):
        if isinstance(effect.script, AtkBuffOnKill) and effect.script.amount > 0:
            attacker.runtime.temp_atk_buff += effect.script.amount
            rules.log(f"{attacker.name} gains +{effect.script.amount} ATK.")


def _creature_combat(rules: Rules, attacker_slot: int, defender_slot: int) -> None:
    state = rules.state
    p = state.active_player
    e = state.opponent(p)
    ps = state.players[p]
    dps = state.players[e]
    attacker = ps.board[attacker_slot]
    defender = dps.board[defender_slot]
    assert attacker is not None and defender is not None

    # Both sides strike with the ATK they had when combat began.
    atk_a = queries.effective_atk(state, p, attacker_slot)
    atk_d = queries.effective_atk(state, e, defender_slot)
    thorns_a = queries.keyword_value(ps, attacker_slot, "THORNS")
    thorns_d = queries.keyword_value(dps, defender_slot, "THORNS")
    piercing = queries.has_keyword(ps, attacker_slot, "PIERCING")
    first_a = queries.has_keyword(ps, attacker_slot, "FIRST_STRIKE")
    first_d = queries.has_keyword(dps, defender_slot, "FIRST_STRIKE")

    evaded = _consume_evasion(rules, defender, e, defender_slot)
    if evaded:
        attacker_ref = TargetRef.creature_target(p, attacker_slot)
        evader_ref = TargetRef.creature_target(e, defender_slot)
        for slot in range(len(dps.board)):
            rules.fire_creature(e, slot, "ON_EVADE", triggering=evader_ref, attacker=attacker_ref)

    def hit_defender() -> None:
        if evaded or dps.board[defender_slot] is not defender:
            return
        hp_before = defender.current_hp
        dealt = rules.damage_creature(e, defender_slot, atk_a)
        if dealt > 0 and thorns_d and ps.board[attacker_slot] is attacker:
            rules.damage_creature(p, attacker_slot, thorns_d)
        if piercing and dps.board[defender_slot] is not defender and atk_a > hp_before:
            rules.damage_player(e, atk_a - hp_before)
        if dps.board[defender_slot] is not defender:
            _reward_kill(rules, p, attacker_slot, attacker)

    def hit_attacker() -> None:
        if ps.board[attacker_slot] is not attacker:
            return
        dealt = rules.damage_creature(p, attacker_slot, atk_d)
        if dealt > 0 and thorns_a and dps.board[defender_slot] is defender:
            rules.damage_creature(e, defender_slot, thorns_a)

    if first_a and not first_d:
        hit_defender()
        if dps.board[defender_slot] is defender:
            hit_attacker()
    elif first_d and not first_a:
        hit_attacker()
        if ps.board[attacker_slot] is attacker:
            hit_defender()
    else:
        # Simultaneous: the defender strikes back even if it has just died.
        hit_defender()
        hit_attacker()
