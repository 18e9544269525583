"""Turn/phase state machine: DRAW -> MAIN -> BATTLE_DECLARE -> END -> next turn."""

from __future__ import annotations

from . import queries
from .rules import Rules


def advance_phase(rules: Rules) -> None:
    state = rules.state
    if state.phase == "DRAW":
        state.phase = "MAIN"
    elif state.phase == "MAIN":
        state.phase = "BATTLE_DECLARE"
    elif state.phase == "BATTLE_DECLARE":
        state.phase = "END"
    else:
        end_turn(rules)
        start_turn(rules, draw=True)
        return
    rules.log(f"{state.players[state.active_player].name} enters the {state.phase} phase.")


def end_turn(rules: Rules) -> None:
    state = rules.state
    p = state.active_player
    rules.fire_board(p, "END_OF_TURN")
    for ps in state.players:
        for c in ps.board:
            if c is None:
                continue
            c.runtime.temp_atk_buff = 0
            c.runtime.surge_buff = 0
    rules.log(f"{state.players[p].name} ends their turn.")
    state.turn += 1
    state.active_player = state.opponent(p)


def start_turn(rules: Rules, *, draw: bool) -> None:
    """Upkeep for the active player, then hand over in MAIN."""
    state = rules.state
    p = state.active_player
    ps = state.players[p]
    state.phase = "DRAW"
    rules.log(f"Turn {state.turn}: {ps.name}.")

    ps.spells_cast_this_turn = 0
    ps.bounced_this_turn.clear()
    ps.location_used_this_turn.clear()
    # Evasion is recorded on the defender and stays readable through its next turn.
    enemy = state.players[state.opponent(p)]
    enemy.evaded_this_turn.clear()
    enemy.enemy_attack_missed_this_turn = False
    ps.triggers_used_this_turn.clear()

    if draw:
        rules.draw(p)

    for slot, c in enumerate(ps.board):
        if c is None:
            continue
        c.summoning_sick = False
        c.runtime.attacks_this_turn = 0
        c.runtime.temp_evade = False
        regen = queries.keyword_value(ps, slot, "REGEN")
        if regen:
            rules.heal_creature(p, slot, regen, from_effect=False)
        c.runtime.surge_buff = queries.keyword_value(ps, slot, "SURGE")
        if c.runtime.frozen_turns > 0:
            c.runtime.frozen_turns -= 1
        if c.runtime.stunned_turns > 0:
            c.runtime.stunned_turns -= 1

    rules.fire_board(p, "START_OF_TURN")

    loc = ps.location
    if loc is not None:
        loc.turns_remaining -= 1
        if loc.turns_remaining <= 0:
            ps.location = None
            ps.graveyard.append(loc.instance)
            rules.log(f"{loc.card.name} fades away.")

    state.phase = "MAIN"
