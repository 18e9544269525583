from __future__ import annotations

from runetcg.engine import (
    TargetRef,
    attack,
    cast_spell,
    creature_stats,
    end_phase,
    play_location,
    valid_attack_targets,
)
from runetcg.engine.types import AtkBuffOnKill, CardEffect, TargetingRule

from support import board_names, card, catalog, creature, empty_game, give, graveyard_ids, kw, place


def _cards():
    return catalog(
        creature("raider", atk=2, hp=2),
        creature("scout", atk=1, hp=2),
        creature("ghost", atk=1, hp=3, keywords=[kw("EVASION")]),
        creature(
            "shade",
            atk=0,
            hp=2,
            keywords=[kw("EVASION")],
            effects=[CardEffect(timing="ON_EVADE", target_type="ATTACKING_CREATURE", damage=2)],
        ),
        creature("urchin", atk=0, hp=3, keywords=[kw("THORNS", 2)]),
        creature("ox", atk=2, hp=4),
        creature("feeble", atk=0, hp=2),
        creature("lancer", atk=5, hp=5, keywords=[kw("PIERCING")]),
        creature("leech", atk=3, hp=3, keywords=[kw("LIFETAP")]),
        creature("twin", atk=2, hp=2, keywords=[kw("DOUBLE_STRIKE")]),
        creature("troll", atk=1, hp=4, keywords=[kw("REGEN", 2)]),
        creature("wisp", atk=1, hp=1),
        creature(
            "cleaver",
            atk=2,
            hp=3,
            effects=[CardEffect(timing="ON_ATTACK", target_type="ALL_ENEMY", damage=1)],
        ),
        creature("charger", atk=2, hp=2, effects=[CardEffect(timing="ON_ATTACK", atk_buff=2)]),
        creature(
            "stalker",
            atk=2,
            hp=3,
            effects=[CardEffect(timing="ON_ATTACK", script=AtkBuffOnKill(type="atk_buff_on_kill", amount=1))],
        ),
        creature("surger", atk=1, hp=2, keywords=[kw("SURGE", 2)]),
        creature(
            "torch",
            atk=1,
            hp=2,
            effects=[CardEffect(timing="END_OF_TURN", target_type="ENEMY_PLAYER", damage=1)],
        ),
        card(
            "chill",
            "FAST_SPELL",
            effects=(
                CardEffect(
                    target_type="TARGET_CREATURE",
                    targeting_rule=TargetingRule(type="ENEMY_CREATURES"),
                    freeze=2,
                ),
            ),
        ),
        card("den", "LOCATION", effects=(CardEffect(timing="ON_DAMAGE", draw=1),), duration=3),
        card("forge", "LOCATION", damage_boost=1, duration=3),
        card("shrine", "LOCATION", duration=2),
    )


def _pass_turn(state):
    for _ in range(3):
        state = end_phase(state)
    return state


def _to_battle(state):
    return end_phase(state)


def test_evasion_dodges_first_attack_but_still_strikes_back() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "raider")
    place(state, 0, 1, "raider")
    place(state, 1, 0, "ghost")
    state = attack(_to_battle(state), 0, TargetRef.creature_target(1, 0))

    assert "ghost evades the attack." in state.log
    assert creature_stats(state, 1, 0) == (1, 3, 3)
    assert creature_stats(state, 0, 0) == (2, 1, 2)
    ghost = state.players[1].board[0]
    assert ghost is not None and ghost.runtime.evaded_this_duel
    assert state.players[1].evaded_this_turn == {0}
    assert state.players[1].enemy_attack_missed_this_turn

    # Automatic evasion is spent; the next attack lands
    state = attack(state, 1, TargetRef.creature_target(1, 0))
    assert creature_stats(state, 1, 0) == (1, 1, 3)


def test_evasion_tracking_lasts_through_defenders_turn() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "raider")
    place(state, 1, 0, "ghost")
    state = attack(_to_battle(state), 0, TargetRef.creature_target(1, 0))

    state = end_phase(end_phase(state))
    assert state.active_player == 1
    assert state.players[1].evaded_this_turn == {0}

    state = _pass_turn(state)
    assert state.players[1].evaded_this_turn == set()
    assert not state.players[1].enemy_attack_missed_this_turn
    ghost = state.players[1].board[0]
    assert ghost is not None and ghost.runtime.evaded_this_duel


def test_on_evade_punishes_the_attacker() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "raider")
    place(state, 1, 0, "shade")
    state = attack(_to_battle(state), 0, TargetRef.creature_target(1, 0))

    assert board_names(state, 0) == [None, None, None]
    assert graveyard_ids(state, 0) == ["raider"]
    assert creature_stats(state, 1, 0) == (0, 2, 2)


def test_thorns_only_when_damage_is_dealt() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "ox")
    place(state, 0, 1, "feeble")
    place(state, 1, 0, "urchin")
    state = _to_battle(state)

    hit = attack(state, 0, TargetRef.creature_target(1, 0))
    assert creature_stats(hit, 0, 0) == (2, 2, 4)
    assert creature_stats(hit, 1, 0) == (0, 1, 3)

    whiff = attack(state, 1, TargetRef.creature_target(1, 0))
    assert creature_stats(whiff, 0, 1) == (0, 2, 2)
    assert creature_stats(whiff, 1, 0) == (0, 3, 3)


def test_piercing_carries_excess_to_player() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "lancer")
    place(state, 1, 0, "scout")
    state = attack(_to_battle(state), 0, TargetRef.creature_target(1, 0))

    assert state.players[1].board[0] is None
    assert state.players[1].life == 17
    # The scout still struck back
    assert creature_stats(state, 0, 0) == (5, 4, 5)


def test_lifetap_heals_on_direct_attack() -> None:
    state = empty_game(_cards())
    state.players[0].life = 15
    place(state, 0, 0, "leech")
    state = attack(_to_battle(state), 0, TargetRef.player_target(1))

    assert state.players[1].life == 17
    assert state.players[0].life == 16


def test_double_strike_allows_two_attacks() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "twin")
    state = _to_battle(state)
    assert TargetRef.player_target(1) in valid_attack_targets(state)

    for _ in range(2):
        state = attack(state, 0, TargetRef.player_target(1))
    assert state.players[1].life == 16

    state = attack(state, 0, TargetRef.player_target(1))
    assert state.log[-1] == "twin has already attacked."
    assert state.players[1].life == 16


def test_location_on_damage_fires_once_per_attacker() -> None:
    state = empty_game(_cards(), deck0=("scout",) * 5)
    place(state, 0, 0, "twin")
    place(state, 0, 1, "raider")
    state = play_location(state, give(state, 0, "den"))
    assert state.players[0].location is not None
    assert state.players[0].hand == []

    state = _to_battle(state)
    state = attack(state, 0, TargetRef.player_target(1))
    state = attack(state, 0, TargetRef.player_target(1))
    assert len(state.players[0].hand) == 1

    state = attack(state, 1, TargetRef.player_target(1))
    assert len(state.players[0].hand) == 2


def test_damage_boost_location_adds_to_player_damage() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "raider")
    state = play_location(state, give(state, 0, "forge"))
    state = attack(_to_battle(state), 0, TargetRef.player_target(1))
    assert state.players[1].life == 17


def test_location_expires_after_its_duration() -> None:
    state = empty_game(_cards())
    state = play_location(state, give(state, 0, "shrine"))

    state = _pass_turn(_pass_turn(state))
    assert state.turn == 3
    loc = state.players[0].location
    assert loc is not None and loc.turns_remaining == 1

    state = _pass_turn(_pass_turn(state))
    assert state.turn == 5
    assert state.players[0].location is None
    assert graveyard_ids(state, 0) == ["shrine"]
    assert "shrine fades away." in state.log


def test_regen_heals_at_start_of_turn() -> None:
    state = empty_game(_cards())
    troll = place(state, 0, 0, "troll")
    troll.current_hp = 1
    state = _pass_turn(_pass_turn(state))
    assert creature_stats(state, 0, 0) == (1, 3, 4)


def test_surge_applies_on_own_turn_only() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "surger")
    state = _pass_turn(_pass_turn(state))
    assert creature_stats(state, 0, 0) == (3, 2, 2)

    state = _pass_turn(state)
    assert state.active_player == 1
    assert creature_stats(state, 0, 0) == (1, 2, 2)


def test_freeze_lasts_through_next_turn() -> None:
    state = empty_game(_cards())
    place(state, 1, 0, "raider")
    state = cast_spell(state, give(state, 0, "chill"), TargetRef.creature_target(1, 0))
    frozen = state.players[1].board[0]
    assert frozen is not None and frozen.runtime.frozen_turns == 2

    state = _to_battle(_pass_turn(state))
    blocked = attack(state, 0, TargetRef.player_target(0))
    assert blocked.log[-1] == "raider is frozen."
    assert blocked.players[0].life == 20

    state = _to_battle(_pass_turn(end_phase(end_phase(state))))
    assert state.active_player == 1
    state = attack(state, 0, TargetRef.player_target(0))
    assert state.players[0].life == 18


def test_end_of_turn_fires_for_active_player_only() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "torch")
    place(state, 1, 0, "torch")
    state = _pass_turn(state)
    assert state.players[1].life == 19
    assert state.players[0].life == 20


def test_attack_fizzles_when_on_attack_kills_the_defender() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "cleaver")
    place(state, 1, 0, "wisp")
    place(state, 1, 1, "ox")
    state = attack(_to_battle(state), 0, TargetRef.creature_target(1, 0))

    assert board_names(state, 1) == [None, "ox", None]
    assert graveyard_ids(state, 1) == ["wisp"]
    assert state.log[-1] == "wisp is gone; the attack fizzles."
    assert creature_stats(state, 0, 0) == (2, 3, 3)
    assert creature_stats(state, 1, 1) == (2, 3, 4)
    assert state.players[0].board[0].runtime.attacks_this_turn == 1


def test_on_attack_buff_applies_to_the_same_attack() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "charger")
    state = attack(_to_battle(state), 0, TargetRef.player_target(1))
    assert "charger gets +2 ATK." in state.log
    assert state.players[1].life == 16


def test_kill_in_battle_grants_attack() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "stalker")
    place(state, 1, 0, "wisp")
    place(state, 1, 1, "ox")
    state = _to_battle(state)

    killed = attack(state, 0, TargetRef.creature_target(1, 0))
    assert "stalker gains +1 ATK." in killed.log
    assert creature_stats(killed, 0, 0) == (3, 2, 3)

    survived = attack(state, 0, TargetRef.creature_target(1, 1))
    assert "stalker gains +1 ATK." not in survived.log
    assert creature_stats(survived, 0, 0) == (2, 1, 3)


def test_stun_blocks_attacks() -> None:
    state = empty_game(_cards())
    raider = place(state, 0, 0, "raider")
    raider.runtime.stunned_turns = 1
    blocked = attack(_to_battle(state), 0, TargetRef.player_target(1))
    assert blocked.log[-1] == "raider is stunned."
    assert blocked.players[1].life == 20
