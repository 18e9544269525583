from __future__ import annotations

import logging

import pytest

from runetcg.engine import (
    TargetRef,
    acknowledge_reveal,
    cancel_pending,
    cast_spell,
    choose_discard,
    end_phase,
    play_creature,
    resolve_choice,
    resolve_target,
)
from runetcg.engine.state import PendingChoice, PendingDiscard, PendingReveal, PendingTarget, mint_instance
from runetcg.engine.types import (
    CardEffect,
    Choice,
    ChoiceOption,
    Condition,
    HandPeek,
    HealIfKill,
    SearchDeck,
    SelfDamage,
    TargetingRule,
    TokenSummon,
    Unhandled,
)

from support import board_names, card, catalog, creature, empty_game, give, graveyard_ids, kw, place

ENEMY_ONLY = TargetingRule(type="ENEMY_CREATURES")
FRIENDLY = TargetingRule(type="FRIENDLY_CREATURES")


def _cards():
    return catalog(
        creature("filler", atk=1, hp=1),
        creature(
            "sparker",
            keywords=[kw("CATALYST")],
            effects=[CardEffect(timing="CATALYST", target_type="SELF", atk_buff=1)],
        ),
        creature("echoer", atk=1, hp=3, keywords=[kw("CATALYST_ECHO")]),
        creature(
            "pinger",
            keywords=[kw("CATALYST")],
            effects=[
                CardEffect(timing="CATALYST", target_type="TARGET_CREATURE", targeting_rule=ENEMY_ONLY, damage=1)
            ],
        ),
        creature("dummy", atk=0, hp=5),
        creature(
            "bomb",
            atk=1,
            hp=3,
            effects=[CardEffect(timing="DEATH", target_type="TARGET_PLAYER", damage=1)],
        ),
        creature(
            "grudge",
            atk=1,
            hp=5,
            effects=[CardEffect(timing="ON_DAMAGED", target_type="ENEMY_PLAYER", damage=1, once_per_turn=True)],
        ),
        creature(
            "brooder",
            effects=[
                CardEffect(
                    timing="START_OF_TURN",
                    target_type="SELF",
                    atk_buff=1,
                    buff_duration="PERMANENT",
                    conditions=(Condition(type="LIFE_AT_MOST", value=15),),
                    trigger_once_per_condition=True,
                )
            ],
        ),
        creature(
            "caller",
            effects=[
                CardEffect(
                    timing="ON_PLAY",
                    target_type="TARGET_CREATURE",
                    targeting_rule=TargetingRule(type="FRIENDLY_CREATURES", exclude_self=True),
                    optional=True,
                    bounce=True,
                )
            ],
        ),
        creature(
            "oracle",
            effects=[
                CardEffect(
                    timing="ON_PLAY",
                    choice=Choice(
                        options=(
                            ChoiceOption(label="Draw", effects=(CardEffect(draw=1),)),
                            ChoiceOption(label="Mend", effects=(CardEffect(target_type="SELF_PLAYER", heal=3),)),
                        )
                    ),
                )
            ],
        ),
        creature(
            "hatchling",
            effects=[CardEffect(timing="DEATH", summon_token=TokenSummon(card_id="egg"))],
        ),
        creature("egg", rank=0, atk=0, hp=1, token=True),
        card("blade", "RELIC", name="Rusty Blade"),
        card("nothing", "FAST_SPELL"),
        card(
            "zap",
            "FAST_SPELL",
            effects=(CardEffect(target_type="TARGET_CREATURE", targeting_rule=ENEMY_ONLY, damage=1),),
        ),
        card(
            "siphon",
            "SLOW_SPELL",
            effects=(
                CardEffect(
                    target_type="TARGET_CREATURE",
                    targeting_rule=ENEMY_ONLY,
                    damage=3,
                    script=HealIfKill(type="heal_if_kill", heal=2),
                ),
            ),
        ),
        card("insight", "SLOW_SPELL", effects=(CardEffect(draw=2, discard=1),)),
        card("glimpse", "SLOW_SPELL", effects=(CardEffect(peek_hand=HandPeek(target="OPPONENT")),)),
        card(
            "dig",
            "SLOW_SPELL",
            effects=(CardEffect(script=SearchDeck(type="search_deck", look=3, kind="RELIC", tag="Blade")),),
        ),
        card("pact", "FAST_SPELL", effects=(CardEffect(draw=1, script=SelfDamage(type="self_damage", amount=2)),)),
        card("mystery", "FAST_SPELL", effects=(CardEffect(script=Unhandled(type="unhandled", tag="LOOT_3")),)),
    )


def _pass_turn(state):
    for _ in range(3):
        state = end_phase(state)
    return state


def test_catalyst_fires_only_on_first_spell() -> None:
    state = empty_game(_cards())
    sparker = place(state, 0, 0, "sparker")
    first = give(state, 0, "nothing")
    second = give(state, 0, "nothing")

    state = cast_spell(state, first)
    assert state.players[0].board[0].runtime.temp_atk_buff == 1
    assert "Catalyst: sparker triggers." in state.log

    state = cast_spell(state, second)
    assert state.players[0].board[0].runtime.temp_atk_buff == 1
    assert state.players[0].spells_cast_this_turn == 2
    # The input state was never touched
    assert sparker.runtime.temp_atk_buff == 0


def test_catalyst_echo_doubles_catalyst() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "sparker")
    place(state, 0, 1, "echoer")
    uid = give(state, 0, "nothing")
    state = cast_spell(state, uid)
    assert state.players[0].board[0].runtime.temp_atk_buff == 2


def test_catalyst_resets_next_turn_and_temp_buff_expires() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "sparker")
    state = cast_spell(state, give(state, 0, "nothing"))
    state = _pass_turn(_pass_turn(state))
    assert state.players[0].board[0].runtime.temp_atk_buff == 0
    state = cast_spell(state, give(state, 0, "nothing"))
    assert state.players[0].board[0].runtime.temp_atk_buff == 1


def test_pending_queue_and_exclusivity() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "pinger")
    place(state, 0, 1, "pinger")
    place(state, 1, 0, "dummy")
    state = cast_spell(state, give(state, 0, "nothing"))

    assert isinstance(state.pending, PendingTarget)
    assert len(state.pending_queue) == 1

    # Nothing else may happen until the pending target is resolved
    blocked = end_phase(state)
    assert blocked.log[-1] == "Finish the pending choice first."
    assert blocked.phase == "MAIN"

    state = resolve_target(state, TargetRef.creature_target(1, 0))
    assert state.players[1].board[0].current_hp == 4
    assert isinstance(state.pending, PendingTarget)
    assert state.pending_queue == []

    state = resolve_target(state, TargetRef.creature_target(1, 0))
    assert state.players[1].board[0].current_hp == 3
    assert state.pending is None


def test_heal_if_kill_heals_after_death_resolves() -> None:
    state = empty_game(_cards())
    state.players[0].life = 15
    place(state, 1, 0, "bomb")
    uid = give(state, 0, "siphon")

    state = cast_spell(state, uid, TargetRef.creature_target(1, 0))

    # 15 - 1 (bomb's death trigger) + 2 (heal)
    assert state.players[0].life == 16
    assert state.log.index("bomb dies.") < state.log.index("Player 1 heals 2.")


def test_heal_if_kill_needs_a_kill() -> None:
    state = empty_game(_cards())
    state.players[0].life = 15
    place(state, 1, 0, "dummy")
    state = cast_spell(state, give(state, 0, "siphon"), TargetRef.creature_target(1, 0))
    assert state.players[0].life == 15
    assert state.players[1].board[0].current_hp == 2


def test_once_per_turn_trigger() -> None:
    state = empty_game(_cards())
    place(state, 1, 0, "grudge")
    state = cast_spell(state, give(state, 0, "zap"), TargetRef.creature_target(1, 0))
    state = cast_spell(state, give(state, 0, "zap"), TargetRef.creature_target(1, 0))

    assert state.players[1].board[0].current_hp == 3
    assert state.players[0].life == 19


def test_trigger_once_per_condition() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "brooder")
    state.players[0].life = 10

    state = _pass_turn(_pass_turn(state))
    assert state.players[0].board[0].runtime.perm_atk_buff == 1

    state = _pass_turn(_pass_turn(state))
    assert state.players[0].board[0].runtime.perm_atk_buff == 1


def test_optional_ability_can_be_activated() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "filler")
    uid = give(state, 0, "caller")
    state = play_creature(state, uid, 1)

    assert isinstance(state.pending, PendingChoice)
    assert [o.label for o in state.pending.options] == ["Activate", "Decline"]

    state = resolve_choice(state, 0)
    assert isinstance(state.pending, PendingTarget)
    assert state.pending.rule.exclude_self

    # The caller cannot pick itself
    self_pick = resolve_target(state, TargetRef.creature_target(0, 1))
    assert self_pick.log[-1] == "Invalid target for caller."

    state = resolve_target(state, TargetRef.creature_target(0, 0))
    assert board_names(state, 0) == [None, "caller", None]
    assert [inst.card_id for inst in state.players[0].hand] == ["filler"]
    assert state.players[0].bounced_this_turn == {0}


def test_optional_ability_can_be_declined() -> None:
    state = empty_game(_cards())
    place(state, 0, 0, "filler")
    state = play_creature(state, give(state, 0, "caller"), 1)
    state = resolve_choice(state, 1)
    assert state.pending is None
    assert board_names(state, 0) == ["filler", "caller", None]


def test_modal_choice() -> None:
    state = empty_game(_cards(), deck0=["filler", "filler"])
    state.players[0].life = 10
    uid = give(state, 0, "oracle")
    state = play_creature(state, uid, 0)
    assert isinstance(state.pending, PendingChoice)

    drew = resolve_choice(state, 0)
    assert len(drew.players[0].hand) == 1
    assert drew.players[0].life == 10

    mended = resolve_choice(state, 1)
    assert mended.players[0].hand == []
    assert mended.players[0].life == 13

    bad = resolve_choice(state, 5)
    assert bad.log[-1] == "Invalid option."


def test_discard_prompt() -> None:
    state = empty_game(_cards(), deck0=["filler", "filler", "filler"])
    uid = give(state, 0, "insight")
    state = cast_spell(state, uid)

    assert isinstance(state.pending, PendingDiscard)
    assert state.pending.remaining == 1
    assert len(state.players[0].hand) == 2

    refused = cancel_pending(state)
    assert refused.log[-1] == "A discard cannot be cancelled."

    state = choose_discard(state, state.players[0].hand[0].uid)
    assert state.pending is None
    assert len(state.players[0].hand) == 1
    assert graveyard_ids(state, 0) == ["insight", "filler"]


def test_hand_reveal() -> None:
    state = empty_game(_cards())
    give(state, 1, "zap")
    give(state, 1, "dummy")
    state = cast_spell(state, give(state, 0, "glimpse"))

    assert isinstance(state.pending, PendingReveal)
    assert state.pending.cards == ("zap", "dummy")
    assert state.pending.viewer == 0

    state = acknowledge_reveal(state)
    assert state.pending is None


def test_reveal_of_empty_hand_skips_prompt() -> None:
    state = empty_game(_cards())
    state = cast_spell(state, give(state, 0, "glimpse"))
    assert state.pending is None
    assert "glimpse reveals an empty hand." in state.log


def test_search_deck_takes_first_match_from_top() -> None:
    state = empty_game(_cards())
    state.players[0].deck = [mint_instance(state, cid) for cid in ("filler", "filler", "blade", "blade")]
    state = cast_spell(state, give(state, 0, "dig"))

    assert [inst.card_id for inst in state.players[0].hand] == ["blade"]
    assert [inst.card_id for inst in state.players[0].deck] == ["filler", "filler", "blade"]


def test_self_damage_script() -> None:
    state = empty_game(_cards(), deck0=["filler"])
    state = cast_spell(state, give(state, 0, "pact"))
    assert state.players[0].life == 18
    assert len(state.players[0].hand) == 1


def test_unhandled_script_is_logged_and_ignored(caplog: pytest.LogCaptureFixture) -> None:
    state = empty_game(_cards())
    with caplog.at_level(logging.WARNING, logger="runetcg.engine.effects"):
        state = cast_spell(state, give(state, 0, "mystery"))
    assert "LOOT_3" in caplog.text
    assert graveyard_ids(state, 0) == ["mystery"]


def test_death_token_never_reaches_graveyard() -> None:
    state = empty_game(_cards())
    place(state, 1, 0, "hatchling")
    zaps = [give(state, 0, "zap") for _ in range(3)]

    state = cast_spell(state, zaps[0], TargetRef.creature_target(1, 0))
    state = cast_spell(state, zaps[1], TargetRef.creature_target(1, 0))
    assert board_names(state, 1) == ["egg", None, None]

    state = cast_spell(state, zaps[2], TargetRef.creature_target(1, 0))
    assert board_names(state, 1) == [None, None, None]
    assert graveyard_ids(state, 1) == ["hatchling"]
