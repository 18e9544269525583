"""Public state-transition operations.

Every operation takes a ``GameState``, works on a deep copy, and returns the
copy. Illegal requests never raise: they return the copy with one extra log
line explaining why nothing happened.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import replace

from . import queries
from .actions import (
    AcknowledgeRevealAction,
    Action,
    AttackAction,
    CancelPendingAction,
    CastSpellAction,
    DiscardAction,
    EndPhaseAction,
    PlayCreatureAction,
    PlayEvolutionAction,
    PlayLocationAction,
    PlayRelicAction,
    ResolveChoiceAction,
    ResolveTargetAction,
    SacrificeSummonAction,
    TargetRef,
)
from .combat import attack_error, resolve_attack
from .combat import valid_attack_targets as _valid_attack_targets
from .evolution import drop_in, drop_in_error, transform, transform_error
from .rules import Rules
from .state import (
    ActiveLocation,
    AttachedRelic,
    EffectContext,
    GameState,
    MatchConfig,
    PendingChoice,
    PendingDiscard,
    PendingReveal,
    PendingSacrifice,
    PendingTarget,
    Phase,
    PlayerState,
    clone_state,
    mint_instance,
)
from .summon import auto_select_sacrifices, sacrifice_cost, sacrifice_error, summon, tier_error
from .targeting import is_legal_target, legal_targets, needs_chosen_target, rule_for
from .turns import advance_phase, start_turn
from .types import CardCatalog, CardDefinition

logger = logging.getLogger(__name__)


def _begin(state: GameState) -> Rules:
    return Rules(clone_state(state))


def _reject(rules: Rules, message: str) -> GameState:
    rules.log(message)
    logger.debug("rejected: %s", message)
    return rules.state


def _blocked(rules: Rules, *phases: Phase) -> bool:
    """Log and return True when a pending interaction or the phase forbids acting."""
    state = rules.state
    if state.pending is not None:
        rules.log("Finish the pending choice first.")
        return True
    if phases and state.phase not in phases:
        rules.log(f"That is not allowed during the {state.phase} phase.")
        return True
    return False


def _hand_card(rules: Rules, uid: str) -> tuple[int, CardDefinition] | None:
    state = rules.state
    ps = state.players[state.active_player]
    idx = ps.find_in_hand(uid)
    if idx is None:
        rules.log("That card is not in your hand.")
        return None
    card = state.catalog.find(ps.hand[idx].card_id)
    if card is None:
        logger.warning("Card %r in hand is missing from the catalog", ps.hand[idx].card_id)
        rules.log("That card cannot be played.")
        return None
    return idx, card


# -- game setup ----------------------------------------------------------------


def new_game(
    catalog: CardCatalog,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    *,
    evolutions0: Sequence[str] = (),
    evolutions1: Sequence[str] = (),
    config: MatchConfig | None = None,
    names: tuple[str, str] = ("Player 1", "Player 2"),
) -> GameState:
    cfg = config or MatchConfig()
    if cfg.deck_size is not None and (len(deck0) != cfg.deck_size or len(deck1) != cfg.deck_size):
        raise ValueError(f"Decks must be exactly {cfg.deck_size} cards.")
    for card_id in (*deck0, *deck1, *evolutions0, *evolutions1):
        catalog.get(card_id)

    rng = random.Random(seed)
    state = GameState(catalog=catalog, config=cfg, seed=seed, rng=rng, players=[])
    for name, deck, evolutions in ((names[0], deck0, evolutions0), (names[1], deck1, evolutions1)):
        instances = [mint_instance(state, card_id) for card_id in deck]
        rng.shuffle(instances)
        state.players.append(
            PlayerState(
                name=name,
                life=cfg.starting_life,
                deck=instances,
                hand=[],
                board=[None for _ in range(cfg.board_slots)],
                evolution_pool=[mint_instance(state, card_id) for card_id in evolutions],
            )
        )

    rules = Rules(state)
    for _ in range(cfg.starting_hand):
        rules.draw(0)
        rules.draw(1)
    start_turn(rules, draw=cfg.first_player_draws)
    return state


# -- turn flow -------------------------------------------------------------------


def end_phase(state: GameState) -> GameState:
    rules = _begin(state)
    if _blocked(rules):
        return rules.state
    advance_phase(rules)
    return rules.state


def attack(state: GameState, attacker_slot: int, target: TargetRef) -> GameState:
    rules = _begin(state)
    if _blocked(rules):
        return rules.state
    error = attack_error(rules.state, attacker_slot, target)
    if error is not None:
        return _reject(rules, error)
    resolve_attack(rules, attacker_slot, target)
    return rules.state


# -- creatures -------------------------------------------------------------------


def _summon_checks(rules: Rules, uid: str, slot: int) -> tuple[int, CardDefinition, int] | None:
    if _blocked(rules, "MAIN"):
        return None
    found = _hand_card(rules, uid)
    if found is None:
        return None
    idx, card = found
    if card.kind != "CREATURE":
        rules.log(f"{card.name} is not a creature.")
        return None
    locked = tier_error(card, rules.state.turn, rules.state.config, "summon")
    if locked is not None:
        rules.log(locked)
        return None
    ps = rules.state.players[rules.state.active_player]
    if slot < 0 or slot >= len(ps.board):
        rules.log("Invalid slot.")
        return None
    return idx, card, sacrifice_cost(card, rules.state.config)


def play_creature(state: GameState, uid: str, slot: int) -> GameState:
    """Summon from hand, choosing sacrifices automatically for rank 2 and up."""
    rules = _begin(state)
    checked = _summon_checks(rules, uid, slot)
    if checked is None:
        return rules.state
    idx, card, cost = checked
    ps = rules.state.players[rules.state.active_player]
    if cost == 0:
        if ps.board[slot] is not None:
            return _reject(rules, "That slot is occupied.")
        sacrifices: list[int] = []
    else:
        picked = auto_select_sacrifices(ps, slot, cost)
        if picked is None:
            return _reject(rules, f"Not enough creatures to sacrifice for {card.name} ({cost} HP needed).")
        sacrifices = picked
    summon(rules, ps.hand.pop(idx), slot, sacrifices)
    return rules.state


def summon_with_sacrifice(state: GameState, uid: str, slot: int, sacrifice_slots: Sequence[int]) -> GameState:
    rules = _begin(state)
    checked = _summon_checks(rules, uid, slot)
    if checked is None:
        return rules.state
    idx, card, cost = checked
    if cost == 0:
        return _reject(rules, f"{card.name} does not need sacrifices.")
    ps = rules.state.players[rules.state.active_player]
    error = sacrifice_error(ps, slot, sacrifice_slots, cost)
    if error is not None:
        return _reject(rules, error)
    summon(rules, ps.hand.pop(idx), slot, sacrifice_slots)
    return rules.state


def begin_sacrifice_summon(state: GameState, uid: str, slot: int) -> GameState:
    """Ask the player to pick sacrifices for a rank 2+ creature."""
    rules = _begin(state)
    checked = _summon_checks(rules, uid, slot)
    if checked is None:
        return rules.state
    _, card, cost = checked
    if cost == 0:
        return _reject(rules, f"{card.name} does not need sacrifices.")
    p = rules.state.active_player
    rules.install_pending(PendingSacrifice(player=p, uid=uid, slot=slot, cost=cost))
    rules.log(f"Choose creatures with {cost} total HP to sacrifice for {card.name}.")
    return rules.state


def confirm_sacrifice(state: GameState, sacrifice_slots: Sequence[int]) -> GameState:
    rules = _begin(state)
    pending = rules.state.pending
    if not isinstance(pending, PendingSacrifice):
        return _reject(rules, "No summon is waiting for sacrifices.")
    ps = rules.state.players[pending.player]
    idx = ps.find_in_hand(pending.uid)
    if idx is None:
        rules.clear_pending()
        return _reject(rules, "The creature is no longer in hand.")
    error = sacrifice_error(ps, pending.slot, sacrifice_slots, pending.cost)
    if error is not None:
        return _reject(rules, error)
    rules.clear_pending()
    summon(rules, ps.hand.pop(idx), pending.slot, sacrifice_slots)
    return rules.state


def play_evolution(state: GameState, uid: str, slot: int, overwrite: bool = False) -> GameState:
    rules = _begin(state)
    if _blocked(rules, "MAIN"):
        return rules.state
    ps = rules.state.players[rules.state.active_player]
    idx = next((i for i, inst in enumerate(ps.evolution_pool) if inst.uid == uid), None)
    if idx is None:
        return _reject(rules, "That evolution is not in your evolution pool.")
    card = rules.state.catalog.get(ps.evolution_pool[idx].card_id)
    if card.evo_type == "TRANSFORM":
        error = transform_error(rules.state, card, slot)
        if error is not None:
            return _reject(rules, error)
        transform(rules, ps.evolution_pool.pop(idx), card, slot)
    else:
        error = drop_in_error(rules.state, card, slot, overwrite)
        if error is not None:
            return _reject(rules, error)
        drop_in(rules, ps.evolution_pool.pop(idx), slot)
    return rules.state


# -- spells, relics, locations ----------------------------------------------------


def _resolve_spell(rules: Rules, uid: str, target: TargetRef | None) -> None:
    state = rules.state
    p = state.active_player
    ps = state.players[p]
    idx = ps.find_in_hand(uid)
    if idx is None:
        rules.log("The spell is no longer in hand and fizzles.")
        return
    instance = ps.hand.pop(idx)
    card = state.catalog.get(instance.card_id)
    rules.log(f"{ps.name} casts {card.name}.")
    ctx = EffectContext(controller=p, source_name=card.name, from_spell=True)
    for effect in card.effects:
        rules.executor.execute(effect, replace(ctx, target=target) if needs_chosen_target(effect) else ctx)
    ps.graveyard.append(instance)
    rules.record_spell_cast(p)


def cast_spell(state: GameState, uid: str, target: TargetRef | None = None) -> GameState:
    rules = _begin(state)
    if _blocked(rules):
        return rules.state
    found = _hand_card(rules, uid)
    if found is None:
        return rules.state
    _, card = found
    if not card.is_spell:
        return _reject(rules, f"{card.name} is not a spell.")
    allowed = ("MAIN",) if card.kind == "SLOW_SPELL" else ("MAIN", "BATTLE_DECLARE")
    if rules.state.phase not in allowed:
        return _reject(rules, f"{card.name} cannot be cast during the {rules.state.phase} phase.")
    locked = tier_error(card, rules.state.turn, rules.state.config, "cast")
    if locked is not None:
        return _reject(rules, locked)

    p = rules.state.active_player
    targeted = [e for e in card.effects if needs_chosen_target(e)]
    if targeted:
        rule = rule_for(targeted[0])
        if target is None:
            if not legal_targets(rules.state, rule, p):
                return _reject(rules, f"{card.name} has no legal target.")
            rules.install_pending(
                PendingTarget(
                    source_name=card.name,
                    rule=rule,
                    chooser=p,
                    source_kind="SPELL",
                    effects=card.effects,
                    context=EffectContext(controller=p, source_name=card.name, from_spell=True),
                    spell_uid=uid,
                )
            )
            rules.log(f"Choose a target for {card.name}.")
            return rules.state
        if not is_legal_target(rules.state, rule, p, target):
            return _reject(rules, f"Invalid target for {card.name}.")
    _resolve_spell(rules, uid, target if targeted else None)
    return rules.state


def play_relic(state: GameState, uid: str, slot: int) -> GameState:
    rules = _begin(state)
    if _blocked(rules, "MAIN"):
        return rules.state
    found = _hand_card(rules, uid)
    if found is None:
        return rules.state
    idx, card = found
    if card.kind != "RELIC":
        return _reject(rules, f"{card.name} is not a relic.")
    p = rules.state.active_player
    ps = rules.state.players[p]
    if slot < 0 or slot >= len(ps.board) or ps.board[slot] is None:
        return _reject(rules, f"{card.name} must be attached to one of your creatures.")
    if len(ps.relics_on(slot)) >= rules.state.config.max_relics_per_slot:
        return _reject(rules, "That creature cannot hold more relics.")

    creature = ps.board[slot]
    assert creature is not None
    ps.relics.append(AttachedRelic(instance=ps.hand.pop(idx), card=card, slot=slot))
    creature.current_hp += card.hp_bonus
    rules.log(f"{card.name} is attached to {creature.name}.")
    ctx = EffectContext(controller=p, source_name=card.name, source_slot=slot)
    rules.executor.execute_all(card.effects_for("ON_PLAY"), ctx)
    rules.record_spell_cast(p)
    return rules.state


def play_location(state: GameState, uid: str) -> GameState:
    rules = _begin(state)
    if _blocked(rules, "MAIN"):
        return rules.state
    found = _hand_card(rules, uid)
    if found is None:
        return rules.state
    idx, card = found
    if card.kind != "LOCATION":
        return _reject(rules, f"{card.name} is not a location.")
    p = rules.state.active_player
    ps = rules.state.players[p]
    if ps.location is not None:
        ps.graveyard.append(ps.location.instance)
        rules.log(f"{ps.location.card.name} is replaced.")
    duration = card.duration if card.duration is not None else rules.state.config.location_duration
    ps.location = ActiveLocation(instance=ps.hand.pop(idx), card=card, turns_remaining=duration)
    rules.log(f"{ps.name} plays the location {card.name}.")
    ctx = EffectContext(controller=p, source_name=card.name)
    rules.executor.execute_all(card.effects_for("ON_PLAY"), ctx)
    rules.record_spell_cast(p)
    return rules.state


# -- pending interactions ---------------------------------------------------------


def resolve_target(state: GameState, target: TargetRef) -> GameState:
    rules = _begin(state)
    pending = rules.state.pending
    if not isinstance(pending, PendingTarget):
        return _reject(rules, "There is no target to choose.")
    if not is_legal_target(rules.state, pending.rule, pending.chooser, target, pending.context.source_slot):
        return _reject(rules, f"Invalid target for {pending.source_name}.")
    rules.clear_pending()
    if pending.source_kind == "SPELL":
        assert pending.spell_uid is not None
        _resolve_spell(rules, pending.spell_uid, target)
    else:
        rules.executor.execute_all(pending.effects, replace(pending.context, target=target))
    return rules.state


def resolve_choice(state: GameState, option_index: int) -> GameState:
    rules = _begin(state)
    pending = rules.state.pending
    if not isinstance(pending, PendingChoice):
        return _reject(rules, "There is no choice to make.")
    if option_index < 0 or option_index >= len(pending.options):
        return _reject(rules, "Invalid option.")
    option = pending.options[option_index]
    rules.clear_pending()
    rules.log(f"{pending.source_name}: {option.label}.")
    rules.executor.execute_all(option.effects, pending.context)
    return rules.state


def choose_discard(state: GameState, uid: str) -> GameState:
    rules = _begin(state)
    pending = rules.state.pending
    if not isinstance(pending, PendingDiscard):
        return _reject(rules, "There is nothing to discard.")
    ps = rules.state.players[pending.player]
    idx = ps.find_in_hand(uid)
    if idx is None:
        return _reject(rules, "That card is not in hand.")
    instance = ps.hand.pop(idx)
    ps.graveyard.append(instance)
    rules.log(f"{ps.name} discards {rules.state.catalog.get(instance.card_id).name}.")
    remaining = pending.remaining - 1
    if remaining > 0 and ps.hand:
        rules.state.pending = replace(pending, remaining=remaining)
    else:
        rules.clear_pending()
    return rules.state


def acknowledge_reveal(state: GameState) -> GameState:
    rules = _begin(state)
    if not isinstance(rules.state.pending, PendingReveal):
        return _reject(rules, "Nothing is being revealed.")
    rules.clear_pending()
    return rules.state


def cancel_pending(state: GameState) -> GameState:
    rules = _begin(state)
    pending = rules.state.pending
    if pending is None:
        return _reject(rules, "There is nothing to cancel.")
    if isinstance(pending, PendingDiscard):
        return _reject(rules, "A discard cannot be cancelled.")
    if isinstance(pending, PendingTarget) and pending.source_kind == "SPELL":
        rules.log(f"{pending.source_name} is cancelled and stays in hand.")
    elif isinstance(pending, PendingSacrifice):
        rules.log("The summon is cancelled.")
    elif isinstance(pending, PendingReveal):
        rules.log("The reveal is dismissed.")
    else:
        rules.log(f"{pending.source_name} is cancelled.")
    rules.clear_pending()
    return rules.state


# -- queries ---------------------------------------------------------------------


def valid_attack_targets(state: GameState) -> list[TargetRef]:
    return _valid_attack_targets(state, state.active_player)


def pending_target_options(state: GameState) -> list[TargetRef]:
    pending = state.pending
    if not isinstance(pending, PendingTarget):
        return []
    return legal_targets(state, pending.rule, pending.chooser, pending.context.source_slot)


def winner(state: GameState) -> int | None:
    p0, p1 = (ps.life for ps in state.players)
    if p0 <= 0 and p1 <= 0:
        # Double KO: the active player loses and the opponent wins.
        return state.opponent(state.active_player)
    if p0 <= 0:
        return 1
    if p1 <= 0:
        return 0
    return None


# -- action dispatch -----------------------------------------------------------------


def _dispatch(state: GameState, action: Action) -> GameState:
    if isinstance(action, EndPhaseAction):
        return end_phase(state)
    if isinstance(action, AttackAction):
        return attack(state, action.attacker_slot, action.target)
    if isinstance(action, PlayCreatureAction):
        return play_creature(state, action.uid, action.slot)
    if isinstance(action, SacrificeSummonAction):
        if isinstance(state.pending, PendingSacrifice):
            return confirm_sacrifice(state, action.sacrifice_slots)
        return summon_with_sacrifice(state, action.uid, action.slot, action.sacrifice_slots)
    if isinstance(action, CastSpellAction):
        return cast_spell(state, action.uid, action.target)
    if isinstance(action, PlayRelicAction):
        return play_relic(state, action.uid, action.slot)
    if isinstance(action, PlayLocationAction):
        return play_location(state, action.uid)
    if isinstance(action, PlayEvolutionAction):
        return play_evolution(state, action.uid, action.slot, action.overwrite)
    if isinstance(action, ResolveTargetAction):
        return resolve_target(state, action.target)
    if isinstance(action, ResolveChoiceAction):
        return resolve_choice(state, action.option_index)
    if isinstance(action, DiscardAction):
        return choose_discard(state, action.uid)
    if isinstance(action, CancelPendingAction):
        return cancel_pending(state)
    if isinstance(action, AcknowledgeRevealAction):
        return acknowledge_reveal(state)
    return _reject(_begin(state), "Unknown action.")


def step(state: GameState, action: Action) -> GameState:
    """Apply one action and record it for replay.

    Deterministic for a given (seed, decks, action sequence).
    """
    if winner(state) is not None:
        return _reject(_begin(state), "The game is already over.")
    new_state = _dispatch(state, action)
    new_state.action_log.append(action)
    return new_state


def replay(
    catalog: CardCatalog,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    actions: Iterable[Action],
    *,
    evolutions0: Sequence[str] = (),
    evolutions1: Sequence[str] = (),
    config: MatchConfig | None = None,
) -> GameState:
    state = new_game(
        catalog,
        deck0,
        deck1,
        seed,
        evolutions0=evolutions0,
        evolutions1=evolutions1,
        config=config,
    )
    for action in actions:
        state = step(state, action)
        if winner(state) is not None:
            break
    return state


def creature_stats(state: GameState, player: int, slot: int) -> tuple[int, int, int] | None:
    """(effective ATK, current HP, max HP) of the creature in a slot."""
    ps = state.players[player]
    c = ps.board[slot]
    if c is None:
        return None
    return queries.effective_atk(state, player, slot), c.current_hp, queries.max_hp(ps, slot)
