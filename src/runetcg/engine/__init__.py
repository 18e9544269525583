"""Deterministic, headless rules engine for runetcg.

IMPORTANT: This package never renders anything and must not import any UI toolkit.
"""

from .actions import (
    AcknowledgeRevealAction,
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
from .match import (
    acknowledge_reveal,
    attack,
    begin_sacrifice_summon,
    cancel_pending,
    cast_spell,
    choose_discard,
    confirm_sacrifice,
    creature_stats,
    end_phase,
    new_game,
    pending_target_options,
    play_creature,
    play_evolution,
    play_location,
    play_relic,
    replay,
    resolve_choice,
    resolve_target,
    step,
    summon_with_sacrifice,
    valid_attack_targets,
    winner,
)
from .state import GameState, MatchConfig, Phase
from .targeting import legal_targets
from .types import CardCatalog, CardDefinition, CardEffect, CardKind, Keyword

__all__ = [
    "AcknowledgeRevealAction",
    "AttackAction",
    "CancelPendingAction",
    "CardCatalog",
    "CardDefinition",
    "CardEffect",
    "CardKind",
    "CastSpellAction",
    "DiscardAction",
    "EndPhaseAction",
    "GameState",
    "Keyword",
    "MatchConfig",
    "Phase",
    "PlayCreatureAction",
    "PlayEvolutionAction",
    "PlayLocationAction",
    "PlayRelicAction",
    "ResolveChoiceAction",
    "ResolveTargetAction",
    "SacrificeSummonAction",
    "TargetRef",
    "acknowledge_reveal",
    "attack",
    "begin_sacrifice_summon",
    "cancel_pending",
    "cast_spell",
    "choose_discard",
    "confirm_sacrifice",
    "creature_stats",
    "end_phase",
    "legal_targets",
    "new_game",
    "pending_target_options",
    "play_creature",
    "play_evolution",
    "play_location",
    "play_relic",
    "replay",
    "resolve_choice",
    "resolve_target",
    "step",
    "summon_with_sacrifice",
    "valid_attack_targets",
    "winner",
]
