"""Builders for small, isolated card catalogs and hand-arranged game states."""

from __future__ import annotations

from collections.abc import Sequence

from runetcg.engine import new_game
from runetcg.engine.state import BoardCreature, GameState, MatchConfig, mint_instance
from runetcg.engine.types import CardCatalog, CardDefinition, CardEffect, CardKind, KeywordEffect

# No opening hands, no first draw and no tier locks, so tests decide exactly what is playable.
QUIET = MatchConfig(starting_hand=0, first_player_draws=False, tier_unlock_turns={})


def kw(keyword: str, value: int = 0) -> KeywordEffect:
    return KeywordEffect(keyword=keyword, value=value)  # type: ignore[arg-type]


def creature(
    card_id: str,
    *,
    name: str | None = None,
    rank: int = 1,
    atk: int = 2,
    hp: int = 2,
    creature_type: str | None = None,
    token: bool = False,
    keywords: Sequence[KeywordEffect] = (),
    effects: Sequence[CardEffect] = (),
) -> CardDefinition:
    return CardDefinition(
        id=card_id,
        name=name or card_id,
        kind="CREATURE",
        rank=rank,
        atk=atk,
        hp=hp,
        creature_type=creature_type,
        token=token,
        keywords=tuple(keywords),
        effects=tuple(effects),
    )


def card(card_id: str, kind: CardKind, *, name: str | None = None, **fields: object) -> CardDefinition:
    return CardDefinition(id=card_id, name=name or card_id, kind=kind, **fields)  # type: ignore[arg-type]


def catalog(*cards: CardDefinition) -> CardCatalog:
    return CardCatalog(cards={c.id: c for c in cards})


def empty_game(
    cards: CardCatalog,
    *,
    deck0: Sequence[str] = (),
    deck1: Sequence[str] = (),
    evolutions0: Sequence[str] = (),
    seed: int = 7,
    config: MatchConfig = QUIET,
) -> GameState:
    return new_game(cards, deck0, deck1, seed, evolutions0=evolutions0, config=config)


def give(state: GameState, player: int, card_id: str) -> str:
    """Put a fresh copy of ``card_id`` into a player's hand and return its uid."""
    inst = mint_instance(state, card_id)
    state.players[player].hand.append(inst)
    return inst.uid


def place(state: GameState, player: int, slot: int, card_id: str, *, sick: bool = False) -> BoardCreature:
    card_def = state.catalog.get(card_id)
    creature_ = BoardCreature(
        instance=mint_instance(state, card_id),
        card=card_def,
        current_hp=card_def.hp,
        summoning_sick=sick,
    )
    state.players[player].board[slot] = creature_
    return creature_


def board_names(state: GameState, player: int) -> list[str | None]:
    return [None if c is None else c.card.id for c in state.players[player].board]


def graveyard_ids(state: GameState, player: int) -> list[str]:
    return [inst.card_id for inst in state.players[player].graveyard]
