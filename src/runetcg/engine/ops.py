from __future__ import annotations

from typing import Protocol

from .state import CardInstance, GameState, Pending


class EngineOps(Protocol):
    """Rule primitives the effect executor is allowed to call.

    Implemented by ``runetcg.engine.rules.Rules``; the executor never imports
    the turn or combat modules directly.
    """

    @property
    def state(self) -> GameState: ...

    def log(self, message: str) -> None: ...

    def draw(self, player: int, count: int = 1) -> None: ...

    def damage_creature(self, player: int, slot: int, amount: int, *, from_spell: bool = False) -> int: ...

    def damage_player(self, player: int, amount: int, *, source_player: int | None = None) -> int: ...

    def heal_creature(self, player: int, slot: int, amount: int, *, from_effect: bool = True) -> int: ...

    def heal_player(self, player: int, amount: int, *, from_effect: bool = True) -> int: ...

    def destroy_creature(self, player: int, slot: int) -> None: ...

    def bounce_creature(self, player: int, slot: int) -> None: ...

    def summon_token(self, player: int, card_id: str, slot: int | None = None) -> int | None: ...

    def enter_board(self, player: int, slot: int, instance: CardInstance, *, run_on_play: bool = True) -> None: ...

    def first_empty_slot(self, player: int) -> int | None: ...

    def install_pending(self, pending: Pending) -> None: ...

    def fire_catalyst(self, player: int, slot: int, times: int = 1) -> None: ...
