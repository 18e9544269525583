"""Effect executor: interprets data-defined ability fragments.

Each timing reads the shared action fields its own way; see the
``_resolve_*`` handlers below.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from . import queries
from .conditions import TARGET_CONDITIONS, all_met, evaluate, fingerprint
from .ops import EngineOps
from .state import (
    BoardCreature,
    EffectContext,
    GameState,
    PendingChoice,
    PendingDiscard,
    PendingReveal,
    PendingTarget,
)
from .targeting import legal_targets, needs_chosen_target, rule_for
from .types import (
    AtkBuffOnKill,
    BuffDuration,
    CardEffect,
    ChoiceOption,
    ConditionalValue,
    CopyRelicKeywords,
    HealIfKill,
    ResurrectToField,
    ResurrectToHand,
    ReturnFromGraveyard,
    Script,
    SearchDeck,
    SelfDamage,
    TriggerCatalyst,
    Unhandled,
)

logger = logging.getLogger(__name__)

CreatureRef = tuple[int, int]

_FRIENDLY_SUBJECTS = ("SELF", "ALL_FRIENDLY", "RANDOM_FRIENDLY")


class EffectExecutor:
    def __init__(self, ops: EngineOps) -> None:
        self._ops = ops
        general = self._resolve_general
        self._handlers: dict[str, Callable[[CardEffect, EffectContext], None]] = {
            "IMMEDIATE": general,
            "ON_PLAY": general,
            "CATALYST": general,
            "ON_EVADE": general,
            "ON_BOUNCE": general,
            "ON_EVOLVE": general,
            "ON_DAMAGED": general,
            "ON_ATTACK": self._resolve_on_attack,
            "DEATH": self._resolve_death,
            "START_OF_TURN": self._resolve_turn_boundary,
            "END_OF_TURN": self._resolve_turn_boundary,
            "ON_DAMAGE": self._resolve_location_hit,
        }

    @property
    def _state(self) -> GameState:
        return self._ops.state

    def execute(self, effect: CardEffect, ctx: EffectContext) -> None:
        state = self._state
        awaiting_target = needs_chosen_target(effect) and ctx.target is None
        conditions = [
            c for c in effect.conditions if not (awaiting_target and c.type in TARGET_CONDITIONS)
        ]
        if not all_met(state, conditions, ctx):
            return

        source = self._source(ctx)
        key = fingerprint(effect)
        if effect.trigger_once_per_condition and source is not None:
            if key in source.runtime.satisfied_conditions:
                return

        turn_key = f"{ctx.source_name}|{ctx.source_slot}|{effect.timing}"
        used = state.players[ctx.controller].triggers_used_this_turn
        if effect.once_per_turn and turn_key in used:
            return

        if effect.optional:
            options = (
                ChoiceOption(label="Activate", effects=(replace(effect, optional=False),)),
                ChoiceOption(label="Decline", effects=()),
            )
            self._install_choice(options, ctx)
            return
        if effect.choice is not None:
            self._install_choice(effect.choice.options, ctx)
            return
        if awaiting_target:
            self._request_target(effect, ctx)
            return

        if effect.once_per_turn:
            used.add(turn_key)
        if effect.trigger_once_per_condition and source is not None:
            source.runtime.satisfied_conditions.add(key)
        self._handlers[effect.timing](effect, ctx)

    def execute_all(self, effects: tuple[CardEffect, ...] | list[CardEffect], ctx: EffectContext) -> None:
        for effect in effects:
            self.execute(effect, ctx)

    # -- pending interactions -------------------------------------------------

    def _install_choice(self, options: tuple[ChoiceOption, ...], ctx: EffectContext) -> None:
        self._ops.install_pending(
            PendingChoice(source_name=ctx.source_name, chooser=ctx.controller, options=options, context=ctx)
        )

    def _request_target(self, effect: CardEffect, ctx: EffectContext) -> None:
        rule = rule_for(effect)
        if not legal_targets(self._state, rule, ctx.controller, ctx.source_slot):
            self._ops.log(f"{ctx.source_name} has no legal target.")
            return
        self._ops.install_pending(
            PendingTarget(
                source_name=ctx.source_name,
                rule=rule,
                chooser=ctx.controller,
                source_kind="ON_PLAY" if effect.timing == "ON_PLAY" else "TRIGGER",
                effects=(effect,),
                context=ctx,
            )
        )

    # -- subjects -------------------------------------------------------------

    def _source(self, ctx: EffectContext) -> BoardCreature | None:
        if ctx.source_slot is None:
            return None
        return self._state.players[ctx.controller].board[ctx.source_slot]

    def _board(self, player: int, effect: CardEffect) -> list[CreatureRef]:
        ps = self._state.players[player]
        return [
            (player, i)
            for i, c in enumerate(ps.board)
            if c is not None and (effect.subject_type is None or c.card.creature_type == effect.subject_type)
        ]

    def _creatures(self, effect: CardEffect, ctx: EffectContext) -> list[CreatureRef]:
        state = self._state
        me = ctx.controller
        enemy = state.opponent(me)
        if ctx.target is not None:
            if ctx.target.kind == "creature" and ctx.target.slot is not None:
                return [(ctx.target.player, ctx.target.slot)]
            return []
        tt = effect.target_type
        if tt == "SELF":
            return [(me, ctx.source_slot)] if ctx.source_slot is not None else []
        if tt == "TRIGGERING" or tt == "ATTACKING_CREATURE":
            ref = ctx.triggering if tt == "TRIGGERING" else ctx.attacker
            if ref is None or ref.slot is None:
                return []
            return [(ref.player, ref.slot)]
        if tt == "ALL_FRIENDLY":
            return self._board(me, effect)
        if tt == "ALL_ENEMY":
            return self._board(enemy, effect)
        if tt == "ALL_CREATURES":
            return self._board(me, effect) + self._board(enemy, effect)
        if tt == "RANDOM_FRIENDLY":
            candidates = self._board(me, effect)
            return [state.rng.choice(candidates)] if candidates else []
        return []

    def _players(self, effect: CardEffect, ctx: EffectContext, *, hostile: bool) -> list[int]:
        me = ctx.controller
        if ctx.target is not None:
            return [ctx.target.player] if ctx.target.kind == "player" else []
        tt = effect.target_type
        if tt == "SELF_PLAYER":
            return [me]
        if tt == "ENEMY_PLAYER":
            return [self._state.opponent(me)]
        if tt == "TARGET_PLAYER":
            return [self._state.opponent(me)] if hostile else [me]
        return []

    def _amount(self, base: int, conditional: ConditionalValue | None, ctx: EffectContext) -> int:
        if conditional is None:
            return base
        if evaluate(self._state, conditional.condition, ctx):
            return conditional.bonus
        return conditional.base

    # -- timing handlers --------------------------------------------------------

    def _resolve_general(self, effect: CardEffect, ctx: EffectContext) -> None:
        ops = self._ops
        creatures = self._creatures(effect, ctx)

        damage = self._amount(effect.damage, effect.conditional_damage, ctx)
        if isinstance(effect.script, HealIfKill):
            self._heal_if_kill(effect.script, damage, creatures, ctx)
        elif damage > 0:
            for p, s in creatures:
                ops.damage_creature(p, s, damage, from_spell=ctx.from_spell)
            for player in self._players(effect, ctx, hostile=True):
                ops.damage_player(player, damage, source_player=ctx.controller)

        heal = self._amount(effect.heal, effect.conditional_heal, ctx)
        if heal > 0:
            for p, s in creatures:
                ops.heal_creature(p, s, heal)
            for player in self._players(effect, ctx, hostile=False):
                ops.heal_player(player, heal)

        atk = self._amount(effect.atk_buff, effect.conditional_atk_buff, ctx)
        for p, s in creatures:
            if atk:
                self._buff_atk(p, s, atk, effect.buff_duration)
            if effect.hp_buff:
                self._buff_hp(p, s, effect.hp_buff)
            self._apply_statuses(effect, p, s)

        self._controller_actions(effect, ctx)

        for p, s in creatures:
            if effect.destroy:
                ops.destroy_creature(p, s)
            elif effect.bounce:
                ops.bounce_creature(p, s)

    def _resolve_on_attack(self, effect: CardEffect, ctx: EffectContext) -> None:
        enemy = self._state.opponent(ctx.controller)
        damage = self._amount(effect.damage, effect.conditional_damage, ctx)
        if damage > 0 and effect.target_type == "ALL_ENEMY":
            for p, s in self._board(enemy, effect):
                self._ops.damage_creature(p, s, damage)
        atk = self._amount(effect.atk_buff, effect.conditional_atk_buff, ctx)
        if atk and ctx.source_slot is not None:
            self._buff_atk(ctx.controller, ctx.source_slot, atk, effect.buff_duration)
        heal = self._amount(effect.heal, effect.conditional_heal, ctx)
        if heal > 0 and effect.target_type == "SELF_PLAYER":
            self._ops.heal_player(ctx.controller, heal)
        self._draw(effect, ctx)

    def _resolve_death(self, effect: CardEffect, ctx: EffectContext) -> None:
        enemy = self._state.opponent(ctx.controller)
        heal = self._amount(effect.heal, effect.conditional_heal, ctx)
        if heal > 0:
            self._ops.heal_player(ctx.controller, heal)
        damage = self._amount(effect.damage, effect.conditional_damage, ctx)
        if damage > 0:
            if effect.target_type in ("TARGET_PLAYER", "ENEMY_PLAYER"):
                self._ops.damage_player(enemy, damage, source_player=ctx.controller)
            elif effect.target_type == "ALL_ENEMY":
                for p, s in self._board(enemy, effect):
                    self._ops.damage_creature(p, s, damage)
        self._draw(effect, ctx)
        if effect.summon_token is not None:
            self._summon_tokens(effect, ctx)
        if effect.script is not None:
            self._run_script(effect.script, ctx)

    def _resolve_turn_boundary(self, effect: CardEffect, ctx: EffectContext) -> None:
        enemy = self._state.opponent(ctx.controller)
        creatures = self._creatures(effect, ctx) if effect.target_type in _FRIENDLY_SUBJECTS else []

        heal = self._amount(effect.heal, effect.conditional_heal, ctx)
        if heal > 0:
            for p, s in creatures:
                self._ops.heal_creature(p, s, heal)
            if effect.target_type == "SELF_PLAYER":
                self._ops.heal_player(ctx.controller, heal)

        damage = self._amount(effect.damage, effect.conditional_damage, ctx)
        if damage > 0:
            if effect.target_type in ("TARGET_PLAYER", "ENEMY_PLAYER"):
                self._ops.damage_player(enemy, damage, source_player=ctx.controller)
            elif effect.target_type == "ALL_ENEMY":
                for p, s in self._board(enemy, effect):
                    self._ops.damage_creature(p, s, damage)

        atk = self._amount(effect.atk_buff, effect.conditional_atk_buff, ctx)
        if atk:
            for p, s in creatures:
                self._buff_atk(p, s, atk, effect.buff_duration)
        self._draw(effect, ctx)

    def _resolve_location_hit(self, effect: CardEffect, ctx: EffectContext) -> None:
        damage = self._amount(effect.damage, effect.conditional_damage, ctx)
        if damage > 0:
            self._ops.damage_player(self._state.opponent(ctx.controller), damage, source_player=ctx.controller)
        heal = self._amount(effect.heal, effect.conditional_heal, ctx)
        if heal > 0:
            self._ops.heal_player(ctx.controller, heal)
        self._draw(effect, ctx)

    # -- action helpers ---------------------------------------------------------

    def _heal_if_kill(
        self, script: HealIfKill, damage: int, creatures: list[CreatureRef], ctx: EffectContext
    ) -> None:
        for p, s in creatures:
            board = self._state.players[p].board
            before = board[s]
            if before is None:
                continue
            self._ops.damage_creature(p, s, damage, from_spell=ctx.from_spell)
            # Death has fully resolved inside damage_creature by now.
            if board[s] is not before:
                self._ops.heal_player(ctx.controller, script.heal)

    def _buff_atk(self, player: int, slot: int, amount: int, duration: BuffDuration) -> None:
        c = self._state.players[player].board[slot]
        if c is None:
            return
        if duration == "PERMANENT":
            c.runtime.perm_atk_buff += amount
        else:
            c.runtime.temp_atk_buff += amount
        sign = "+" if amount > 0 else ""
        self._ops.log(f"{c.name} gets {sign}{amount} ATK.")

    def _buff_hp(self, player: int, slot: int, amount: int) -> None:
        c = self._state.players[player].board[slot]
        if c is None:
            return
        c.runtime.hp_bonus += amount
        c.current_hp += amount
        self._ops.log(f"{c.name} gets +{amount} HP.")

    def _apply_statuses(self, effect: CardEffect, player: int, slot: int) -> None:
        c = self._state.players[player].board[slot]
        if c is None:
            return
        rt = c.runtime
        if effect.stun:
            rt.stunned_turns = max(rt.stunned_turns, effect.stun)
            self._ops.log(f"{c.name} is stunned.")
        if effect.freeze:
            rt.frozen_turns = max(rt.frozen_turns, effect.freeze)
            self._ops.log(f"{c.name} is frozen.")
        if effect.shield:
            rt.prevented_damage += effect.shield
            self._ops.log(f"{c.name} will prevent the next {effect.shield} damage.")
        if effect.grant_evasion:
            rt.temp_evade = True
            self._ops.log(f"{c.name} will evade the next attack.")

    def _draw(self, effect: CardEffect, ctx: EffectContext) -> None:
        count = self._amount(effect.draw, effect.conditional_draw, ctx)
        if count > 0:
            ps = self._state.players[ctx.controller]
            self._ops.draw(ctx.controller, count + queries.draw_boost(ps))

    def _controller_actions(self, effect: CardEffect, ctx: EffectContext) -> None:
        self._draw(effect, ctx)
        if effect.discard > 0:
            self._request_discard(ctx.controller, effect.discard, ctx.source_name)
        if effect.peek_hand is not None:
            self._peek(effect, ctx)
        if effect.summon_token is not None:
            self._summon_tokens(effect, ctx)
        if effect.script is not None and not isinstance(effect.script, HealIfKill):
            self._run_script(effect.script, ctx)

    def _request_discard(self, player: int, count: int, source_name: str) -> None:
        hand = self._state.players[player].hand
        if not hand:
            self._ops.log(f"No cards to discard for {source_name}.")
            return
        self._ops.install_pending(
            PendingDiscard(player=player, source_name=source_name, remaining=min(count, len(hand)))
        )

    def _peek(self, effect: CardEffect, ctx: EffectContext) -> None:
        peek = effect.peek_hand
        assert peek is not None
        owner = self._state.opponent(ctx.controller) if peek.target == "OPPONENT" else ctx.controller
        hand = self._state.players[owner].hand
        shown = hand if peek.reveal_count is None else hand[: peek.reveal_count]
        names = tuple(self._state.catalog.get(inst.card_id).name for inst in shown)
        if not names:
            self._ops.log(f"{ctx.source_name} reveals an empty hand.")
            return
        self._ops.install_pending(
            PendingReveal(viewer=ctx.controller, owner=owner, source_name=ctx.source_name, cards=names)
        )

    def _summon_tokens(self, effect: CardEffect, ctx: EffectContext) -> None:
        token = effect.summon_token
        assert token is not None
        for _ in range(max(0, token.count)):
            slot = None
            if token.to == "BOUNCED_SLOT" and ctx.bounced_slot is not None:
                if self._state.players[ctx.controller].board[ctx.bounced_slot] is None:
                    slot = ctx.bounced_slot
            if self._ops.summon_token(ctx.controller, token.card_id, slot) is None:
                break

    # -- scripts ------------------------------------------------------------------

    def _top_index(self, player: int, match: Callable[[str], bool]) -> int | None:
        graveyard = self._state.players[player].graveyard
        for i in range(len(graveyard) - 1, -1, -1):
            if match(graveyard[i].card_id):
                return i
        return None

    def _is_creature_card(self, card_id: str) -> bool:
        card = self._state.catalog.find(card_id)
        return card is not None and card.is_creature

    def _run_script(self, script: Script, ctx: EffectContext) -> None:
        state = self._state
        ops = self._ops
        me = ctx.controller
        ps = state.players[me]

        if isinstance(script, ResurrectToField):
            slot = ops.first_empty_slot(me)
            idx = self._top_index(me, self._is_creature_card)
            if slot is None or idx is None:
                ops.log(f"{ctx.source_name} finds nothing to resurrect.")
                return
            inst = ps.graveyard.pop(idx)
            ops.enter_board(me, slot, inst, run_on_play=False)
            ops.log(f"{state.catalog.get(inst.card_id).name} returns to the field.")
        elif isinstance(script, ResurrectToHand):
            idx = self._top_index(me, self._is_creature_card)
            if idx is None:
                ops.log(f"{ctx.source_name} finds nothing to return.")
                return
            inst = ps.graveyard.pop(idx)
            ps.hand.append(inst)
            ops.log(f"{state.catalog.get(inst.card_id).name} returns to hand.")
        elif isinstance(script, SelfDamage):
            ops.damage_player(me, script.amount)
        elif isinstance(script, SearchDeck):
            for i, inst in enumerate(ps.deck[: script.look]):
                card = state.catalog.get(inst.card_id)
                if card.kind == script.kind and script.tag in card.name:
                    ps.hand.append(ps.deck.pop(i))
                    ops.log(f"{ctx.source_name} finds {card.name}.")
                    return
            ops.log(f"{ctx.source_name} finds nothing.")
        elif isinstance(script, ReturnFromGraveyard):

            def matches(card_id: str) -> bool:
                card = state.catalog.find(card_id)
                return card is not None and card.kind == script.kind and script.tag in card.name

            idx = self._top_index(me, matches)
            if idx is None:
                ops.log(f"{ctx.source_name} finds nothing to return.")
                return
            inst = ps.graveyard.pop(idx)
            ps.hand.append(inst)
            ops.log(f"{state.catalog.get(inst.card_id).name} returns to hand.")
        elif isinstance(script, CopyRelicKeywords):
            source = self._source(ctx)
            if source is None:
                return
            # Relics on the source already apply to it; a keyword is only granted once.
            granted = source.runtime.granted_keywords
            copied = []
            for relic in ps.relics:
                if relic.slot == ctx.source_slot or (script.tag and script.tag not in relic.card.name):
                    continue
                for kw in relic.card.keywords:
                    if kw not in granted and kw not in copied:
                        copied.append(kw)
            granted.extend(copied)
            if copied:
                ops.log(f"{source.name} copies {len(copied)} relic keyword(s).")
        elif isinstance(script, TriggerCatalyst):
            t = ctx.target
            if t is None or t.kind != "creature" or t.slot is None or t.player != me:
                return
            ops.fire_catalyst(me, t.slot)
        elif isinstance(script, AtkBuffOnKill):
            # Resolved by combat when the creature destroys a defender.
            return
        elif isinstance(script, Unhandled):
            logger.warning("Unhandled script %r on %s", script.tag, ctx.source_name)
