from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from runetcg.engine.types import (
    AtkBuffOnKill,
    CardCatalog,
    CardDefinition,
    CardEffect,
    Choice,
    ChoiceOption,
    Condition,
    ConditionalValue,
    CopyRelicKeywords,
    HandPeek,
    HealIfKill,
    KeywordEffect,
    ResurrectToField,
    ResurrectToHand,
    ReturnFromGraveyard,
    Script,
    SearchDeck,
    SelfDamage,
    TargetingRule,
    TokenSummon,
    TriggerCatalyst,
    Unhandled,
)

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: e.path)
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _int(obj: Mapping[str, object], key: str, default: int = 0) -> int:
    v = obj.get(key, default)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_int(obj: Mapping[str, object], key: str) -> int | None:
    if obj.get(key) is None:
        return None
    return _int(obj, key)


def _bool(obj: Mapping[str, object], key: str) -> bool:
    v = obj.get(key, False)
    if not isinstance(v, bool):
        raise ContentError(f"Expected bool for {key}")
    return v


def _objects(obj: Mapping[str, object], key: str) -> list[Mapping[str, object]]:
    raw = obj.get(key, [])
    if not isinstance(raw, list):
        raise ContentError(f"Expected list for {key}")
    return [item for item in raw if isinstance(item, dict)]


# Shorthand tags accepted in card data, with the payload they stand for.
_SCRIPT_TAGS: dict[str, Script] = {
    "RESURRECT_TO_FIELD": ResurrectToField(type="resurrect_to_field"),
    "RESURRECT_TO_HAND": ResurrectToHand(type="resurrect_to_hand"),
    "HEAL_IF_KILL": HealIfKill(type="heal_if_kill", heal=1),
    "SELF_DAMAGE": SelfDamage(type="self_damage", amount=2),
    "COPY_RELIC_KEYWORDS": CopyRelicKeywords(type="copy_relic_keywords", tag="Runeblade"),
    "ATK_BUFF_ON_KILL": AtkBuffOnKill(type="atk_buff_on_kill", amount=1),
    "TRIGGER_SINGLE_CATALYST": TriggerCatalyst(type="trigger_catalyst"),
    "SEARCH_TOP_3_FOR_RUNEBLADE_RELIC": SearchDeck(type="search_deck", look=3, kind="RELIC", tag="Runeblade"),
    "RESURRECT_NAMED_TO_HAND_RUNEBLADE_RELIC": ReturnFromGraveyard(
        type="return_from_graveyard", kind="RELIC", tag="Runeblade"
    ),
}


def _parse_script(raw: object) -> Script | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        script = _SCRIPT_TAGS.get(raw)
        if script is None:
            logger.warning("Unknown script tag %r; it will be ignored", raw)
            return Unhandled(type="unhandled", tag=raw)
        return script
    if not isinstance(raw, dict):
        raise ContentError("script must be a tag or an object")
    t = _require_str(raw, "type")
    if t == "resurrect_to_field":
        return ResurrectToField(type="resurrect_to_field")
    if t == "resurrect_to_hand":
        return ResurrectToHand(type="resurrect_to_hand")
    if t == "heal_if_kill":
        return HealIfKill(type="heal_if_kill", heal=_int(raw, "heal", 1))
    if t == "self_damage":
        return SelfDamage(type="self_damage", amount=_int(raw, "amount", 2))
    if t == "search_deck":
        return SearchDeck(
            type="search_deck",
            look=_int(raw, "look", 3),
            kind=_require_str(raw, "kind"),  # type: ignore[arg-type]
            tag=_require_str(raw, "tag"),
        )
    if t == "return_from_graveyard":
        return ReturnFromGraveyard(
            type="return_from_graveyard",
            kind=_require_str(raw, "kind"),  # type: ignore[arg-type]
            tag=_require_str(raw, "tag"),
        )
    if t == "copy_relic_keywords":
        return CopyRelicKeywords(type="copy_relic_keywords", tag=_optional_str(raw, "tag"))
    if t == "atk_buff_on_kill":
        return AtkBuffOnKill(type="atk_buff_on_kill", amount=_int(raw, "amount", 1))
    if t == "trigger_catalyst":
        return TriggerCatalyst(type="trigger_catalyst")
    logger.warning("Unknown script type %r; it will be ignored", t)
    return Unhandled(type="unhandled", tag=t)


def _parse_keyword(raw: object) -> KeywordEffect:
    # trust schema for allowed values
    if isinstance(raw, str):
        return KeywordEffect(keyword=raw)  # type: ignore[arg-type]
    if isinstance(raw, dict):
        return KeywordEffect(keyword=_require_str(raw, "keyword"), value=_int(raw, "value"))  # type: ignore[arg-type]
    raise ContentError("keywords must be strings or objects")


def _parse_keywords(obj: Mapping[str, object]) -> tuple[KeywordEffect, ...]:
    raw = obj.get("keywords", [])
    if not isinstance(raw, list):
        raise ContentError("keywords must be a list")
    return tuple(_parse_keyword(item) for item in raw)


def _parse_condition(raw: Mapping[str, object]) -> Condition:
    return Condition(
        type=_require_str(raw, "type"),  # type: ignore[arg-type]
        value=_int(raw, "value"),
        tag=_optional_str(raw, "tag"),
    )


def _parse_conditional(raw: object) -> ConditionalValue | None:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("condition"), dict):
        raise ContentError("conditional values need base_value, bonus_value and condition")
    return ConditionalValue(
        base=_int(raw, "base_value"),
        bonus=_int(raw, "bonus_value"),
        condition=_parse_condition(raw["condition"]),
    )


def _parse_rule(raw: object) -> TargetingRule | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ContentError("targeting_rule must be an object")
    return TargetingRule(
        type=_require_str(raw, "type"),  # type: ignore[arg-type]
        exclude_self=_bool(raw, "exclude_self"),
        min_rank=_optional_int(raw, "min_rank"),
        max_rank=_optional_int(raw, "max_rank"),
        creature_type=_optional_str(raw, "creature_type"),
    )


def _parse_effect(raw: Mapping[str, object]) -> CardEffect:
    peek = raw.get("peek_hand")
    token = raw.get("summon_token")
    choice = raw.get("choice")
    return CardEffect(
        timing=raw.get("timing", "IMMEDIATE"),  # type: ignore[arg-type]
        target_type=raw.get("target_type", "NONE"),  # type: ignore[arg-type]
        targeting_rule=_parse_rule(raw.get("targeting_rule")),
        conditions=tuple(_parse_condition(c) for c in _objects(raw, "conditions")),
        trigger_once_per_condition=_bool(raw, "trigger_once_per_condition"),
        once_per_turn=_bool(raw, "once_per_turn"),
        optional=_bool(raw, "optional"),
        subject_type=_optional_str(raw, "subject_type"),
        damage=_int(raw, "damage"),
        heal=_int(raw, "heal"),
        draw=_int(raw, "draw"),
        discard=_int(raw, "discard"),
        atk_buff=_int(raw, "atk_buff"),
        buff_duration=raw.get("buff_duration", "TURN"),  # type: ignore[arg-type]
        hp_buff=_int(raw, "hp_buff"),
        stun=_int(raw, "stun"),
        freeze=_int(raw, "freeze"),
        shield=_int(raw, "shield"),
        destroy=_bool(raw, "destroy"),
        bounce=_bool(raw, "bounce"),
        grant_evasion=_bool(raw, "grant_evasion"),
        peek_hand=(
            HandPeek(
                target=peek.get("target", "OPPONENT"),  # type: ignore[arg-type]
                reveal_count=_optional_int(peek, "reveal_count"),
            )
            if isinstance(peek, dict)
            else None
        ),
        summon_token=(
            TokenSummon(
                card_id=_require_str(token, "card_id"),
                count=_int(token, "count", 1),
                to=token.get("to", "EMPTY_SLOT"),  # type: ignore[arg-type]
            )
            if isinstance(token, dict)
            else None
        ),
        conditional_damage=_parse_conditional(raw.get("conditional_damage")),
        conditional_heal=_parse_conditional(raw.get("conditional_heal")),
        conditional_draw=_parse_conditional(raw.get("conditional_draw")),
        conditional_atk_buff=_parse_conditional(raw.get("conditional_atk_buff")),
        choice=(
            Choice(
                options=tuple(
                    ChoiceOption(
                        label=_require_str(opt, "label"),
                        effects=tuple(_parse_effect(e) for e in _objects(opt, "effects")),
                    )
                    for opt in _objects(choice, "options")
                )
            )
            if isinstance(choice, dict)
            else None
        ),
        script=_parse_script(raw.get("script")),
    )


def _parse_card(item: Mapping[str, object]) -> CardDefinition:
    return CardDefinition(
        id=_require_str(item, "id"),
        name=_require_str(item, "name"),
        kind=_require_str(item, "kind"),  # type: ignore[arg-type]
        text=_optional_str(item, "text") or "",
        rank=_int(item, "rank"),
        atk=_int(item, "atk"),
        hp=_int(item, "hp"),
        creature_type=_optional_str(item, "creature_type"),
        token=_bool(item, "token"),
        keywords=_parse_keywords(item),
        effects=tuple(_parse_effect(e) for e in _objects(item, "effects")),
        evo_type=_optional_str(item, "evo_type"),  # type: ignore[arg-type]
        base_name=_optional_str(item, "base_name"),
        required_rank=_optional_int(item, "required_rank"),
        evolution_conditions=tuple(_parse_condition(c) for c in _objects(item, "evolution_conditions")),
        atk_bonus=_int(item, "atk_bonus"),
        hp_bonus=_int(item, "hp_bonus"),
        heal_boost=_int(item, "heal_boost"),
        damage_boost=_int(item, "damage_boost"),
        draw_boost=_int(item, "draw_boost"),
        duration=_optional_int(item, "duration"),
    )


@dataclass(frozen=True)
class DeckList:
    id: str
    name: str
    cards: tuple[str, ...]
    evolutions: tuple[str, ...]


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, name: str) -> Mapping[str, object]:
        path = self._data_dir / f"{name}.json"
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / f"{name}.schema.json")
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{name}.json must be an object")
        return raw

    def load_catalog(self) -> CardCatalog:
        raw = self._load_validated("cards")
        cards: dict[str, CardDefinition] = {}
        for item in _objects(raw, "cards"):
            card = _parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card
        self._check_references(cards)
        return CardCatalog(cards=cards)

    @staticmethod
    def _check_references(cards: Mapping[str, CardDefinition]) -> None:
        for card in cards.values():
            effects = list(card.effects)
            while effects:
                eff = effects.pop()
                if eff.summon_token is not None and eff.summon_token.card_id not in cards:
                    raise ContentError(f"{card.id} summons unknown token {eff.summon_token.card_id}")
                if eff.choice is not None:
                    for option in eff.choice.options:
                        effects.extend(option.effects)
            if card.kind == "EVOLUTION" and card.evo_type is None:
                raise ContentError(f"Evolution {card.id} is missing evo_type")

    def load_decks(self, catalog: CardCatalog | None = None) -> dict[str, DeckList]:
        known = catalog or self.load_catalog()
        raw = self._load_validated("decks")
        decks: dict[str, DeckList] = {}
        for item in _objects(raw, "decks"):
            cards: list[str] = []
            for entry in _objects(item, "cards"):
                card_id = _require_str(entry, "id")
                cards.extend([card_id] * _int(entry, "count", 1))
            raw_evos = item.get("evolutions", [])
            evolutions = tuple(e for e in raw_evos if isinstance(e, str)) if isinstance(raw_evos, list) else ()
            deck = DeckList(
                id=_require_str(item, "id"),
                name=_require_str(item, "name"),
                cards=tuple(cards),
                evolutions=evolutions,
            )
            for card_id in (*deck.cards, *deck.evolutions):
                if known.find(card_id) is None:
                    raise ContentError(f"Deck {deck.id} references unknown card {card_id}")
            decks[deck.id] = deck
        return decks

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        catalog = self.load_catalog()
        _ = self.load_decks(catalog)
