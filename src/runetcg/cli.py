from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from runetcg.paths import get_paths
from runetcg.services.content import ContentError, ContentService

_KINDS = ("CREATURE", "FAST_SPELL", "SLOW_SPELL", "RELIC", "LOCATION", "EVOLUTION")


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)


def _cmd_validate(args: argparse.Namespace) -> int:
    _content().validate_all()
    print("Content OK.")
    return 0


def _cmd_cards(args: argparse.Namespace) -> int:
    catalog = _content().load_catalog()
    for card_id in catalog.all_ids():
        card = catalog.get(card_id)
        if args.kind and card.kind != args.kind:
            continue
        if card.is_creature:
            stats = f"r{card.rank} {card.atk}/{card.hp}"
        else:
            stats = "-"
        print(f"{card.id:32} {card.kind:11} {stats:10} {card.name}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="runetcg")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate", help="validate bundled card and deck content")
    p_validate.set_defaults(func=_cmd_validate)

    p_cards = sub.add_parser("cards", help="list the card catalog")
    p_cards.add_argument("--kind", choices=_KINDS)
    p_cards.set_defaults(func=_cmd_cards)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except ContentError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
