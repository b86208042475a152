"""Item and location name lookup built from server data packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import ArchipelagoProtocolError


def _invert(table: Any, *, game: str, kind: str) -> dict[int, str]:
    if table is None:
        return {}
    if not isinstance(table, dict):
        raise ArchipelagoProtocolError(f"{game}.{kind} must be an object")
    inverted: dict[int, str] = {}
    for name, raw_id in table.items():
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise ArchipelagoProtocolError(
                f"{game}.{kind}[{name!r}] must be an integer id, got {raw_id!r}"
            )
        inverted[raw_id] = name
    return inverted


def build_item_and_location_data(
    data_package: dict[str, Any],
) -> tuple[dict[int, str], dict[int, str]]:
    """Flatten a data package into id→name tables for items and locations.

    Ids are treated as unique across games; on a collision the game listed
    later wins.

    Raises:
        ArchipelagoProtocolError: If the package does not have the expected shape
    """
    games = data_package.get("games") if isinstance(data_package, dict) else None
    if not isinstance(games, dict):
        raise ArchipelagoProtocolError("DataPackage.data.games must be an object")

    items: dict[int, str] = {}
    locations: dict[int, str] = {}
    for game_name, game_data in games.items():
        if not isinstance(game_data, dict):
            raise ArchipelagoProtocolError(f"Data for game {game_name!r} is not an object")
        items.update(
            _invert(game_data.get("item_name_to_id"), game=game_name, kind="item_name_to_id")
        )
        locations.update(
            _invert(
                game_data.get("location_name_to_id"),
                game=game_name,
                kind="location_name_to_id",
            )
        )
    return items, locations


@dataclass
class ItemLocationIndex:
    """Id→name lookup tables aggregated over every data package received.

    Attributes:
        items: Item id to item name.
        locations: Location id to location name.
    """

    items: dict[int, str] = field(default_factory=dict)
    locations: dict[int, str] = field(default_factory=dict)

    def merge(self, data_package: dict[str, Any]) -> None:
        """Add a data package, keeping ids the package does not mention.

        The index is left untouched when the package is malformed.
        """
        items, locations = build_item_and_location_data(data_package)
        self.items.update(items)
        self.locations.update(locations)

    def item_name(self, item_id: int) -> str | None:
        return self.items.get(item_id)

    def location_name(self, location_id: int) -> str | None:
        return self.locations.get(location_id)
