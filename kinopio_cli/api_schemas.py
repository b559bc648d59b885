from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# The API sends null for coordinates and sizes it has not computed yet.
Coord = Annotated[float, BeforeValidator(lambda v: 0 if v is None else v)]
Text = Annotated[str, BeforeValidator(lambda v: "" if v is None else v)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Card(_Payload):
    id: Text = ""
    name: Text = ""
    space_id: Text = Field(default="", alias="spaceId")
    x: Coord = 0
    y: Coord = 0
    z: Coord = 0
    width: Coord = Field(default=0, alias="resizeWidth")
    height: Coord = Field(default=0, alias="resizeHeight")


class Box(_Payload):
    id: Text = ""
    name: Text = ""
    x: Coord = 0
    y: Coord = 0
    width: Coord = Field(default=0, alias="resizeWidth")
    height: Coord = Field(default=0, alias="resizeHeight")

    def contains(self, card: Card) -> bool:
        return (
            card.x >= self.x
            and card.x + card.width <= self.x + self.width
            and card.y >= self.y
            and card.y + card.height <= self.y + self.height
        )


class Space(_Payload):
    id: Text = ""
    name: Text = ""
    cards: list[Card] = Field(default_factory=list)
    boxes: list[Box] = Field(default_factory=list)

    def cards_in(self, box: Box) -> list[Card]:
        return [c for c in self.cards if box.contains(c)]


class NewInboxCard(_Payload):
    name: str
    space_id: str = Field(alias="spaceId")
