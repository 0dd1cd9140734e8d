"""
domain/live_style.py — The shape of a live: oneman, battle or festival.

A LiveStyle is a tagged union over a performer reference type P:
  - LiveStyle[int]   → what clients send (group ids)
  - LiveStyle[Group] → what we return (resolved, accepted performers)

The same three classes serve both shapes, so input and output never drift.
Every consumer goes through `performers_of`, `map_performers` or `kind_of`,
each of which matches all three variants and raises on anything else.

Wire format (request and response):
    {"kind": "oneman",   "value": 3}
    {"kind": "battle",   "value": [3, 7]}
    {"kind": "festival", "value": [3, 7, 9]}
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

P = TypeVar("P")
Q = TypeVar("Q")


class StyleKind(str, enum.Enum):
    ONEMAN = "oneman"
    BATTLE = "battle"
    FESTIVAL = "festival"


@dataclass(frozen=True)
class Oneman(Generic[P]):
    performer: P


@dataclass(frozen=True)
class Battle(Generic[P]):
    performers: tuple[P, ...]


@dataclass(frozen=True)
class Festival(Generic[P]):
    performers: tuple[P, ...]


LiveStyle = Union[Oneman[P], Battle[P], Festival[P]]


def _unknown(style: object) -> TypeError:
    return TypeError(f"Unknown live style variant: {style!r}")


def kind_of(style: LiveStyle) -> StyleKind:
    if isinstance(style, Oneman):
        return StyleKind.ONEMAN
    if isinstance(style, Battle):
        return StyleKind.BATTLE
    if isinstance(style, Festival):
        return StyleKind.FESTIVAL
    raise _unknown(style)


def performers_of(style: LiveStyle) -> list:
    """Declared performers in declaration order (duplicates preserved)."""
    if isinstance(style, Oneman):
        return [style.performer]
    if isinstance(style, (Battle, Festival)):
        return list(style.performers)
    raise _unknown(style)


def map_performers(style: LiveStyle[P], fn: Callable[[P], Q]) -> LiveStyle[Q]:
    """Returns the same variant with every performer passed through fn."""
    if isinstance(style, Oneman):
        return Oneman(fn(style.performer))
    if isinstance(style, Battle):
        return Battle(tuple(fn(p) for p in style.performers))
    if isinstance(style, Festival):
        return Festival(tuple(fn(p) for p in style.performers))
    raise _unknown(style)


def build_style(kind: StyleKind | str, performers: list[P]) -> LiveStyle[P]:
    """
    Constructs a variant from a kind and a performer list.

    Used when reading a live back from storage, where the kind lives on the
    lives row and the performers come from live_performers.

    Raises ValueError if a oneman style is given anything but one performer.
    """
    kind = StyleKind(kind)
    if kind is StyleKind.ONEMAN:
        if len(performers) != 1:
            raise ValueError("A oneman live has exactly one performer.")
        return Oneman(performers[0])
    if kind is StyleKind.BATTLE:
        return Battle(tuple(performers))
    return Festival(tuple(performers))


def style_to_dict(style: LiveStyle) -> dict:
    """
    Serialises a style to the {"kind", "value"} wire shape.

    Performers are emitted as they are; map_performers them into something
    JSON-serialisable first.
    """
    kind = kind_of(style)
    if isinstance(style, Oneman):
        return {"kind": kind.value, "value": style.performer}
    return {"kind": kind.value, "value": performers_of(style)}
