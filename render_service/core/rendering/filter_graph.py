"""
Filter Graph
============

Typed representation of an ffmpeg ``-filter_complex`` graph. Composition
logic builds these objects; the textual syntax only appears in
:meth:`FilterGraph.serialize` at the process boundary.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Union

ParamValue = Union[str, int, float]


def _format_value(value: ParamValue) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


@dataclass(frozen=True)
class Filter:
    """One filter stage: positional arguments first, then ``key=value`` options."""

    name: str
    args: Tuple[ParamValue, ...] = ()
    options: Tuple[Tuple[str, ParamValue], ...] = ()

    def serialize(self) -> str:
        parts = [_format_value(a) for a in self.args]
        parts.extend(f"{key}={_format_value(value)}" for key, value in self.options)
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"


@dataclass
class FilterChain:
    """Linear chain of filters between labelled input and output pads."""

    inputs: List[str]
    filters: List[Filter]
    outputs: List[str]

    def serialize(self) -> str:
        ins = "".join(f"[{label}]" for label in self.inputs)
        outs = "".join(f"[{label}]" for label in self.outputs)
        return f"{ins}{','.join(f.serialize() for f in self.filters)}{outs}"


@dataclass
class FilterGraph:
    chains: List[FilterChain] = field(default_factory=list)

    def add(self, inputs: List[str], filters: List[Filter], outputs: List[str]) -> "FilterGraph":
        self.chains.append(FilterChain(inputs, filters, outputs))
        return self

    def serialize(self) -> str:
        return ";".join(chain.serialize() for chain in self.chains)


def scale(width: int, height: int, **options: ParamValue) -> Filter:
    return Filter("scale", (width, height), tuple(options.items()))


def crop(width: int, height: int) -> Filter:
    return Filter("crop", (width, height))


def setsar(ratio: ParamValue = 1) -> Filter:
    return Filter("setsar", (ratio,))


def overlay(x: int = 0, y: int = 0, **options: ParamValue) -> Filter:
    return Filter("overlay", (x, y), tuple(options.items()))


def pixel_format(pix_fmt: str) -> Filter:
    return Filter("format", (pix_fmt,))


def cover_and_overlay(
    width: int, height: int, scale_overlay: bool = False, output: str = "vout"
) -> FilterGraph:
    """
    Background on input 0 scaled to cover ``width x height`` and center-cropped,
    with the full-frame overlay from input 1 placed at the origin.
    """
    graph = FilterGraph()
    graph.add(
        ["0:v"],
        [
            scale(width, height, force_original_aspect_ratio="increase"),
            crop(width, height),
            setsar(1),
        ],
        ["bg"],
    )

    overlay_label = "1:v"
    if scale_overlay:
        graph.add(["1:v"], [scale(width, height)], ["ov"])
        overlay_label = "ov"

    graph.add(
        ["bg", overlay_label],
        [overlay(0, 0, format="auto"), pixel_format("yuv420p")],
        [output],
    )
    return graph
