from __future__ import annotations

from .contracts import Point, Quad


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def normalize_point(point: Point, *, origin_bottom_left: bool) -> Point:
    y = 1.0 - point.y if origin_bottom_left else point.y
    return Point(x=clamp_unit(point.x), y=clamp_unit(y))


def normalize_quad(raw_quad: Quad, *, origin_bottom_left: bool) -> Quad:
    """
    Convert an engine-native quad into top-left-origin, y-down coordinates
    clamped into [0, 1].

    Corners keep the labels the engine assigned. Engine geometry may overshoot
    the unit square slightly; such values are clamped, never rejected.
    """

    return Quad(
        top_left=normalize_point(raw_quad.top_left, origin_bottom_left=origin_bottom_left),
        top_right=normalize_point(raw_quad.top_right, origin_bottom_left=origin_bottom_left),
        bottom_right=normalize_point(raw_quad.bottom_right, origin_bottom_left=origin_bottom_left),
        bottom_left=normalize_point(raw_quad.bottom_left, origin_bottom_left=origin_bottom_left),
    )


def to_drawing_point(point: Point, *, width: float, height: float) -> tuple[float, float]:
    """
    Map a normalized point into bottom-left-origin drawing space (pixels).

    Inverse of the vertical flip applied by `normalize_quad` for
    bottom-left-origin engines.
    """

    return (point.x * width, (1.0 - point.y) * height)


def to_raster_point(point: Point, *, width: float, height: float) -> tuple[float, float]:
    """
    Map a normalized point onto raster pixels (row 0 at the top), as Pillow
    draws.
    """

    x, y_draw = to_drawing_point(point, width=width, height=height)
    return (x, height - y_draw)


def quad_to_drawing_polygon(quad: Quad, *, width: float, height: float) -> list[tuple[float, float]]:
    return [to_drawing_point(p, width=width, height=height) for p in quad.corners()]


def quad_to_raster_polygon(quad: Quad, *, width: float, height: float) -> list[tuple[float, float]]:
    return [to_raster_point(p, width=width, height=height) for p in quad.corners()]
