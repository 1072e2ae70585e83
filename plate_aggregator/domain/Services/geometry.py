"""Intersección, unión e IoU entre rectángulos (funciones puras)."""
from __future__ import annotations

from plate_aggregator.domain.Models.rectangle import Rectangle


def intersection(a: Rectangle, b: Rectangle) -> float:
    """Área de intersección en píxeles cuadrados; 0 si no se solapan."""
    x1 = max(a.x1, b.x1)
    y1 = max(a.y1, b.y1)
    x2 = min(a.x2, b.x2)
    y2 = min(a.y2, b.y2)

    width = max(0.0, x2 - x1)
    height = max(0.0, y2 - y1)
    return width * height


def union(a: Rectangle, b: Rectangle) -> float:
    return a.area + b.area - intersection(a, b)


def iou(a: Rectangle, b: Rectangle) -> float:
    inter = intersection(a, b)
    denom = a.area + b.area - inter
    if denom <= 0:
        return 0.0
    return inter / denom
