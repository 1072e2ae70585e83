from dataclasses import dataclass


@dataclass(frozen=True)
class Rectangle:
    """
    Caja delimitadora en coordenadas de la imagen (píxeles).
    Inmutable una vez emitida por el post-procesador.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def area(self) -> float:
        return (self.x2 - self.x1) * (self.y2 - self.y1)

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def is_valid(self, min_area: float = 0.0) -> bool:
        """True si la caja no es degenerada y supera el área mínima."""
        return self.x2 > self.x1 and self.y2 > self.y1 and self.area > min_area

    def to_dict(self) -> dict:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "area": self.area,
        }
