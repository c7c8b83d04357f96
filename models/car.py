"""Datenmodell für ein Fahrschulauto (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CarStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    MAINTENANCE = "MAINTENANCE"
    INACTIVE = "INACTIVE"


class Car(BaseModel):
    """Repräsentiert ein Fahrzeug mit zugewiesenem Fahrlehrer."""

    id: int
    name: str                                 # "Swift VXi"
    registration: Optional[str] = None        # Kennzeichen
    assigned_driver_id: Optional[int] = None  # Fahrlehrer, wird in Sessions übernommen
    status: CarStatus = CarStatus.AVAILABLE

    @property
    def is_bookable(self) -> bool:
        return self.status in (CarStatus.AVAILABLE, CarStatus.IN_USE)
