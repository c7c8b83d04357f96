"""Datenmodell für einen Fahrkurs (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, Field


class Course(BaseModel):
    """Ein mehrtägiger Kurs, z.B. 15 Fahrstunden à 60 Minuten."""

    id: int
    name: str
    course_days: int = Field(ge=1)   # Anzahl Kurstage = Anzahl Sessions
    price: float = 0.0
    description: Optional[str] = None
