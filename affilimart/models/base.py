"""Helpers shared by the entity models."""

from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from affilimart.errors import ValidationError

CENT = Decimal("0.01")


def round_currency(value: float) -> float:
    """Round a money amount to two decimal places, halves rounded up."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def now_iso() -> str:
    return datetime.now().isoformat()


def pick_fields(cls, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keep only the keys of ``data`` that are fields of dataclass ``cls``."""
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in (data or {}).items() if key in names}


@dataclass(frozen=True)
class AuthorRef:
    """
    Reference to whoever wrote a note or held a conversation.

    Notes and communications can come from a marketplace user or from an
    admin, so the reference carries its kind alongside the id.
    """
    kind: str
    id: str

    KINDS = ("user", "admin")

    def __post_init__(self):
        if self.kind not in self.KINDS:
            raise ValidationError(f"Author kind must be one of {', '.join(self.KINDS)}")

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "AuthorRef":
        return cls(kind=data["kind"], id=data["id"])
