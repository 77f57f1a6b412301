"""
Classification record type persisted by the history ledger
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Tuple

from ..models.detection import clamp_percent
from ..taxonomy import OutwardCategory


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp into a naive local datetime"""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class ClassificationRecord:
    """One saved classification; never modified after creation"""
    id: str
    timestamp: datetime
    filename: str
    file_size: int
    item_name: str
    category: OutwardCategory
    confidence: int
    recyclable_rate: int
    points: int
    description: str
    disposal_method: str
    tips: Tuple[str, ...] = field(default_factory=tuple)
    session_id: str = ""

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "filename": self.filename,
            "fileSize": self.file_size,
            "itemName": self.item_name,
            "category": OutwardCategory(self.category).value,
            "confidence": self.confidence,
            "recyclableRate": self.recyclable_rate,
            "points": self.points,
            "description": self.description,
            "disposalMethod": self.disposal_method,
            "tips": list(self.tips),
            "sessionId": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ClassificationRecord":
        """
        Rebuild a record from its serialized form

        Raises:
            KeyError, ValueError, TypeError: if required fields are missing or malformed
        """
        return cls(
            id=str(data["id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            filename=str(data.get("filename", "")),
            file_size=int(data.get("fileSize", 0)),
            item_name=str(data["itemName"]),
            category=OutwardCategory(data["category"]),
            confidence=clamp_percent(data.get("confidence", 0)),
            recyclable_rate=clamp_percent(data.get("recyclableRate", 0)),
            points=max(0, int(data.get("points", 0))),
            description=str(data.get("description", "")),
            disposal_method=str(data.get("disposalMethod", "")),
            tips=tuple(str(tip) for tip in data.get("tips", [])),
            session_id=str(data.get("sessionId", "")),
        )
