"""Loading item batches from YAML/JSON files."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from allowance.models import Item
from allowance.utils import get_logger

logger = get_logger(__name__)


class ItemRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    group: str
    category: str
    weight: Decimal = Field(ge=0)
    exempt: bool = Field(default=False, validation_alias=AliasChoices("exempt", "special", "is_special"))
    id: Optional[Union[str, int]] = None

    def to_item(self, position: int) -> Item:
        item_id = str(self.id) if self.id is not None else str(position)
        return Item(
            group=self.group,
            category=self.category,
            weight=self.weight,
            exempt=self.exempt,
            item_id=item_id,
        )


_RECORDS = TypeAdapter(List[ItemRecord])


def parse_items(raw: Any) -> List[Item]:
    """Validate a list of item mappings; positions become ids where none given."""
    if isinstance(raw, dict) and "items" in raw:
        raw = raw["items"]
    try:
        records = _RECORDS.validate_python(raw or [])
    except ValidationError as e:
        raise ValueError(f"Invalid items: {e}") from e
    return [rec.to_item(i) for i, rec in enumerate(records)]


def load_items(path: str) -> List[Item]:
    # YAML is a superset of JSON, so one loader covers both
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    items = parse_items(raw)
    logger.info("items loaded path=%s count=%d exempt=%d", path, len(items), sum(1 for it in items if it.exempt))
    return items
