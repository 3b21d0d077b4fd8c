from __future__ import annotations

from typing import TYPE_CHECKING, Set

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .cache_storage import StateStorage


SEPARATOR = "|"


class ProcessedState(BaseModel):
    """
    Progress of a scheduled run: ids of the items already handled.

    Serialized form
    - ids joined by "|" in ascending order, e.g. "3|17|42".
    - an empty set serializes to "", which makes the storage drop the entry
      so the next run starts from the first item.
    """

    processed_ids: Set[int] = Field(default_factory=set, description="Ids handled so far")

    @classmethod
    def empty(cls) -> "ProcessedState":
        return cls()

    def is_processed(self, item_id: int) -> bool:
        return item_id in self.processed_ids

    def mark_processed(self, item_id: int) -> None:
        self.processed_ids.add(item_id)

    def reset(self) -> None:
        self.processed_ids.clear()

    def serialize(self) -> str:
        return SEPARATOR.join(str(i) for i in sorted(self.processed_ids))

    @classmethod
    def deserialize(cls, blob: str) -> "ProcessedState":
        """Parse a serialized blob; blank or non-numeric tokens are skipped."""
        ids: Set[int] = set()
        for tok in (blob or "").split(SEPARATOR):
            tok = tok.strip()
            if not tok:
                continue
            try:
                ids.add(int(tok))
            except ValueError:
                continue
        return cls(processed_ids=ids)

    # -------- Storage helpers --------
    def persist(self, storage: "StateStorage") -> None:
        storage.save(self.serialize())

    @classmethod
    def rehydrate(cls, storage: "StateStorage") -> "ProcessedState":
        return cls.deserialize(storage.restore())
