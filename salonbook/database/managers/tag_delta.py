"""
TagDelta: before/after tag id sets of one association change.
"""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class TagDelta:
    """
    Tag ids associated with an entity before and after a change.

    Attributes:
        old_tag_ids: Ids associated before the change
        new_tag_ids: Ids associated after the change
    """
    old_tag_ids: List[str] = field(default_factory=list)
    new_tag_ids: List[str] = field(default_factory=list)

    @property
    def added(self) -> List[str]:
        """Ids present after but not before."""
        old = set(self.old_tag_ids)
        return [tag_id for tag_id in self.new_tag_ids if tag_id not in old]

    @property
    def removed(self) -> List[str]:
        """Ids present before but not after."""
        new = set(self.new_tag_ids)
        return [tag_id for tag_id in self.old_tag_ids if tag_id not in new]

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)
