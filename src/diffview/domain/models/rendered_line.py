"""RenderedLine model - one display row of a diff section"""

from dataclasses import dataclass

from diffview.domain.models.diff import DiffLineType


@dataclass(frozen=True)
class RenderedLine:
    """A diff row ready for display"""

    type: DiffLineType
    left_idx: int  # 0 = not present in the old revision
    right_idx: int  # 0 = not present in the new revision
    html: str  # Escaped content, with inline highlight spans for paired lines

    @property
    def marker(self) -> str:
        return {DiffLineType.ADD: "+", DiffLineType.DEL: "-", DiffLineType.PLAIN: " "}.get(self.type, "")
