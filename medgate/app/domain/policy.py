"""Read-authorization policy."""
from dataclasses import dataclass
from typing import Callable


@dataclass
class ViewContext:
    viewer_id: str
    patient_id: str


def may_view(context: ViewContext, is_granted: Callable[[str, str], bool]) -> bool:
    """Owners always see their own record; anyone else needs a live grant."""
    if context.viewer_id == context.patient_id:
        return True
    return is_granted(context.patient_id, context.viewer_id)
