"""
Moderation - one submit → review → resolve workflow for categories, tags and content.
"""

from esap.moderation.catalog import Catalog, load_content
from esap.moderation.store import ModerationStore
from esap.moderation.subjects import (
    CATEGORY,
    CONTENT,
    SUBJECTS,
    TAG,
    SubjectConfig,
    Transition,
)
from esap.moderation.workflow import ModerationWorkflow, TransitionOutcome

__all__ = [
    "Catalog",
    "load_content",
    "ModerationStore",
    "ModerationWorkflow",
    "TransitionOutcome",
    "SubjectConfig",
    "Transition",
    "SUBJECTS",
    "CATEGORY",
    "TAG",
    "CONTENT",
]
