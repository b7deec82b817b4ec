"""
Relations - bookmarks, read-later, content-tag links, votes and comments.
"""

from esap.relations.comments import CommentStore
from esap.relations.store import (
    RelationKind,
    RelationStore,
    ContentTagStore,
    BOOKMARKS,
    READ_LATER,
)
from esap.relations.votes import VoteOutcome, VoteStore

__all__ = [
    "RelationKind",
    "RelationStore",
    "ContentTagStore",
    "VoteStore",
    "VoteOutcome",
    "CommentStore",
    "BOOKMARKS",
    "READ_LATER",
]
