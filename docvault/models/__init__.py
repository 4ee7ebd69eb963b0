from .document import ContentField, ContentSource, Document, DocumentStatus, can_transition
from .group import DocumentGroup, Group, GroupSuggestion, GroupType, SuggestedGroup

__all__ = [
    "ContentField",
    "ContentSource",
    "Document",
    "DocumentGroup",
    "DocumentStatus",
    "Group",
    "GroupSuggestion",
    "GroupType",
    "SuggestedGroup",
    "can_transition",
]
