"""Business logic services for the Commons application."""

from .communities import CommunityService
from .items import ItemService
from .membership import MembershipService
from .progress import ProgressService

__all__ = [
    "CommunityService",
    "ItemService",
    "MembershipService",
    "ProgressService",
]
