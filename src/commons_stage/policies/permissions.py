"""Pure permission rules for community actions.

Every rule takes the community's settings and a snapshot of the caller's
membership and returns a :class:`PolicyDecision`. Nothing here touches the
database, so the rules can be evaluated and tested in isolation.

Two rule shapes exist:

* Global + per-type toggles, OR'd. Adding an item is restricted only when the
  global ``only_admins_can_add_items`` toggle *and* the type toggle
  (``only_admins_can_add_goals`` / ``only_admins_can_add_habits``) are both
  restrictive. Opening either one lets any active member add that type.
* Single toggle, role tiered. Managing members or changing images checks one
  toggle: restrictive means admins only, permissive means admins and
  moderators. Plain members never qualify.

Every rule denies callers without an active membership.
"""

from __future__ import annotations

from dataclasses import dataclass

from commons_stage.core.errors import ForbiddenError
from commons_stage.models.enums import ItemType, MembershipStatus, MemberRole

MANAGER_ROLES = frozenset({MemberRole.ADMIN, MemberRole.MODERATOR})


@dataclass(frozen=True)
class CommunitySettings:
    """Named toggles and limits configuring a community."""

    membership_approval_required: bool = False
    only_admins_can_add_items: bool = True
    only_admins_can_add_goals: bool = True
    only_admins_can_add_habits: bool = True
    only_admins_can_change_images: bool = True
    only_admins_can_add_members: bool = True
    only_admins_can_remove_members: bool = True
    allow_contributions: bool = True
    member_limit: int = 1

    def type_restricted(self, item_type: ItemType) -> bool:
        """Return the per-type add toggle for ``item_type``."""
        if item_type == ItemType.GOAL:
            return self.only_admins_can_add_goals
        return self.only_admins_can_add_habits


@dataclass(frozen=True)
class Actor:
    """Snapshot of the caller's membership row in one community."""

    role: MemberRole
    status: MembershipStatus

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role == MemberRole.ADMIN


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of a permission rule and, when denied, which rule failed."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PolicyDecision(True)
NOT_A_MEMBER = "you must be an active member of this community"


def _deny(reason: str) -> PolicyDecision:
    return PolicyDecision(False, reason)


def require(decision: PolicyDecision) -> None:
    """Raise :class:`ForbiddenError` carrying the reason of a denied decision."""
    if not decision.allowed:
        raise ForbiddenError(decision.reason or "forbidden")


def _role_tiered(restricted: bool, actor: Actor | None, what: str) -> PolicyDecision:
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    if restricted:
        if actor.role == MemberRole.ADMIN:
            return ALLOW
        return _deny(f"only admins can {what} here")
    if actor.role in MANAGER_ROLES:
        return ALLOW
    return _deny(f"only admins and moderators can {what} here")


def allows_unrestricted_add(settings: CommunitySettings, item_type: ItemType) -> bool:
    """Return True when any active member may add items of ``item_type``."""
    return (not settings.only_admins_can_add_items) or (not settings.type_restricted(item_type))


def can_add_item(
    settings: CommunitySettings,
    actor: Actor | None,
    item_type: ItemType,
) -> PolicyDecision:
    """Decide whether ``actor`` may create a community-owned item directly."""
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    if allows_unrestricted_add(settings, item_type):
        return ALLOW
    if actor.role == MemberRole.ADMIN:
        return ALLOW
    return _deny(f"only admins can add {item_type.value}s here")


def can_suggest_item(actor: Actor | None) -> PolicyDecision:
    """Any active member may suggest; restriction only decides review."""
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    return ALLOW


def can_manage_members(settings: CommunitySettings, actor: Actor | None) -> PolicyDecision:
    """Decide whether ``actor`` may review pending membership requests."""
    return _role_tiered(settings.only_admins_can_add_members, actor, "manage members")


def can_remove_members(settings: CommunitySettings, actor: Actor | None) -> PolicyDecision:
    """Decide whether ``actor`` may remove other members."""
    return _role_tiered(settings.only_admins_can_remove_members, actor, "remove members")


def can_change_images(settings: CommunitySettings, actor: Actor | None) -> PolicyDecision:
    """Decide whether ``actor`` may change the community avatar or banner."""
    return _role_tiered(settings.only_admins_can_change_images, actor, "change images")


def can_review_items(actor: Actor | None) -> PolicyDecision:
    """Admins and moderators approve or reject suggested items."""
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    if actor.role in MANAGER_ROLES:
        return ALLOW
    return _deny("only admins and moderators can review items")


def can_edit_community(actor: Actor | None) -> PolicyDecision:
    """Admins and moderators edit community details and settings."""
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    if actor.role in MANAGER_ROLES:
        return ALLOW
    return _deny("only admins and moderators can edit this community")


def can_post_announcement(actor: Actor | None) -> PolicyDecision:
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    if actor.role in MANAGER_ROLES:
        return ALLOW
    return _deny("only admins and moderators can post announcements")


def can_remove_item(actor: Actor | None, *, is_creator: bool) -> PolicyDecision:
    """The item's creator or an active admin may remove an item."""
    if is_creator:
        return ALLOW
    if actor is not None and actor.is_admin:
        return ALLOW
    return _deny("only the item's creator or an admin can remove it")


def can_view_members(actor: Actor | None) -> PolicyDecision:
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    return ALLOW


def can_participate(actor: Actor | None) -> PolicyDecision:
    """Joining items and reading progress require an active membership."""
    if actor is None or not actor.is_active:
        return _deny(NOT_A_MEMBER)
    return ALLOW


def can_deactivate_community(actor: Actor | None, *, is_owner: bool) -> PolicyDecision:
    if is_owner or (actor is not None and actor.is_admin):
        return ALLOW
    return _deny("only the owner or an admin can delete this community")
