"""
services/group_service.py — Groups, memberships, invitations and followers.

Authorization rules:
  - Only artists hold memberships. Fans are rejected before any lookup that
    would reveal group state (FAN_CANNOT_MANAGE_GROUP / FAN_CANNOT_JOIN_GROUP).
  - Issuing an invitation: group leader only.
  - Redeeming an invitation: any artist holding the invitation id.
  - Following a group: any authenticated user.

Invitation redemption is single-use under concurrency:
  - The invitation row is read with SELECT ... FOR UPDATE, so two redeems of
    the same invitation serialize and the second sees invited=true.
  - The memberships (group_id, user_id) unique key turns a lost race between
    two invitations for the same user into ALREADY_MEMBER.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the caller's responsibility (UnitOfWork) — only flush here.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stagehub.app.errors import (
    ErrorCode,
    conflict,
    forbidden,
    not_found,
)
from stagehub.app.models.group import Group
from stagehub.app.models.group_follower import GroupFollower
from stagehub.app.models.group_invitation import GroupInvitation
from stagehub.app.models.membership import Membership
from stagehub.app.models.user import User


# ── Private helpers ────────────────────────────────────────────────────────

def _get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise not_found(ErrorCode.GROUP_NOT_FOUND, "Group", group_id)
    return group


def _get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise not_found(ErrorCode.USER_NOT_FOUND, "User", user_id)
    return user


def _get_membership(group_id: int, user_id: int, session: Session) -> Membership | None:
    return session.execute(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()


def build_group_dict(group: Group, members: list[tuple[User, bool]] | None = None) -> dict:
    """Serialises a Group to a plain dict. Members are included when given."""
    data = {
        "id": group.id,
        "name": group.name,
        "english_name": group.english_name,
        "biography": group.biography,
        "since": group.since.isoformat() if group.since else None,
        "artwork_url": group.artwork_url,
        "twitter_id": group.twitter_id,
        "youtube_channel_id": group.youtube_channel_id,
        "hometown": group.hometown,
        "created_at": group.created_at.isoformat() if group.created_at else None,
    }
    if members is not None:
        data["members"] = [
            {
                "id": user.id,
                "username": user.username,
                "name": user.name,
                "is_leader": is_leader,
            }
            for user, is_leader in members
        ]
    return data


def _build_invitation_dict(invitation: GroupInvitation) -> dict:
    return {
        "id": invitation.id,
        "group_id": invitation.group_id,
        "invited": invitation.invited,
        "membership_id": invitation.membership_id,
    }


def _build_membership_dict(membership: Membership) -> dict:
    return {
        "id": membership.id,
        "group_id": membership.group_id,
        "user_id": membership.user_id,
        "is_leader": membership.is_leader,
    }


# ── Membership queries ─────────────────────────────────────────────────────

def is_member(group_id: int, user_id: int, session: Session) -> bool:
    return _get_membership(group_id, user_id, session) is not None


def is_leader(group_id: int, user_id: int, session: Session) -> bool:
    """
    Returns whether user_id leads group_id.

    Raises NOT_MEMBER_OF_GROUP (403) when the user has no membership at all,
    so callers can tell "not a member" apart from "member but not leader".
    """
    membership = _get_membership(group_id, user_id, session)
    if membership is None:
        raise forbidden(
            ErrorCode.NOT_MEMBER_OF_GROUP,
            f"You are not a member of group {group_id}.",
        )
    return membership.is_leader


def require_member(group_id: int, user_id: int, session: Session) -> None:
    """Raises NOT_MEMBER_OF_GROUP (403) if user_id is not a member of group_id."""
    if not is_member(group_id, user_id, session):
        raise forbidden(
            ErrorCode.NOT_MEMBER_OF_GROUP,
            f"You are not a member of group {group_id}.",
        )


def join(group_id: int, user_id: int, as_leader: bool, session: Session) -> Membership:
    """
    Inserts a membership directly. Used when a group is created.

    Raises ALREADY_MEMBER (409) if the (group, user) pair already exists.
    """
    if is_member(group_id, user_id, session):
        raise conflict(
            ErrorCode.ALREADY_MEMBER,
            f"User {user_id} is already a member of group {group_id}.",
        )
    membership = Membership(group_id=group_id, user_id=user_id, is_leader=as_leader)
    session.add(membership)
    session.flush()
    return membership


# ── Groups ─────────────────────────────────────────────────────────────────

def create_group(data: dict, creator_id: int, session: Session) -> dict:
    """
    Creates a group and seats the creator as its leader.

    Args:
        data:       Validated dict from CreateGroupSchema.
        creator_id: The authenticated user (flask.g.user_id).

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(FAN_CANNOT_MANAGE_GROUP, 403) — fans cannot own groups
    """
    creator = _get_user_or_404(creator_id, session)
    if not creator.is_artist:
        raise forbidden(
            ErrorCode.FAN_CANNOT_MANAGE_GROUP,
            "Fans cannot create groups.",
        )

    group = Group(**data)
    session.add(group)
    session.flush()  # populate group.id before creating membership

    join(group.id, creator.id, as_leader=True, session=session)

    return build_group_dict(group, [(creator, True)])


def get_group(group_id: int, session: Session) -> dict:
    """Returns a group with its member list, leaders first. Public."""
    group = _get_group_or_404(group_id, session)

    rows = session.execute(
        select(User, Membership.is_leader)
        .join(Membership, User.id == Membership.user_id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.is_leader.desc(), Membership.id.asc())
    ).all()

    return build_group_dict(group, [(user, leader) for user, leader in rows])


def list_memberships(artist_id: int, session: Session) -> list[dict]:
    """
    Groups artist_id belongs to, in the order they joined. Public.

    A fan has no memberships, so the list is empty.

    Raises:
      AppError(USER_NOT_FOUND, 404)
    """
    _get_user_or_404(artist_id, session)

    groups = session.execute(
        select(Group)
        .join(Membership, Membership.group_id == Group.id)
        .where(Membership.user_id == artist_id)
        .order_by(Membership.id.asc())
    ).scalars().all()

    return [build_group_dict(group) for group in groups]


# ── Invitations ────────────────────────────────────────────────────────────

def invite(group_id: int, session: Session) -> GroupInvitation:
    """
    Issues a fresh, unredeemed invitation for group_id.

    No authorization here — invite_to_group() is the guarded entry point.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
    """
    _get_group_or_404(group_id, session)

    invitation = GroupInvitation(group_id=group_id, invited=False)
    session.add(invitation)
    session.flush()
    return invitation


def invite_to_group(group_id: int, caller_id: int, session: Session) -> dict:
    """
    Issues an invitation on behalf of caller_id, who must lead the group.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(FAN_CANNOT_MANAGE_GROUP, 403)
      AppError(GROUP_NOT_FOUND, 404)
      AppError(NOT_MEMBER_OF_GROUP, 403)
      AppError(NOT_GROUP_LEADER, 403)
    """
    caller = _get_user_or_404(caller_id, session)
    if not caller.is_artist:
        raise forbidden(
            ErrorCode.FAN_CANNOT_MANAGE_GROUP,
            "Fans cannot invite members to a group.",
        )

    _get_group_or_404(group_id, session)

    if not is_leader(group_id, caller_id, session):
        raise forbidden(
            ErrorCode.NOT_GROUP_LEADER,
            "Only the group leader may issue invitations.",
        )

    return _build_invitation_dict(invite(group_id, session))


def redeem_invitation(invitation_id: int, user_id: int, session: Session) -> dict:
    """
    Redeems an invitation: user_id joins the invitation's group as a
    non-leader, and the invitation is marked used.

    Raises:
      AppError(INVITATION_NOT_FOUND, 404)
      AppError(USER_NOT_FOUND, 404)
      AppError(FAN_CANNOT_JOIN_GROUP, 403)
      AppError(INVITATION_ALREADY_USED, 409)
      AppError(ALREADY_MEMBER, 409)

    Returns: the new membership dict.
    """
    # Row lock: a concurrent redeem of the same invitation waits here and
    # then observes invited=true. SQLite ignores FOR UPDATE.
    invitation = session.execute(
        select(GroupInvitation)
        .where(GroupInvitation.id == invitation_id)
        .with_for_update()
    ).scalar_one_or_none()
    if invitation is None:
        raise not_found(ErrorCode.INVITATION_NOT_FOUND, "Invitation", invitation_id)

    user = _get_user_or_404(user_id, session)
    if not user.is_artist:
        raise forbidden(
            ErrorCode.FAN_CANNOT_JOIN_GROUP,
            "Fans cannot join a group.",
        )

    if invitation.invited:
        raise conflict(
            ErrorCode.INVITATION_ALREADY_USED,
            f"Invitation {invitation_id} has already been used.",
        )

    if is_member(invitation.group_id, user_id, session):
        raise conflict(
            ErrorCode.ALREADY_MEMBER,
            f"You are already a member of group {invitation.group_id}.",
        )

    membership = Membership(
        group_id=invitation.group_id,
        user_id=user_id,
        is_leader=False,
    )
    session.add(membership)
    try:
        session.flush()
    except IntegrityError:
        # Lost the race on uq_memberships_group_user. UnitOfWork rolls back.
        raise conflict(
            ErrorCode.ALREADY_MEMBER,
            f"You are already a member of group {invitation.group_id}.",
        ) from None

    invitation.membership_id = membership.id
    invitation.invited = True
    session.flush()

    return _build_membership_dict(membership)


# ── Followers ──────────────────────────────────────────────────────────────

def follow_group(group_id: int, user_id: int, session: Session) -> dict:
    """
    Adds user_id to the followers of group_id.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(ALREADY_FOLLOWING, 409)
    """
    _get_group_or_404(group_id, session)

    existing = session.execute(
        select(GroupFollower).where(
            GroupFollower.group_id == group_id,
            GroupFollower.user_id == user_id,
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise conflict(
            ErrorCode.ALREADY_FOLLOWING,
            f"You already follow group {group_id}.",
        )

    session.add(GroupFollower(group_id=group_id, user_id=user_id))
    try:
        session.flush()
    except IntegrityError:
        raise conflict(
            ErrorCode.ALREADY_FOLLOWING,
            f"You already follow group {group_id}.",
        ) from None

    return {"group_id": group_id, "user_id": user_id, "following": True}


def unfollow_group(group_id: int, user_id: int, session: Session) -> dict:
    """
    Removes user_id from the followers of group_id.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(NOT_FOLLOWING, 409)
    """
    _get_group_or_404(group_id, session)

    existing = session.execute(
        select(GroupFollower).where(
            GroupFollower.group_id == group_id,
            GroupFollower.user_id == user_id,
        )
    ).scalar_one_or_none()
    if existing is None:
        raise conflict(
            ErrorCode.NOT_FOLLOWING,
            f"You do not follow group {group_id}.",
        )

    session.delete(existing)
    session.flush()

    return {"group_id": group_id, "user_id": user_id, "following": False}
