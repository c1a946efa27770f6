"""
Profile helpers and the Karma Points ledger.
Every change to a profile's balance goes through here so points_history
stays in step with the balance.
"""

import logging

from models import (
    db, Profile, PointsHistory, PostLike, PostComment, Group, GroupMessage,
    CommunityEvent, EventAttendee, SuccessStory, StoryLike, TipVote, Recommendation,
)

logger = logging.getLogger('relief.profiles')


class InsufficientPointsError(Exception):
    """Raised when a purchase costs more than the profile's balance."""

    def __init__(self, balance, cost):
        super().__init__(f'Insufficient Karma Points: balance {balance}, cost {cost}')
        self.balance = balance
        self.cost = cost


def get_profile(user_id):
    return db.session.get(Profile, user_id)


def ensure_user_profile(user_id, email=None, username=None, avatar_url=None):
    """Return the user's profile, creating it on first sign-in.

    Returns:
        (profile, created)
    """
    profile = get_profile(user_id)
    if profile:
        # Keep contact details in sync with the identity provider
        if email and profile.email != email:
            profile.email = email
            db.session.commit()
        return profile, False

    profile = Profile(
        id=user_id,
        email=email or '',
        username=username or 'User',
        avatar_url=avatar_url or '',
        carbon_total=0,
        carbon_savings=0,
        streak=0,
        longest_streak=0,
        balance=0,
        badge_count=0,
    )
    db.session.add(profile)
    db.session.commit()
    logger.info(f'Created new profile for user {user_id}')
    return profile, True


def log_points_history(user_id, amount, reason, source=None, commit=True):
    """Append one row to the Karma Points ledger."""
    entry = PointsHistory(user_id=user_id, amount=int(amount), reason=reason, source=source)
    db.session.add(entry)
    if commit:
        db.session.commit()
    return entry


def update_user_stats(user_id, emission, karma, savings=0, reason=None, source=None, commit=True):
    """Add an emission, earned points and savings to the profile totals.

    When ``reason`` is given the earned points are also written to the ledger.
    Returns the updated profile, or None if it does not exist.
    """
    profile = get_profile(user_id)
    if not profile:
        logger.warning(f'update_user_stats: profile {user_id} not found')
        return None

    profile.carbon_total = (profile.carbon_total or 0) + emission
    profile.carbon_savings = (profile.carbon_savings or 0) + savings
    profile.balance = (profile.balance or 0) + int(karma)
    if reason and karma:
        log_points_history(user_id, karma, reason, source, commit=False)
    if commit:
        db.session.commit()
    return profile


def spend_points(profile, amount, reason, source='Rewards'):
    """Deduct points and log the spend. Does not commit.

    Raises:
        InsufficientPointsError: if the balance is lower than ``amount``
    """
    balance = profile.balance or 0
    if balance < amount:
        raise InsufficientPointsError(balance, amount)
    profile.balance = balance - amount
    log_points_history(profile.id, -amount, reason, source, commit=False)
    return profile.balance


def get_points_history(user_id, limit=50):
    return (PointsHistory.query
            .filter_by(user_id=user_id)
            .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
            .limit(limit)
            .all())


def delete_profile(user_id):
    """Delete a profile together with everything it owns or authored.

    Returns False if the profile does not exist.
    """
    profile = get_profile(user_id)
    if not profile:
        return False

    # Rows on other users' content that only reference the profile by id
    for model in (PostLike, PostComment, GroupMessage, EventAttendee, StoryLike, TipVote,
                  SuccessStory, Recommendation):
        model.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    for group in Group.query.filter_by(creator_id=user_id).all():
        db.session.delete(group)
    for event in CommunityEvent.query.filter_by(organizer_id=user_id).all():
        db.session.delete(event)

    db.session.delete(profile)
    db.session.commit()
    logger.info(f'Deleted profile {user_id}')
    return True
