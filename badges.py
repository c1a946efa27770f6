"""
Badge evaluation and awarding.
"""

import logging
from datetime import timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import SQLAlchemyError

from models import (
    db, Profile, Activity, Bill, Badge, UserBadge, GroupMember, Group, Post,
    UserReward, Reward,
)
from profiles import log_points_history
from email_service import send_badge_email, send_batch

logger = logging.getLogger('relief.badges')

RARITY_ORDER = {'legendary': 4, 'epic': 3, 'rare': 2, 'common': 1}
EARLY_MORNING_HOUR = 7


def _value(badge, key):
    if isinstance(badge, dict):
        return badge.get(key)
    return getattr(badge, key)


def check_badge_eligibility(badge, stats):
    """True when the badge's stat meets or exceeds its requirement."""
    current = stats.get(_value(badge, 'requirement_type')) or 0
    return current >= _value(badge, 'requirement_value')


def find_new_badges(badges, earned_ids, stats):
    return [b for b in badges if _value(b, 'id') not in earned_ids and check_badge_eligibility(b, stats)]


def calculate_badge_progress(badge, stats):
    current = stats.get(_value(badge, 'requirement_type')) or 0
    required = _value(badge, 'requirement_value')
    percentage = min(current / required * 100, 100) if required else 100
    return {
        'badge': badge,
        'current': current,
        'required': required,
        'percentage': percentage,
        'is_earned': current >= required,
    }


def format_badge_progress(progress):
    if progress['is_earned']:
        return 'Earned!'
    current = progress['current']
    required = progress['required']
    requirement_type = _value(progress['badge'], 'requirement_type')
    if requirement_type == 'carbon_saved':
        return f'{current:.1f} / {required:g} kg CO2'
    if requirement_type == 'streak_days':
        return f'{current:g} / {required:g} days'
    if requirement_type == 'activities_count':
        return f'{current:g} / {required:g} actions'
    if requirement_type == 'karma_earned':
        return f'{current:g} / {required:g} KP'
    return f'{current:g} / {required:g}'


def sort_badges(badges, criterion='rarity'):
    if criterion == 'rarity':
        return sorted(badges, key=lambda b: RARITY_ORDER.get(_value(b, 'rarity'), 0), reverse=True)
    if criterion == 'name':
        return sorted(badges, key=lambda b: _value(b, 'name').lower())
    if criterion == 'category':
        return sorted(badges, key=lambda b: _value(b, 'category'))
    return list(badges)


def filter_badges(badges, category=None, rarity=None, search=None):
    filtered = list(badges)
    if category:
        filtered = [b for b in filtered if _value(b, 'category') == category]
    if rarity:
        filtered = [b for b in filtered if _value(b, 'rarity') == rarity]
    if search:
        query = search.lower()
        filtered = [b for b in filtered
                    if query in _value(b, 'name').lower() or query in (_value(b, 'description') or '').lower()]
    return filtered


def _count_early_morning_logs(user_id, tz_name):
    try:
        zone = ZoneInfo(tz_name or 'UTC')
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo('UTC')
    count = 0
    for (created_at,) in db.session.query(Activity.created_at).filter(Activity.user_id == user_id):
        if created_at is None:
            continue
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if created_at.astimezone(zone).hour < EARLY_MORNING_HOUR:
            count += 1
    return count


def get_user_stats(user_id, profile=None, earned_count=None):
    """Aggregate the statistics badge requirements are measured against."""
    profile = profile or db.session.get(Profile, user_id)
    if earned_count is None:
        earned_count = UserBadge.query.filter_by(user_id=user_id).count()

    trees = (UserReward.query.join(Reward)
             .filter(UserReward.user_id == user_id, Reward.type == 'Tree Donation')
             .count())

    return {
        'activities_count': Activity.query.filter_by(user_id=user_id).count(),
        'bills_count': Bill.query.filter_by(user_id=user_id).count(),
        'streak_days': (profile.streak or 0) if profile else 0,
        'carbon_saved': float(profile.carbon_savings or 0) if profile else 0,
        'karma_earned': (profile.balance or 0) if profile else 0,
        'teams_joined': GroupMember.query.filter_by(user_id=user_id).count(),
        'teams_created': Group.query.filter_by(creator_id=user_id).count(),
        'posts_count': Post.query.filter_by(user_id=user_id).count(),
        'badges_earned': earned_count,
        'early_morning_log': _count_early_morning_logs(user_id, profile.timezone if profile else None),
        'trees_planted_virtual': trees,
        # no quiz feature, so quiz-wizard stays locked
        'perfect_quizzes': 0,
    }


def check_and_award_badges(user_id):
    """
    Award every badge the user now qualifies for.

    Returns:
        dict with success, new_badges (list of badge dicts) and total_karma
    """
    try:
        profile = db.session.get(Profile, user_id)
        if not profile:
            return {'success': False, 'error': 'Profile not found', 'new_badges': [], 'total_karma': 0}

        earned_ids = {row.badge_id for row in UserBadge.query.filter_by(user_id=user_id)}
        unearned = Badge.query.filter(~Badge.id.in_(earned_ids)).all() if earned_ids else Badge.query.all()
        if not unearned:
            return {'success': True, 'new_badges': [], 'total_karma': 0}

        stats = get_user_stats(user_id, profile, len(earned_ids))
        new_badges = find_new_badges(unearned, earned_ids, stats)
        if not new_badges:
            return {'success': True, 'new_badges': [], 'total_karma': 0}

        logger.info(f'Awarding {len(new_badges)} new badges to {user_id}')
        total_karma = sum(b.karma_reward or 0 for b in new_badges)
        for badge in new_badges:
            db.session.add(UserBadge(user_id=user_id, badge_id=badge.id))
            if badge.karma_reward:
                log_points_history(user_id, badge.karma_reward, f'Earned Badge: {badge.name}', 'Badges',
                                   commit=False)
        profile.balance = (profile.balance or 0) + total_karma
        profile.badge_count = len(earned_ids) + len(new_badges)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f'Error awarding badges to {user_id}: {e}')
        return {'success': False, 'error': str(e), 'new_badges': [], 'total_karma': 0}

    if profile.email:
        name = profile.username or 'Eco Warrior'
        send_batch([
            lambda b=badge: send_badge_email(profile.email, name, b.name, b.icon)
            for badge in new_badges
        ])

    return {
        'success': True,
        'new_badges': [b.to_dict() for b in new_badges],
        'total_karma': total_karma,
    }
