"""
Login streak tracking.
One login_history row per user per (local) day; the streak is the run of
consecutive days ending at the most recent login.
"""

import calendar
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError

from models import db, Profile, LoginHistory
from badges import check_and_award_badges

logger = logging.getLogger('relief.streaks')


def calculate_streak(login_dates):
    """Count consecutive days back from the most recent login date.

    Duplicates are ignored and the input does not need to be sorted.
    """
    dates = sorted(set(login_dates), reverse=True)
    if not dates:
        return 0

    streak = 1
    for current, previous in zip(dates, dates[1:]):
        if (current - previous).days == 1:
            streak += 1
        else:
            break
    return streak


def _streak_data(profile, new_badges=None):
    return {
        'current_streak': (profile.streak or 0) if profile else 0,
        'longest_streak': (profile.longest_streak or 0) if profile else 0,
        'new_badges': new_badges or [],
    }


def record_login(user_id, today=None):
    """Record today's login and refresh the profile's streak counters.

    Args:
        user_id: Profile id
        today: the user's local date; defaults to the UTC date

    Returns:
        dict with current_streak, longest_streak and the new_badges the
        login earned
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    profile = db.session.get(Profile, user_id)
    if not profile:
        return _streak_data(None)

    existing = LoginHistory.query.filter_by(user_id=user_id, login_date=today).first()
    if existing:
        return _streak_data(profile)

    try:
        db.session.add(LoginHistory(user_id=user_id, login_date=today))
        db.session.flush()
    except IntegrityError:
        # Another request recorded today's login first
        db.session.rollback()
        logger.info(f'Login for {user_id} on {today} already recorded')
        return _streak_data(db.session.get(Profile, user_id))

    login_dates = [row.login_date for row in LoginHistory.query.filter_by(user_id=user_id).all()]
    streak = calculate_streak(login_dates)
    profile.streak = streak
    profile.longest_streak = max(profile.longest_streak or 0, streak)
    db.session.commit()
    logger.info(f'Recorded login for {user_id}: streak={streak}')

    badge_result = check_and_award_badges(user_id)

    return _streak_data(profile, badge_result.get('new_badges'))


def get_login_history(user_id, start_date=None, end_date=None):
    """Login rows for a user, newest first, optionally within [start_date, end_date]."""
    query = LoginHistory.query.filter_by(user_id=user_id)
    if start_date:
        query = query.filter(LoginHistory.login_date >= start_date)
    if end_date:
        query = query.filter(LoginHistory.login_date <= end_date)
    return query.order_by(LoginHistory.login_date.desc()).all()


def get_month_login_dates(user_id, year, month):
    """Day-of-month numbers the user logged in on, for the streak calendar."""
    last_day = calendar.monthrange(year, month)[1]
    history = get_login_history(user_id, date(year, month, 1), date(year, month, last_day))
    return {entry.login_date.day for entry in history}
