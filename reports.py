"""
Carbon report queries over a user's activity rows.
Days are the activity's log_date (the user's local date at logging time).
"""

import math
from datetime import date, datetime, timedelta, timezone

from models import db, Activity

DAILY_BASELINE_KG = 50
BUDGET_ALERT_LEVELS = (100, 80)


def _today(today=None):
    return today or datetime.now(timezone.utc).date()


def get_user_carbon_history(user_id, start_date, end_date):
    """Activities with start_date <= log_date <= end_date, oldest first."""
    return (Activity.query
            .filter(Activity.user_id == user_id,
                    Activity.log_date >= start_date,
                    Activity.log_date <= end_date)
            .order_by(Activity.log_date.asc(), Activity.created_at.asc())
            .all())


def activity_breakdown(activity):
    """Per-category kg for one activity.

    A daily log stores its calculator breakdown in the details column; other
    activities count entirely toward their own category.
    """
    breakdown = (activity.details or {}).get('breakdown') if isinstance(activity.details, dict) else None
    if isinstance(breakdown, dict):
        parts = {k: float(v) for k, v in breakdown.items() if isinstance(v, (int, float)) and v > 0}
        if parts:
            return parts
    return {activity.category: float(activity.impact or 0)}


def aggregate_by_category(activities):
    """Totals per category, largest first: [{category, total_co2, count}]."""
    totals = {}
    for activity in activities:
        for category, amount in activity_breakdown(activity).items():
            entry = totals.setdefault(category, {'category': category, 'total_co2': 0.0, 'count': 0})
            entry['total_co2'] += amount
            entry['count'] += 1
    for entry in totals.values():
        entry['total_co2'] = round(entry['total_co2'], 2)
    return sorted(totals.values(), key=lambda e: e['total_co2'], reverse=True)


def get_carbon_by_category(user_id, days=30, today=None):
    today = _today(today)
    return aggregate_by_category(get_user_carbon_history(user_id, today - timedelta(days=days), today))


def _sum_impact(activities):
    return sum(a.impact or 0 for a in activities)


def change_percent(current, previous):
    if previous == 0:
        return 0
    return round((current - previous) / previous * 100, 2)


def get_weekly_comparison(user_id, today=None):
    """This week (last 7 days incl. today) against the 7 days before it."""
    today = _today(today)
    week_start = today - timedelta(days=6)
    previous_start = today - timedelta(days=13)
    previous_end = today - timedelta(days=7)

    current = round(_sum_impact(get_user_carbon_history(user_id, week_start, today)), 2)
    previous = round(_sum_impact(get_user_carbon_history(user_id, previous_start, previous_end)), 2)
    return {
        'current_week': current,
        'previous_week': previous,
        'change_percent': change_percent(current, previous),
    }


def _months_back(day, months):
    month_index = day.year * 12 + (day.month - 1) - months
    return date(month_index // 12, month_index % 12 + 1, 1)


def get_monthly_trends(user_id, months=6, today=None):
    today = _today(today)
    start = _months_back(today, months)
    monthly = {}
    for activity in get_user_carbon_history(user_id, start, today):
        key = activity.log_date.strftime('%Y-%m')
        monthly[key] = monthly.get(key, 0) + (activity.impact or 0)
    return [{'month': month, 'total_co2': round(total, 2)} for month, total in sorted(monthly.items())]


def get_daily_totals(user_id, days=7, today=None):
    """One entry per day for the last ``days`` days, zero-filled, oldest first."""
    today = _today(today)
    start = today - timedelta(days=days - 1)
    daily = {(start + timedelta(days=i)).isoformat(): 0.0 for i in range(days)}
    for activity in get_user_carbon_history(user_id, start, today):
        key = activity.log_date.isoformat()
        daily[key] = daily.get(key, 0) + (activity.impact or 0)
    return [{'date': day, 'total_co2': round(total, 2)} for day, total in sorted(daily.items())]


def get_total_carbon_saved(user_id, today=None):
    """A 50 kg/day baseline over the last year minus what was actually emitted."""
    today = _today(today)
    start = today - timedelta(days=365)
    emitted = _sum_impact(get_user_carbon_history(user_id, start, today))
    return round(max(0, 365 * DAILY_BASELINE_KG - emitted), 2)


def get_month_emissions(user_id, today=None):
    today = _today(today)
    total = (db.session.query(db.func.coalesce(db.func.sum(Activity.impact), 0))
             .filter(Activity.user_id == user_id,
                     Activity.log_date >= today.replace(day=1),
                     Activity.log_date <= today)
             .scalar())
    return round(float(total or 0), 2)


def budget_alert_threshold(before, after, limit):
    """The highest budget level (100 or 80 percent) crossed by going from ``before`` to ``after``."""
    if not limit or limit <= 0:
        return None
    for level in BUDGET_ALERT_LEVELS:
        mark = limit * level / 100
        if before < mark <= after:
            return level
    return None


def build_summary(user_id, today=None):
    today = _today(today)
    return {
        'by_category': get_carbon_by_category(user_id, 30, today),
        'weekly': get_weekly_comparison(user_id, today),
        'monthly_trends': get_monthly_trends(user_id, 6, today),
        'daily_totals': get_daily_totals(user_id, 7, today),
        'total_saved': get_total_carbon_saved(user_id, today),
        'month_to_date': get_month_emissions(user_id, today),
    }


def top_percentile(value, values):
    """Where ``value`` ranks among ``values`` as a "top N%" figure; lower emissions rank higher."""
    if not values:
        return 100
    rank = 1 + sum(1 for v in values if v < value)
    return max(1, math.ceil(rank / len(values) * 100))
